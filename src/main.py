"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text

from config.settings import settings
from src.bo_account.api.router import router as account_router
from src.bo_common.database import engine
from src.bo_common.errors import AppError, RequestValidationFailedError
from src.bo_common.redis_client import close_redis, get_redis
from src.bo_common.response import error_response
from src.bo_gateway.api.router import router as auth_router
from src.bo_gateway.middleware.request_log import RequestLogMiddleware, get_request_id
from src.bo_oracle.application.service import close_price_oracle
from src.bo_order.api.router import router as order_router
from src.bo_order.application.service import get_expiration_scheduler

logger = logging.getLogger("bo.app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, ping Redis, start the expiration scheduler. Shutdown: reverse."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    try:
        redis = await get_redis()
        await redis.ping()
    except RedisError as exc:
        # Only the price cache depends on Redis; run without it.
        logger.warning("Redis unavailable at startup, price cache disabled until it recovers: %s", exc)

    scheduler = get_expiration_scheduler()
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    yield
    await scheduler.stop()
    await close_price_oracle()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, get_request_id(request))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg')}"
        for err in exc.errors()
    )
    return await app_error_handler(request, RequestValidationFailedError(details or "Invalid request"))


app.include_router(auth_router, prefix="/api/v1")
app.include_router(account_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}

"""PriceOracle — current USD quote per asset, never blocking order flow.

Lookup order:
  1. live CoinGecko ``simple/price`` call, bounded by PRICE_ORACLE_TIMEOUT_SECONDS
     (a hit is written to the Redis last-known cache with its timestamp)
  2. Redis last-known quote (``price:{SYMBOL}``, TTL PRICE_CACHE_TTL_SECONDS)
  3. for entry prices only: the client's hint, then the static default

Every failure in 1 or 2 is logged and swallowed; the caller always gets
a ``Quote`` or None, never an exception for unavailability. Each quote
carries its source and observation time so settlement can tell an oracle
price taken near a deadline from a fallback that must not decide an outcome.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from typing import Protocol

import httpx
from redis.exceptions import RedisError

from config.settings import settings
from src.bo_common.datetime_utils import utc_now
from src.bo_common.enums import PriceSource
from src.bo_common.money import parse_price
from src.bo_common.redis_client import get_redis
from src.bo_oracle.domain.assets import Asset, lookup_asset
from src.bo_oracle.domain.quote import Quote

logger = logging.getLogger("bo.oracle")

_CACHE_KEY = "price:{symbol}"


class PriceCacheProtocol(Protocol):
    async def get(self, symbol: str) -> Quote | None: ...

    async def set(self, symbol: str, quote: Quote) -> None: ...


class RedisPriceCache:
    """Last-known quotes in Redis; a Redis outage degrades to cache misses.

    Stored as ``{"price": "50123.45", "as_of": "<ISO8601>"}``.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self._ttl = ttl_seconds or settings.PRICE_CACHE_TTL_SECONDS

    async def get(self, symbol: str) -> Quote | None:
        try:
            redis = await get_redis()
            raw = await redis.get(_CACHE_KEY.format(symbol=symbol))
        except RedisError as exc:
            logger.warning("Price cache read failed for %s: %s", symbol, exc)
            return None
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            price = parse_price(payload["price"])
            as_of = datetime.fromisoformat(payload["as_of"])
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring malformed cached quote for %s: %r", symbol, raw)
            return None
        if price is None:
            return None
        return Quote(price=price, source=PriceSource.CACHE, as_of=as_of)

    async def set(self, symbol: str, quote: Quote) -> None:
        value = json.dumps({"price": str(quote.price), "as_of": quote.as_of.isoformat()})
        try:
            redis = await get_redis()
            await redis.set(_CACHE_KEY.format(symbol=symbol), value, ex=self._ttl)
        except RedisError as exc:
            logger.warning("Price cache write failed for %s: %s", symbol, exc)


class PriceOracle:
    def __init__(
        self,
        cache: PriceCacheProtocol | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        url: str | None = None,
        timeout: float | None = None,
        max_age_seconds: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._cache: PriceCacheProtocol = cache or RedisPriceCache()
        self._transport = transport
        self._url = url or settings.PRICE_ORACLE_URL
        self._timeout = timeout if timeout is not None else settings.PRICE_ORACLE_TIMEOUT_SECONDS
        self._max_age = (
            max_age_seconds if max_age_seconds is not None else settings.QUOTE_MAX_AGE_SECONDS
        )
        self._clock = clock
        self._client: httpx.AsyncClient | None = None

    @property
    def max_age_seconds(self) -> float:
        return self._max_age

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_live(self, asset: Asset) -> Decimal | None:
        try:
            response = await self._get_client().get(
                self._url,
                params={"ids": asset.coingecko_id, "vs_currencies": "usd"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Live quote for %s unavailable: %s", asset.symbol, exc)
            return None

        quote = payload.get(asset.coingecko_id, {}) if isinstance(payload, dict) else {}
        price = parse_price(quote.get("usd") if isinstance(quote, dict) else None)
        if price is None:
            logger.warning("Live quote for %s missing in response: %r", asset.symbol, payload)
        return price

    async def get_quote(self, raw_asset: str) -> Quote | None:
        """Live quote, else last-known cached quote, else None."""
        asset = lookup_asset(raw_asset)
        price = await self.fetch_live(asset)
        if price is not None:
            quote = Quote(price=price, source=PriceSource.LIVE, as_of=self._clock())
            await self._cache.set(asset.symbol, quote)
            return quote
        cached = await self._cache.get(asset.symbol)
        if cached is not None:
            logger.info(
                "Using cached quote for %s: %s as of %s",
                asset.symbol,
                cached.price,
                cached.as_of.isoformat(),
            )
        return cached

    async def resolve_entry_price(self, raw_asset: str, hint: Decimal | None = None) -> Quote:
        """Entry quote for a new order; never fails.

        A cached quote older than ``max_age_seconds`` is not used. Without a
        usable oracle quote the hint, then the static default, is returned
        with its source; such orders settle flat.
        """
        now = self._clock()
        quote = await self.get_quote(raw_asset)
        if quote is not None and quote.prices(now, self._max_age):
            return quote
        if quote is not None:
            logger.warning(
                "Cached quote for %s is %.0fs old, not used as an entry price",
                raw_asset,
                quote.skew_seconds(now),
            )
        if hint is not None:
            logger.info("Oracle unavailable for %s, using client hint %s", raw_asset, hint)
            return Quote(price=hint, source=PriceSource.HINT, as_of=now)
        asset = lookup_asset(raw_asset)
        logger.info("Oracle unavailable for %s, using default %s", raw_asset, asset.default_price)
        return Quote(price=asset.default_price, source=PriceSource.DEFAULT, as_of=now)


_oracle: PriceOracle | None = None


def get_price_oracle() -> PriceOracle:
    """Process-wide oracle sharing one HTTP connection pool."""
    global _oracle  # noqa: PLW0603
    if _oracle is None:
        _oracle = PriceOracle()
    return _oracle


async def close_price_oracle() -> None:
    global _oracle  # noqa: PLW0603
    if _oracle is not None:
        await _oracle.aclose()
        _oracle = None

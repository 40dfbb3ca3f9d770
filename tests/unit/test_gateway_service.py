"""Unit tests for user service (mocked DB)."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.bo_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UsernameExistsError,
)
from src.bo_gateway.auth.jwt_handler import create_access_token, create_refresh_token
from src.bo_gateway.user.db_models import UserModel
from src.bo_gateway.user.service import UserService


def _make_user(is_active: bool = True, is_admin: bool = False) -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.username = "alice"
    user.email = "alice@example.com"
    user.password_hash = "$2b$12$fakehash"
    user.is_active = is_active
    user.is_admin = is_admin
    return user


def _result(value: object) -> MagicMock:
    res = MagicMock()
    res.scalar_one_or_none.return_value = value
    return res


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def service() -> UserService:
    return UserService()


class TestRegister:
    async def test_duplicate_username_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))
        with pytest.raises(UsernameExistsError):
            await service.register("alice", "new@email.com", "Pass1word", mock_db)

    async def test_duplicate_email_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(_make_user())])
        with pytest.raises(EmailExistsError):
            await service.register("newuser", "alice@example.com", "Pass1word", mock_db)

    async def test_creates_user_and_account(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(None), MagicMock()])

        async def _flush() -> None:
            added = mock_db.add.call_args.args[0]
            added.id = uuid.uuid4()

        mock_db.flush = AsyncMock(side_effect=_flush)

        with patch("src.bo_gateway.user.service.hash_password", return_value="hashed"):
            user = await service.register("bob", "bob@example.com", "Pass1word", mock_db)

        assert user.username == "bob"
        assert user.password_hash == "hashed"
        assert user.is_admin is False
        account_params = mock_db.execute.await_args_list[2].args[1]
        assert account_params == {"user_id": str(user.id)}

    async def test_configured_admin_username(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(side_effect=[_result(None), _result(None), MagicMock()])
        with (
            patch("src.bo_gateway.user.service.settings.ADMIN_USERNAMES", ["root_admin"]),
            patch("src.bo_gateway.user.service.hash_password", return_value="hashed"),
        ):
            user = await service.register("root_admin", "r@example.com", "Pass1word", mock_db)
        assert user.is_admin is True


class TestLogin:
    async def test_unknown_user_raises_credentials_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(None))
        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody", "Pass1word", mock_db)

    async def test_wrong_password_raises_credentials_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))
        with (
            patch("src.bo_gateway.user.service.verify_password", return_value=False),
            pytest.raises(InvalidCredentialsError),
        ):
            await service.login("alice", "WrongPass1", mock_db)

    async def test_disabled_account_raises_error(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user(is_active=False)))
        with (
            patch("src.bo_gateway.user.service.verify_password", return_value=True),
            pytest.raises(AccountDisabledError),
        ):
            await service.login("alice", "Pass1word", mock_db)

    async def test_success_returns_user_and_token_pair(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        mock_db.execute = AsyncMock(return_value=_result(_make_user()))
        with patch("src.bo_gateway.user.service.verify_password", return_value=True):
            user, access, refresh = await service.login("alice", "Pass1word", mock_db)
        assert user.username == "alice"
        assert access != refresh


class TestRefresh:
    async def test_valid_refresh_returns_access_token(self, service: UserService) -> None:
        token = await service.refresh(create_refresh_token("user-123"))
        assert token

    async def test_invalid_refresh_token_raises_error(self, service: UserService) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh("not.a.real.token")

    async def test_access_token_used_as_refresh_raises_error(self, service: UserService) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_access_token("user-123"))

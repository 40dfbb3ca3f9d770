"""Unit tests for bo_gateway Pydantic schemas."""

import pytest
from pydantic import ValidationError

from src.bo_gateway.user.schemas import LoginResponse, RegisterRequest, UserInfo


class TestRegisterRequest:
    def test_valid_input(self) -> None:
        req = RegisterRequest(username="alice", email="alice@example.com", password="SecureP@ss1")
        assert req.username == "alice"

    def test_username_too_short(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="ab", email="a@b.com", password="SecureP@ss1")

    def test_username_invalid_chars(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice!", email="a@b.com", password="SecureP@ss1")

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="not-an-email", password="SecureP@ss1")

    def test_password_no_digit(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="a@b.com", password="NoDigitPass")

    def test_password_no_uppercase(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="a@b.com", password="alllower1")


class TestLoginResponse:
    def test_bearer_default(self) -> None:
        resp = LoginResponse(
            access_token="a",
            refresh_token="r",
            expires_in=1800,
            user=UserInfo(user_id="u1", username="alice", email="a@b.com"),
        )
        assert resp.token_type == "Bearer"
        assert resp.user.is_admin is False

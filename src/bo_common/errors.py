"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account
  4xxx: Betting order
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin privileges required", 403)


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: str, available: str) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            400,
        )


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


class InsufficientHeldBalanceError(AppError):
    def __init__(self, required: str, held: str) -> None:
        super().__init__(
            2003,
            f"Unfreeze amount {required} exceeds admin-held balance {held}",
            400,
        )


class WithdrawalNotFoundError(AppError):
    def __init__(self, request_id: str) -> None:
        super().__init__(2004, f"Withdrawal request not found: {request_id}", 404)


class WithdrawalNotPendingError(AppError):
    def __init__(self, request_id: str, status: str) -> None:
        super().__init__(
            2005, f"Withdrawal request {request_id} is already {status}", 422
        )


# --- 4xxx: Betting order ---

class InvalidDurationError(AppError):
    def __init__(self, duration: int, allowed: list[int]) -> None:
        super().__init__(
            4001,
            f"Invalid duration {duration}s, allowed: {', '.join(str(d) for d in allowed)}",
            400,
        )


class BelowMinimumError(AppError):
    def __init__(self, amount: str, minimum: str) -> None:
        super().__init__(4002, f"Order amount {amount} is below the minimum {minimum}", 400)


class UnsupportedAssetError(AppError):
    def __init__(self, asset: str) -> None:
        super().__init__(4003, f"Unsupported asset: {asset}", 400)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class OrderNotCancellableError(AppError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(4006, f"Order {order_id} in status {status} cannot be cancelled", 422)


class OrderForbiddenError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4007, f"Order {order_id} belongs to another user", 403)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class RequestValidationFailedError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, detail, 400)

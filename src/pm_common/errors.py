"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Account / balance
  3xxx: Market
  4xxx: Trade input
  5xxx: Position
  9xxx: System
"""

from decimal import Decimal


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

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class UnauthorizedError(AppError):
    def __init__(self, action: str = "this action") -> None:
        super().__init__(1006, f"Not authorized to perform {action}", 403)


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketLockedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market is locked: {market_id}", 422)


class MarketResolvedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3004, f"Market is resolved: {market_id}", 422)


class AlreadyResolvedError(AppError):
    def __init__(self, market_id: str, outcome: str) -> None:
        super().__init__(3005, f"Market {market_id} already resolved as {outcome}", 409)


class InvalidMarketParamsError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3006, f"Invalid market parameters: {detail}", 422)


# --- 4xxx: Trade input ---

class InvalidAmountError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Invalid amount: {detail}", 422)


class InvalidSharesError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4002, f"Invalid shares: {detail}", 422)


# --- 5xxx: Position ---

class InsufficientSharesError(AppError):
    def __init__(self, requested: Decimal, owned: Decimal) -> None:
        super().__init__(
            5001,
            f"Insufficient shares: requested {requested}, owned {owned}",
            422,
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ConflictError(AppError):
    """Concurrent update could not be serialized in time. Safe to retry."""

    def __init__(self, detail: str = "Concurrent update conflict, please retry") -> None:
        super().__init__(9003, detail, 409)

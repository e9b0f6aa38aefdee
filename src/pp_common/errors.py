"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Account
  3xxx: Round
  4xxx: Bet
  5xxx: Settlement
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


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid or expired token", 401)


class ResolverRoleRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Resolver role required", 403)


# --- 2xxx: Account ---

class InsufficientBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient balance: required {required}, available {available}",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


# --- 3xxx: Round ---

class RoundNotFoundError(AppError):
    def __init__(self, round_id: int | str) -> None:
        super().__init__(3001, f"Round not found: {round_id}", 404)


class RoundClosedError(AppError):
    def __init__(self, round_id: int) -> None:
        super().__init__(3002, f"Round {round_id} is already resolved, betting closed", 409)


class NotYetEndedError(AppError):
    def __init__(self, round_id: int, end_time: str) -> None:
        super().__init__(3003, f"Round {round_id} has not ended yet (ends at {end_time})", 409)


class AlreadyResolvedError(AppError):
    def __init__(self, round_id: int) -> None:
        super().__init__(3004, f"Round {round_id} is already resolved", 409)


class InvalidPriceError(AppError):
    def __init__(self, price: int) -> None:
        super().__init__(
            3005, f"Price must be a positive 64-bit fixed-point integer, got {price}", 422
        )


# --- 4xxx: Bet ---

class StakeTooLowError(AppError):
    def __init__(self, amount: int, min_bet: int) -> None:
        super().__init__(4001, f"Stake {amount} is below the minimum bet {min_bet}", 422)


class AlreadyBetError(AppError):
    def __init__(self, round_id: int, user_id: str) -> None:
        super().__init__(4002, f"User {user_id} already placed a bet in round {round_id}", 409)


# --- 5xxx: Settlement ---

class TransferFailedError(AppError):
    def __init__(self, round_id: int, user_id: str, detail: str = "") -> None:
        message = f"Payout transfer to {user_id} failed for round {round_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(5001, message, 502)


class DivisionGuardViolatedError(AppError):
    def __init__(self, round_id: int) -> None:
        super().__init__(
            5002, f"Winning pool of round {round_id} is zero outside the refund branch", 500
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)

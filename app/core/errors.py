"""Domain error codes for the ticketing core.

Services raise these; the API layer maps them to HTTP responses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    INVALID_TRANSACTION_STATE = "INVALID_TRANSACTION_STATE"
    VOUCHER_NOT_FOUND = "VOUCHER_NOT_FOUND"
    VOUCHER_EXPIRED = "VOUCHER_EXPIRED"
    VOUCHER_EXHAUSTED = "VOUCHER_EXHAUSTED"
    PROOF_ALREADY_SUBMITTED = "PROOF_ALREADY_SUBMITTED"
    TRANSACTION_EXPIRED = "TRANSACTION_EXPIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"


HTTP_STATUS = {
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.INSUFFICIENT_INVENTORY: 409,
    ErrorCode.INVALID_TRANSACTION_STATE: 409,
    ErrorCode.VOUCHER_NOT_FOUND: 400,
    ErrorCode.VOUCHER_EXPIRED: 400,
    ErrorCode.VOUCHER_EXHAUSTED: 400,
    ErrorCode.PROOF_ALREADY_SUBMITTED: 409,
    ErrorCode.TRANSACTION_EXPIRED: 410,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 401,
}


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str
    details: Any = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.code]


class ValidationError(DomainError):
    """Raised for malformed input the caller can fix."""

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
        )


class InsufficientInventoryError(DomainError):
    """Raised when a booking line cannot be satisfied."""

    def __init__(self, ticket_type_id: int | None = None) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_INVENTORY,
            message="Not enough seats available",
            details={"ticketTypeId": ticket_type_id} if ticket_type_id else None,
        )


class InvalidTransactionStateError(DomainError):
    """Raised when a transition is attempted from the wrong source state."""

    def __init__(self, current: str, action: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_TRANSACTION_STATE,
            message=f"Cannot {action} a transaction in status {current}",
            details={"status": current},
        )


class VoucherNotFoundError(DomainError):
    """Raised when no active discount code matches."""

    def __init__(self, kind: str = "Voucher") -> None:
        super().__init__(
            code=ErrorCode.VOUCHER_NOT_FOUND,
            message=f"{kind} not found",
        )


class VoucherExpiredError(DomainError):
    """Raised when a discount code is outside its validity window."""

    def __init__(self, kind: str = "Voucher") -> None:
        super().__init__(
            code=ErrorCode.VOUCHER_EXPIRED,
            message=f"{kind} is not valid at this time",
        )


class VoucherExhaustedError(DomainError):
    """Raised when a discount code has reached its usage cap."""

    def __init__(self, kind: str = "Voucher") -> None:
        super().__init__(
            code=ErrorCode.VOUCHER_EXHAUSTED,
            message=f"{kind} usage limit reached",
        )


class ProofAlreadySubmittedError(DomainError):
    """Raised on a second payment proof upload."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PROOF_ALREADY_SUBMITTED,
            message="Payment proof already submitted",
        )


class TransactionExpiredError(DomainError):
    """Raised when the payment window has elapsed."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TRANSACTION_EXPIRED,
            message="Payment window has expired",
        )


class ForbiddenError(DomainError):
    """Raised on ownership or role violations. Never says whether the resource exists."""

    def __init__(self, message: str = "You are not allowed to perform this action") -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=message)


class NotFoundError(DomainError):
    """Raised when a resource does not exist."""

    def __init__(self, resource: str = "Resource") -> None:
        super().__init__(code=ErrorCode.NOT_FOUND, message=f"{resource} not found")


class UnauthorizedError(DomainError):
    """Raised when the bearer token is missing or invalid."""

    def __init__(self, message: str = "Invalid or missing token") -> None:
        super().__init__(code=ErrorCode.UNAUTHORIZED, message=message)

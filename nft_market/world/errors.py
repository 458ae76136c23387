"""Standardized error conventions for contract invocations.

Contract code raises ContractError subclasses. World.invoke catches them,
rolls the invocation back, and returns the error as a structured dict so
callers can switch on error codes and categories.

Usage:
    from nft_market.world.errors import validation_error, ErrorCode

    return validation_error(
        "make_item requires [nft, token_id, price]",
        code=ErrorCode.MISSING_ARGUMENT,
        required=["nft", "token_id", "price"],
    )

    # Or, inside a contract method:
    raise InvalidPrice("price must be greater than zero")
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error classification.

    - VALIDATION: Caller provided bad input
    - PERMISSION: Caller not authorized
    - RESOURCE: Resource-related issues
    - EXECUTION: Runtime/execution problems
    - SYSTEM: Internal system errors
    """

    VALIDATION = "validation"  # Invalid input, bad arguments
    PERMISSION = "permission"  # Not authorized, wrong owner
    RESOURCE = "resource"  # Not found, already sold
    EXECUTION = "execution"  # Runtime error
    SYSTEM = "system"  # Internal error, unexpected


class ErrorCode(str, Enum):
    """Specific error codes for programmatic handling."""

    # Validation errors
    MISSING_ARGUMENT = "missing_argument"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_TYPE = "invalid_type"
    INVALID_PRICE = "invalid_price"
    NOT_PAYABLE = "not_payable"
    METHOD_NOT_FOUND = "method_not_found"

    # Permission errors
    NOT_OWNER = "not_owner"
    NOT_AUTHORIZED = "not_authorized"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_PAYMENT = "insufficient_payment"

    # Resource errors
    NOT_FOUND = "not_found"
    ITEM_NOT_FOUND = "item_not_found"
    TOKEN_NOT_FOUND = "token_not_found"
    CONTRACT_NOT_FOUND = "contract_not_found"
    ALREADY_SOLD = "already_sold"

    # Execution errors
    RUNTIME_ERROR = "runtime_error"

    # System errors
    INTERNAL_ERROR = "internal_error"


@dataclass
class ErrorResponse:
    """Standardized error response.

    All error responses include:
    - success: Always False
    - error: Human-readable message
    - code: Machine-readable error code
    - category: Error category (validation, permission, etc.)
    - retriable: Whether the operation should be retried
    - details: Optional additional context
    """

    success: bool = False
    error: str = ""
    code: str = ""
    category: str = ""
    retriable: bool = False
    details: dict[str, object] | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        result: dict[str, object] = {
            "success": self.success,
            "error": self.error,
            "code": self.code,
            "category": self.category,
            "retriable": self.retriable,
        }
        if self.details:
            result["details"] = self.details
        return result


# Factory functions for creating error responses


def validation_error(
    message: str,
    code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
    **details: object,
) -> dict[str, object]:
    """Create a validation error response.

    Use when the caller provided invalid input.
    """
    return ErrorResponse(
        error=message,
        code=code.value,
        category=ErrorCategory.VALIDATION.value,
        retriable=False,
        details=dict(details) if details else None,
    ).to_dict()


def permission_error(
    message: str,
    code: ErrorCode = ErrorCode.NOT_AUTHORIZED,
    **details: object,
) -> dict[str, object]:
    """Create a permission error response.

    Use when the caller is not authorized for the operation.
    """
    return ErrorResponse(
        error=message,
        code=code.value,
        category=ErrorCategory.PERMISSION.value,
        retriable=False,
        details=dict(details) if details else None,
    ).to_dict()


def resource_error(
    message: str,
    code: ErrorCode = ErrorCode.NOT_FOUND,
    **details: object,
) -> dict[str, object]:
    """Create a resource error response.

    Use for item not found, already sold, etc.
    """
    return ErrorResponse(
        error=message,
        code=code.value,
        category=ErrorCategory.RESOURCE.value,
        retriable=False,
        details=dict(details) if details else None,
    ).to_dict()


def execution_error(
    message: str,
    code: ErrorCode = ErrorCode.RUNTIME_ERROR,
    retriable: bool = False,
    **details: object,
) -> dict[str, object]:
    """Create an execution error response."""
    return ErrorResponse(
        error=message,
        code=code.value,
        category=ErrorCategory.EXECUTION.value,
        retriable=retriable,
        details=dict(details) if details else None,
    ).to_dict()


def system_error(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    retriable: bool = True,
    **details: object,
) -> dict[str, object]:
    """Create a system error response.

    Use for internal errors, unexpected conditions.
    """
    return ErrorResponse(
        error=message,
        code=code.value,
        category=ErrorCategory.SYSTEM.value,
        retriable=retriable,
        details=dict(details) if details else None,
    ).to_dict()


_FACTORIES = {
    ErrorCategory.VALIDATION: validation_error,
    ErrorCategory.PERMISSION: permission_error,
    ErrorCategory.RESOURCE: resource_error,
    ErrorCategory.EXECUTION: execution_error,
    ErrorCategory.SYSTEM: system_error,
}


# =============================================================================
# Exceptions raised by contract code
# =============================================================================


class ContractError(Exception):
    """Base class for failures that revert a contract invocation.

    Subclasses pin the error code and category. The message is the
    human-readable reason returned to the caller.
    """

    code: ErrorCode = ErrorCode.RUNTIME_ERROR
    category: ErrorCategory = ErrorCategory.EXECUTION

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict[str, object]:
        """Render as a structured error response dict."""
        factory = _FACTORIES[self.category]
        return factory(self.message, code=self.code, **self.details)


class InvalidArgument(ContractError):
    """Arguments are missing, mistyped, or out of range."""

    code = ErrorCode.INVALID_ARGUMENT
    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
        **details: object,
    ) -> None:
        super().__init__(message, **details)
        self.code = code


class InvalidPrice(ContractError):
    """Listing price is zero or negative."""

    code = ErrorCode.INVALID_PRICE
    category = ErrorCategory.VALIDATION


class NotPayable(ContractError):
    """Value was attached to a method that does not accept it."""

    code = ErrorCode.NOT_PAYABLE
    category = ErrorCategory.VALIDATION


class MethodNotFound(ContractError):
    """The contract exposes no method with that name."""

    code = ErrorCode.METHOD_NOT_FOUND
    category = ErrorCategory.VALIDATION


class NotOwner(ContractError):
    """The named owner does not hold the token."""

    code = ErrorCode.NOT_OWNER
    category = ErrorCategory.PERMISSION


class NotAuthorized(ContractError):
    """Caller is neither owner, approved, nor an approved operator."""

    code = ErrorCode.NOT_AUTHORIZED
    category = ErrorCategory.PERMISSION


class InsufficientFunds(ContractError):
    """Sender balance cannot cover the attached value."""

    code = ErrorCode.INSUFFICIENT_FUNDS
    category = ErrorCategory.PERMISSION


class InsufficientPayment(ContractError):
    """Attached value is below the item's total price."""

    code = ErrorCode.INSUFFICIENT_PAYMENT
    category = ErrorCategory.PERMISSION


class ItemNotFound(ContractError):
    """Item id is outside the assigned range."""

    code = ErrorCode.ITEM_NOT_FOUND
    category = ErrorCategory.RESOURCE


class TokenNotFound(ContractError):
    """Token id was never minted."""

    code = ErrorCode.TOKEN_NOT_FOUND
    category = ErrorCategory.RESOURCE


class ContractNotFound(ContractError):
    """No contract is deployed at the address."""

    code = ErrorCode.CONTRACT_NOT_FOUND
    category = ErrorCategory.RESOURCE


class AlreadySold(ContractError):
    """Item has already been purchased."""

    code = ErrorCode.ALREADY_SOLD
    category = ErrorCategory.RESOURCE

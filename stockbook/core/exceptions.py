"""
Domain exceptions for the Stockbook application.

Provides specific exception types for different error scenarios.
"""

from typing import Any


class StockbookError(Exception):
    """Base exception for all Stockbook errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


# Validation Exceptions
class ValidationError(StockbookError):
    """Input validation failed."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(
            f"Validation error for '{field}': {message}",
            code="VALIDATION_ERROR",
            details={
                "field": field,
                "message": message,
                "value": str(value)[:100] if value is not None else None,
            },
        )


class InvalidStatusError(ValidationError):
    """Requested purchase status is not a known status."""

    def __init__(self, status: Any, allowed: list[str]):
        super().__init__(
            field="status",
            message=f"Invalid status. Must be one of: {', '.join(allowed)}",
            value=status,
        )
        self.code = "INVALID_STATUS"
        self.details["allowed"] = allowed


class InvalidTransitionError(ValidationError):
    """Status change is not permitted from the current status."""

    def __init__(self, purchase_id: str, from_status: str, to_status: str):
        super().__init__(
            field="status",
            message=f"Cannot move purchase {purchase_id} from '{from_status}' to '{to_status}'",
            value=to_status,
        )
        self.code = "INVALID_TRANSITION"
        self.details.update(
            {
                "purchase_id": purchase_id,
                "from_status": from_status,
                "to_status": to_status,
            }
        )


# Lookup Exceptions
class NotFoundError(StockbookError):
    """Base exception for missing entities."""

    pass


class PurchaseNotFoundError(NotFoundError):
    """Purchase not found in storage."""

    def __init__(self, purchase_id: str):
        super().__init__(
            f"Purchase not found: {purchase_id}",
            code="PURCHASE_NOT_FOUND",
            details={"purchase_id": purchase_id},
        )


class MaterialNotFoundError(NotFoundError):
    """Material not found in storage."""

    def __init__(self, material_id: str):
        super().__init__(
            f"Material not found: {material_id}",
            code="MATERIAL_NOT_FOUND",
            details={"material_id": material_id},
        )


class ProductNotFoundError(NotFoundError):
    """Product not found in storage."""

    def __init__(self, product_id: str):
        super().__init__(
            f"Product not found: {product_id}",
            code="PRODUCT_NOT_FOUND",
            details={"product_id": product_id},
        )


# Access Exceptions
class AuthenticationRequiredError(StockbookError):
    """No acting user was supplied with the request."""

    def __init__(self) -> None:
        super().__init__(
            "Authentication required",
            code="AUTHENTICATION_REQUIRED",
        )


class PurchaseAccessDeniedError(StockbookError):
    """Acting user does not own the purchase."""

    def __init__(self, purchase_id: str, user_id: str):
        super().__init__(
            "You do not have permission to modify this purchase",
            code="FORBIDDEN",
            details={"purchase_id": purchase_id, "user_id": user_id},
        )


# Stock Exceptions
class InsufficientStockError(StockbookError):
    """Stock movement would drive the on-hand quantity below zero."""

    def __init__(self, target_id: str, requested: float, available: float):
        super().__init__(
            f"Insufficient stock for {target_id}: requested {requested}, available {available}",
            code="INSUFFICIENT_STOCK",
            details={
                "target_id": target_id,
                "requested": requested,
                "available": available,
            },
        )


# Storage Exceptions
class StorageError(StockbookError):
    """Base exception for storage operations."""

    pass


class TransactionFailedError(StorageError):
    """An atomic operation failed and was rolled back."""

    def __init__(self, operation: str, cause: str):
        super().__init__(
            f"Transaction failed during {operation}: {cause}",
            code="TRANSACTION_FAILED",
            details={"operation": operation, "cause": cause},
        )


class ConfigurationError(StockbookError):
    """Configuration error."""

    pass

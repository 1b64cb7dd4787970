"""
Custom exception classes for the application.

Every error carries a stable code and maps onto the standard JSON
error envelope returned by the API.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CARD_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# STORE ERRORS
# ===================

class StoreNotFoundError(NotFoundError):
    """Shopify store not configured for the tenant."""

    def __init__(self, store_id: str):
        super().__init__(
            resource="Store",
            identifier=store_id,
            code="STORE_NOT_FOUND"
        )


# ===================
# UPSTREAM ORDER ERRORS
# ===================

class ShopifyError(ExternalServiceError):
    """Shopify API request failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(
            service="shopify",
            message=message,
            details={"http_status": status}
        )


class OrderFetchError(ExternalServiceError):
    """An upstream order could not be fetched; aborts that order's pipeline run."""

    def __init__(self, order_ref: str, reason: str):
        super().__init__(
            service="order_source",
            message=f"Failed to fetch order {order_ref}: {reason}",
            details={"order": order_ref}
        )
        self.order_ref = order_ref


# ===================
# CLASSIFICATION ERRORS
# ===================

class LabelLookupError(ExternalServiceError):
    """Product label lookup failed for one product/variant."""

    def __init__(self, product_id: Optional[str], variant_id: Optional[str], reason: str):
        super().__init__(
            service="product_labels",
            message=f"Label lookup failed: {reason}",
            details={"product_id": product_id, "variant_id": variant_id}
        )


# ===================
# CARD ERRORS
# ===================

class CardNotFoundError(NotFoundError):
    """Card not present in the current board."""

    def __init__(self, card_id: str):
        super().__init__(
            resource="Card",
            identifier=card_id,
            code="CARD_NOT_FOUND"
        )


class InvalidOrderDateError(ValidationError):
    """Delivery date query could not be parsed."""

    def __init__(self, value: str):
        super().__init__(
            code="INVALID_ORDER_DATE",
            message="Date must be YYYY-MM-DD or DD/MM/YYYY",
            details={"provided": value}
        )

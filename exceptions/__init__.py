"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # Stores
    StoreNotFoundError,

    # Upstream orders
    ShopifyError,
    OrderFetchError,

    # Classification
    LabelLookupError,

    # Cards
    CardNotFoundError,
    InvalidOrderDateError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # Stores
    "StoreNotFoundError",

    # Upstream orders
    "ShopifyError",
    "OrderFetchError",

    # Classification
    "LabelLookupError",

    # Cards
    "CardNotFoundError",
    "InvalidOrderDateError",
]

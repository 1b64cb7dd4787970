"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    CamelSchema,
)
from models.field_definition import (
    FieldType,
    TransformationKind,
    OutputFormat,
    FieldDefinition,
    FieldConfigResponse,
)
from models.card import (
    CardStatus,
    MUTABLE_CARD_FIELDS,
    Card,
    ProductLabels,
    CardStateUpdate,
    CardStateWriteResult,
    CardDelta,
    CardDeltaListResponse,
    RenderedCard,
    OrderFetchFailure,
    CardBoardResponse,
)
from models.store import StoreConfig

__all__ = [
    # Base
    "BaseSchema",
    "CamelSchema",

    # Field definitions
    "FieldType",
    "TransformationKind",
    "OutputFormat",
    "FieldDefinition",
    "FieldConfigResponse",

    # Cards
    "CardStatus",
    "MUTABLE_CARD_FIELDS",
    "Card",
    "ProductLabels",
    "CardStateUpdate",
    "CardStateWriteResult",
    "CardDelta",
    "CardDeltaListResponse",
    "RenderedCard",
    "OrderFetchFailure",
    "CardBoardResponse",

    # Stores
    "StoreConfig",
]

"""
Field definition schemas.

A field definition tells the card renderer where to find one displayed
value in the upstream order and how to format it. Definitions are
tenant-scoped and keyed by an immutable id.
"""

from pydantic import Field, model_validator
from typing import Optional
from enum import Enum

from models.base import CamelSchema


class FieldType(str, Enum):
    """Display widget for a field."""
    TEXT = "text"
    TEXTAREA = "textarea"
    DATE = "date"
    TAGS = "tags"
    STATUS = "status"
    SELECT = "select"


class TransformationKind(str, Enum):
    """How the raw path value is turned into the displayed value."""
    NONE = "none"
    EXTRACT = "extract"
    TRANSFORM = "transform"  # reserved, passes through


class OutputFormat(str, Enum):
    """Post-processing applied to an extracted match."""
    NONE = "none"
    DATE = "date"
    TIME = "time"
    TIMESLOT = "timeslot"


class FieldDefinition(CamelSchema):
    """
    One configurable order card field.

    Only the first entry of source_paths is used for extraction; the rest
    are informational (alternatives shown in the settings editor).
    """

    id: str = Field(..., min_length=1, description="Stable field id, unique within tenant")
    label: str = Field(..., description="Display label")
    description: str = Field(default="", description="Help text")
    type: FieldType = Field(default=FieldType.TEXT)
    is_visible: bool = Field(default=True)
    is_system: bool = Field(default=False, description="System fields cannot be deleted")
    is_editable: bool = Field(default=False)
    source_paths: list[str] = Field(default_factory=list)
    transformation_kind: TransformationKind = Field(default=TransformationKind.NONE)
    transformation_rule: Optional[str] = Field(None, description="Regex source for extract")
    output_format: OutputFormat = Field(default=OutputFormat.NONE)
    display_order: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def accept_stored_names(cls, data):
        """Accept the stored column names used by the settings editor."""
        if isinstance(data, dict):
            data = dict(data)
            if "shopifyFields" in data and "sourcePaths" not in data:
                data["sourcePaths"] = data.pop("shopifyFields") or []
            if "transformation" in data and "transformationKind" not in data:
                data["transformationKind"] = data.pop("transformation") or "none"
            if "field_id" in data and "id" not in data:
                data["id"] = data.pop("field_id")
        return data

    @property
    def primary_path(self) -> Optional[str]:
        """Path used for extraction, or None when the field has no mapping."""
        return self.source_paths[0] if self.source_paths else None


class FieldConfigResponse(CamelSchema):
    """Ordered field configuration for a tenant."""

    tenant_id: str
    fields: list[FieldDefinition]
    is_default: bool = Field(
        default=False,
        description="True when the tenant has no stored config"
    )

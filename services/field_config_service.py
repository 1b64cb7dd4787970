"""
Field definition store.

Tenants customise the order card through the settings editor, which
writes one row per field to order_card_configs. Rows overlay the default
field set by id; a tenant without rows gets the defaults.
"""

from typing import Any, Optional
import structlog

from config import get_supabase_client
from models.field_definition import (
    FieldDefinition,
    FieldConfigResponse,
    FieldType,
    OutputFormat,
    TransformationKind,
)
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)

TIMESLOT_RULE = r"\d{2}:\d{2}-\d{2}:\d{2}"
ORDER_DATE_RULE = r"\b(0[1-9]|[12][0-9]|3[01])/(0[1-9]|1[0-2])/([0-9]{4})\b"


DEFAULT_FIELD_DEFINITIONS: list[FieldDefinition] = [
    FieldDefinition(
        id="productTitle",
        label="Product Title",
        description="Name of the product",
        source_paths=["lineItems.edges.0.node.title"],
    ),
    FieldDefinition(
        id="productVariantTitle",
        label="Product Variant Title",
        description="Specific variant of the product",
        source_paths=["lineItems.edges.0.node.variant.title"],
    ),
    FieldDefinition(
        id="timeslot",
        label="Timeslot",
        description="Scheduled order preparation timeslot",
        is_editable=True,
        source_paths=["tags"],
        transformation_kind=TransformationKind.EXTRACT,
        transformation_rule=TIMESLOT_RULE,
        output_format=OutputFormat.TIMESLOT,
    ),
    FieldDefinition(
        id="orderId",
        label="Order ID",
        description="Unique order identifier",
        is_system=True,
        source_paths=["name"],
    ),
    FieldDefinition(
        id="orderDate",
        label="Order Date",
        description="Date when order was placed",
        type=FieldType.DATE,
        source_paths=["tags"],
        transformation_kind=TransformationKind.EXTRACT,
        transformation_rule=ORDER_DATE_RULE,
        output_format=OutputFormat.DATE,
    ),
    FieldDefinition(
        id="orderTags",
        label="Order Tags",
        description="Tags associated with the order",
        type=FieldType.TAGS,
        is_editable=True,
        source_paths=["tags"],
    ),
    FieldDefinition(
        id="assignedTo",
        label="Assigned To",
        description="Florist assigned to this order",
        type=FieldType.SELECT,
        is_editable=True,
    ),
    FieldDefinition(
        id="difficultyLabel",
        label="Difficulty Label",
        description="Difficulty/Priority level",
        source_paths=["product:difficultyLabel"],
    ),
    FieldDefinition(
        id="productTypeLabel",
        label="Product Type Label",
        description="Product type assigned to the product from Product Management",
        source_paths=["product:productTypeLabel"],
    ),
    FieldDefinition(
        id="addOns",
        label="Add-Ons",
        description="Special requests or add-ons for the order",
        type=FieldType.TEXTAREA,
        is_editable=True,
        source_paths=["note"],
    ),
    FieldDefinition(
        id="customisations",
        label="Customisations",
        description="Additional remarks and customisation notes",
        type=FieldType.TEXTAREA,
        is_visible=False,
        is_editable=True,
        source_paths=["note"],
    ),
    FieldDefinition(
        id="isCompleted",
        label="Status",
        description="Whether the order is completed",
        type=FieldType.STATUS,
        is_system=True,
        is_editable=True,
        source_paths=["displayFulfillmentStatus"],
    ),
]

# Display order follows registry position unless a stored row says otherwise
DEFAULT_FIELD_DEFINITIONS = [
    field.model_copy(update={"display_order": index})
    for index, field in enumerate(DEFAULT_FIELD_DEFINITIONS)
]


class FieldConfigService:
    """
    Field definition store.

    Read-only for the card pipeline; the settings editor owns writes.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "order_card_configs"

    def get_field_config(self, tenant_id: str) -> list[FieldDefinition]:
        """
        Get the ordered field definitions for a tenant.

        Args:
            tenant_id: Tenant UUID

        Returns:
            Field definitions ordered by display_order
        """
        return self.get_config_response(tenant_id).fields

    def get_config_response(self, tenant_id: str) -> FieldConfigResponse:
        """
        Get field configuration with a flag for default configs.

        Raises:
            DatabaseError: If the query fails
        """
        logger.info("getting_field_config", tenant_id=tenant_id)

        try:
            response = (
                self.db.table(self.table)
                .select("*")
                .eq("tenant_id", tenant_id)
                .order("display_order")
                .execute()
            )
        except Exception as e:
            logger.error("field_config_get_failed", tenant_id=tenant_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not response.data:
            logger.info("field_config_default_used", tenant_id=tenant_id)
            return FieldConfigResponse(
                tenant_id=tenant_id,
                fields=list(DEFAULT_FIELD_DEFINITIONS),
                is_default=True
            )

        fields = merge_field_rows(response.data)
        logger.info("field_config_retrieved", tenant_id=tenant_id, count=len(fields))
        return FieldConfigResponse(tenant_id=tenant_id, fields=fields)


def merge_field_rows(rows: list[dict]) -> list[FieldDefinition]:
    """
    Overlay stored rows on the default field set.

    Fields without a stored row keep their defaults; unknown field ids
    become custom fields.
    """
    defaults = {field.id: field for field in DEFAULT_FIELD_DEFINITIONS}
    merged: dict[str, FieldDefinition] = dict(defaults)

    for row in rows:
        field_id = row.get("field_id") or row.get("id")
        if not field_id:
            logger.warning("field_config_row_without_id", row_keys=sorted(row))
            continue

        base = defaults.get(field_id)
        data: dict[str, Any] = base.model_dump(by_alias=True) if base else {
            "id": field_id,
            "label": field_id,
        }
        data.update(row.get("config") or {})
        data["id"] = field_id
        if row.get("custom_label"):
            data["label"] = row["custom_label"]
        if row.get("is_visible") is not None:
            data["isVisible"] = bool(row["is_visible"])
        if row.get("display_order") is not None:
            data["displayOrder"] = row["display_order"]

        merged[field_id] = FieldDefinition.model_validate(data)

    return sorted(merged.values(), key=lambda field: field.display_order)


# Singleton instance
_field_config_service: Optional[FieldConfigService] = None


def get_field_config_service() -> FieldConfigService:
    """Get or create FieldConfigService instance."""
    global _field_config_service
    if _field_config_service is None:
        _field_config_service = FieldConfigService()
    return _field_config_service

"""
Field resolution for order cards.

Renders one value per (card, field definition). Performs no I/O and is
called for every visible field of every card on each render.

Precedence:
    1. Direct card attributes computed by the pipeline (titles, labels,
       assignee) win over generic path lookups.
    2. orderId has its own display-name rules.
    3. Everything else resolves the first source path against the order
       record, is transformed, and falls back to the card attribute of the
       same id when the path yields nothing.
"""

from typing import Any, Optional
import structlog

from config import settings
from models.card import Card, RenderedCard
from models.field_definition import FieldDefinition, TransformationKind
from services.path_resolver import resolve
from services.transformation_service import apply_field_transformation

logger = structlog.get_logger(__name__)

ORDER_ID_FIELD = "orderId"
UNKNOWN_ORDER = "Unknown Order"

# Field id -> Card attribute set authoritatively during expansion/classification.
DIRECT_CARD_FIELDS: dict[str, str] = {
    "productTitle": "title",
    "productVariantTitle": "variant_title",
    "difficultyLabel": "difficulty_label",
    "priorityLabel": "difficulty_label",
    "productTypeLabel": "product_type_label",
    "assignedTo": "assigned_to",
}


def shopify_id_tail(value: Any) -> Optional[str]:
    """
    Numeric tail of a Shopify id.

    "gid://shopify/Order/5512345678901" -> "5512345678901"; plain ids are
    returned as strings.
    """
    if value is None or value == "":
        return None
    return str(value).rsplit("/", 1)[-1]


class FieldResolver:
    """
    Renders configured fields for cards.

    The order display code settings are injected so tenants can carry
    their own tag.
    """

    def __init__(
        self,
        order_code_prefix: Optional[str] = None,
        order_code_digits: Optional[int] = None,
        order_code_min_length: Optional[int] = None,
    ):
        self.order_code_prefix = (
            settings.order_code_prefix if order_code_prefix is None else order_code_prefix
        )
        self.order_code_digits = order_code_digits or settings.order_code_digits
        self.order_code_min_length = order_code_min_length or settings.order_code_min_length

    # ===================
    # SINGLE FIELD
    # ===================

    def render_field(self, card: Card, field: FieldDefinition) -> Any:
        """
        Render one field of one card.

        Args:
            card: Card being displayed
            field: Field definition

        Returns:
            Rendered value (may be a sentinel string or None)
        """
        attribute = DIRECT_CARD_FIELDS.get(field.id)
        if attribute is not None:
            value = getattr(card, attribute)
            if value not in (None, ""):
                return value

        if field.id == ORDER_ID_FIELD:
            return self.order_display_name(card.source_order_record)

        path = field.primary_path
        record = card.source_order_record
        raw = resolve(record, path) if path else None

        if raw is None:
            return card.attribute(field.id)

        if field.transformation_kind == TransformationKind.NONE:
            return raw

        return apply_field_transformation(raw, field)

    def order_display_name(self, record: Any) -> str:
        """
        Display name for an order.

        (a) the record's own display name ("#1234"), else
        (b) a long numeric id shortened to prefix + trailing digits, else
        (c) "#" + raw id, else
        (d) the order number, or "Unknown Order".
        """
        if not isinstance(record, dict):
            return UNKNOWN_ORDER

        name = record.get("name")
        if name:
            return str(name)

        raw_id = shopify_id_tail(record.get("legacyResourceId") or record.get("id"))
        if raw_id:
            if raw_id.isdigit() and len(raw_id) >= self.order_code_min_length:
                return f"{self.order_code_prefix}{raw_id[-self.order_code_digits:]}"
            return f"#{raw_id}"

        order_number = record.get("orderNumber")
        if order_number not in (None, ""):
            return str(order_number)

        return UNKNOWN_ORDER

    # ===================
    # WHOLE CARD
    # ===================

    def render_card(self, card: Card, fields: list[FieldDefinition]) -> RenderedCard:
        """
        Render all visible fields of a card, in configured order.

        Args:
            card: Card to render
            fields: Tenant field definitions (already ordered)

        Returns:
            RenderedCard
        """
        values = {
            field.id: self.render_field(card, field)
            for field in fields
            if field.is_visible
        }
        return RenderedCard(
            card_id=card.card_id,
            order_id=card.order_id,
            line_item_id=card.line_item_id,
            title=card.title,
            is_add_on=card.is_add_on,
            status=card.status,
            notes=card.notes,
            assigned_to=card.assigned_to,
            fields=values,
        )

    def render_cards(self, cards, fields: list[FieldDefinition]) -> list[RenderedCard]:
        """Render a sequence of cards."""
        return [self.render_card(card, fields) for card in cards]


_field_resolver: Optional[FieldResolver] = None


def get_field_resolver() -> FieldResolver:
    """Get or create FieldResolver instance."""
    global _field_resolver
    if _field_resolver is None:
        _field_resolver = FieldResolver()
    return _field_resolver

"""
Order card schemas.

A card is one unit of quantity of one order line item. Cards are frozen:
every change goes through CardStore.dispatch as a replace-by-id copy.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional
from enum import Enum

from models.base import CamelSchema


class CardStatus(str, Enum):
    """Card workflow status."""
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    COMPLETED = "completed"


# Fields a user or a remote delta may change on a card.
MUTABLE_CARD_FIELDS = frozenset({"status", "notes", "assigned_to", "delivery_date"})


class Card(BaseModel):
    """
    One independently trackable unit of work.

    card_id is derived from (order_id, line_item_id, instance index) and is
    reproducible across pipeline runs; local timers and stored card states
    are keyed by it.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True
    )

    card_id: str
    order_id: str
    line_item_id: str
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    title: Optional[str] = None
    variant_title: Optional[str] = None
    quantity: int = 1
    price: float = 0.0
    is_add_on: bool = False
    difficulty_label: Optional[str] = None
    product_type_label: Optional[str] = None
    # Shared with every card of the same order; never mutated.
    source_order_record: Any = Field(default=None, exclude=True)

    status: CardStatus = CardStatus.UNASSIGNED
    notes: str = ""
    assigned_to: Optional[str] = None
    delivery_date: Optional[str] = None

    def attribute(self, field_id: str) -> Any:
        """Look up a direct attribute by its camelCase or snake_case name."""
        name = _ATTRIBUTE_BY_ALIAS.get(field_id, field_id)
        if name not in type(self).model_fields or name == "source_order_record":
            return None
        return getattr(self, name)


_ATTRIBUTE_BY_ALIAS = {
    field.alias: name
    for name, field in Card.model_fields.items()
    if field.alias
}


class ProductLabels(CamelSchema):
    """Labels attached to a saved product."""

    label_names: list[str] = Field(default_factory=list)
    label_categories: list[Optional[str]] = Field(default_factory=list)

    def first_in_category(self, category: str) -> Optional[str]:
        """First label name whose category matches, or None."""
        for name, label_category in zip(self.label_names, self.label_categories):
            if label_category == category:
                return name
        return None


class CardStateUpdate(CamelSchema):
    """
    Upsert payload for the per-card persistence store.

    Only the fields that were set are written.
    """

    status: Optional[CardStatus] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    delivery_date: Optional[str] = None


class CardStateWriteResult(CamelSchema):
    """Result of a card state upsert."""

    card_id: str
    updated_at: str


class CardDelta(CamelSchema):
    """
    A stored card state change returned by the polling endpoint.

    Only explicitly listed fields are merged into local cards.
    """

    card_id: str
    status: Optional[CardStatus] = None
    notes: Optional[str] = None
    assigned_to: Optional[str] = None
    delivery_date: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "CardDelta":
        """
        Build a delta from an order_card_states row.

        A null status or delivery date is left out; null notes become "".
        assigned_to is kept when null since clearing it is a real change.
        """
        data = {"card_id": row["card_id"], "updated_at": row.get("updated_at")}
        if row.get("status"):
            data["status"] = row["status"]
        if "notes" in row:
            data["notes"] = row["notes"] or ""
        if "assigned_to" in row:
            data["assigned_to"] = row["assigned_to"]
        if row.get("delivery_date"):
            data["delivery_date"] = str(row["delivery_date"])
        return cls(**data)

    def changes(self) -> dict[str, Any]:
        """Mutable fields carried by this delta."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if k in MUTABLE_CARD_FIELDS}


class CardDeltaListResponse(CamelSchema):
    """Changes since a cursor."""

    changes: list[CardDelta]
    cursor: Optional[str] = None


class RenderedCard(CamelSchema):
    """A card plus its rendered field values, in configured field order."""

    card_id: str
    order_id: str
    line_item_id: str
    title: Optional[str] = None
    is_add_on: bool = False
    status: CardStatus = CardStatus.UNASSIGNED
    notes: str = ""
    assigned_to: Optional[str] = None
    fields: dict[str, Any] = Field(default_factory=dict)


class OrderFetchFailure(CamelSchema):
    """An order whose pipeline run was aborted."""

    order_ref: str
    message: str


class CardBoardResponse(CamelSchema):
    """Cards for one delivery date, split into main products and add-ons."""

    delivery_date: str
    main_cards: list[RenderedCard]
    add_on_cards: list[RenderedCard]
    errors: list[OrderFetchFailure] = Field(default_factory=list)

"""
Order card pipeline.

Turns upstream orders into classified cards:

    normalize -> expand (one card per unit of quantity) -> classify
    (concurrent product label lookups) -> partition (main / add-on)

One order's fetch failure aborts only that order; a label lookup failure
only leaves that card unclassified (treated as a main product).
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from functools import partial
from typing import Any, Optional, Protocol, Union
import structlog

from config import settings
from models.card import Card, OrderFetchFailure, ProductLabels
from exceptions import InvalidOrderDateError, OrderFetchError, ShopifyError
from services.field_resolution_service import shopify_id_tail
from services.order_normalizer import normalize_order
from services.path_resolver import resolve

logger = structlog.get_logger(__name__)

DIFFICULTY_CATEGORY = "difficulty"
PRODUCT_TYPE_CATEGORY = "productType"


class LabelLookup(Protocol):
    def get_labels(
        self,
        tenant_id: str,
        product_id: Optional[str],
        variant_id: Optional[str]
    ) -> ProductLabels: ...


class OrderSource(Protocol):
    def fetch_orders_by_tag(self, tag: str) -> list[dict]: ...

    def fetch_order(self, order_ref: str) -> dict: ...


# ===================
# DATES
# ===================

def parse_delivery_date(value: Union[str, date]) -> date:
    """
    Parse a delivery date given as YYYY-MM-DD or DD/MM/YYYY.

    Raises:
        InvalidOrderDateError: If the value matches neither format
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidOrderDateError(text)


def delivery_date_tag(value: Union[str, date]) -> str:
    """Order tag marking the delivery date, e.g. "16/10/2026"."""
    return parse_delivery_date(value).strftime("%d/%m/%Y")


# ===================
# RESULT
# ===================

@dataclass
class PipelineResult:
    """Cards of one pipeline run plus the orders that failed."""

    cards: list[Card] = field(default_factory=list)
    failures: list[OrderFetchFailure] = field(default_factory=list)

    @property
    def failed_order_ids(self) -> frozenset[str]:
        return frozenset(
            shopify_id_tail(failure.order_ref) or failure.order_ref
            for failure in self.failures
        )


# ===================
# EXPANSION
# ===================

def expand_order(record: dict, delivery_date: Optional[str] = None) -> list[Card]:
    """
    Expand a canonical order record into cards.

    Each line item of quantity q yields q cards of quantity 1. A missing
    quantity counts as 1; zero or negative yields no cards.

    Args:
        record: Order in the canonical nested shape
        delivery_date: ISO delivery date stamped on each card

    Returns:
        Cards in line item order, instance order within a line item
    """
    order_id = (
        shopify_id_tail(record.get("legacyResourceId") or record.get("id"))
        or str(record.get("name") or "unknown")
    )

    edges = resolve(record, "lineItems.edges")
    if not isinstance(edges, list):
        edges = []

    cards: list[Card] = []
    for index, edge in enumerate(edges):
        node = edge.get("node") if isinstance(edge, dict) and "node" in edge else edge
        if not isinstance(node, dict):
            logger.warning("line_item_skipped", order_id=order_id, index=index)
            continue

        line_item_id = shopify_id_tail(node.get("id")) or str(index)
        quantity = _quantity(node.get("quantity"))
        variant = node.get("variant") if isinstance(node.get("variant"), dict) else {}
        product = node.get("product") if isinstance(node.get("product"), dict) else {}

        for instance in range(quantity):
            cards.append(Card(
                card_id=f"{order_id}-{line_item_id}-{instance}",
                order_id=order_id,
                line_item_id=line_item_id,
                product_id=shopify_id_tail(product.get("id")),
                variant_id=shopify_id_tail(variant.get("id")),
                title=node.get("title"),
                variant_title=variant.get("title"),
                quantity=1,
                price=_price(node),
                source_order_record=record,
                delivery_date=delivery_date,
            ))

    logger.debug("order_expanded", order_id=order_id, line_items=len(edges), cards=len(cards))
    return cards


def _quantity(value: Any) -> int:
    if value is None or value == "":
        return 1
    try:
        return max(int(value), 0)
    except (TypeError, ValueError):
        return 1


def _price(node: dict) -> float:
    amount = resolve(node, "originalUnitPriceSet.shopMoney.amount")
    if amount is None:
        amount = node.get("price")
    try:
        return float(amount) if amount is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


# ===================
# PIPELINE
# ===================

class OrderPipelineService:
    """
    Runs the order card pipeline.

    Args:
        label_lookup: Product label source (defaults to ProductLabelService)
        add_on_label: Label name marking add-ons (defaults to settings)
        max_workers: Concurrent label lookups (defaults to settings)
    """

    def __init__(
        self,
        label_lookup: Optional[LabelLookup] = None,
        add_on_label: Optional[str] = None,
        max_workers: Optional[int] = None
    ):
        if label_lookup is None:
            from services.product_label_service import get_product_label_service
            label_lookup = get_product_label_service()

        self.label_lookup = label_lookup
        self.add_on_label = add_on_label or settings.add_on_label
        self.max_workers = max_workers or settings.classification_workers

    # ===================
    # CLASSIFICATION
    # ===================

    def classify(self, tenant_id: str, cards: list[Card]) -> list[Card]:
        """
        Classify cards from their product labels.

        Lookups run concurrently; the output keeps input order. A card
        whose lookup fails is kept as a main product.
        """
        if not cards:
            return []

        workers = min(self.max_workers, len(cards))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(partial(self._classify_card, tenant_id), cards))

    def _classify_card(self, tenant_id: str, card: Card) -> Card:
        try:
            labels = self.label_lookup.get_labels(tenant_id, card.product_id, card.variant_id)
        except Exception as e:
            logger.warning(
                "card_classification_failed",
                card_id=card.card_id,
                product_id=card.product_id,
                error=str(e)
            )
            return card.model_copy(update={"is_add_on": False})

        return card.model_copy(update={
            "is_add_on": self.add_on_label in labels.label_names,
            "difficulty_label": labels.first_in_category(DIFFICULTY_CATEGORY),
            "product_type_label": labels.first_in_category(PRODUCT_TYPE_CATEGORY),
        })

    # ===================
    # RUNS
    # ===================

    def process_order(
        self,
        tenant_id: str,
        raw_order: dict,
        delivery_date: Optional[str] = None
    ) -> list[Card]:
        """Normalize, expand and classify one order."""
        record = normalize_order(raw_order)
        return self.classify(tenant_id, expand_order(record, delivery_date))

    def run_for_date(
        self,
        tenant_id: str,
        source: OrderSource,
        delivery_date: Union[str, date]
    ) -> PipelineResult:
        """
        Build cards for every order tagged with a delivery date.

        Args:
            tenant_id: Tenant UUID
            source: Upstream order source
            delivery_date: Date as YYYY-MM-DD or DD/MM/YYYY

        Returns:
            PipelineResult

        Raises:
            InvalidOrderDateError: If the date cannot be parsed
            OrderFetchError: If the order list cannot be fetched
        """
        day = parse_delivery_date(delivery_date)
        tag = delivery_date_tag(day)

        logger.info("pipeline_run_started", tenant_id=tenant_id, tag=tag)

        try:
            orders = source.fetch_orders_by_tag(tag)
        except ShopifyError as e:
            raise OrderFetchError(tag, e.message) from e

        result = PipelineResult()
        for raw in orders:
            self._collect(result, tenant_id, raw, day.isoformat())

        logger.info(
            "pipeline_run_complete",
            tenant_id=tenant_id,
            orders=len(orders),
            cards=len(result.cards),
            failed=len(result.failures)
        )
        return result

    def run_orders(
        self,
        tenant_id: str,
        source: OrderSource,
        order_refs: list[str],
        delivery_date: Optional[str] = None
    ) -> PipelineResult:
        """
        Build cards for specific orders, fetching each one.

        A failed fetch is recorded and the remaining orders continue.
        """
        result = PipelineResult()
        for order_ref in order_refs:
            try:
                raw = self.fetch_order(source, order_ref)
            except OrderFetchError as e:
                logger.warning("pipeline_order_failed", order=order_ref, error=e.message)
                result.failures.append(OrderFetchFailure(order_ref=order_ref, message=e.message))
                continue
            self._collect(result, tenant_id, raw, delivery_date)
        return result

    def fetch_order(self, source: OrderSource, order_ref: str) -> dict:
        """
        Fetch one order.

        Raises:
            OrderFetchError: If the source fails
        """
        try:
            return source.fetch_order(order_ref)
        except ShopifyError as e:
            raise OrderFetchError(order_ref, e.message) from e

    def _collect(
        self,
        result: PipelineResult,
        tenant_id: str,
        raw: dict,
        delivery_date: Optional[str]
    ) -> None:
        order_ref = str(raw.get("id") or raw.get("name") or "unknown")
        try:
            result.cards.extend(self.process_order(tenant_id, raw, delivery_date))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error("pipeline_order_malformed", order=order_ref, error=str(e))
            result.failures.append(OrderFetchFailure(
                order_ref=order_ref,
                message=f"Malformed order: {str(e)}"
            ))


# Singleton instance
_order_pipeline_service: Optional[OrderPipelineService] = None


def get_order_pipeline_service() -> OrderPipelineService:
    """Get or create OrderPipelineService instance."""
    global _order_pipeline_service
    if _order_pipeline_service is None:
        _order_pipeline_service = OrderPipelineService()
    return _order_pipeline_service

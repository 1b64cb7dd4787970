"""
Dashboard session.

Owns the card board of one user viewing one tenant's orders: loads the
pipeline, hydrates cards with stored state, applies status clicks and
notes edits optimistically, persists them, and keeps the board in sync
with other sessions through the reconciliation loop.
"""

from datetime import date
from threading import Lock, Timer
from typing import Callable, Optional, Union
import structlog

from models.card import Card, CardStateUpdate, CardStatus, RenderedCard
from models.field_definition import FieldDefinition
from exceptions import AppError, CardNotFoundError
from services.card_store import CardBoard, CardStore, LocalEdit, PipelineLoaded, status_changes
from services.field_resolution_service import FieldResolver, get_field_resolver
from services.notes_debouncer import NotesDebouncer
from services.order_pipeline_service import (
    OrderPipelineService,
    OrderSource,
    PipelineResult,
    get_order_pipeline_service,
)
from services.reconciliation_service import ReconciliationLoop

logger = structlog.get_logger(__name__)


class DashboardSession:
    """
    Card board for one user and tenant.

    Collaborators default to the service singletons; tests inject fakes.
    """

    def __init__(
        self,
        tenant_id: str,
        actor_name: Optional[str] = None,
        pipeline: Optional[OrderPipelineService] = None,
        state_service=None,
        field_config_service=None,
        resolver: Optional[FieldResolver] = None,
        debounce_seconds: Optional[float] = None,
        timer_factory: Callable[..., Timer] = Timer,
        reconciliation_interval: Optional[float] = None
    ):
        if state_service is None:
            from services.card_state_service import get_card_state_service
            state_service = get_card_state_service()
        if field_config_service is None:
            from services.field_config_service import get_field_config_service
            field_config_service = get_field_config_service()

        self.tenant_id = tenant_id
        self.actor_name = actor_name
        self.pipeline = pipeline or get_order_pipeline_service()
        self.state_service = state_service
        self.field_config_service = field_config_service
        self.resolver = resolver or get_field_resolver()

        self.store = CardStore()
        self.fields: Optional[list[FieldDefinition]] = None
        # card_id -> message of the last failed write
        self.write_errors: dict[str, str] = {}

        self.debouncer = NotesDebouncer(
            self._persist_notes,
            delay=debounce_seconds,
            timer_factory=timer_factory
        )
        self.reconciliation = ReconciliationLoop(
            tenant_id,
            self.store,
            state_service,
            interval=reconciliation_interval
        )

        self._generation = 0
        self._generation_lock = Lock()

    @property
    def board(self) -> CardBoard:
        return self.store.board

    # ===================
    # LOADING
    # ===================

    def load_fields(self) -> list[FieldDefinition]:
        """Load the tenant's field definitions once per session."""
        if self.fields is None:
            self.fields = self.field_config_service.get_field_config(self.tenant_id)
        return self.fields

    def load(self, source: OrderSource, delivery_date: Union[str, date]) -> PipelineResult:
        """
        Run the pipeline for a delivery date and publish its cards.

        Cards of orders that failed this run keep their previous state. A
        run superseded by a newer load is dropped.

        Raises:
            InvalidOrderDateError: If the date cannot be parsed
            OrderFetchError: If the order list cannot be fetched
        """
        generation = self._next_generation()
        result = self.pipeline.run_for_date(self.tenant_id, source, delivery_date)
        self._publish(generation, result)
        return result

    def load_order(
        self,
        source: OrderSource,
        order_ref: str,
        delivery_date: Optional[str] = None
    ) -> PipelineResult:
        """
        Run the pipeline for one order and publish its cards.

        Raises:
            OrderFetchError: If the order cannot be fetched (board unchanged)
        """
        generation = self._next_generation()
        raw = self.pipeline.fetch_order(source, order_ref)
        result = PipelineResult(
            cards=self.pipeline.process_order(self.tenant_id, raw, delivery_date)
        )
        self._publish(generation, result)
        return result

    def load_orders(
        self,
        source: OrderSource,
        order_refs: list[str],
        delivery_date: Optional[str] = None
    ) -> PipelineResult:
        """Run the pipeline for specific orders and publish its cards."""
        generation = self._next_generation()
        result = self.pipeline.run_orders(self.tenant_id, source, order_refs, delivery_date)
        self._publish(generation, result)
        return result

    def _next_generation(self) -> int:
        with self._generation_lock:
            self._generation += 1
            return self._generation

    def _publish(self, generation: int, result: PipelineResult) -> None:
        cards = self._hydrate(result.cards)

        # Generation check and dispatch are atomic
        with self._generation_lock:
            if generation != self._generation:
                logger.info(
                    "stale_pipeline_run_dropped",
                    tenant_id=self.tenant_id,
                    generation=generation,
                    current=self._generation
                )
                return
            self.store.dispatch(PipelineLoaded(tuple(cards), result.failed_order_ids))

    def _hydrate(self, cards: list[Card]) -> list[Card]:
        if not cards:
            return cards
        try:
            stored = self.state_service.get_for_cards(
                self.tenant_id,
                [card.card_id for card in cards]
            )
        except AppError as e:
            logger.warning("card_hydration_failed", tenant_id=self.tenant_id, error=e.message)
            return cards

        return [
            card.model_copy(update=stored[card.card_id].changes())
            if card.card_id in stored else card
            for card in cards
        ]

    # ===================
    # EDITS
    # ===================

    def click_status(self, card_id: str, clicked: Union[CardStatus, str]) -> Card:
        """
        Apply a status button click and persist it immediately.

        Raises:
            CardNotFoundError: If the card is not on the board
        """
        card = self._require(card_id)
        changes = status_changes(card, clicked, self.actor_name)
        self.store.dispatch(LocalEdit(card_id, changes))

        self._persist(card_id, CardStateUpdate(
            status=changes["status"],
            assigned_to=changes["assigned_to"],
            delivery_date=card.delivery_date
        ))
        return self.store.get(card_id)

    def edit_notes(self, card_id: str, text: str) -> Card:
        """
        Apply a notes edit locally and schedule its debounced write.

        Raises:
            CardNotFoundError: If the card is not on the board
        """
        self._require(card_id)
        self.store.dispatch(LocalEdit(card_id, {"notes": text}))
        self.debouncer.schedule(card_id, text)
        return self.store.get(card_id)

    def _require(self, card_id: str) -> Card:
        card = self.store.get(card_id)
        if card is None:
            raise CardNotFoundError(card_id)
        return card

    def _persist_notes(self, card_id: str, text: str) -> None:
        self._persist(card_id, CardStateUpdate(notes=text))

    def _persist(self, card_id: str, update: CardStateUpdate) -> None:
        # Optimistic: the local edit stays even when the write fails
        try:
            self.state_service.upsert(self.tenant_id, card_id, update)
        except AppError as e:
            logger.warning("card_state_write_failed", card_id=card_id, error=e.message)
            self.write_errors[card_id] = e.message
            return
        self.write_errors.pop(card_id, None)

    # ===================
    # RENDERING
    # ===================

    def render(self) -> tuple[list[RenderedCard], list[RenderedCard]]:
        """Rendered (main, add-on) cards with the tenant's visible fields."""
        fields = self.load_fields()
        board = self.board
        return (
            self.resolver.render_cards(board.main_cards, fields),
            self.resolver.render_cards(board.add_on_cards, fields),
        )

    # ===================
    # LIFECYCLE
    # ===================

    def start_sync(self) -> None:
        """Start merging remote changes."""
        self.reconciliation.start()

    def close(self) -> None:
        """Send pending notes and stop syncing."""
        self.debouncer.flush()
        self.reconciliation.stop()

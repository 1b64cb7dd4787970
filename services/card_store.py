"""
Card state store.

Single source of truth for the cards on screen. Every mutation is an
action reduced into a new board:

    PipelineLoaded  - a pipeline run finished
    LocalEdit       - the user changed a card
    RemoteMerge     - another session's change arrived via polling

All card updates are replace-by-id copies restricted to the mutable card
fields. Re-applying the same change returns the same board object.
"""

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Mapping, Optional, Union
import structlog

from models.card import Card, CardStatus, MUTABLE_CARD_FIELDS

logger = structlog.get_logger(__name__)


# ===================
# ACTIONS
# ===================

@dataclass(frozen=True)
class PipelineLoaded:
    """
    A pipeline run's cards.

    Existing cards of orders listed in retained_order_ids (orders whose
    fetch failed this run) are kept instead of dropped.
    """
    cards: tuple[Card, ...]
    retained_order_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class LocalEdit:
    card_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RemoteMerge:
    card_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)


CardAction = Union[PipelineLoaded, LocalEdit, RemoteMerge]


# ===================
# STATE
# ===================

@dataclass(frozen=True)
class CardBoard:
    """Main and add-on cards, each in pipeline order."""
    main_cards: tuple[Card, ...] = ()
    add_on_cards: tuple[Card, ...] = ()

    def all_cards(self) -> tuple[Card, ...]:
        return self.main_cards + self.add_on_cards

    def get(self, card_id: str) -> Optional[Card]:
        for card in self.all_cards():
            if card.card_id == card_id:
                return card
        return None

    def add_ons_for_order(self, order_id: str) -> list[Card]:
        return [card for card in self.add_on_cards if card.order_id == order_id]


def reduce(board: CardBoard, action: CardAction) -> CardBoard:
    """
    Apply an action to a board.

    Args:
        board: Current board
        action: Action to apply

    Returns:
        New board, or the same board when nothing changed
    """
    if isinstance(action, PipelineLoaded):
        return _load(board, action)

    if isinstance(action, (LocalEdit, RemoteMerge)):
        return _update_card(board, action.card_id, action.changes)

    raise TypeError(f"Unknown card action: {type(action).__name__}")


def _load(board: CardBoard, action: PipelineLoaded) -> CardBoard:
    cards = list(action.cards)
    if action.retained_order_ids:
        incoming = {card.card_id for card in cards}
        cards.extend(
            card for card in board.all_cards()
            if card.order_id in action.retained_order_ids and card.card_id not in incoming
        )

    return CardBoard(
        main_cards=tuple(card for card in cards if not card.is_add_on),
        add_on_cards=tuple(card for card in cards if card.is_add_on),
    )


def _update_card(board: CardBoard, card_id: str, changes: Mapping[str, Any]) -> CardBoard:
    updates = _clean_changes(changes)
    if not updates:
        return board

    def replace(cards: tuple[Card, ...]) -> tuple[tuple[Card, ...], bool]:
        replaced = False
        result = []
        for card in cards:
            if card.card_id == card_id and _differs(card, updates):
                card = card.model_copy(update=updates)
                replaced = True
            result.append(card)
        return tuple(result), replaced

    main_cards, main_changed = replace(board.main_cards)
    add_on_cards, add_on_changed = replace(board.add_on_cards)

    if not (main_changed or add_on_changed):
        return board

    return CardBoard(main_cards=main_cards, add_on_cards=add_on_cards)


def _clean_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    updates = {k: v for k, v in changes.items() if k in MUTABLE_CARD_FIELDS}
    if "status" in updates:
        if updates["status"] is None:
            del updates["status"]
        else:
            updates["status"] = CardStatus(updates["status"])
    if "notes" in updates and updates["notes"] is None:
        updates["notes"] = ""
    return updates


def _differs(card: Card, updates: dict[str, Any]) -> bool:
    return any(getattr(card, key) != value for key, value in updates.items())


# ===================
# STATUS
# ===================

def status_changes(card: Card, clicked: Union[CardStatus, str], actor: Optional[str]) -> dict[str, Any]:
    """
    Changes for a click on a status button.

    Clicking the active status resets the card to unassigned and clears
    the assignee. Clicking assigned or completed stamps the actor.
    """
    clicked = CardStatus(clicked)

    if clicked == card.status or clicked == CardStatus.UNASSIGNED:
        return {"status": CardStatus.UNASSIGNED, "assigned_to": None}

    return {"status": clicked, "assigned_to": actor}


# ===================
# STORE
# ===================

class CardStore:
    """Thread-safe holder of the current board."""

    def __init__(self, board: Optional[CardBoard] = None):
        self._board = board or CardBoard()
        self._lock = Lock()

    @property
    def board(self) -> CardBoard:
        return self._board

    def dispatch(self, action: CardAction) -> CardBoard:
        """Reduce an action into the board and return the new board."""
        with self._lock:
            board = reduce(self._board, action)
            if board is not self._board:
                logger.debug("card_store_updated", action=type(action).__name__)
            self._board = board
            return board

    def get(self, card_id: str) -> Optional[Card]:
        return self._board.get(card_id)

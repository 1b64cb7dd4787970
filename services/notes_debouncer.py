"""
Per-card debounce of notes writes.

Each keystroke restarts the card's timer; only the last text within the
quiet period is sent. Timers of different cards are independent.
"""

from dataclasses import dataclass
from itertools import count
from threading import Lock, Timer
from typing import Callable, Optional
import structlog

from config import settings

logger = structlog.get_logger(__name__)


@dataclass
class _PendingNote:
    token: int
    text: str
    timer: Timer


class NotesDebouncer:
    """
    Debounces notes writes per card id.

    Args:
        send: Called with (card_id, text) once a card goes quiet
        delay: Quiet period in seconds (defaults to settings)
        timer_factory: threading.Timer compatible factory
    """

    def __init__(
        self,
        send: Callable[[str, str], None],
        delay: Optional[float] = None,
        timer_factory: Callable[..., Timer] = Timer
    ):
        self.send = send
        self.delay = settings.notes_debounce_seconds if delay is None else delay
        self.timer_factory = timer_factory
        self._pending: dict[str, _PendingNote] = {}
        self._tokens = count(1)
        self._lock = Lock()

    def schedule(self, card_id: str, text: str) -> None:
        """Record a notes edit, restarting the card's timer."""
        with self._lock:
            previous = self._pending.get(card_id)
            if previous is not None:
                previous.timer.cancel()

            token = next(self._tokens)
            timer = self.timer_factory(self.delay, self._fire, args=(card_id, token))
            timer.daemon = True
            self._pending[card_id] = _PendingNote(token=token, text=text, timer=timer)
            timer.start()

    def pending(self, card_id: str) -> Optional[str]:
        """Text waiting to be sent for a card, if any."""
        entry = self._pending.get(card_id)
        return entry.text if entry else None

    def flush(self, card_id: Optional[str] = None) -> None:
        """Send pending text now, for one card or all cards."""
        with self._lock:
            card_ids = [card_id] if card_id is not None else list(self._pending)
            entries = []
            for pending_id in card_ids:
                entry = self._pending.pop(pending_id, None)
                if entry is not None:
                    entry.timer.cancel()
                    entries.append((pending_id, entry.text))

        for pending_id, text in entries:
            self._send(pending_id, text)

    def cancel_all(self) -> None:
        """Drop every pending write without sending."""
        with self._lock:
            for entry in self._pending.values():
                entry.timer.cancel()
            self._pending.clear()

    def _fire(self, card_id: str, token: int) -> None:
        with self._lock:
            entry = self._pending.get(card_id)
            # A newer edit replaced this timer after it started running
            if entry is None or entry.token != token:
                return
            del self._pending[card_id]

        self._send(card_id, entry.text)

    def _send(self, card_id: str, text: str) -> None:
        logger.debug("notes_write_flushed", card_id=card_id, length=len(text))
        self.send(card_id, text)

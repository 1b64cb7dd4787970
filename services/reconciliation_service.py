"""
Reconciliation of remote card state changes.

Polls the card state store for rows changed since the last cursor and
merges them into the local CardStore. Each poll re-reads a window behind
the cursor so rows committed late are not skipped. Merges are idempotent,
so a delta seen twice (or the echo of a local write) changes nothing.
"""

from threading import Event, Thread
from typing import Optional, Protocol
import structlog

from config import settings
from models.card import CardDelta
from exceptions import AppError
from services.card_store import CardStore, RemoteMerge

logger = structlog.get_logger(__name__)


class ChangeSource(Protocol):
    def list_changed_since(self, tenant_id: str, cursor: Optional[str] = None) -> list[CardDelta]: ...


class ReconciliationLoop:
    """
    Background poller merging remote changes into a CardStore.

    Args:
        tenant_id: Tenant UUID
        store: Local card store
        source: Change source (CardStateService)
        interval: Poll interval in seconds (defaults to settings)
        cursor: Start cursor (None = all changes)
    """

    def __init__(
        self,
        tenant_id: str,
        store: CardStore,
        source: ChangeSource,
        interval: Optional[float] = None,
        cursor: Optional[str] = None
    ):
        self.tenant_id = tenant_id
        self.store = store
        self.source = source
        self.interval = interval or settings.reconciliation_interval_seconds
        self.cursor = cursor
        self._seen: dict[str, Optional[str]] = {}
        self._stop = Event()
        self._thread: Optional[Thread] = None

    def poll_once(self) -> int:
        """
        Fetch and merge one batch of changes.

        Returns:
            Number of new deltas merged (0 on error)
        """
        try:
            deltas = self.source.list_changed_since(self.tenant_id, self.cursor)
        except AppError as e:
            logger.warning("reconciliation_poll_failed", tenant_id=self.tenant_id, error=e.message)
            return 0

        # The overlap window returns recent rows again; only new versions are merged
        merged = 0
        seen = {}
        for delta in deltas:
            seen[delta.card_id] = delta.updated_at
            if delta.updated_at and self._seen.get(delta.card_id) == delta.updated_at:
                continue

            self.store.dispatch(RemoteMerge(delta.card_id, delta.changes()))
            merged += 1
            if delta.updated_at and (self.cursor is None or delta.updated_at > self.cursor):
                self.cursor = delta.updated_at
        self._seen = seen

        if merged:
            logger.info(
                "reconciliation_merged",
                tenant_id=self.tenant_id,
                count=merged,
                cursor=self.cursor
            )
        return merged

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start polling in a daemon thread."""
        if self.running:
            return
        self._stop.clear()
        self._thread = Thread(target=self._run, name=f"reconcile-{self.tenant_id}", daemon=True)
        self._thread.start()
        logger.info("reconciliation_started", tenant_id=self.tenant_id, interval=self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop polling and wait for the thread to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("reconciliation_stopped", tenant_id=self.tenant_id)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.poll_once()
            except Exception as e:
                logger.error("reconciliation_poll_crashed", tenant_id=self.tenant_id, error=str(e))

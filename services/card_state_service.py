"""
Per-card persistence store.

Each card's mutable state (status, notes, assignee, delivery date) lives
in order_card_states keyed by (tenant_id, card_id). Writes are upserts;
readers poll for rows changed since a cursor.

updated_at is stamped by the database (column default now() plus an
update trigger), so every writer shares one clock.
"""

from datetime import datetime, timedelta
from typing import Optional
import structlog

from config import get_supabase_client, settings
from models.card import CardDelta, CardStateUpdate, CardStateWriteResult
from exceptions import DatabaseError

logger = structlog.get_logger(__name__)

STATE_COLUMNS = "card_id, status, notes, assigned_to, delivery_date, updated_at"


class CardStateService:
    """
    Card state persistence.

    Last write wins per field: an upsert only writes the fields set on
    the update.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "order_card_states"

    # ===================
    # WRITES
    # ===================

    def upsert(
        self,
        tenant_id: str,
        card_id: str,
        update: CardStateUpdate
    ) -> CardStateWriteResult:
        """
        Write the set fields of a card state.

        Args:
            tenant_id: Tenant UUID
            card_id: Card identifier
            update: Fields to write

        Returns:
            CardStateWriteResult with the stored updated_at

        Raises:
            DatabaseError: If the upsert fails
        """
        changes = update.model_dump(exclude_unset=True, mode="json")

        logger.info(
            "upserting_card_state",
            tenant_id=tenant_id,
            card_id=card_id,
            fields=sorted(changes)
        )

        row = {
            "tenant_id": tenant_id,
            "card_id": card_id,
            **changes,
        }

        try:
            response = (
                self.db.table(self.table)
                .upsert(row, on_conflict="tenant_id,card_id")
                .execute()
            )
        except Exception as e:
            logger.error("card_state_upsert_failed", card_id=card_id, error=str(e))
            raise DatabaseError("upsert", str(e))

        if not response.data:
            raise DatabaseError("upsert", f"No row returned for card {card_id}")

        stored = response.data[0]
        if not stored.get("updated_at"):
            raise DatabaseError("upsert", f"No updated_at returned for card {card_id}")

        return CardStateWriteResult(
            card_id=card_id,
            updated_at=str(stored["updated_at"])
        )

    # ===================
    # READS
    # ===================

    def list_changed_since(
        self,
        tenant_id: str,
        cursor: Optional[str] = None,
        limit: int = 500,
        overlap_seconds: Optional[float] = None
    ) -> list[CardDelta]:
        """
        List card states changed since a cursor.

        The window starts overlap_seconds before the cursor, so a row
        committed late with an older updated_at is still returned. Rows
        at or near the cursor come back again on the next poll; merging
        them is idempotent.

        Args:
            tenant_id: Tenant UUID
            cursor: updated_at of the last seen change (None = everything)
            limit: Max rows per poll
            overlap_seconds: Re-read window (defaults to settings)

        Returns:
            Deltas ordered by updated_at ascending

        Raises:
            DatabaseError: If the query fails
        """
        if overlap_seconds is None:
            overlap_seconds = settings.reconciliation_overlap_seconds

        try:
            query = (
                self.db.table(self.table)
                .select(STATE_COLUMNS)
                .eq("tenant_id", tenant_id)
            )
            if cursor:
                query = query.gte("updated_at", window_start(cursor, overlap_seconds))

            response = query.order("updated_at").limit(limit).execute()

        except Exception as e:
            logger.error("card_state_changes_failed", tenant_id=tenant_id, error=str(e))
            raise DatabaseError("select", str(e))

        deltas = [CardDelta.from_row(row) for row in response.data or []]
        if deltas:
            logger.debug("card_state_changes_found", tenant_id=tenant_id, count=len(deltas))
        return deltas

    def get_for_cards(
        self,
        tenant_id: str,
        card_ids: list[str]
    ) -> dict[str, CardDelta]:
        """
        Get stored states for a set of cards.

        Args:
            tenant_id: Tenant UUID
            card_ids: Card identifiers

        Returns:
            Dict of card_id -> CardDelta (cards without a row are absent)

        Raises:
            DatabaseError: If the query fails
        """
        if not card_ids:
            return {}

        try:
            response = (
                self.db.table(self.table)
                .select(STATE_COLUMNS)
                .eq("tenant_id", tenant_id)
                .in_("card_id", list(card_ids))
                .execute()
            )
        except Exception as e:
            logger.error("card_state_get_failed", tenant_id=tenant_id, error=str(e))
            raise DatabaseError("select", str(e))

        return {
            row["card_id"]: CardDelta.from_row(row)
            for row in response.data or []
            if row.get("card_id") in card_ids
        }


def window_start(cursor: str, overlap_seconds: float) -> str:
    """
    Move a timestamp cursor back by the overlap window.

    A cursor that is not an ISO timestamp is returned unchanged.
    """
    try:
        stamp = datetime.fromisoformat(cursor.replace("Z", "+00:00"))
    except ValueError:
        return cursor
    return (stamp - timedelta(seconds=overlap_seconds)).isoformat()


# Singleton instance
_card_state_service: Optional[CardStateService] = None


def get_card_state_service() -> CardStateService:
    """Get or create CardStateService instance."""
    global _card_state_service
    if _card_state_service is None:
        _card_state_service = CardStateService()
    return _card_state_service

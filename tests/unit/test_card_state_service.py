"""
Unit tests for CardStateService.

Run: pytest tests/unit/test_card_state_service.py -v
"""

import pytest
from unittest.mock import patch

from models.card import CardStateUpdate, CardStatus
from services.card_state_service import CardStateService, get_card_state_service, window_start
from exceptions import DatabaseError
from tests.factories import CardStateRowFactory


class TestUpsert:
    """Tests for CardStateService.upsert()"""

    def test_writes_only_set_fields(self, mock_db, mock_supabase):
        service = CardStateService()

        result = service.upsert("tenant-1", "1001-1-0", CardStateUpdate(notes="Extra ribbon"))

        name, args, kwargs = [c for c in mock_supabase.calls["order_card_states"] if c[0] == "upsert"][0]
        row = args[0][0]
        assert row["tenant_id"] == "tenant-1"
        assert row["card_id"] == "1001-1-0"
        assert row["notes"] == "Extra ribbon"
        assert "status" not in row
        assert kwargs["on_conflict"] == "tenant_id,card_id"
        assert "updated_at" not in row
        assert result.card_id == "1001-1-0"
        assert result.updated_at

    def test_status_serialized_as_value(self, mock_db, mock_supabase):
        service = CardStateService()

        service.upsert(
            "tenant-1",
            "1001-1-0",
            CardStateUpdate(status=CardStatus.ASSIGNED, assigned_to="Mei")
        )

        upsert = [c for c in mock_supabase.calls["order_card_states"] if c[0] == "upsert"][0]
        assert upsert[1][0][0]["status"] == "assigned"

    def test_explicit_null_assignee_is_written(self, mock_db, mock_supabase):
        service = CardStateService()

        service.upsert(
            "tenant-1",
            "1001-1-0",
            CardStateUpdate(status=CardStatus.UNASSIGNED, assigned_to=None)
        )

        upsert = [c for c in mock_supabase.calls["order_card_states"] if c[0] == "upsert"][0]
        assert upsert[1][0][0]["assigned_to"] is None

    def test_failure_raises_database_error(self, mock_db, mock_supabase):
        mock_supabase.set_table_error("order_card_states", "connection reset")
        service = CardStateService()

        with pytest.raises(DatabaseError):
            service.upsert("tenant-1", "1001-1-0", CardStateUpdate(notes="x"))


class TestListChangedSince:
    """Tests for CardStateService.list_changed_since()"""

    def test_returns_deltas(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("order_card_states", [
            CardStateRowFactory.create(card_id="a", updated_at="2026-10-16T08:00:01+00:00"),
            CardStateRowFactory.create(card_id="b", notes=None, status=None,
                                       updated_at="2026-10-16T08:00:02+00:00"),
        ])
        service = CardStateService()

        deltas = service.list_changed_since("tenant-1", "2026-10-16T08:00:00+00:00")

        assert [delta.card_id for delta in deltas] == ["a", "b"]
        assert deltas[0].changes()["status"] == CardStatus.ASSIGNED
        assert deltas[1].changes() == {
            "notes": "",
            "assigned_to": "Mei",
            "delivery_date": "2026-10-16",
        }

    def test_cursor_window_overlaps_previous_poll(self, mock_db, mock_supabase):
        """Rows committed late with an older updated_at fall inside the window."""
        service = CardStateService()

        service.list_changed_since("tenant-1", "2026-10-16T08:00:00+00:00", overlap_seconds=10)

        calls = mock_supabase.calls["order_card_states"]
        assert ("gte", ("updated_at", "2026-10-16T07:59:50+00:00"), {}) in calls
        assert ("order", ("updated_at",), {}) in calls

    def test_overlap_defaults_to_settings(self, mock_db, mock_supabase):
        service = CardStateService()

        with patch("services.card_state_service.settings") as mock_settings:
            mock_settings.reconciliation_overlap_seconds = 5.0
            service.list_changed_since("tenant-1", "2026-10-16T08:00:00Z")

        calls = mock_supabase.calls["order_card_states"]
        assert ("gte", ("updated_at", "2026-10-16T07:59:55+00:00"), {}) in calls

    def test_no_cursor_reads_everything(self, mock_db, mock_supabase):
        service = CardStateService()

        service.list_changed_since("tenant-1")

        assert not [c for c in mock_supabase.calls["order_card_states"] if c[0] == "gte"]

    def test_failure_raises_database_error(self, mock_db, mock_supabase):
        mock_supabase.set_table_error("order_card_states", "timeout")
        service = CardStateService()

        with pytest.raises(DatabaseError):
            service.list_changed_since("tenant-1")


class TestGetForCards:
    """Tests for CardStateService.get_for_cards()"""

    def test_keyed_by_card_id(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("order_card_states", [
            CardStateRowFactory.create(card_id="a"),
        ])
        service = CardStateService()

        stored = service.get_for_cards("tenant-1", ["a", "b"])

        assert list(stored) == ["a"]
        assert stored["a"].assigned_to == "Mei"

    def test_empty_ids_skip_query(self, mock_db, mock_supabase):
        service = CardStateService()

        assert service.get_for_cards("tenant-1", []) == {}
        assert "order_card_states" not in mock_supabase.calls


class TestWindowStart:
    """Tests for window_start()"""

    def test_moves_cursor_back(self):
        assert window_start("2026-10-16T08:00:05.250000+00:00", 10) == "2026-10-16T07:59:55.250000+00:00"

    def test_zero_overlap_keeps_instant(self):
        assert window_start("2026-10-16T08:00:00+00:00", 0) == "2026-10-16T08:00:00+00:00"

    def test_non_timestamp_cursor_unchanged(self):
        assert window_start("c-1", 10) == "c-1"


class TestSingleton:
    def test_get_card_state_service_returns_same_instance(self, mock_db):
        assert get_card_state_service() is get_card_state_service()

"""
Unit tests for the card store reducer.

Run: pytest tests/unit/test_card_store.py -v
"""

import pytest

from models.card import CardStatus
from services.card_store import (
    CardBoard,
    CardStore,
    LocalEdit,
    PipelineLoaded,
    RemoteMerge,
    reduce,
    status_changes,
)
from tests.factories import CardFactory


@pytest.fixture
def board():
    return reduce(CardBoard(), PipelineLoaded((
        CardFactory.create(card_id="1-a-0", order_id="1"),
        CardFactory.create(card_id="1-b-0", order_id="1", is_add_on=True),
        CardFactory.create(card_id="2-c-0", order_id="2"),
    )))


class TestPipelineLoaded:
    """Tests for PipelineLoaded"""

    def test_partitions_cards(self, board):
        assert [card.card_id for card in board.main_cards] == ["1-a-0", "2-c-0"]
        assert [card.card_id for card in board.add_on_cards] == ["1-b-0"]

    def test_replaces_previous_cards(self, board):
        new_board = reduce(board, PipelineLoaded((CardFactory.create(card_id="3-d-0", order_id="3"),)))

        assert [card.card_id for card in new_board.all_cards()] == ["3-d-0"]

    def test_keeps_cards_of_failed_orders(self, board):
        edited = reduce(board, LocalEdit("2-c-0", {"notes": "keep me"}))

        new_board = reduce(edited, PipelineLoaded(
            (CardFactory.create(card_id="1-a-0", order_id="1"),),
            retained_order_ids=frozenset({"2"}),
        ))

        assert [card.card_id for card in new_board.all_cards()] == ["1-a-0", "2-c-0"]
        assert new_board.get("2-c-0").notes == "keep me"

    def test_add_ons_for_order(self, board):
        assert [card.card_id for card in board.add_ons_for_order("1")] == ["1-b-0"]
        assert board.add_ons_for_order("2") == []


class TestCardUpdates:
    """Tests for LocalEdit and RemoteMerge"""

    def test_local_edit_replaces_card(self, board):
        new_board = reduce(board, LocalEdit("1-a-0", {"notes": "Extra ribbon"}))

        assert new_board.get("1-a-0").notes == "Extra ribbon"
        assert board.get("1-a-0").notes == ""

    def test_other_cards_untouched(self, board):
        new_board = reduce(board, LocalEdit("1-a-0", {"notes": "x"}))

        assert new_board.get("2-c-0") is board.get("2-c-0")

    def test_remote_merge_only_listed_fields(self, board):
        board = reduce(board, LocalEdit("1-a-0", {"notes": "mine"}))

        new_board = reduce(board, RemoteMerge("1-a-0", {"status": "assigned", "assigned_to": "Mei"}))

        card = new_board.get("1-a-0")
        assert card.status == CardStatus.ASSIGNED
        assert card.assigned_to == "Mei"
        assert card.notes == "mine"

    def test_merge_is_idempotent(self, board):
        delta = RemoteMerge("1-a-0", {"status": "completed", "assigned_to": "Mei", "notes": "done"})

        once = reduce(board, delta)
        twice = reduce(once, delta)

        assert twice is once
        assert twice == once

    def test_immutable_fields_ignored(self, board):
        new_board = reduce(board, RemoteMerge("1-a-0", {"title": "Hacked", "order_id": "9"}))

        assert new_board is board

    def test_unknown_card_ignored(self, board):
        assert reduce(board, RemoteMerge("missing", {"notes": "x"})) is board

    def test_null_notes_become_empty(self, board):
        board = reduce(board, LocalEdit("1-a-0", {"notes": "text"}))

        new_board = reduce(board, RemoteMerge("1-a-0", {"notes": None}))

        assert new_board.get("1-a-0").notes == ""

    def test_unknown_action(self, board):
        with pytest.raises(TypeError):
            reduce(board, "not an action")


class TestStatusChanges:
    """Tests for status_changes()"""

    def test_click_active_status_resets(self):
        card = CardFactory.create(status=CardStatus.ASSIGNED, assigned_to="Mei")

        changes = status_changes(card, CardStatus.ASSIGNED, "Jun")

        assert changes == {"status": CardStatus.UNASSIGNED, "assigned_to": None}

    def test_click_other_status_stamps_actor(self):
        card = CardFactory.create(status=CardStatus.UNASSIGNED)

        changes = status_changes(card, "completed", "Jun")

        assert changes == {"status": CardStatus.COMPLETED, "assigned_to": "Jun"}

    def test_assigned_to_completed_restamps(self):
        card = CardFactory.create(status=CardStatus.ASSIGNED, assigned_to="Mei")

        changes = status_changes(card, CardStatus.COMPLETED, "Jun")

        assert changes["assigned_to"] == "Jun"

    def test_click_unassigned_clears(self):
        card = CardFactory.create(status=CardStatus.COMPLETED, assigned_to="Mei")

        changes = status_changes(card, CardStatus.UNASSIGNED, "Jun")

        assert changes == {"status": CardStatus.UNASSIGNED, "assigned_to": None}


class TestCardStore:
    """Tests for CardStore"""

    def test_dispatch_updates_board(self):
        store = CardStore()

        store.dispatch(PipelineLoaded((CardFactory.create(card_id="x"),)))
        store.dispatch(LocalEdit("x", {"status": CardStatus.COMPLETED}))

        assert store.get("x").status == CardStatus.COMPLETED

    def test_get_missing(self):
        assert CardStore().get("x") is None

"""
Tests for the review session state machine and item transitions.
"""
import pytest

from card_review import transitions
from card_review.errors import CardReviewError, CommitInProgressError, InvalidTransition, SessionClosedError
from card_review.schemas import CandidatePair, ItemState, PersistedCard, Provenance
from card_review.session import ReviewSession
from tests.conftest import make_session


def test_session_seeds_pending_items(session):
    assert len(session) == 3
    assert session.cursor == 0
    assert session.statuses() == ["pending", "pending", "pending"]
    first = session.items[0]
    assert first.id == "temp-0"
    assert first.original_front == first.front
    assert first.provenance is Provenance.GENERATED
    assert session.is_open and not session.is_editing


def test_items_are_immutable(session):
    item = session.items[0]
    with pytest.raises(Exception):
        item.state = ItemState.ACCEPTED


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


def test_navigation_clamps_without_wraparound(session):
    session.previous()
    assert session.cursor == 0
    session.go_to(10)
    assert session.cursor == 2
    session.next()
    assert session.cursor == 2
    session.go_to(-5)
    assert session.cursor == 0


def test_navigation_discards_edit_buffer_and_errors(session):
    session.begin_edit()
    session.change_field("front", "changed")
    session.change_field("back", "")
    assert session.field_errors
    session.toggle_flip()

    session.next()

    assert session.edit_buffer is None
    assert session.field_errors == {}
    assert session.is_flipped is False
    assert session.items[0].front == "What is the capital of France?"
    assert session.items[0].state is ItemState.PENDING


def test_toggle_flip(session):
    session.toggle_flip()
    assert session.is_flipped
    session.toggle_flip()
    assert not session.is_flipped


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------


def test_save_edit_marks_item_edited(session):
    assert session.begin_edit()
    assert session.change_field("back", "Paris, France") is None
    assert session.save_edit() is True

    item = session.items[0]
    assert item.back == "Paris, France"
    assert item.original_back == "Paris"
    assert item.state is ItemState.EDITED
    assert item.provenance is Provenance.GENERATED_EDITED
    assert session.edit_buffer is None


def test_save_edit_is_noop_while_field_has_error(session):
    session.begin_edit()
    assert session.change_field("front", "   ") == "This field is required"

    assert session.save_edit() is False
    assert session.save_edit() is False

    item = session.items[0]
    assert item.state is ItemState.PENDING
    assert item.front == "What is the capital of France?"
    assert session.is_editing
    assert "front" in session.field_errors


def test_field_error_clears_when_corrected(session):
    session.begin_edit()
    session.change_field("front", "")
    session.change_field("front", "Fixed question")
    assert session.field_errors == {}
    assert session.save_edit() is True


def test_save_edit_revalidates_untouched_fields():
    session = ReviewSession([{"front": "Question", "back": "  "}])
    session.begin_edit()
    session.change_field("front", "Better question")
    assert session.save_edit() is False
    assert "back" in session.field_errors
    assert session.items[0].state is ItemState.PENDING


def test_save_edit_without_changes_keeps_pending(session):
    session.begin_edit()
    assert session.save_edit() is True
    item = session.items[0]
    assert item.state is ItemState.PENDING
    assert item.provenance is Provenance.GENERATED


def test_edited_item_can_be_edited_again(session):
    session.begin_edit()
    session.change_field("back", "Paris!")
    session.save_edit()
    session.begin_edit()
    session.change_field("front", "Capital of France?")
    session.save_edit()
    item = session.items[0]
    assert (item.front, item.back) == ("Capital of France?", "Paris!")
    assert item.state is ItemState.EDITED


def test_restoring_original_content_keeps_last_edit(session):
    session.begin_edit()
    session.change_field("back", "Lyon")
    session.save_edit()
    session.begin_edit()
    session.change_field("back", "Paris")
    assert session.save_edit() is True
    item = session.items[0]
    assert item.back == "Lyon"
    assert item.state is ItemState.EDITED
    assert item.provenance is Provenance.GENERATED_EDITED
    assert not session.is_editing


def test_saving_original_content_keeps_accepted(session):
    session.go_to(2)
    session.accept()
    session.begin_edit()
    assert session.save_edit() is True
    item = session.items[2]
    assert item.state is ItemState.ACCEPTED
    assert item.provenance is Provenance.GENERATED


def test_cancel_edit_restores_view(session):
    session.begin_edit()
    session.change_field("front", "")
    session.cancel_edit()
    assert session.edit_buffer is None
    assert session.field_errors == {}
    assert session.items[0].front == "What is the capital of France?"


def test_change_field_requires_open_buffer(session):
    with pytest.raises(RuntimeError):
        session.change_field("front", "x")


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------


def test_accept_advances_cursor(session):
    accepted = session.accept()
    assert accepted.state is ItemState.ACCEPTED
    assert session.cursor == 1


def test_accept_on_last_item_stays(session):
    session.go_to(2)
    session.accept()
    assert session.cursor == 2
    assert session.statuses()[2] == "accepted"


def test_accept_keeps_edited_state(session):
    session.begin_edit()
    session.change_field("back", "Paris (FR)")
    session.save_edit()
    session.accept()
    assert session.items[0].state is ItemState.EDITED


def test_reject_removes_item(session):
    removed = session.reject()
    assert removed.state is ItemState.REJECTED
    assert len(session) == 2
    assert [i.id for i in session.items] == ["temp-1", "temp-2"]
    assert session.cursor == 0


def test_reject_last_index_moves_cursor_back(session):
    session.go_to(2)
    session.reject()
    assert session.cursor == 1
    assert len(session) == 2


def test_reject_until_empty(session):
    for expected in (2, 1, 0):
        session.reject()
        assert len(session) == expected
        assert session.is_empty or 0 <= session.cursor < len(session)
    assert session.current_item is None
    assert session.reject() is None
    assert session.committable_items() == []


def test_accept_all_only_touches_pending(session):
    session.begin_edit()
    session.change_field("back", "Paris, France")
    session.save_edit()
    edited_before = session.items[0]

    changed = session.accept_all()

    assert changed == 2
    assert session.items[0] == edited_before
    assert session.statuses() == ["edited", "accepted", "accepted"]


def test_reject_all_removes_only_pending():
    session = make_session(5)
    session.go_to(1)
    session.accept()  # item 1 accepted, cursor -> 2
    session.go_to(3)
    session.accept()  # item 3 accepted, cursor -> 4
    session.go_to(3)

    removed = session.reject_all()

    assert removed == 3
    assert [i.id for i in session.items] == ["temp-1", "temp-3"]
    assert session.cursor == 1
    assert session.current_item.id == "temp-3"


def test_reject_all_with_only_pending_empties_session(session):
    session.reject_all()
    assert session.is_empty
    assert session.cursor == 0


def test_bulk_actions_are_confirmed_in_two_steps(session):
    session.request_confirmation("accept_all")
    assert session.pending_confirmation == "accept_all"
    assert session.statuses() == ["pending"] * 3

    session.dismiss_confirmation()
    with pytest.raises(RuntimeError):
        session.confirm()

    session.request_confirmation("reject_all")
    assert session.confirm() == 3
    assert session.pending_confirmation is None
    assert session.is_empty


def test_request_confirmation_rejects_unknown_action(session):
    with pytest.raises(ValueError):
        session.request_confirmation("delete_everything")


def test_closed_session_refuses_operations(session):
    session.close()
    assert not session.is_open
    with pytest.raises(SessionClosedError):
        session.accept()
    with pytest.raises(SessionClosedError):
        session.next()


def test_mark_persisted_swaps_id(session):
    session.accept()
    record = PersistedCard(id="srv-9", front="What is the capital of France?", back="Paris", source="ai")
    session.mark_persisted("temp-0", record)
    item = session.items[0]
    assert item.id == "srv-9"
    assert item.persisted
    assert session.stored_record(item) == record
    assert session.begin_edit() is True  # cursor is on temp-1
    session.go_to(0)
    assert session.begin_edit() is False
    with pytest.raises(InvalidTransition):
        session.reject()


def test_transition_rejects_decided_rejected_item():
    item = transitions.seed_item(0, CandidatePair(front="f", back="b"))
    rejected = transitions.reject(item)
    with pytest.raises(InvalidTransition):
        transitions.accept(rejected)
    with pytest.raises(InvalidTransition):
        transitions.mark_persisted(item, "srv-1")


def test_stored_record_requires_persisted_card(session):
    with pytest.raises(KeyError):
        session.stored_record(session.items[0])


def test_invalid_transition_is_a_card_review_error(session):
    session.accept()
    session.mark_persisted("temp-0", PersistedCard(id="srv-1", front="f", back="b", source="ai"))
    session.go_to(0)
    with pytest.raises(CardReviewError):
        session.reject()


# ---------------------------------------------------------------------------
# While a commit is running
# ---------------------------------------------------------------------------


def test_decisions_are_refused_while_processing(session):
    session.go_to(1)
    session.is_processing = True
    for operation in (session.accept, session.reject, session.accept_all, session.reject_all):
        with pytest.raises(CommitInProgressError):
            operation()
    with pytest.raises(CommitInProgressError):
        session.request_confirmation("reject_all")
    assert session.statuses() == ["pending"] * 3


def test_editing_is_refused_while_processing(session):
    session.begin_edit()
    session.change_field("back", "Lyon")
    session.is_processing = True
    assert session.save_edit() is False
    assert session.items[0].back == "Paris"
    session.cancel_edit()
    assert session.begin_edit() is False


def test_navigation_still_works_while_processing(session):
    session.is_processing = True
    session.next()
    session.toggle_flip()
    assert session.cursor == 1
    assert session.is_flipped

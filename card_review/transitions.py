"""
Item state transitions.

Each function takes a CandidateItem and returns a new one; CandidateItem is
frozen, so these are the only way item state changes. There is no way back
to `pending`, and an `edited` card stays `edited`.

    pending  -> accepted | edited | rejected
    accepted -> edited | rejected
    edited   -> edited | rejected
"""
from card_review.errors import InvalidTransition
from card_review.schemas import CandidateItem, CandidatePair, ItemState, Provenance


def seed_item(index: int, pair: CandidatePair) -> CandidateItem:
    """Build the pending item for the index-th generated pair."""
    return CandidateItem(
        id=f"temp-{index}",
        front=pair.front,
        back=pair.back,
        original_front=pair.front,
        original_back=pair.back,
    )


def accept(item: CandidateItem) -> CandidateItem:
    """pending -> accepted. Already decided items are returned unchanged."""
    if item.state is ItemState.REJECTED:
        raise InvalidTransition(f"Card {item.id} was rejected")
    if item.state is ItemState.PENDING:
        return item.model_copy(update={"state": ItemState.ACCEPTED})
    return item


def save_content(item: CandidateItem, front: str, back: str) -> CandidateItem:
    """Write edited content into the item.

    Content that differs from the original snapshot makes the item `edited`
    with provenance `generated_edited`. Content equal to the snapshot changes
    nothing: a pending or accepted item keeps its state, and an edited item
    keeps its last saved content.
    """
    if item.state is ItemState.REJECTED:
        raise InvalidTransition(f"Card {item.id} was rejected")
    updated = item.model_copy(update={"front": front, "back": back})
    if not updated.is_modified:
        return item
    return updated.model_copy(
        update={"state": ItemState.EDITED, "provenance": Provenance.GENERATED_EDITED}
    )


def reject(item: CandidateItem) -> CandidateItem:
    if item.state is ItemState.REJECTED:
        raise InvalidTransition(f"Card {item.id} was already rejected")
    return item.model_copy(update={"state": ItemState.REJECTED})


def mark_persisted(item: CandidateItem, server_id: str) -> CandidateItem:
    """Swap the temporary id for the one the backend assigned."""
    if not item.is_committable:
        raise InvalidTransition(f"Card {item.id} is {item.state.value}, not committable")
    return item.model_copy(update={"id": server_id, "persisted": True})

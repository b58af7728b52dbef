"""
Review session — in-memory state machine for one batch of generated cards.

Holds the ordered cards, the cursor, the edit buffer for the card under the
cursor and its field errors. Every operation is synchronous and applies as a
single transition; nothing here touches the network (see card_review.commit).
"""
import logging
from typing import Callable, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel

from card_review import transitions
from card_review.errors import CommitInProgressError, InvalidTransition, SessionClosedError
from card_review.schemas import FIELDS, CandidateItem, CandidatePair, CardField, ItemState, PersistedCard
from card_review.validation import Translate, default_translate, validate_field

logger = logging.getLogger(__name__)

BulkAction = Literal["accept_all", "reject_all"]


class EditBuffer(BaseModel):
    """Uncommitted edit of the card at the cursor."""

    item_id: str
    front: str
    back: str


def _to_pair(raw: Union[CandidatePair, dict]) -> CandidatePair:
    return raw if isinstance(raw, CandidatePair) else CandidatePair.model_validate(raw)


class ReviewSession:
    """Review context for one generated batch.

    Seeded once from the generator's {front, back} pairs and discarded when
    the review is completed, cancelled or every card has been rejected.
    """

    def __init__(
        self,
        pairs: Iterable[Union[CandidatePair, dict]],
        *,
        deck_id: Optional[str] = None,
        translate: Translate = default_translate,
    ):
        self.deck_id = deck_id
        self._translate = translate
        self._items: List[CandidateItem] = [
            transitions.seed_item(index, _to_pair(pair)) for index, pair in enumerate(pairs)
        ]
        self.cursor = 0
        self.edit_buffer: Optional[EditBuffer] = None
        self.field_errors: Dict[str, str] = {}
        self.is_flipped = False
        self.is_open = True
        self.is_processing = False
        self.pending_confirmation: Optional[BulkAction] = None
        self.last_error: Optional[str] = None
        # server id -> record, for cards stored by an earlier commit attempt
        self._records: Dict[str, PersistedCard] = {}
        logger.info("Review session opened with %d cards (deck=%s)", len(self._items), deck_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def items(self) -> List[CandidateItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def current_item(self) -> Optional[CandidateItem]:
        if not self._items:
            return None
        return self._items[self.cursor]

    @property
    def is_editing(self) -> bool:
        return self.edit_buffer is not None

    @property
    def has_pending(self) -> bool:
        return any(item.state is ItemState.PENDING for item in self._items)

    @property
    def has_committable(self) -> bool:
        return any(item.is_committable for item in self._items)

    def committable_items(self) -> List[CandidateItem]:
        return [item for item in self._items if item.is_committable]

    def statuses(self) -> List[str]:
        return [item.state.value for item in self._items]

    def _require_open(self) -> None:
        if not self.is_open:
            raise SessionClosedError("Review session is closed")

    def _require_idle(self) -> None:
        """Decisions are frozen while complete() is writing them."""
        self._require_open()
        if self.is_processing:
            raise CommitInProgressError("Cards cannot change while a commit is running")

    def _reset_card_view(self) -> None:
        self.edit_buffer = None
        self.field_errors = {}
        self.is_flipped = False

    def _replace_current(self, item: CandidateItem) -> None:
        self._items[self.cursor] = item

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def go_to(self, index: int) -> None:
        """Move the cursor, clamped to the sequence. Drops any unsaved edit."""
        self._require_open()
        if not self._items:
            return
        self.cursor = max(0, min(index, len(self._items) - 1))
        self._reset_card_view()

    def next(self) -> None:
        self.go_to(self.cursor + 1)

    def previous(self) -> None:
        self.go_to(self.cursor - 1)

    def toggle_flip(self) -> None:
        self._require_open()
        self.is_flipped = not self.is_flipped

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def begin_edit(self) -> bool:
        """Open an edit buffer seeded from the current card."""
        self._require_open()
        item = self.current_item
        if item is None or item.persisted or self.is_processing:
            return False
        self.edit_buffer = EditBuffer(item_id=item.id, front=item.front, back=item.back)
        self.field_errors = {}
        return True

    def change_field(self, field: CardField, content: str) -> Optional[str]:
        """Update one buffered field and re-validate it. Returns the field's error, if any."""
        self._require_open()
        if self.edit_buffer is None:
            raise RuntimeError("change_field() called without begin_edit()")
        error = validate_field(field, content, self._translate)
        setattr(self.edit_buffer, field, content)
        if error:
            self.field_errors[field] = error
        else:
            self.field_errors.pop(field, None)
        return error

    def save_edit(self) -> bool:
        """Write the buffer into the card. No-op (False) while any field is invalid."""
        self._require_open()
        buffer = self.edit_buffer
        if buffer is None or self.field_errors or self.is_processing:
            return False
        for field in FIELDS:
            error = validate_field(field, getattr(buffer, field), self._translate)
            if error:
                self.field_errors[field] = error
        if self.field_errors:
            return False

        item = self.current_item
        updated = transitions.save_content(item, buffer.front, buffer.back)
        self._replace_current(updated)
        self.edit_buffer = None
        self.field_errors = {}
        logger.debug("Card %s saved as %s", updated.id, updated.state.value)
        return True

    def cancel_edit(self) -> None:
        self.edit_buffer = None
        self.field_errors = {}

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def accept(self) -> Optional[CandidateItem]:
        """Accept the current card and advance when a next card exists."""
        self._require_idle()
        item = self.current_item
        if item is None:
            return None
        updated = transitions.accept(item)
        self._replace_current(updated)
        self.edit_buffer = None
        self.field_errors = {}
        if self.cursor < len(self._items) - 1:
            self.next()
        return updated

    def reject(self) -> Optional[CandidateItem]:
        """Remove the current card from the session for good."""
        self._require_idle()
        item = self.current_item
        if item is None:
            return None
        if item.persisted:
            raise InvalidTransition(f"Card {item.id} is already stored")
        removed = transitions.reject(item)
        del self._items[self.cursor]
        if self.cursor > len(self._items) - 1:
            self.cursor = max(0, len(self._items) - 1)
        self._reset_card_view()
        if not self._items:
            logger.info("All cards rejected; nothing left to commit")
        return removed

    def accept_all(self) -> int:
        """Accept every pending card. Returns how many changed."""
        self._require_idle()
        changed = 0
        for index, item in enumerate(self._items):
            if item.state is ItemState.PENDING:
                self._items[index] = transitions.accept(item)
                changed += 1
        self.pending_confirmation = None
        logger.info("Accepted %d pending cards", changed)
        return changed

    def reject_all(self) -> int:
        """Remove every pending card in one step. Returns how many were removed."""
        self._require_idle()
        kept: List[CandidateItem] = []
        cursor = 0
        for index, item in enumerate(self._items):
            if item.state is ItemState.PENDING:
                continue
            if index < self.cursor:
                cursor += 1
            kept.append(item)
        removed = len(self._items) - len(kept)
        self._items = kept
        self.cursor = min(cursor, max(0, len(kept) - 1))
        self._reset_card_view()
        self.pending_confirmation = None
        logger.info("Rejected %d pending cards", removed)
        return removed

    # Bulk operations are confirmed in two steps by the caller.

    def request_confirmation(self, action: BulkAction) -> None:
        self._require_idle()
        if action not in ("accept_all", "reject_all"):
            raise ValueError(f"Unknown bulk action: {action!r}")
        self.pending_confirmation = action

    def dismiss_confirmation(self) -> None:
        self.pending_confirmation = None

    def confirm(self) -> int:
        """Run the bulk action awaiting confirmation."""
        action = self.pending_confirmation
        if action is None:
            raise RuntimeError("No bulk action awaiting confirmation")
        runner: Callable[[], int] = self.accept_all if action == "accept_all" else self.reject_all
        return runner()

    # ------------------------------------------------------------------
    # Commit bookkeeping
    # ------------------------------------------------------------------

    def mark_persisted(self, item_id: str, record: PersistedCard) -> None:
        """Record that the card with the temporary `item_id` is now stored as `record`."""
        for index, item in enumerate(self._items):
            if item.id == item_id:
                self._items[index] = transitions.mark_persisted(item, record.id)
                self._records[record.id] = record
                return
        logger.debug("Card %s left the session before its commit finished", item_id)

    def stored_record(self, item: CandidateItem) -> PersistedCard:
        """Backend record of a card stored by an earlier commit attempt."""
        if not item.persisted:
            raise KeyError(f"Card {item.id} has not been stored")
        return self._records[item.id]

    def close(self) -> None:
        """Close the session; decisions that were never committed are discarded."""
        if not self.is_open:
            return
        self.is_open = False
        self.edit_buffer = None
        self.field_errors = {}
        self.pending_confirmation = None
        logger.info("Review session closed (%d cards, %d committable)", len(self._items), len(self.committable_items()))

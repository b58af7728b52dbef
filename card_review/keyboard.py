"""
Keyboard shortcuts for the review screen.

Maps a key name (KeyboardEvent.key values) onto one ReviewSession operation.
Holds no state of its own.
"""
import logging
from typing import Callable, Optional

from card_review.schemas import ItemState
from card_review.session import ReviewSession

logger = logging.getLogger(__name__)

FLIP_KEYS = frozenset({"ArrowUp", "ArrowDown", " ", "Space"})


def handle_key(
    session: ReviewSession,
    key: str,
    *,
    on_close: Optional[Callable[[], None]] = None,
) -> bool:
    """Apply the shortcut for `key`. Returns True when the key was consumed."""
    if not session.is_open:
        return False

    if key == "Escape":
        if session.is_editing:
            session.cancel_edit()
        else:
            session.close()
            if on_close is not None:
                on_close()
        return True

    # Everything below is disabled while a field is being edited.
    if session.is_editing:
        return False

    if key == "ArrowLeft":
        if session.cursor > 0:
            session.previous()
            return True
        return False

    if key == "ArrowRight":
        if session.cursor < len(session) - 1:
            session.next()
            return True
        return False

    if key in FLIP_KEYS:
        session.toggle_flip()
        return True

    if key == "Enter":
        current = session.current_item
        if session.is_processing or current is None or current.state is not ItemState.PENDING:
            return False
        session.accept()
        return True

    logger.debug("Unmapped key: %r", key)
    return False

"""
Card content validation.

validate_field runs on every keystroke while editing; validate_for_commit
re-checks every accepted/edited card right before a commit, since a card can
be accepted without ever entering edit mode.
"""
import logging
from typing import Callable, Dict, Iterable, Mapping, Optional

from card_review.config_loader import get_config_value
from card_review.schemas import CandidateItem, CardField, CommitValidationIssue, FIELDS

logger = logging.getLogger(__name__)

MAX_LENGTH = 1000

Translate = Callable[[str, Optional[Mapping[str, object]]], str]

REQUIRED_KEY = "common.validation.required"
MAX_LENGTH_KEY = "common.validation.maxLength"
_COMMIT_KEYS: Dict[str, str] = {
    "front": "review.commit.invalidFront",
    "back": "review.commit.invalidBack",
}


def default_translate(key: str, params: Optional[Mapping[str, object]] = None) -> str:
    """Look up `messages.<key>` in config and interpolate {name} params. Unknown keys return the key."""
    messages = get_config_value("messages") or {}
    template = messages.get(key)
    if not template:
        return key
    try:
        return template.format(**(params or {}))
    except (KeyError, IndexError):
        logger.warning("Message %s is missing a parameter: %s", key, params)
        return template


def _max_length() -> int:
    return int(get_config_value("validation.max_length", MAX_LENGTH))


def validate_field(
    field: CardField,
    content: str,
    translate: Translate = default_translate,
) -> Optional[str]:
    """Return a translated error for one field, or None when the content is valid.

    Surrounding whitespace only matters for the checks; it is never stripped
    from what gets stored.
    """
    if field not in FIELDS:
        raise ValueError(f"Unknown card field: {field!r}")
    trimmed = content.strip()
    if not trimmed:
        return translate(REQUIRED_KEY, None)
    limit = _max_length()
    if len(trimmed) > limit:
        return translate(MAX_LENGTH_KEY, {"max": limit})
    return None


def validate_for_commit(
    items: Iterable[CandidateItem],
    translate: Translate = default_translate,
) -> Optional[CommitValidationIssue]:
    """Return the first invalid field among accepted/edited items, or None.

    Fail-fast: items are checked in review order, front before back.
    `index` is the item's position in `items`.
    """
    for index, item in enumerate(items):
        if not item.is_committable:
            continue
        for field in FIELDS:
            if validate_field(field, getattr(item, field), translate) is None:
                continue
            preview = item.front.strip()[:50]
            message = translate(_COMMIT_KEYS[field], {"preview": preview})
            logger.info("Commit blocked: card %s has invalid %s", item.id, field)
            return CommitValidationIssue(item_id=item.id, index=index, field=field, message=message)
    return None

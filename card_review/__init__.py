"""
Card Review — review machine-generated flashcards before they are stored.

ReviewSession holds the user's decisions in memory; CommitPipeline writes the
accepted cards through RetryingClient.
"""
from card_review.api import FlashcardApi, ReviewApi, ReviewQueueTracker
from card_review.commit import CommitPipeline
from card_review.http_client import RetryingClient
from card_review.keyboard import handle_key
from card_review.schemas import (
    CandidateItem,
    CommitOutcome,
    ItemState,
    PersistedCard,
    Provenance,
)
from card_review.session import ReviewSession
from card_review.validation import validate_field, validate_for_commit

__all__ = [
    "CandidateItem",
    "CommitOutcome",
    "CommitPipeline",
    "FlashcardApi",
    "ItemState",
    "PersistedCard",
    "Provenance",
    "RetryingClient",
    "ReviewApi",
    "ReviewQueueTracker",
    "ReviewSession",
    "handle_key",
    "validate_field",
    "validate_for_commit",
]

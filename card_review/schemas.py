"""
Schemas for card review.

Defines CandidateItem (the unit under review), the wire payloads sent to and
returned by the flashcards API, and CommitOutcome (result of complete()).
Items are frozen; state changes go through card_review.transitions.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Item state
# ---------------------------------------------------------------------------

CardField = Literal["front", "back"]
FIELDS: tuple = ("front", "back")


class ItemState(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EDITED = "edited"
    REJECTED = "rejected"


COMMITTABLE_STATES = frozenset({ItemState.ACCEPTED, ItemState.EDITED})


class Provenance(str, Enum):
    """Wire values follow the flashcards API `source` column."""

    GENERATED = "ai"
    GENERATED_EDITED = "ai_edited"


class CandidatePair(BaseModel):
    """One {front, back} pair from the generation service."""

    front: str
    back: str


class CandidateItem(BaseModel):
    """One generated card awaiting a decision."""

    model_config = ConfigDict(frozen=True)

    id: str
    front: str
    back: str
    original_front: str
    original_back: str
    provenance: Provenance = Provenance.GENERATED
    state: ItemState = ItemState.PENDING
    persisted: bool = False

    @property
    def is_modified(self) -> bool:
        return self.front != self.original_front or self.back != self.original_back

    @property
    def is_committable(self) -> bool:
        return self.state in COMMITTABLE_STATES


# ---------------------------------------------------------------------------
# Flashcards API payloads
# ---------------------------------------------------------------------------


class CreateFlashcardRequest(BaseModel):
    """POST /api/flashcards body."""

    model_config = ConfigDict(populate_by_name=True)

    front: str
    back: str
    deck_id: Optional[str] = Field(default=None, alias="deckId")
    source: Provenance = Provenance.GENERATED


class PersistedCard(BaseModel):
    """A card as stored by the backend."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    front: str
    back: str
    source: Provenance
    deck_id: Optional[str] = Field(default=None, alias="deckId")
    created_at: Optional[str] = Field(default=None, alias="createdAt")


class ReviewQueue(BaseModel):
    """GET /api/reviews/queue response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    data: List[Dict[str, Any]] = Field(default_factory=list)
    total_due: int = Field(default=0, alias="totalDue")


class CreateReviewRequest(BaseModel):
    """POST /api/reviews body."""

    model_config = ConfigDict(populate_by_name=True)

    flashcard_id: str = Field(alias="flashcardId")
    quality: int = Field(ge=0, le=5)
    latency_ms: Optional[int] = Field(default=None, alias="latencyMs", gt=0)


# ---------------------------------------------------------------------------
# Commit outcome
# ---------------------------------------------------------------------------


class CommitFailure(BaseModel):
    """First failing persistence call of a commit."""

    item_id: str
    index: int  # position among submitted items
    succeeded: int  # items persisted before the failure
    kind: str  # ClientError.kind
    message: str
    status_code: Optional[int] = None


class CommitValidationIssue(BaseModel):
    """First content violation found before any network call."""

    item_id: str
    index: int
    field: CardField
    message: str


class CommitOutcome(BaseModel):
    """Terminal result of one complete() call."""

    persisted: List[PersistedCard] = Field(default_factory=list)
    failure: Optional[CommitFailure] = None
    validation_error: Optional[CommitValidationIssue] = None
    delivered: bool = False  # on_complete was invoked
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"))

    @property
    def ok(self) -> bool:
        return self.failure is None and self.validation_error is None

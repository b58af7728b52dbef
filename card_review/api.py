"""
Flashcards backend endpoints used around a review session.

FlashcardApi persists accepted cards; ReviewApi loads and answers the
spaced-repetition queue. Both go through the same RetryingClient.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from card_review.errors import HttpError
from card_review.http_client import RetryingClient
from card_review.schemas import CreateFlashcardRequest, CreateReviewRequest, PersistedCard, ReviewQueue

logger = logging.getLogger(__name__)

FLASHCARDS_PATH = "/api/flashcards"
REVIEW_QUEUE_PATH = "/api/reviews/queue"
REVIEWS_PATH = "/api/reviews"


class FlashcardApi:
    def __init__(self, client: RetryingClient):
        self.client = client

    async def create_flashcard(self, request: CreateFlashcardRequest) -> PersistedCard:
        payload = request.model_dump(mode="json", by_alias=True, exclude_none=True)
        data = await self.client.post(FLASHCARDS_PATH, payload)
        try:
            return PersistedCard.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected create response for %s: %s", FLASHCARDS_PATH, data)
            raise HttpError(f"Invalid response body from POST {FLASHCARDS_PATH}") from e


class ReviewApi:
    def __init__(self, client: RetryingClient):
        self.client = client

    async def load_queue(self) -> ReviewQueue:
        data = await self.client.get(REVIEW_QUEUE_PATH)
        return ReviewQueue.model_validate(data or {})

    async def submit_review(self, flashcard_id: str, quality: int, latency_ms: Optional[int] = None) -> Any:
        request = CreateReviewRequest(flashcardId=flashcard_id, quality=quality, latencyMs=latency_ms)
        payload = request.model_dump(mode="json", by_alias=True, exclude_none=True)
        return await self.client.post(REVIEWS_PATH, payload)


class ReviewQueueTracker:
    """Local copy of the review queue with optimistic removal.

    A reviewed card leaves the queue before its submission is confirmed; if
    the submission fails the card is put back where it was and the error
    is raised again.
    """

    def __init__(self, api: ReviewApi):
        self.api = api
        self.cards: List[Dict[str, Any]] = []
        self.total_due = 0

    async def refresh(self) -> None:
        queue = await self.api.load_queue()
        self.cards = list(queue.data)
        self.total_due = queue.total_due

    async def answer(self, flashcard_id: str, quality: int, latency_ms: Optional[int] = None) -> Any:
        position = next((i for i, card in enumerate(self.cards) if card.get("id") == flashcard_id), None)
        if position is None:
            raise KeyError(f"Card {flashcard_id} is not in the review queue")
        snapshot = self.cards.pop(position)
        self.total_due = max(0, self.total_due - 1)
        try:
            return await self.api.submit_review(flashcard_id, quality, latency_ms)
        except Exception:
            logger.warning("Review for %s failed; restoring it to the queue", flashcard_id)
            self.cards.insert(position, snapshot)
            self.total_due += 1
            raise

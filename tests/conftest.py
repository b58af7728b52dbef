"""
Pytest fixtures for card review tests.

Provides candidate pairs as the generator returns them, and a fake flashcards
backend served through httpx.MockTransport.
"""
import json
from typing import Callable, List

import httpx
import pytest

from card_review.http_client import RetryingClient
from card_review.session import ReviewSession


@pytest.fixture
def three_pairs():
    return [
        {"front": "What is the capital of France?", "back": "Paris"},
        {"front": "What is 2 + 2?", "back": "4"},
        {"front": "Who wrote Hamlet?", "back": "Shakespeare"},
    ]


@pytest.fixture
def session(three_pairs):
    return ReviewSession(three_pairs, deck_id="deck-1")


def make_session(count: int, deck_id: str = "deck-1") -> ReviewSession:
    return ReviewSession(
        [{"front": f"Question {i}", "back": f"Answer {i}"} for i in range(count)],
        deck_id=deck_id,
    )


class FakeBackend:
    """Records requests and answers them from a queue of (status, body) pairs.

    When the queue is empty, POST /api/flashcards echoes the card back with a
    fresh server id.
    """

    def __init__(self, responses=None):
        self.responses: List = list(responses or [])
        self.requests: List[httpx.Request] = []
        self._next_id = 1

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            status, body = self.responses.pop(0)
            return httpx.Response(status, json=body)
        if request.method == "POST" and request.url.path == "/api/flashcards":
            payload = json.loads(request.content)
            card = {
                "id": f"srv-{self._next_id}",
                "front": payload["front"],
                "back": payload["back"],
                "deckId": payload.get("deckId"),
                "source": payload["source"],
                "createdAt": "2026-01-01T00:00:00Z",
            }
            self._next_id += 1
            return httpx.Response(201, json=card)
        return httpx.Response(200, json={})

    @property
    def calls(self) -> int:
        return len(self.requests)

    def bodies(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests if r.content]


class SleepRecorder:
    """Stand-in for asyncio.sleep that records the requested waits."""

    def __init__(self):
        self.waits: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def client_factory(sleeper) -> Callable[[FakeBackend], RetryingClient]:
    """Build a RetryingClient wired to a FakeBackend, with sleeps recorded instead of awaited."""

    def _make(fake: FakeBackend, **kwargs) -> RetryingClient:
        return RetryingClient(
            "http://testserver",
            token="test-token",
            transport=httpx.MockTransport(fake.handler),
            sleep=sleeper,
            **kwargs,
        )

    return _make

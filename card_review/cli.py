"""
CLI runner for scripted reviews.

Usage:
  python -m card_review.cli <candidates.json> --deck DECK_ID --keys Enter ArrowRight Enter
  python -m card_review.cli <candidates.json> --deck DECK_ID --accept-all
  python -m card_review.cli demo --accept-all --dry-run   # built-in cards, no network

Key presses are replayed through the keyboard dispatcher, then the accepted
cards are committed (or only listed with --dry-run).
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from card_review.api import FlashcardApi
from card_review.commit import CommitPipeline
from card_review.http_client import RetryingClient
from card_review.keyboard import handle_key
from card_review.schemas import CommitOutcome
from card_review.session import ReviewSession
from card_review.validation import validate_for_commit

logger = logging.getLogger(__name__)

_DEMO_CARDS = [
    {"front": "What is the capital of France?", "back": "Paris"},
    {"front": "2 + 2 = ?", "back": "4"},
    {"front": "Largest planet in the solar system?", "back": "Jupiter"},
]


def _load_candidates(path: str) -> list:
    """Load {front, back} pairs from a JSON list or {"flashcards": [...]}."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Candidates file not found: {path}")
    with open(p) as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("flashcards") or []
    return data


def _replay_keys(session: ReviewSession, keys: List[str]) -> None:
    for key in keys:
        if not handle_key(session, key):
            logger.info("Key %s ignored at card %d", key, session.cursor)


async def _commit(session: ReviewSession, base_url: Optional[str]) -> CommitOutcome:
    async with RetryingClient(base_url) as client:
        pipeline = CommitPipeline(session, FlashcardApi(client))
        return await pipeline.complete()


def _run(session: ReviewSession, args: argparse.Namespace) -> int:
    """Drive the session, print a JSON report, return the exit code."""
    _replay_keys(session, args.keys or [])
    if not session.is_open:
        print(json.dumps({"cancelled": True, "committed": []}, indent=2))
        return 0

    if args.accept_all:
        session.request_confirmation("accept_all")
        session.confirm()

    if args.dry_run:
        issue = validate_for_commit(session.items)
        out = {
            "statuses": session.statuses(),
            "committable": [item.model_dump(mode="json") for item in session.committable_items()],
            "validation_error": issue.model_dump(mode="json") if issue else None,
        }
        print(json.dumps(out, indent=2))
        return 1 if issue else 0

    outcome = asyncio.run(_commit(session, args.base_url))
    out = outcome.model_dump(mode="json")
    out["ok"] = outcome.ok
    print(json.dumps(out, indent=2))
    return 0 if outcome.ok else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Review generated flashcards")
    parser.add_argument("candidates", help="Path to candidates JSON, or 'demo' for built-in cards")
    parser.add_argument("--deck", dest="deck_id", help="Target deck id")
    parser.add_argument("--keys", nargs="+", help="Key presses to replay (Enter, ArrowRight, Space, Escape, ...)")
    parser.add_argument("--accept-all", action="store_true", help="Accept every card still pending")
    parser.add_argument("--dry-run", action="store_true", help="List committable cards without persisting")
    parser.add_argument("--base-url", help="Flashcards API base URL (default: api.base_url from config)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    if args.candidates == "demo":
        pairs = _DEMO_CARDS
    else:
        pairs = _load_candidates(args.candidates)

    session = ReviewSession(pairs, deck_id=args.deck_id)
    sys.exit(_run(session, args))


if __name__ == "__main__":
    main()

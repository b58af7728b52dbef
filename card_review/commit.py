"""
Commit pipeline — the only place a review session is written to storage.

complete() validates every accepted/edited card, then creates them one at a
time in review order. The first failing create stops the run; cards already
stored stay stored and are skipped when complete() is called again. Closing
the session mid-commit lets the request in flight finish, sends nothing
further and suppresses on_complete.
"""
import inspect
import logging
from typing import Any, Callable, List, Optional

from card_review.api import FlashcardApi
from card_review.errors import ClientError, CommitInProgressError, SessionClosedError
from card_review.schemas import CommitFailure, CommitOutcome, CreateFlashcardRequest, PersistedCard
from card_review.session import ReviewSession
from card_review.validation import Translate, default_translate, validate_for_commit

logger = logging.getLogger(__name__)

OnComplete = Callable[[List[PersistedCard]], Any]


class CommitPipeline:
    def __init__(
        self,
        session: ReviewSession,
        api: FlashcardApi,
        *,
        on_complete: Optional[OnComplete] = None,
        translate: Translate = default_translate,
    ):
        self.session = session
        self.api = api
        self.on_complete = on_complete
        self._translate = translate

    async def complete(self) -> CommitOutcome:
        """Persist every accepted/edited card and report a single outcome.

        Returns:
            CommitOutcome with either all records (and `delivered=True` once
            on_complete ran), a validation issue (nothing sent), or the first
            failure with the records stored before it.

        Raises:
            SessionClosedError: the session was closed before the commit started.
            CommitInProgressError: another complete() is still running.
        """
        session = self.session
        if not session.is_open:
            raise SessionClosedError("Cannot commit a closed review session")
        if session.is_processing:
            raise CommitInProgressError("A commit is already running for this session")

        issue = validate_for_commit(session.items, self._translate)
        if issue is not None:
            session.last_error = issue.message
            return CommitOutcome(validation_error=issue)

        items = session.committable_items()
        logger.info("Committing %d cards to deck %s", len(items), session.deck_id)
        persisted: List[PersistedCard] = []
        session.is_processing = True
        try:
            for index, item in enumerate(items):
                if not session.is_open:
                    logger.info("Session closed during commit; stopping after %d cards", len(persisted))
                    break
                if item.persisted:
                    persisted.append(session.stored_record(item))
                    continue
                request = CreateFlashcardRequest(
                    front=item.front,
                    back=item.back,
                    deck_id=session.deck_id,
                    source=item.provenance,
                )
                try:
                    record = await self.api.create_flashcard(request)
                except ClientError as exc:
                    logger.error(
                        "Commit stopped at card %s (%d/%d, %d stored): %s",
                        item.id, index + 1, len(items), len(persisted), exc,
                    )
                    session.last_error = exc.message
                    return CommitOutcome(
                        persisted=persisted,
                        failure=CommitFailure(
                            item_id=item.id,
                            index=index,
                            succeeded=len(persisted),
                            kind=exc.kind,
                            message=exc.message,
                            status_code=exc.status_code,
                        ),
                    )
                session.mark_persisted(item.id, record)
                persisted.append(record)
        finally:
            session.is_processing = False

        session.last_error = None
        if not session.is_open:
            logger.info("Session closed during commit; %d stored cards not reported", len(persisted))
            return CommitOutcome(persisted=persisted)

        if self.on_complete is not None:
            result = self.on_complete(persisted)
            if inspect.isawaitable(result):
                await result
        logger.info("Commit finished: %d cards stored", len(persisted))
        return CommitOutcome(persisted=persisted, delivered=self.on_complete is not None)

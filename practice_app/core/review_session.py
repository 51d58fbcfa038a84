"""Review of a finished attempt: authoritative result plus listening transcript."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Protocol, Sequence

from practice_app.client.api_client import ApiError
from practice_app.client.schemas import AttemptResult
from practice_app.constants.ui_constants import NO_CUES_MESSAGE
from practice_app.core.cue_parser import parse_cues
from practice_app.core.models import Cue
from practice_app.core.services.playback_sync import PlaybackSynchronizer
from practice_app.core.services.scoring import ScoreReconciliation, ScoreResult, reconcile

logger = logging.getLogger(__name__)


class ReviewService(Protocol):
    async def get_attempt_result(self, attempt_id: str) -> AttemptResult: ...

    async def get_transcript(self, url: str) -> str: ...


@dataclass(frozen=True, slots=True)
class ReviewSummary:
    """Counts shown above the reviewed questions."""

    correct: int
    incorrect: int
    ungraded: int
    earned_points: float
    total_points: float
    band_score: float | None
    pending_writing_tasks: int


class ReviewSession:
    """Loads what the review screen needs and drops it if the screen is gone.

    Each request remembers a token taken when it was issued; the response is
    applied only if the session is still open and no newer request of the
    same kind has been issued since.
    """

    def __init__(
        self,
        client: ReviewService,
        *,
        synchronizer_factory: Callable[[Sequence[Cue]], PlaybackSynchronizer] = PlaybackSynchronizer,
    ) -> None:
        self._client = client
        self._synchronizer_factory = synchronizer_factory
        self._closed = False
        self._result_token = 0
        self._transcript_token = 0
        self._result: AttemptResult | None = None
        self._cues: list[Cue] = []
        self._synchronizer: PlaybackSynchronizer | None = None
        self._transcript_message: str | None = None

    @property
    def result(self) -> AttemptResult | None:
        return self._result

    @property
    def cues(self) -> list[Cue]:
        return list(self._cues)

    @property
    def synchronizer(self) -> PlaybackSynchronizer | None:
        return self._synchronizer

    @property
    def transcript_message(self) -> str | None:
        """Placeholder text for the transcript panel, ``None`` when cues exist."""
        return self._transcript_message

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def load_result(self, attempt_id: str) -> AttemptResult | None:
        """Fetch the server's result; ``None`` if the session moved on meanwhile."""
        self._result_token += 1
        token = self._result_token
        try:
            result = await self._client.get_attempt_result(attempt_id)
        except ApiError:
            if self._is_stale(token, self._result_token):
                logger.debug("Discarding failed result fetch for closed review of %s", attempt_id)
                return None
            raise
        if self._is_stale(token, self._result_token):
            logger.debug("Discarding stale result for attempt %s", attempt_id)
            return None
        self._result = result
        return result

    async def load_transcript(self, url: str | None) -> list[Cue] | None:
        """Fetch and parse a transcript; failures leave an empty panel, never raise."""
        self._transcript_token += 1
        token = self._transcript_token
        cues: list[Cue] = []
        if url:
            try:
                cues = parse_cues(await self._client.get_transcript(url))
            except ApiError as exc:
                logger.warning("Transcript %s could not be loaded: %s", url, exc)
        if self._is_stale(token, self._transcript_token):
            logger.debug("Discarding stale transcript %s", url)
            return None

        self._cues = cues
        self._synchronizer = self._synchronizer_factory(cues)
        self._transcript_message = None if cues else NO_CUES_MESSAGE
        return list(cues)

    def reconcile_with(self, local: ScoreResult) -> ScoreReconciliation:
        if self._result is None:
            raise RuntimeError("Attempt result has not been loaded.")
        return reconcile(local, self._result)

    def summary(self) -> ReviewSummary:
        if self._result is None:
            raise RuntimeError("Attempt result has not been loaded.")
        results = self._result.question_results
        correct = sum(1 for item in results if item.is_correct is True)
        incorrect = sum(1 for item in results if item.is_correct is False)
        ungraded = sum(1 for item in results if item.is_correct is None)
        pending_writing = sum(1 for answer in self._result.writing_answers if not answer.is_graded)
        return ReviewSummary(
            correct=correct,
            incorrect=incorrect,
            ungraded=ungraded,
            earned_points=self._result.earned_points,
            total_points=self._result.total_points,
            band_score=self._result.band_score,
            pending_writing_tasks=pending_writing,
        )

    def close(self) -> None:
        self._closed = True
        self._result_token += 1
        self._transcript_token += 1

    def _is_stale(self, token: int, current: int) -> bool:
        return self._closed or token != current

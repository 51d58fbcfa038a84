"""Attempt lifecycle: start, answer, submit and finalize a timed quiz attempt."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Callable, Iterable, Mapping, Protocol

from practice_app.client.schemas import AnswerSubmission
from practice_app.constants.attempt_constants import UNLIMITED_ATTEMPTS
from practice_app.constants.ui_constants import (
    ATTEMPT_LIMIT_MESSAGE,
    NO_QUESTIONS_MESSAGE,
    NOT_AUTHENTICATED_MESSAGE,
    SUBMIT_FAILED_MESSAGE,
)
from practice_app.core.models import (
    AnswerValue,
    Attempt,
    ProgressSnapshot,
    Question,
    QuestionType,
    Quiz,
    SubmissionOutcome,
)
from practice_app.core.services.answer_ledger import AnswerLedger
from practice_app.core.services.countdown_timer import CountdownTimer, TickSource
from practice_app.core.services.scoring import (
    ScoreResult,
    is_accepted_text,
    is_exact_selection,
    score,
    selected_choice_ids,
)

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ABANDONED = "abandoned"


class SubmitTrigger(str, Enum):
    MANUAL = "manual"
    TIMEOUT = "timeout"


class AttemptError(Exception):
    """Base class for attempt lifecycle failures."""


class AuthenticationRequiredError(AttemptError):
    """Raised when an attempt is started without a signed-in user."""


class AttemptLimitReachedError(AttemptError):
    """Raised when the quiz allows no further attempts."""


class InvalidAttemptStateError(AttemptError):
    """Raised when an operation is not allowed in the current state."""


class SubmissionError(AttemptError):
    """Raised when finalizing fails; the attempt stays open for another try."""

    def __init__(self, message: str, *, failed_answers: int, total_answers: int) -> None:
        super().__init__(message)
        self.failed_answers = failed_answers
        self.total_answers = total_answers


class AttemptService(Protocol):
    """Remote operations the controller depends on."""

    async def create_attempt(self, user_id: str, quiz_id: str) -> str: ...

    async def submit_answer(self, submission: AnswerSubmission) -> None: ...

    async def finalize_attempt(self, attempt_id: str) -> None: ...

    async def get_quiz_questions(self, quiz_id: str) -> list[Question]: ...


TickSourceFactory = Callable[[Callable[[], None]], TickSource]


def build_answer_submissions(
    attempt_id: str,
    questions: Iterable[Question],
    answers: Mapping[str, AnswerValue],
) -> list[AnswerSubmission]:
    """One submission per answered question, one per selected choice for multiple choice.

    Every choice of a multiple-choice answer carries the question-level
    all-or-nothing verdict.
    """
    submissions: list[AnswerSubmission] = []
    for question in questions:
        answer = answers.get(question.id)
        if not answer:
            continue

        if question.type is QuestionType.SHORT_TEXT:
            if not isinstance(answer, str) or not answer.strip():
                continue
            text = answer.strip()
            submissions.append(
                AnswerSubmission(
                    attempt_id=attempt_id,
                    question_id=question.id,
                    answer_text=text,
                    is_correct=is_accepted_text(question, text),
                )
            )
            continue

        if question.type is QuestionType.MULTIPLE_CHOICE:
            selected = selected_choice_ids(answer)
            all_correct = is_exact_selection(question, selected)
            for choice_id in selected:
                choice = question.find_choice(choice_id)
                submissions.append(
                    AnswerSubmission(
                        attempt_id=attempt_id,
                        question_id=question.id,
                        choice_id=choice_id,
                        is_correct=all_correct and choice is not None and choice.is_correct,
                    )
                )
            continue

        if not isinstance(answer, str):
            continue
        choice = question.find_choice(answer)
        submissions.append(
            AnswerSubmission(
                attempt_id=attempt_id,
                question_id=question.id,
                choice_id=answer,
                is_correct=choice is not None and choice.is_correct,
            )
        )
    return submissions


class AttemptController:
    """Drives one quiz attempt from start to a finalized submission.

    Manual submit and timer expiry share a single in-flight guard that is
    checked and set before any await, so exactly one finalize is sent per
    attempt. On failure the guard is released and the attempt returns to
    ``IN_PROGRESS`` so the user can press submit again.
    """

    def __init__(
        self,
        client: AttemptService,
        quiz: Quiz,
        *,
        user_id: str | None,
        questions: Iterable[Question] | None = None,
        tick_source_factory: TickSourceFactory = TickSource,
        on_state_change: Callable[[AttemptState], None] | None = None,
        on_notification: Callable[[str], None] | None = None,
    ) -> None:
        self._client = client
        self._user_id = user_id
        self._on_state_change = on_state_change
        self._on_notification = on_notification

        self._ledger = AnswerLedger()
        self._timer = CountdownTimer(on_expire=self._handle_timer_expired)
        self._tick_source = tick_source_factory(self._timer.tick)

        self._state = AttemptState.NOT_STARTED
        self._session_generation = 0
        self._starting = False
        self._submission_in_flight = False
        self._submission_task: asyncio.Task[SubmissionOutcome] | None = None

        self._install_session(quiz, questions)

    # --- Session ---

    def _install_session(self, quiz: Quiz, questions: Iterable[Question] | None) -> None:
        self._quiz = quiz
        source = questions if questions is not None else quiz.questions
        self._questions: tuple[Question, ...] = tuple(sorted(source, key=lambda q: q.position))
        self._questions_by_id = {question.id: question for question in self._questions}
        self._attempt: Attempt | None = None
        self._attempts_used = 0
        self._last_score: ScoreResult | None = None
        self._last_outcome: SubmissionOutcome | None = None

    def change_session(self, quiz: Quiz, questions: Iterable[Question] | None = None) -> None:
        """Switch to another quiz, discarding the current attempt and answers."""
        logger.info("Switching session from quiz %s to quiz %s", self._quiz.id, quiz.id)
        self._teardown()
        self._install_session(quiz, questions)
        self._set_state(AttemptState.NOT_STARTED)

    async def load_questions(self) -> tuple[Question, ...]:
        """Use the quiz's embedded questions, fetching them only when absent."""
        if self._questions:
            return self._questions
        generation = self._session_generation
        fetched = await self._client.get_quiz_questions(self._quiz.id)
        if generation != self._session_generation:
            return self._questions
        self._questions = tuple(sorted(fetched, key=lambda q: q.position))
        self._questions_by_id = {question.id: question for question in self._questions}
        if not self._questions:
            self._notify(NO_QUESTIONS_MESSAGE)
        return self._questions

    # --- Properties ---

    @property
    def state(self) -> AttemptState:
        return self._state

    @property
    def quiz(self) -> Quiz:
        return self._quiz

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def attempt(self) -> Attempt | None:
        return self._attempt

    @property
    def ledger(self) -> AnswerLedger:
        return self._ledger

    @property
    def timer(self) -> CountdownTimer:
        return self._timer

    @property
    def last_score(self) -> ScoreResult | None:
        return self._last_score

    @property
    def last_outcome(self) -> SubmissionOutcome | None:
        return self._last_outcome

    @property
    def is_submission_in_flight(self) -> bool:
        return self._submission_in_flight

    @property
    def attempts_remaining(self) -> int | None:
        """Attempts left for this quiz, ``None`` when unlimited."""
        if self._quiz.attempts_allowed == UNLIMITED_ATTEMPTS:
            return None
        return max(0, self._quiz.attempts_allowed - self._attempts_used)

    @property
    def can_retry(self) -> bool:
        remaining = self.attempts_remaining
        return remaining is None or remaining > 0

    # --- Lifecycle ---

    async def start(self) -> Attempt:
        """Create the attempt on the server and start the countdown."""
        if self._state is not AttemptState.NOT_STARTED or self._starting:
            raise InvalidAttemptStateError(f"Cannot start an attempt while {self._state.value}.")
        if not self._user_id:
            self._notify(NOT_AUTHENTICATED_MESSAGE)
            raise AuthenticationRequiredError(NOT_AUTHENTICATED_MESSAGE)
        if not self._quiz.id:
            raise AttemptError("A quiz id is required to start an attempt.")
        if not self.can_retry:
            self._notify(ATTEMPT_LIMIT_MESSAGE)
            raise AttemptLimitReachedError(ATTEMPT_LIMIT_MESSAGE)

        generation = self._session_generation
        self._starting = True
        try:
            attempt_id = await self._client.create_attempt(self._user_id, self._quiz.id)
        finally:
            self._starting = False
        if generation != self._session_generation:
            raise InvalidAttemptStateError("Session changed while the attempt was being created.")

        self._attempt = Attempt(
            id=attempt_id,
            quiz_id=self._quiz.id,
            user_id=self._user_id,
            started_at=datetime.now(timezone.utc),
            time_limit_seconds=self._quiz.time_limit_seconds,
            attempts_allowed=self._quiz.attempts_allowed,
        )
        self._attempts_used += 1
        self._last_score = None
        self._last_outcome = None
        self._timer.start(self._quiz.time_limit_seconds)
        self._set_state(AttemptState.IN_PROGRESS)
        if not self._timer.is_unlimited:
            self._tick_source.start()
        logger.info("Started attempt %s for quiz %s", attempt_id, self._quiz.id)
        return self._attempt

    def select_choice(self, question_id: str, choice_id: str) -> None:
        if self._state is not AttemptState.IN_PROGRESS:
            return
        question = self._questions_by_id.get(question_id)
        if question is None:
            raise KeyError(f"Unknown question {question_id}")
        self._ledger.select_choice(question_id, choice_id, question.type)

    def set_text(self, question_id: str, text: str) -> None:
        if self._state is not AttemptState.IN_PROGRESS:
            return
        self._ledger.set_text(question_id, text)

    def progress(self) -> ProgressSnapshot:
        return self._ledger.progress(len(self._questions))

    async def submit(self) -> SubmissionOutcome | None:
        """Submit all answers and finalize; returns ``None`` if a submit is already running."""
        task = self.request_submit(SubmitTrigger.MANUAL)
        if task is None:
            return None
        return await task

    def request_submit(self, trigger: SubmitTrigger) -> asyncio.Task[SubmissionOutcome] | None:
        """Claim the submission guard and schedule the submit flow.

        The guard is checked and set synchronously, so a manual click and a
        timer expiry landing together produce a single submission.
        """
        if self._submission_in_flight:
            logger.debug("Ignoring %s submit: a submission is already in flight", trigger.value)
            return None
        if self._state is not AttemptState.IN_PROGRESS or self._attempt is None:
            logger.debug("Ignoring %s submit in state %s", trigger.value, self._state.value)
            return None

        # Raises outside an event loop; nothing has been claimed yet at that point.
        loop = asyncio.get_running_loop()

        self._submission_in_flight = True
        self._timer.stop()
        self._tick_source.cancel()
        self._set_state(AttemptState.SUBMITTING)

        task = loop.create_task(
            self._run_submission(self._attempt, trigger, self._ledger.snapshot(), self._session_generation)
        )
        task.add_done_callback(_log_background_failure)
        self._submission_task = task
        return task

    def abandon(self) -> None:
        """Leave an in-progress attempt without submitting. Not persisted."""
        if self._state is not AttemptState.IN_PROGRESS:
            return
        self._timer.stop()
        self._tick_source.cancel()
        self._set_state(AttemptState.ABANDONED)
        logger.info("Abandoned attempt %s", self._attempt.id if self._attempt else None)

    def retry(self) -> None:
        """Reset answers and timer for a fresh attempt at the same quiz."""
        if self._state not in (AttemptState.SUBMITTED, AttemptState.ABANDONED):
            raise InvalidAttemptStateError(f"Cannot retry while {self._state.value}.")
        if not self.can_retry:
            self._notify(ATTEMPT_LIMIT_MESSAGE)
            raise AttemptLimitReachedError(ATTEMPT_LIMIT_MESSAGE)
        self._ledger.clear()
        self._timer.reset()
        self._attempt = None
        self._last_score = None
        self._last_outcome = None
        self._set_state(AttemptState.NOT_STARTED)

    def close(self) -> None:
        """Tear down when the owning view goes away; late results are discarded."""
        self._teardown()
        if self._state in (AttemptState.IN_PROGRESS, AttemptState.SUBMITTING):
            self._set_state(AttemptState.ABANDONED)

    # --- Submission flow ---

    async def _run_submission(
        self,
        attempt: Attempt,
        trigger: SubmitTrigger,
        answers: Mapping[str, AnswerValue],
        generation: int,
    ) -> SubmissionOutcome:
        local_score = score(self._questions, answers)
        submissions = build_answer_submissions(attempt.id, self._questions, answers)
        logger.info(
            "Submitting attempt %s (%s): %d answer request(s)",
            attempt.id,
            trigger.value,
            len(submissions),
        )

        try:
            failures = await self._submit_answers(submissions)
            try:
                await self._finalize(attempt.id)
            except Exception as exc:
                raise SubmissionError(
                    SUBMIT_FAILED_MESSAGE,
                    failed_answers=len(failures),
                    total_answers=len(submissions),
                ) from exc
        except BaseException:
            if generation == self._session_generation:
                logger.exception("Submitting attempt %s failed", attempt.id)
                self._release_submission_guard()
                self._restore_in_progress()
                self._notify(SUBMIT_FAILED_MESSAGE)
            raise

        if generation == self._session_generation:
            self._release_submission_guard()
        outcome = SubmissionOutcome(
            attempt_id=attempt.id,
            submitted_answers=len(submissions) - len(failures),
            failed_answers=len(failures),
            timed_out=trigger is SubmitTrigger.TIMEOUT,
            failures=tuple(failures),
        )
        if generation != self._session_generation:
            return outcome

        attempt.submitted = True
        self._last_score = local_score
        self._last_outcome = outcome
        self._set_state(AttemptState.SUBMITTED)
        if outcome.is_partial:
            logger.warning(
                "Attempt %s finalized with %d of %d answer submission(s) failed",
                attempt.id,
                outcome.failed_answers,
                len(submissions),
            )
        return outcome

    async def _submit_answers(self, submissions: list[AnswerSubmission]) -> list[BaseException]:
        """Send every answer concurrently; failures are collected, not raised."""
        if not submissions:
            return []
        results = await asyncio.gather(
            *(self._client.submit_answer(submission) for submission in submissions),
            return_exceptions=True,
        )
        failures = [result for result in results if isinstance(result, BaseException)]
        if failures:
            logger.warning("%d of %d answer submission(s) failed", len(failures), len(submissions))
        return failures

    async def _finalize(self, attempt_id: str) -> None:
        await self._client.finalize_attempt(attempt_id)
        logger.info("Finalized attempt %s", attempt_id)

    # --- Internals ---

    def _handle_timer_expired(self) -> None:
        self._tick_source.cancel()
        if self._state is not AttemptState.IN_PROGRESS:
            return
        logger.info("Time limit reached; auto-submitting attempt %s", self._attempt.id if self._attempt else None)
        self.request_submit(SubmitTrigger.TIMEOUT)

    def _release_submission_guard(self) -> None:
        self._submission_in_flight = False
        self._submission_task = None

    def _restore_in_progress(self) -> None:
        self._set_state(AttemptState.IN_PROGRESS)
        if not self._timer.has_expired and not self._timer.is_unlimited:
            self._timer.resume()
            self._tick_source.start()

    def _teardown(self) -> None:
        self._session_generation += 1
        self._tick_source.cancel()
        self._timer.stop()
        self._release_submission_guard()
        self._starting = False
        self._ledger.clear()

    def _set_state(self, state: AttemptState) -> None:
        if state is self._state:
            return
        logger.debug("Attempt state %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _notify(self, message: str) -> None:
        if self._on_notification is not None:
            self._on_notification(message)


def _log_background_failure(task: asyncio.Task[SubmissionOutcome]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Submission task failed: %s", exc)

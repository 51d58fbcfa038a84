"""Service for scoring quiz answers and classifying the result."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
import logging
from typing import TYPE_CHECKING, Iterable, Mapping

from practice_app.constants.attempt_constants import (
    GOOD_TIER_MIN_PERCENTAGE,
    GREAT_TIER_MIN_PERCENTAGE,
)
from practice_app.constants.ui_constants import (
    GOOD_TIER_MESSAGE,
    GREAT_TIER_MESSAGE,
    KEEP_PRACTICING_TIER_MESSAGE,
)
from practice_app.core.models import AnswerValue, Question, QuestionType

if TYPE_CHECKING:
    from practice_app.client.schemas import AttemptResult

logger = logging.getLogger(__name__)


class PassTier(Enum):
    """Result band shown on the score card."""

    GREAT = GREAT_TIER_MESSAGE
    GOOD = GOOD_TIER_MESSAGE
    KEEP_PRACTICING = KEEP_PRACTICING_TIER_MESSAGE

    @property
    def message(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ScoreResult:
    """Aggregate score of one set of answers. Recomputed, never persisted."""

    earned_points: Decimal
    total_points: Decimal
    correct_count: int
    total_count: int
    question_results: dict[str, bool | None] = field(default_factory=dict)

    @property
    def percentage(self) -> int:
        return compute_percentage(self.earned_points, self.total_points)

    @property
    def tier(self) -> PassTier:
        return classify_percentage(self.percentage)

    def is_correct(self, question_id: str) -> bool | None:
        return self.question_results.get(question_id)


@dataclass(frozen=True, slots=True)
class ScoreReconciliation:
    """Differences between the local score and the server's authoritative one."""

    points_match: bool
    disagreeing_question_ids: tuple[str, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return self.points_match and not self.disagreeing_question_ids


def score(questions: Iterable[Question], answers: Mapping[str, AnswerValue]) -> ScoreResult:
    """Score ``answers`` against ``questions``.

    Pure: the same inputs always produce an equal result. Every question
    contributes its points to the total; unanswered questions are wrong.
    """
    earned = Decimal(0)
    total = Decimal(0)
    correct_count = 0
    total_count = 0
    results: dict[str, bool | None] = {}

    for question in questions:
        total += question.points
        total_count += 1
        is_correct = evaluate_question(question, answers.get(question.id))
        results[question.id] = is_correct
        if is_correct:
            earned += question.points
            correct_count += 1

    return ScoreResult(
        earned_points=earned,
        total_points=total,
        correct_count=correct_count,
        total_count=total_count,
        question_results=results,
    )


def evaluate_question(question: Question, answer: AnswerValue | None) -> bool:
    """Return whether ``answer`` is a correct response to ``question``.

    An empty answer (``None``, ``""`` or no selected choices) is unanswered and
    never correct.
    """
    if not answer:
        return False
    if question.type is QuestionType.SHORT_TEXT:
        if not isinstance(answer, str):
            return False
        return is_accepted_text(question, answer)
    if question.type is QuestionType.MULTIPLE_CHOICE:
        return is_exact_selection(question, selected_choice_ids(answer))
    if not isinstance(answer, str):
        return False
    correct_choice = next((choice for choice in question.choices if choice.is_correct), None)
    return correct_choice is not None and correct_choice.id == answer


def is_exact_selection(question: Question, selected: Iterable[str]) -> bool:
    """All-or-nothing rule: the selection must equal the correct set exactly."""
    selected_ids = list(selected)
    correct_ids = question.correct_choice_ids()
    return len(selected_ids) == len(correct_ids) and set(selected_ids) == correct_ids


def selected_choice_ids(answer: AnswerValue) -> tuple[str, ...]:
    """Selection of a multiple-choice answer; a lone id counts as one selection."""
    if isinstance(answer, str):
        return (answer,) if answer else ()
    return tuple(answer)


def is_accepted_text(question: Question, text: str) -> bool:
    normalized = _normalize_text(text)
    return any(_normalize_text(accepted) == normalized for accepted in question.accepted_answers)


def compute_percentage(earned: Decimal, total: Decimal) -> int:
    if total <= 0:
        return 0
    ratio = (Decimal(earned) / Decimal(total)) * 100
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def classify_percentage(percentage: int) -> PassTier:
    if percentage >= GREAT_TIER_MIN_PERCENTAGE:
        return PassTier.GREAT
    if percentage >= GOOD_TIER_MIN_PERCENTAGE:
        return PassTier.GOOD
    return PassTier.KEEP_PRACTICING


def reconcile(local: ScoreResult, remote: AttemptResult) -> ScoreReconciliation:
    """Compare instant-feedback scoring with the server's stored result.

    The server result is authoritative; disagreements are only reported.
    Ungraded remote verdicts (``None``) are not counted as disagreements.
    """
    points_match = (
        Decimal(str(remote.earned_points)) == local.earned_points
        and Decimal(str(remote.total_points)) == local.total_points
    )
    disagreeing = tuple(
        result.question_id
        for result in remote.question_results
        if result.is_correct is not None
        and result.question_id in local.question_results
        and local.question_results[result.question_id] != result.is_correct
    )
    reconciliation = ScoreReconciliation(points_match=points_match, disagreeing_question_ids=disagreeing)
    if not reconciliation.is_consistent:
        logger.warning(
            "Local score %s/%s differs from server score %s/%s (%d question verdict(s) disagree)",
            local.earned_points,
            local.total_points,
            remote.earned_points,
            remote.total_points,
            len(disagreeing),
        )
    return reconciliation


def _normalize_text(text: str) -> str:
    return text.strip().lower()

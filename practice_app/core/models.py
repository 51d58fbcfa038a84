"""Domain models for quiz attempts and listening review."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Union

AnswerValue = Union[str, tuple[str, ...]]


class QuestionType(str, Enum):
    """Answer shapes supported by lesson quizzes."""

    SINGLE_CHOICE = "single_choice"
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    SHORT_TEXT = "short_text"


@dataclass(frozen=True, slots=True)
class Choice:
    """Selectable option of a choice-based question."""

    id: str
    text: str
    is_correct: bool = False
    position: int = 0


@dataclass(frozen=True, slots=True)
class Question:
    """Server-provided quiz question. Never mutated client-side."""

    id: str
    type: QuestionType
    prompt: str
    points: Decimal = Decimal("1")
    position: int = 0
    choices: tuple[Choice, ...] = ()
    accepted_answers: tuple[str, ...] = ()
    explanation: str | None = None

    def correct_choice_ids(self) -> frozenset[str]:
        return frozenset(choice.id for choice in self.choices if choice.is_correct)

    def find_choice(self, choice_id: str) -> Choice | None:
        return next((choice for choice in self.choices if choice.id == choice_id), None)


@dataclass(frozen=True, slots=True)
class Quiz:
    """Quiz metadata attached to a lesson; questions may be embedded."""

    id: str
    title: str
    time_limit_seconds: int | None = None
    attempts_allowed: int = 0
    is_published: bool = True
    lesson_id: str | None = None
    questions: tuple[Question, ...] = ()


@dataclass(slots=True)
class Attempt:
    """One timed session against a quiz, identified by the server-assigned id."""

    id: str
    quiz_id: str
    user_id: str
    started_at: datetime
    time_limit_seconds: int | None = None
    attempts_allowed: int = 0
    submitted: bool = False


@dataclass(frozen=True, slots=True)
class Cue:
    """Time-ranged transcript fragment; active while start <= t < end."""

    start: float
    end: float
    text: str

    def contains(self, position: float) -> bool:
        return self.start <= position < self.end


@dataclass(slots=True)
class PlaybackState:
    """Media position as seen by the transcript synchronizer."""

    current_time: float = 0.0
    is_playing: bool = False
    active_cue_index: int = -1
    duration: float | None = None


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """Answered / total question counts for the progress indicator."""

    answered: int
    total: int

    @property
    def fraction(self) -> float:
        return 0.0 if self.total <= 0 else min(1.0, self.answered / self.total)

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.answered)


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    """Result of a completed submit flow."""

    attempt_id: str
    submitted_answers: int
    failed_answers: int
    timed_out: bool = False
    failures: tuple[BaseException, ...] = field(default=(), repr=False, compare=False)

    @property
    def is_partial(self) -> bool:
        return self.failed_answers > 0

"""Payload schemas exchanged with the practice REST API.

The server is not consistent about key style (the quiz endpoints use
snake_case, attempt results use camelCase), so every field accepts both.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from practice_app.constants.attempt_constants import DEFAULT_QUESTION_POINTS
from practice_app.core.models import Choice, Question, QuestionType, Quiz


def _either(snake: str, camel: str) -> AliasChoices:
    return AliasChoices(snake, camel)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ChoicePayload(_Payload):
    """Choice as served by the quiz-question endpoint."""

    id: str
    choice_text: str = Field(default="", validation_alias=AliasChoices("choice_text", "choiceText", "text"))
    is_correct: bool = Field(default=False, validation_alias=_either("is_correct", "isCorrect"))
    position: int = 0

    def to_choice(self) -> Choice:
        return Choice(id=self.id, text=self.choice_text, is_correct=self.is_correct, position=self.position)


class AcceptedAnswerPayload(_Payload):
    id: str | None = None
    answer_text: str = Field(validation_alias=_either("answer_text", "answerText"))


class QuestionPayload(_Payload):
    """Quiz question with its choices or accepted answers."""

    id: str
    quiz_id: str | None = Field(default=None, validation_alias=_either("quiz_id", "quizId"))
    question_type: QuestionType = Field(validation_alias=_either("question_type", "questionType"))
    prompt: str = ""
    explanation: str | None = None
    points: str | float | int | None = None
    position: int = 0
    choices: list[ChoicePayload] = Field(default_factory=list)
    accepted_answers: list[AcceptedAnswerPayload] = Field(
        default_factory=list,
        validation_alias=_either("accepted_answers", "acceptedAnswers"),
    )

    def to_question(self) -> Question:
        choices = sorted(self.choices, key=lambda choice: choice.position)
        return Question(
            id=self.id,
            type=self.question_type,
            prompt=self.prompt,
            points=parse_points(self.points),
            position=self.position,
            choices=tuple(choice.to_choice() for choice in choices),
            accepted_answers=tuple(answer.answer_text for answer in self.accepted_answers),
            explanation=self.explanation,
        )


class QuizPayload(_Payload):
    id: str
    title: str = ""
    lesson_id: str | None = Field(default=None, validation_alias=_either("lesson_id", "lessonId"))
    time_limit_seconds: int | None = Field(
        default=None,
        validation_alias=_either("time_limit_seconds", "timeLimitSeconds"),
    )
    attempts_allowed: int = Field(default=0, validation_alias=_either("attempts_allowed", "attemptsAllowed"))
    is_published: bool = Field(default=True, validation_alias=_either("is_published", "isPublished"))
    questions: list[QuestionPayload] | None = None

    def to_quiz(self) -> Quiz:
        questions = sorted((payload.to_question() for payload in self.questions or []), key=lambda q: q.position)
        return Quiz(
            id=self.id,
            title=self.title,
            time_limit_seconds=self.time_limit_seconds,
            attempts_allowed=self.attempts_allowed,
            is_published=self.is_published,
            lesson_id=self.lesson_id,
            questions=tuple(questions),
        )


class AttemptCreated(_Payload):
    id: str = Field(validation_alias=AliasChoices("id", "attempt_id", "attemptId"))


class AnswerSubmission(_Payload):
    """One submitted answer. Multiple choice sends one per selected choice."""

    attempt_id: str
    question_id: str
    choice_id: str | None = None
    answer_text: str | None = None
    is_correct: bool

    def to_request_body(self) -> dict[str, object]:
        return self.model_dump(exclude_none=True)


class QuestionResult(_Payload):
    question_id: str = Field(validation_alias=_either("question_id", "questionId"))
    question_number: int | None = Field(default=None, validation_alias=_either("question_number", "questionNumber"))
    question_type: str | None = Field(default=None, validation_alias=_either("question_type", "questionType"))
    question_text: str | None = Field(default=None, validation_alias=_either("question_text", "questionText"))
    user_answer: str | None = Field(default=None, validation_alias=_either("user_answer", "userAnswer"))
    correct_answer: str | None = Field(default=None, validation_alias=_either("correct_answer", "correctAnswer"))
    is_correct: bool | None = Field(default=None, validation_alias=_either("is_correct", "isCorrect"))
    points: float = 0
    earned_points: float | None = Field(default=None, validation_alias=_either("earned_points", "earnedPoints"))
    explanation: str | None = None


class WritingScore(_Payload):
    task_response: float | None = None
    lexical_resources: float | None = None
    grammar_range_and_accuracy: float | None = None
    coherence_and_cohesion: float | None = None
    overall: float | None = None


class WritingAnswerResult(_Payload):
    """Writing answer graded by an instructor; ``score`` is None until graded."""

    task_id: str = Field(validation_alias=_either("task_id", "taskId"))
    task_number: int | None = Field(default=None, validation_alias=_either("task_number", "taskNumber"))
    answer_text: str = Field(default="", validation_alias=_either("answer_text", "answerText"))
    word_count: int = Field(default=0, validation_alias=_either("word_count", "wordCount"))
    score: WritingScore | None = None
    feedback: str | None = None

    @property
    def is_graded(self) -> bool:
        return self.score is not None and self.score.overall is not None


class AttemptResult(_Payload):
    """Authoritative result of a finished attempt, used by the review flow."""

    attempt_id: str = Field(validation_alias=_either("attempt_id", "attemptId"))
    user_id: str | None = Field(default=None, validation_alias=_either("user_id", "userId"))
    total_questions: int = Field(default=0, validation_alias=_either("total_questions", "totalQuestions"))
    correct_answers: int = Field(default=0, validation_alias=_either("correct_answers", "correctAnswers"))
    total_points: float = Field(default=0, validation_alias=_either("total_points", "totalPoints"))
    earned_points: float = Field(default=0, validation_alias=_either("earned_points", "earnedPoints"))
    band_score: float | None = Field(
        default=None,
        validation_alias=AliasChoices("band_score", "bandScore", "ieltsBandScore"),
    )
    time_spent_minutes: float = Field(default=0, validation_alias=_either("time_spent_minutes", "timeSpentMinutes"))
    is_completed: bool = Field(default=False, validation_alias=_either("is_completed", "isCompleted"))
    question_results: list[QuestionResult] = Field(
        default_factory=list,
        validation_alias=_either("question_results", "questionResults"),
    )
    writing_answers: list[WritingAnswerResult] = Field(
        default_factory=list,
        validation_alias=_either("writing_answers", "writingAnswers"),
    )


def parse_points(raw: str | float | int | None) -> Decimal:
    """Point value of a question; missing or unparseable values count as one point."""
    if raw is None or raw == "":
        return DEFAULT_QUESTION_POINTS
    try:
        points = Decimal(str(raw).strip())
    except InvalidOperation:
        return DEFAULT_QUESTION_POINTS
    if not points.is_finite() or points < 0:
        return DEFAULT_QUESTION_POINTS
    return points

"""In-memory answer store for the active attempt."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping

from practice_app.core.models import AnswerValue, ProgressSnapshot, QuestionType


class AnswerLedger:
    """Maps question ids to the user's current answer.

    Values are a choice id or free text (``str``) or the selected choice ids
    of a multiple-choice question (``tuple`` in selection order). Writes are
    not validated against the question; scoring decides what counts.
    """

    def __init__(self) -> None:
        self._answers: dict[str, AnswerValue] = {}

    def set_answer(self, question_id: str, value: str | Iterable[str]) -> None:
        if isinstance(value, str):
            self._answers[question_id] = value
        else:
            self._answers[question_id] = tuple(dict.fromkeys(value))

    def get_answer(self, question_id: str) -> AnswerValue | None:
        return self._answers.get(question_id)

    def select_choice(self, question_id: str, choice_id: str, question_type: QuestionType) -> None:
        """Apply a click on a choice.

        Multiple choice toggles the clicked id in or out of the selection;
        every other type replaces the previous selection.
        """
        if question_type is QuestionType.MULTIPLE_CHOICE:
            current = self._answers.get(question_id)
            selected = list(current) if isinstance(current, tuple) else []
            if choice_id in selected:
                selected.remove(choice_id)
            else:
                selected.append(choice_id)
            self._answers[question_id] = tuple(selected)
            return
        self._answers[question_id] = choice_id

    def set_text(self, question_id: str, text: str) -> None:
        self._answers[question_id] = text

    def unset(self, question_id: str) -> None:
        self._answers.pop(question_id, None)

    def is_answered(self, question_id: str) -> bool:
        return _is_non_empty(self._answers.get(question_id))

    def answered_count(self) -> int:
        return sum(1 for value in self._answers.values() if _is_non_empty(value))

    def progress(self, total_questions: int) -> ProgressSnapshot:
        return ProgressSnapshot(answered=self.answered_count(), total=total_questions)

    def snapshot(self) -> Mapping[str, AnswerValue]:
        """Read-only copy of the current answers."""
        return MappingProxyType(dict(self._answers))

    def clear(self) -> None:
        self._answers.clear()

    def __len__(self) -> int:
        return len(self._answers)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._answers


def _is_non_empty(value: AnswerValue | None) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value)
    return len(value) > 0

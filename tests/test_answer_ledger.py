from __future__ import annotations

from unittest import TestCase

from practice_app.core.models import ProgressSnapshot, QuestionType
from practice_app.core.services.answer_ledger import AnswerLedger


class AnswerLedgerTests(TestCase):
    def setUp(self) -> None:
        self.ledger = AnswerLedger()

    def test_single_choice_click_replaces_selection(self):
        self.ledger.select_choice("q1", "q1-a", QuestionType.SINGLE_CHOICE)
        self.ledger.select_choice("q1", "q1-c", QuestionType.SINGLE_CHOICE)

        self.assertEqual(self.ledger.get_answer("q1"), "q1-c")

    def test_multiple_choice_click_toggles_in_selection_order(self):
        for choice_id in ("q2-c", "q2-a", "q2-b", "q2-c"):
            self.ledger.select_choice("q2", choice_id, QuestionType.MULTIPLE_CHOICE)

        self.assertEqual(self.ledger.get_answer("q2"), ("q2-a", "q2-b"))

    def test_deselecting_everything_leaves_question_unanswered(self):
        self.ledger.select_choice("q2", "q2-a", QuestionType.MULTIPLE_CHOICE)
        self.ledger.select_choice("q2", "q2-a", QuestionType.MULTIPLE_CHOICE)

        self.assertEqual(self.ledger.get_answer("q2"), ())
        self.assertFalse(self.ledger.is_answered("q2"))
        self.assertEqual(self.ledger.answered_count(), 0)

    def test_set_answer_dedupes_iterables(self):
        self.ledger.set_answer("q3", ["x", "y", "x"])

        self.assertEqual(self.ledger.get_answer("q3"), ("x", "y"))

    def test_progress_counts_only_non_empty_answers(self):
        self.ledger.set_text("q1", "paris")
        self.ledger.set_text("q2", "")
        self.ledger.select_choice("q3", "q3-true", QuestionType.TRUE_FALSE)

        self.assertEqual(self.ledger.progress(4), ProgressSnapshot(answered=2, total=4))
        self.assertEqual(self.ledger.progress(4).remaining, 2)
        self.assertEqual(self.ledger.progress(4).fraction, 0.5)

    def test_snapshot_is_a_read_only_copy(self):
        self.ledger.set_text("q1", "london")
        snapshot = self.ledger.snapshot()

        self.ledger.set_text("q1", "paris")

        self.assertEqual(snapshot["q1"], "london")
        with self.assertRaises(TypeError):
            snapshot["q1"] = "rome"  # type: ignore[index]

    def test_unset_and_clear(self):
        self.ledger.set_text("q1", "a")
        self.ledger.set_text("q2", "b")

        self.ledger.unset("q1")
        self.ledger.unset("missing")
        self.assertNotIn("q1", self.ledger)
        self.assertEqual(len(self.ledger), 1)

        self.ledger.clear()
        self.assertEqual(len(self.ledger), 0)
        self.assertIsNone(self.ledger.get_answer("q2"))

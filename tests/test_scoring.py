from __future__ import annotations

from decimal import Decimal
from unittest import TestCase

from practice_app.client.schemas import AttemptResult
from practice_app.core.services.scoring import (
    PassTier,
    classify_percentage,
    compute_percentage,
    evaluate_question,
    reconcile,
    score,
)

from .factories import multiple_choice, short_text, single_choice, true_false


class ScoreTests(TestCase):
    def test_full_pass_scores_one_hundred_percent(self):
        questions = [
            single_choice("q1", correct="b"),
            multiple_choice("q2", correct="ac"),
            true_false("q3", answer=False),
            short_text("q4", "Paris"),
        ]
        answers = {"q1": "q1-b", "q2": ("q2-c", "q2-a"), "q3": "q3-false", "q4": "paris"}

        result = score(questions, answers)

        self.assertEqual(result.correct_count, 4)
        self.assertEqual(result.total_count, 4)
        self.assertEqual(result.earned_points, Decimal(4))
        self.assertEqual(result.percentage, 100)
        self.assertIs(result.tier, PassTier.GREAT)
        self.assertEqual(result.tier.message, "Great job!")

    def test_unanswered_question_counts_as_wrong(self):
        questions = [single_choice("q1"), single_choice("q2"), single_choice("q3")]

        result = score(questions, {"q1": "q1-a", "q2": "q2-a"})

        self.assertEqual(result.correct_count, 2)
        self.assertEqual(result.total_count, 3)
        self.assertEqual(result.total_points, Decimal(3))
        self.assertFalse(result.is_correct("q3"))
        self.assertEqual(result.percentage, 67)

    def test_scoring_is_deterministic(self):
        questions = [multiple_choice("q1"), short_text("q2", "tree"), true_false("q3")]
        answers = {"q1": ("q1-a",), "q2": " Tree ", "q3": "q3-true"}

        self.assertEqual(score(questions, answers), score(questions, answers))

    def test_points_are_weighted(self):
        questions = [single_choice("q1", points="2.5"), single_choice("q2", points="0.5")]

        result = score(questions, {"q1": "q1-a", "q2": "q2-b"})

        self.assertEqual(result.earned_points, Decimal("2.5"))
        self.assertEqual(result.total_points, Decimal("3.0"))
        self.assertEqual(result.percentage, 83)

    def test_empty_quiz_scores_zero(self):
        result = score([], {})

        self.assertEqual(result.percentage, 0)
        self.assertIs(result.tier, PassTier.KEEP_PRACTICING)


class EvaluateQuestionTests(TestCase):
    def test_cleared_selection_is_unanswered_even_without_correct_choices(self):
        question = multiple_choice("m", correct="")

        result = score([question], {"m": ()})

        self.assertFalse(evaluate_question(question, ()))
        self.assertFalse(result.is_correct("m"))
        self.assertEqual(result.earned_points, Decimal(0))
        self.assertEqual(result.correct_count, 0)

    def test_empty_text_is_unanswered(self):
        self.assertFalse(evaluate_question(short_text("s", ""), ""))

    def test_multiple_choice_is_all_or_nothing(self):
        question = multiple_choice("q", correct="ab")

        self.assertTrue(evaluate_question(question, ("q-b", "q-a")))
        self.assertFalse(evaluate_question(question, ("q-a",)))
        self.assertFalse(evaluate_question(question, ("q-a", "q-b", "q-c")))
        self.assertFalse(evaluate_question(question, ()))

    def test_short_text_ignores_case_and_surrounding_whitespace(self):
        question = short_text("q", "Paris", "Lutetia")

        self.assertTrue(evaluate_question(question, " paris  "))
        self.assertTrue(evaluate_question(question, "LUTETIA"))
        self.assertFalse(evaluate_question(question, "par is"))
        self.assertFalse(evaluate_question(question, ""))

    def test_choice_questions_need_the_correct_choice_id(self):
        question = single_choice("q", correct="c")

        self.assertTrue(evaluate_question(question, "q-c"))
        self.assertFalse(evaluate_question(question, "q-a"))
        self.assertFalse(evaluate_question(question, ("q-c",)))
        self.assertFalse(evaluate_question(question, None))

    def test_true_false(self):
        question = true_false("q", answer=True)

        self.assertTrue(evaluate_question(question, "q-true"))
        self.assertFalse(evaluate_question(question, "q-false"))


class PercentageTests(TestCase):
    def test_rounds_half_up(self):
        self.assertEqual(compute_percentage(Decimal(1), Decimal(8)), 13)
        self.assertEqual(compute_percentage(Decimal(1), Decimal(200)), 1)
        self.assertEqual(compute_percentage(Decimal(0), Decimal(0)), 0)

    def test_tier_thresholds(self):
        self.assertIs(classify_percentage(70), PassTier.GREAT)
        self.assertIs(classify_percentage(69), PassTier.GOOD)
        self.assertIs(classify_percentage(40), PassTier.GOOD)
        self.assertIs(classify_percentage(39), PassTier.KEEP_PRACTICING)
        self.assertEqual(PassTier.GOOD.message, "Good effort! Keep going")
        self.assertEqual(PassTier.KEEP_PRACTICING.message, "Keep practicing!")


class ReconcileTests(TestCase):
    def setUp(self) -> None:
        self.questions = [single_choice("q1"), single_choice("q2")]
        self.local = score(self.questions, {"q1": "q1-a", "q2": "q2-b"})

    def test_matching_server_result_is_consistent(self):
        remote = AttemptResult.model_validate(
            {
                "attemptId": "attempt-1",
                "totalPoints": 2,
                "earnedPoints": 1,
                "questionResults": [
                    {"questionId": "q1", "isCorrect": True},
                    {"questionId": "q2", "isCorrect": False},
                    {"questionId": "q9", "isCorrect": None},
                ],
            }
        )

        self.assertTrue(reconcile(self.local, remote).is_consistent)

    def test_disagreements_are_reported(self):
        remote = AttemptResult.model_validate(
            {
                "attempt_id": "attempt-1",
                "total_points": 2,
                "earned_points": 2,
                "question_results": [
                    {"question_id": "q1", "is_correct": True},
                    {"question_id": "q2", "is_correct": True},
                ],
            }
        )

        with self.assertLogs("practice_app.core.services.scoring", level="WARNING"):
            reconciliation = reconcile(self.local, remote)

        self.assertFalse(reconciliation.points_match)
        self.assertEqual(reconciliation.disagreeing_question_ids, ("q2",))
        self.assertFalse(reconciliation.is_consistent)

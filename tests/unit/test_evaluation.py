"""
Unit tests for prelab/evaluation.py
Tests: per-question review, score rounding, weak-area ordering,
missing / malformed answers.
"""

from prelab.evaluation import evaluate_quiz
from prelab.schemas import Question


def _q(text, correct_index=0, topic="General"):
    return Question(question=text, options=["w", "x", "y", "z"], correct_index=correct_index, topic=topic)


QUESTIONS = [
    _q("Q1", 0, "Routing"),
    _q("Q2", 1, "Routing"),
    _q("Q3", 2, "Switching"),
]


class TestEvaluateQuiz:

    def test_all_correct(self):
        result = evaluate_quiz(QUESTIONS, [0, 1, 2])
        assert result.correct_count == 3
        assert result.total == 3
        assert result.score == 100.0
        assert result.weak_areas == []

    def test_score_rounded_to_one_decimal(self):
        result = evaluate_quiz(QUESTIONS, [0, 3, 3])
        assert result.correct_count == 1
        assert result.score == 33.3

    def test_review_fields(self):
        item = evaluate_quiz(QUESTIONS, [3, 1, 2]).review[0]
        assert item.question == "Q1"
        assert item.selected_index == 3
        assert item.selected_answer == "z"
        assert item.correct_index == 0
        assert item.correct_answer == "w"
        assert item.is_correct is False
        assert item.topic == "Routing"

    def test_weak_areas_ordered_by_misses(self):
        result = evaluate_quiz(QUESTIONS, [3, 3, 3])
        assert result.weak_areas == ["Routing", "Switching"]

    def test_weak_area_ties_keep_first_seen_order(self):
        questions = [_q("A", 0, "Switching"), _q("B", 0, "Routing")]
        assert evaluate_quiz(questions, [1, 1]).weak_areas == ["Switching", "Routing"]

    def test_missing_answers_are_wrong(self):
        result = evaluate_quiz(QUESTIONS, [0])
        assert result.correct_count == 1
        assert result.review[1].selected_index is None
        assert result.review[1].selected_answer is None

    def test_numeric_strings_accepted_garbage_rejected(self):
        result = evaluate_quiz(QUESTIONS, ["0", "abc", None])
        assert result.review[0].is_correct is True
        assert result.review[1].selected_index is None
        assert result.review[2].is_correct is False

    def test_malformed_negative_strings_rejected(self):
        result = evaluate_quiz(QUESTIONS, ["--1", " 1 ", "-"])
        assert result.review[0].selected_index is None
        assert result.review[1].is_correct is True
        assert result.review[2].selected_index is None

    def test_negative_string_parsed_but_wrong(self):
        item = evaluate_quiz(QUESTIONS, ["-1", 1, 2]).review[0]
        assert item.selected_index == -1
        assert item.selected_answer is None
        assert item.is_correct is False

    def test_out_of_range_selection(self):
        item = evaluate_quiz(QUESTIONS, [9, 1, 2]).review[0]
        assert item.selected_index == 9
        assert item.selected_answer is None
        assert item.is_correct is False

    def test_empty_quiz(self):
        result = evaluate_quiz([], [])
        assert result.total == 0
        assert result.score == 0.0

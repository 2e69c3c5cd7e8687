# prelab/evaluation.py
from collections import Counter
from typing import Any, List, Optional, Sequence

from prelab.schemas import Question, QuestionReview, QuizEvaluation


def _as_index(answer: Any) -> Optional[int]:
    if isinstance(answer, bool):
        return None
    if isinstance(answer, int):
        return answer
    if isinstance(answer, str):
        try:
            return int(answer.strip())
        except ValueError:
            return None
    return None


def _option_at(options: List[str], index: Optional[int]) -> Optional[str]:
    if index is None or not 0 <= index < len(options):
        return None
    return options[index]


def evaluate_quiz(questions: Sequence[Question], user_answers: Sequence[Any]) -> QuizEvaluation:
    """
    Score submitted answers against each question's correct_index.

    Missing or non-integer answers count as wrong. weak_areas lists the topics
    of missed questions, most-missed first.
    """
    review: List[QuestionReview] = []
    for index, q in enumerate(questions):
        selected = _as_index(user_answers[index]) if index < len(user_answers) else None
        review.append(QuestionReview(
            question=q.question,
            topic=q.topic or "General",
            selected_index=selected,
            selected_answer=_option_at(q.options, selected),
            correct_index=q.correct_index,
            correct_answer=_option_at(q.options, q.correct_index),
            is_correct=selected is not None and selected == q.correct_index,
            explanation=q.explanation or "",
        ))

    correct_count = sum(1 for item in review if item.is_correct)
    total = len(review)
    score = round(correct_count / total * 100, 1) if total else 0.0

    # Counter.most_common keeps first-seen order among equal counts
    misses = Counter(item.topic for item in review if not item.is_correct)
    weak_areas = [topic for topic, _ in misses.most_common()]

    return QuizEvaluation(
        review=review,
        correct_count=correct_count,
        total=total,
        score=score,
        weak_areas=weak_areas,
    )

"""
Grading Engine Module.

Scores submitted answers against a worksheet's answer key, per question
type, and supports manual review of the automatic result.
"""

from worksheet_grader.grading.engine import (
    GradingEngine,
    get_questions_for_manual_review,
    grade_submission,
)
from worksheet_grader.grading.review import apply_manual_review
from worksheet_grader.grading.scorer import InvalidInputError, QuestionOutcome, grade_question
from worksheet_grader.grading.similarity import levenshtein_distance, string_similarity

__all__ = [
    "GradingEngine",
    "InvalidInputError",
    "QuestionOutcome",
    "apply_manual_review",
    "get_questions_for_manual_review",
    "grade_question",
    "grade_submission",
    "levenshtein_distance",
    "string_similarity",
]

"""
Manual review of automatically graded submissions.

A human grader confirms or overrides the points for questions the engine could
not settle on its own (or any other question). Overrides produce a new
GradingResult; the original is left untouched.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from worksheet_grader.grading.scorer import InvalidInputError
from worksheet_grader.models import GradingResult, QuestionFeedback, to_decimal

logger = logging.getLogger(__name__)


def apply_manual_review(
    result: GradingResult,
    overrides: Mapping[Any, Any],
    comments: Mapping[Any, str] | None = None,
) -> GradingResult:
    """
    Apply human-awarded points to a grading result.

    Args:
        result: The automatic grading result.
        overrides: Mapping of question id to the points awarded by the reviewer.
        comments: Optional mapping of question id to reviewer feedback text.

    Returns:
        A new GradingResult with recomputed totals.

    Raises:
        InvalidInputError: If an override names an unknown question or
            awards points outside ``[0, max_points]``.
    """
    comments = {str(k): v for k, v in (comments or {}).items()}
    max_points = {entry.question_id: entry.max_points for entry in result.feedback}

    awarded: dict[str, Decimal] = {}
    for question_id, value in overrides.items():
        key = str(question_id)
        if key not in max_points:
            raise InvalidInputError(f"Unknown question id: '{key}'", field=key)

        try:
            points = to_decimal(value)
        except ValueError as e:
            raise InvalidInputError(f"Invalid points for '{key}': {value!r}", field=key) from e

        if points < 0 or points > max_points[key]:
            raise InvalidInputError(
                f"Points for '{key}' ({points}) must be between 0 and {max_points[key]}",
                field=key,
            )
        awarded[key] = points

    feedback = tuple(
        _reviewed(entry, awarded[entry.question_id], comments.get(entry.question_id))
        if entry.question_id in awarded
        else entry
        for entry in result.feedback
    )
    reviewed = GradingResult(feedback=feedback, pass_score=result.pass_score)

    logger.info(
        "Applied manual review to %d question(s): %s/%s (%s%%)",
        len(awarded),
        reviewed.score,
        reviewed.max_score,
        reviewed.percentage,
    )
    return reviewed


def _reviewed(entry: QuestionFeedback, points: Decimal, comment: str | None) -> QuestionFeedback:
    return QuestionFeedback(
        question_id=entry.question_id,
        question_type=entry.question_type,
        correct=points == entry.max_points,
        points_earned=points,
        max_points=entry.max_points,
        feedback=comment or f"Reviewed. Awarded {points}/{entry.max_points} points.",
        requires_manual_review=False,
        reviewed=True,
    )

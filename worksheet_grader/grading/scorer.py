"""
Per-question scoring rules.

Each gradable question type has one pure scoring function. Malformed
answers are scored as incorrect here rather than raised, so one bad answer
never aborts grading of the rest of a submission.
"""

import logging
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any, NamedTuple

from pydantic import TypeAdapter, ValidationError

from worksheet_grader.grading.similarity import string_similarity
from worksheet_grader.models import (
    CheckboxQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    OrderingQuestion,
    Question,
    QuestionType,
    ShortAnswerQuestion,
    UnsupportedQuestion,
    round_half_up,
)

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.8

NO_ANSWER_FEEDBACK = "No answer submitted"
INVALID_FORMAT_FEEDBACK = "Invalid answer format"
UNKNOWN_TYPE_FEEDBACK = "Unknown question type"


class InvalidInputError(Exception):
    """Raised when grading input violates the worksheet/answer contract."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class QuestionOutcome(NamedTuple):
    """Result of scoring a single answer."""

    correct: bool | None
    points_earned: Decimal
    feedback: str
    requires_manual_review: bool = False


# ==============================================================================
# Helpers
# ==============================================================================


def strict_equal(first: Any, second: Any) -> bool:
    """
    Compare answer values without type coercion.

    ``1`` and ``1.0`` are equal, ``1`` and ``"1"`` are not, and booleans
    only ever equal booleans.
    """
    if isinstance(first, bool) or isinstance(second, bool):
        return type(first) is type(second) and first == second
    if isinstance(first, (int, float)) and isinstance(second, (int, float)):
        return first == second
    return type(first) is type(second) and first == second


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_integral(value: Any) -> bool:
    """Ints, and floats such as ``2.0`` that hold a whole number."""
    if isinstance(value, float):
        return value.is_integer()
    return _is_index(value)


def _fmt(value: Decimal) -> str:
    if value == value.to_integral_value():
        return str(int(value))
    return str(value.normalize())


def _clamp(points: Decimal, maximum: Decimal) -> Decimal:
    return max(Decimal(0), min(maximum, points))


def _partial_points(points: Decimal, earned: int, total: int) -> Decimal:
    """Whole points proportional to ``earned / total``, 0 when total is 0."""
    if total <= 0:
        return Decimal(0)
    return _clamp(round_half_up(points * Decimal(earned) / Decimal(total)), points)


def _position(sequence: tuple[Any, ...], value: Any) -> int:
    for index, item in enumerate(sequence):
        if strict_equal(item, value):
            return index
    return -1


def _invalid_format() -> QuestionOutcome:
    return QuestionOutcome(False, Decimal(0), INVALID_FORMAT_FEEDBACK)


# ==============================================================================
# Scoring rules
# ==============================================================================


def score_multiple_choice(question: MultipleChoiceQuestion, answer: Any) -> QuestionOutcome:
    """All-or-nothing: the answer must equal the authored key exactly."""
    if not isinstance(answer, (int, float, str)):
        return _invalid_format()

    if strict_equal(answer, question.correct_answer):
        return QuestionOutcome(True, question.points, "Correct!")

    key = question.correct_answer
    if _is_index(key) and 0 <= key < len(question.options):
        expected = str(question.options[key])
    else:
        expected = str(key)
    return QuestionOutcome(False, Decimal(0), f"Incorrect. Correct answer: {expected}")


def score_checkbox(question: CheckboxQuestion, answer: Any) -> QuestionOutcome:
    """
    All-or-nothing: the sorted selections must equal the sorted key.

    Duplicates are not removed, so ``[0, 0, 2]`` never equals ``[0, 2]``.
    Whole-number floats count as indices, the same way ``1.0 == 1`` for
    multiple-choice.
    """
    if not isinstance(answer, (list, tuple)) or not all(_is_integral(i) for i in answer):
        return _invalid_format()

    if sorted(int(i) for i in answer) == sorted(question.correct_answers):
        return QuestionOutcome(True, question.points, "Correct!")
    return QuestionOutcome(False, Decimal(0), "Not all correct answers selected")


def _normalize_text(text: str, case_sensitive: bool) -> str:
    text = text.strip()
    return text if case_sensitive else text.lower()


def score_short_answer(
    question: ShortAnswerQuestion,
    answer: Any,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> QuestionOutcome:
    """
    Exact matches get full credit; anything else goes to a human.

    Near matches (similarity at or above the threshold) are awarded
    proportional credit but are never marked correct.
    """
    if not isinstance(answer, str):
        return _invalid_format()

    submitted = _normalize_text(answer, question.case_sensitive)
    accepted = [_normalize_text(a, question.case_sensitive) for a in question.accepted_answers]

    if submitted in accepted:
        return QuestionOutcome(True, question.points, "Correct!")

    similarity = max(
        (string_similarity(submitted, candidate) for candidate in accepted),
        default=Decimal(0),
    )

    if similarity >= Decimal(str(similarity_threshold)):
        points = _clamp(round_half_up(question.points * similarity), question.points)
        return QuestionOutcome(
            False,
            points,
            f"Close answer. Awarded {_fmt(points)}/{_fmt(question.points)} points.",
            requires_manual_review=True,
        )

    return QuestionOutcome(
        False,
        Decimal(0),
        "Incorrect. Flagged for manual review.",
        requires_manual_review=True,
    )


def score_matching(question: MatchingQuestion, answer: Any) -> QuestionOutcome:
    """Proportional credit for each authored pair matched correctly."""
    if not isinstance(answer, Mapping):
        return _invalid_format()

    total = len(question.pairs)
    matched = sum(
        1
        for pair in question.pairs
        if pair.left in answer and strict_equal(answer[pair.left], pair.right)
    )
    points = _partial_points(question.points, matched, total)

    if matched == total:
        return QuestionOutcome(True, question.points if total else Decimal(0), "All matches correct!")
    return QuestionOutcome(
        False,
        points,
        f"{matched}/{total} matches correct. "
        f"Awarded {_fmt(points)}/{_fmt(question.points)} points.",
    )


def score_ordering(question: OrderingQuestion, answer: Any) -> QuestionOutcome:
    """
    Full credit for the exact order, otherwise credit per adjacent pair.

    A pair ``(answer[i], answer[i + 1])`` counts when both items appear in
    the authored sequence in that same relative order. With a key of
    ``[1, 2, 3]``, the answer ``[1, 3, 2]`` keeps one of its two pairs.

    Credit is relative to the pairs the answer contains, so a shortened
    answer whose items are all in order (``[1, 5]`` against ``[1, 2, 3, 4,
    5]``) earns full points while still being marked incorrect.
    """
    if not isinstance(answer, (list, tuple)):
        return _invalid_format()

    key = question.correct_order
    if len(answer) == len(key) and all(strict_equal(a, b) for a, b in zip(answer, key)):
        return QuestionOutcome(True, question.points, "Correct order!")

    correct_pairs = 0
    for current, following in zip(answer, answer[1:]):
        current_index = _position(key, current)
        following_index = _position(key, following)
        if current_index != -1 and following_index > current_index:
            correct_pairs += 1

    max_pairs = max(len(answer) - 1, 0)
    points = _partial_points(question.points, correct_pairs, max_pairs)

    return QuestionOutcome(
        False,
        points,
        f"Partial credit: {correct_pairs}/{max_pairs} adjacent pairs correct. "
        f"Awarded {_fmt(points)}/{_fmt(question.points)} points.",
    )


# Every QuestionType has exactly one entry here
_SCORERS: dict[QuestionType, Callable[[Any, Any], QuestionOutcome]] = {
    QuestionType.MULTIPLE_CHOICE: score_multiple_choice,
    QuestionType.CHECKBOX: score_checkbox,
    QuestionType.SHORT_ANSWER: score_short_answer,
    QuestionType.MATCHING: score_matching,
    QuestionType.ORDERING: score_ordering,
}

_QUESTION_ADAPTER = TypeAdapter(Question)


def get_scorer(question_type: QuestionType) -> Callable[[Any, Any], QuestionOutcome]:
    """Return the scoring rule registered for a question type."""
    return _SCORERS[question_type]


def grade_question(
    question: Question | Mapping[str, Any],
    answer: Any,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> QuestionOutcome:
    """
    Score one answer against one question.

    Args:
        question: A question model, or a raw question mapping.
        answer: The submitted value; ``None`` means unanswered.
        similarity_threshold: Partial-credit cutoff for short answers.

    Returns:
        The QuestionOutcome. Unknown question types score zero.

    Raises:
        InvalidInputError: If a raw question mapping cannot be parsed.
    """
    if isinstance(question, Mapping):
        try:
            question = _QUESTION_ADAPTER.validate_python(question)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid question: {e}", field="question") from e

    if isinstance(question, UnsupportedQuestion):
        logger.warning("Unknown question type: %s", question.type or "<missing>")
        return QuestionOutcome(False, Decimal(0), UNKNOWN_TYPE_FEEDBACK)

    if answer is None:
        return QuestionOutcome(False, Decimal(0), NO_ANSWER_FEEDBACK)

    if isinstance(question, ShortAnswerQuestion):
        return score_short_answer(question, answer, similarity_threshold)

    scorer = get_scorer(QuestionType(question.type))
    return scorer(question, answer)

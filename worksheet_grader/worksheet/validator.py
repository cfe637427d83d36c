"""
Worksheet validation module.

Checks an authored worksheet for answer-key mistakes before it is used
for grading. The grading engine itself never rejects a worksheet for
these issues; they are authoring problems, reported to the worksheet author.
"""

from decimal import Decimal

from worksheet_grader.models import (
    CheckboxQuestion,
    MatchingQuestion,
    MultipleChoiceQuestion,
    OrderingQuestion,
    ShortAnswerQuestion,
    UnsupportedQuestion,
    Worksheet,
)


class WorksheetValidationError(Exception):
    """Raised when worksheet validation fails."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        message = "Worksheet validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(message)


class WorksheetValidator:
    """
    Validates worksheets for a complete, consistent answer key.

    Checks:
    1. The worksheet has a title and at least one question
    2. Question ids are unique
    3. Each answer key fits its question type
    4. Total points are greater than zero
    """

    def validate(self, worksheet: Worksheet) -> tuple[bool, list[str]]:
        """
        Validate a worksheet and return any issues found.

        Args:
            worksheet: The worksheet to validate.

        Returns:
            Tuple of (is_valid, list of issues).
        """
        issues: list[str] = []

        issues.extend(self._validate_structure(worksheet))
        issues.extend(self._check_duplicate_ids(worksheet))

        for i, question in enumerate(worksheet.questions, start=1):
            prefix = f"Question {i} ({question.id})"
            issues.extend(f"{prefix}: {issue}" for issue in self._validate_question(question))

        return len(issues) == 0, issues

    def validate_or_raise(self, worksheet: Worksheet) -> None:
        """
        Validate a worksheet and raise if invalid.

        Raises:
            WorksheetValidationError: If validation fails.
        """
        is_valid, issues = self.validate(worksheet)
        if not is_valid:
            raise WorksheetValidationError(issues)

    def _validate_structure(self, worksheet: Worksheet) -> list[str]:
        issues: list[str] = []

        if not worksheet.title.strip():
            issues.append("Worksheet title is empty")

        if not worksheet.questions:
            issues.append("Worksheet has no questions")
        elif worksheet.total_points <= Decimal(0):
            issues.append("Total points must be greater than 0")

        return issues

    def _check_duplicate_ids(self, worksheet: Worksheet) -> list[str]:
        issues: list[str] = []
        seen: dict[str, int] = {}

        for i, question in enumerate(worksheet.questions, start=1):
            if question.id in seen:
                issues.append(
                    f"Duplicate question id: '{question.id}' "
                    f"(appears at positions {seen[question.id]} and {i})"
                )
            else:
                seen[question.id] = i

        return issues

    def _validate_question(self, question: object) -> list[str]:
        if isinstance(question, MultipleChoiceQuestion):
            return self._validate_multiple_choice(question)
        if isinstance(question, CheckboxQuestion):
            return self._validate_checkbox(question)
        if isinstance(question, ShortAnswerQuestion):
            return self._validate_short_answer(question)
        if isinstance(question, MatchingQuestion):
            return self._validate_matching(question)
        if isinstance(question, OrderingQuestion):
            return self._validate_ordering(question)
        if isinstance(question, UnsupportedQuestion):
            return [f"Unsupported question type '{question.type}' will score zero"]
        return []

    def _validate_multiple_choice(self, question: MultipleChoiceQuestion) -> list[str]:
        key = question.correct_answer
        if question.options and isinstance(key, int) and not 0 <= key < len(question.options):
            return [f"Correct answer {key} is outside the {len(question.options)} options"]
        return []

    def _validate_checkbox(self, question: CheckboxQuestion) -> list[str]:
        issues: list[str] = []
        key = question.correct_answers

        if not key:
            issues.append("No correct answers are marked")
        if len(set(key)) != len(key):
            issues.append("Correct answers contain duplicates")
        if question.options:
            out_of_range = sorted(i for i in set(key) if not 0 <= i < len(question.options))
            if out_of_range:
                issues.append(f"Correct answers {out_of_range} are outside the options")

        return issues

    def _validate_short_answer(self, question: ShortAnswerQuestion) -> list[str]:
        if not any(answer.strip() for answer in question.accepted_answers):
            return ["Correct answer is blank"]
        return []

    def _validate_matching(self, question: MatchingQuestion) -> list[str]:
        if not question.pairs:
            return ["No pairs to match"]

        lefts = [pair.left for pair in question.pairs]
        duplicates = sorted({left for left in lefts if lefts.count(left) > 1})
        if duplicates:
            return [f"Duplicate left items: {duplicates}"]
        return []

    def _validate_ordering(self, question: OrderingQuestion) -> list[str]:
        issues: list[str] = []
        key = question.correct_order

        if len(key) < 2:
            issues.append("Correct order needs at least two items")
        if len(set(key)) != len(key):
            issues.append("Correct order contains duplicates")

        return issues

"""
Grading engine - the core orchestrator.

Validates the worksheet and answer set, scores every question in authored
order and assembles the GradingResult. The engine holds no state besides
its settings, so one instance can grade any number of submissions
concurrently.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from worksheet_grader.config import Settings, get_settings
from worksheet_grader.grading.scorer import InvalidInputError, grade_question
from worksheet_grader.models import AuditRecord, GradingResult, QuestionFeedback, Worksheet

logger = logging.getLogger(__name__)


class GradingEngine:
    """
    Grades submissions against worksheets.

    Grading is a pure computation: the same worksheet and answers always
    produce the same result.
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize the grading engine.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
        """
        self._settings = settings or get_settings()

    @property
    def settings(self) -> Settings:
        return self._settings

    def grade(
        self,
        worksheet: Worksheet | Mapping[str, Any],
        answers: Mapping[Any, Any],
    ) -> GradingResult:
        """
        Grade a submission.

        Args:
            worksheet: The worksheet model, or its raw mapping form.
            answers: Mapping of question id to the submitted value.

        Returns:
            GradingResult with one feedback entry per question.

        Raises:
            InvalidInputError: If the worksheet has no question list or the
                answers are not a mapping. Nothing is scored in that case.
        """
        try:
            sheet = self.load_worksheet(worksheet)
            submitted = self.normalize_answers(answers)
        except InvalidInputError as e:
            logger.error("Error grading submission: %s", e)
            raise

        feedback = tuple(
            self._grade_one(question, submitted.get(question.id))
            for question in sheet.questions
        )
        result = GradingResult(feedback=feedback, pass_score=self.resolve_pass_score(sheet))

        logger.info(
            "Graded submission: %s/%s (%s%%)",
            result.score,
            result.max_score,
            result.percentage,
        )
        return result

    def _grade_one(self, question: Any, answer: Any) -> QuestionFeedback:
        outcome = grade_question(question, answer, self._settings.similarity_threshold)
        return QuestionFeedback(
            question_id=question.id,
            question_type=question.type,
            correct=outcome.correct,
            points_earned=outcome.points_earned,
            max_points=question.points,
            feedback=outcome.feedback,
            requires_manual_review=outcome.requires_manual_review,
        )

    def resolve_pass_score(self, worksheet: Worksheet) -> Decimal:
        """The worksheet's pass score, or the configured default when unset."""
        if worksheet.pass_score is None:
            return Decimal(self._settings.default_pass_score)
        return worksheet.pass_score

    @staticmethod
    def load_worksheet(worksheet: Worksheet | Mapping[str, Any]) -> Worksheet:
        """
        Validate a worksheet into its model form.

        Raises:
            InvalidInputError: If the worksheet or its question list is missing
                or malformed.
        """
        if isinstance(worksheet, Worksheet):
            return worksheet

        if not isinstance(worksheet, Mapping):
            raise InvalidInputError("Invalid worksheet", field="worksheet")

        if worksheet.get("questions") is None:
            raise InvalidInputError("Invalid worksheet: missing questions", field="questions")

        try:
            return Worksheet.model_validate(dict(worksheet))
        except ValidationError as e:
            raise InvalidInputError(f"Invalid worksheet: {e}", field="worksheet") from e

    @staticmethod
    def normalize_answers(answers: Mapping[Any, Any]) -> dict[str, Any]:
        """
        Key the answer set by string question id.

        Raises:
            InvalidInputError: If answers is not a mapping.
        """
        if not isinstance(answers, Mapping):
            raise InvalidInputError("Invalid answers format", field="answers")
        return {str(key): value for key, value in answers.items()}

    def create_audit(
        self,
        worksheet: Worksheet | Mapping[str, Any],
        answers: Mapping[Any, Any],
        result: GradingResult,
    ) -> AuditRecord:
        """
        Create an audit record for a grading operation.

        Args:
            worksheet: The worksheet that was graded.
            answers: The submitted answers.
            result: The grading result.

        Returns:
            Immutable AuditRecord.
        """
        sheet = self.load_worksheet(worksheet)
        submitted = self.normalize_answers(answers)

        return AuditRecord(
            worksheet_id=sheet.id,
            worksheet_hash=AuditRecord.compute_hash(sheet.model_dump_json(by_alias=True)),
            answers_hash=AuditRecord.compute_hash(AuditRecord.canonical_json(submitted)),
            result_hash=AuditRecord.compute_hash(result.model_dump_json(by_alias=True)),
            question_count=len(result.feedback),
            similarity_threshold=self._settings.similarity_threshold,
            pass_score=result.pass_score,
        )


def grade_submission(
    worksheet: Worksheet | Mapping[str, Any],
    answers: Mapping[Any, Any],
    settings: Settings | None = None,
) -> GradingResult:
    """Grade one submission with a fresh engine."""
    return GradingEngine(settings).grade(worksheet, answers)


def get_questions_for_manual_review(
    feedback: Iterable[QuestionFeedback],
) -> list[QuestionFeedback]:
    """Feedback entries that still need a human grader."""
    return [entry for entry in feedback if entry.requires_manual_review is True]

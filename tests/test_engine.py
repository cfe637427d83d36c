"""
Tests for the grading engine.

Covers whole-submission grading, input validation, pass-score resolution,
result invariants and audit records.
"""

import logging
from decimal import Decimal
from typing import Any

import pytest
from pydantic import ValidationError

from worksheet_grader.config import Settings
from worksheet_grader.grading import (
    GradingEngine,
    InvalidInputError,
    get_questions_for_manual_review,
    grade_submission,
)
from worksheet_grader.models import GradingResult, Worksheet


@pytest.fixture
def engine(test_settings: Settings) -> GradingEngine:
    return GradingEngine(test_settings)


class TestGradeSubmission:
    """Tests for grading complete submissions."""

    def test_perfect_submission(
        self, engine: GradingEngine, sample_worksheet: Worksheet, perfect_answers: dict
    ) -> None:
        """Test every question fully correct."""
        result = engine.grade(sample_worksheet, perfect_answers)

        assert result.score == Decimal("49")
        assert result.max_score == Decimal("49")
        assert result.percentage == 100
        assert result.passed is True
        assert result.requires_manual_review is False
        assert all(entry.correct for entry in result.feedback)

    def test_partial_submission(
        self, engine: GradingEngine, sample_worksheet: Worksheet, partial_answers: dict
    ) -> None:
        """Test the mixed answer set scores 19/49."""
        result = engine.grade(sample_worksheet, partial_answers)

        assert [entry.points_earned for entry in result.feedback] == [
            Decimal(0),
            Decimal(0),
            Decimal(8),
            Decimal(6),
            Decimal(5),
        ]
        assert result.score == Decimal("19")
        assert result.percentage == 39
        assert result.passed is False
        assert result.requires_manual_review is True

    def test_feedback_in_authored_order(
        self, engine: GradingEngine, sample_worksheet: Worksheet, perfect_answers: dict
    ) -> None:
        """Test one entry per question, in the worksheet's order."""
        result = engine.grade(sample_worksheet, dict(reversed(list(perfect_answers.items()))))

        assert [entry.question_id for entry in result.feedback] == ["q1", "q2", "q3", "q4", "q5"]
        assert [entry.question_type for entry in result.feedback] == [
            "multiple-choice",
            "checkbox",
            "short-answer",
            "matching",
            "ordering",
        ]

    def test_accepts_raw_mapping(
        self, engine: GradingEngine, sample_worksheet_data: dict, perfect_answers: dict
    ) -> None:
        """Test the wire form of a worksheet grades the same as the model."""
        assert engine.grade(sample_worksheet_data, perfect_answers).score == Decimal("49")

    def test_empty_answers(self, engine: GradingEngine, sample_worksheet: Worksheet) -> None:
        """Test an empty answer set scores zero without review."""
        result = engine.grade(sample_worksheet, {})

        assert result.score == 0
        assert result.percentage == 0
        assert result.requires_manual_review is False
        assert {entry.feedback for entry in result.feedback} == {"No answer submitted"}

    def test_unknown_answer_ids_ignored(
        self, engine: GradingEngine, sample_worksheet: Worksheet, perfect_answers: dict
    ) -> None:
        """Test answers for questions not on the worksheet are ignored."""
        answers = {**perfect_answers, "q99": "extra"}

        result = engine.grade(sample_worksheet, answers)

        assert len(result.feedback) == 5
        assert result.score == Decimal("49")

    def test_numeric_keys_normalized(self, engine: GradingEngine) -> None:
        """Test integer question ids match integer answer keys."""
        worksheet = {"questions": [{"id": 7, "type": "multiple-choice", "correctAnswer": 2, "points": 1}]}

        result = engine.grade(worksheet, {7: 2})

        assert result.feedback[0].question_id == "7"
        assert result.feedback[0].correct is True

    def test_malformed_answer_does_not_abort(
        self, engine: GradingEngine, sample_worksheet: Worksheet, perfect_answers: dict
    ) -> None:
        """Test one malformed answer only costs its own question."""
        answers = {**perfect_answers, "q2": "0,2", "q4": ["France", "Paris"]}

        result = engine.grade(sample_worksheet, answers)

        assert result.score == Decimal("30")
        assert result.feedback[1].feedback == "Invalid answer format"
        assert result.feedback[3].feedback == "Invalid answer format"

    def test_unknown_type_counts_toward_max(self, engine: GradingEngine) -> None:
        """Test unsupported questions score zero but keep their points in maxScore."""
        worksheet = {
            "questions": [
                {"id": "a", "type": "multiple-choice", "correctAnswer": 0, "points": 5},
                {"id": "b", "type": "embedded-document", "points": 5},
            ]
        }

        result = engine.grade(worksheet, {"a": 0, "b": "read"})

        assert result.score == Decimal("5")
        assert result.max_score == Decimal("10")
        assert result.percentage == 50
        assert result.feedback[1].correct is False
        assert result.feedback[1].feedback == "Unknown question type"

    def test_empty_worksheet(self, engine: GradingEngine) -> None:
        """Test a worksheet without questions scores 0 of 0."""
        result = engine.grade({"questions": []}, {})

        assert result.feedback == ()
        assert result.max_score == 0
        assert result.percentage == 0

    def test_zero_point_worksheet_percentage(self, engine: GradingEngine) -> None:
        """Test a zero maxScore gives a percentage of 0."""
        worksheet = {"questions": [{"id": "a", "type": "multiple-choice", "correctAnswer": 0}]}

        result = engine.grade(worksheet, {"a": 0})

        assert result.feedback[0].correct is True
        assert result.max_score == 0
        assert result.percentage == 0

    def test_module_function(
        self, sample_worksheet: Worksheet, perfect_answers: dict, test_settings: Settings
    ) -> None:
        """Test grade_submission matches the engine."""
        result = grade_submission(sample_worksheet, perfect_answers, test_settings)

        assert result.score == Decimal("49")

    def test_logs_final_score(
        self,
        engine: GradingEngine,
        sample_worksheet: Worksheet,
        partial_answers: dict,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test the score tuple is logged at INFO."""
        with caplog.at_level(logging.INFO, logger="worksheet_grader"):
            engine.grade(sample_worksheet, partial_answers)

        assert "Graded submission: 19/49 (39%)" in caplog.text


class TestInvalidInput:
    """Tests for rejected worksheets and answer sets."""

    @pytest.mark.parametrize(
        "worksheet, message",
        [
            (None, "Invalid worksheet"),
            ("worksheet", "Invalid worksheet"),
            ({}, "missing questions"),
            ({"questions": None}, "missing questions"),
            ({"questions": "q1"}, "Invalid worksheet"),
            ({"questions": [{"type": "ordering"}]}, "Invalid worksheet"),
        ],
    )
    def test_invalid_worksheet(self, engine: GradingEngine, worksheet: Any, message: str) -> None:
        """Test malformed worksheets raise before any scoring."""
        with pytest.raises(InvalidInputError, match=message):
            engine.grade(worksheet, {})

    @pytest.mark.parametrize("answers", [None, [1, 2], "q1=1"])
    def test_invalid_answers(
        self, engine: GradingEngine, sample_worksheet: Worksheet, answers: Any
    ) -> None:
        """Test a non-mapping answer set is rejected."""
        with pytest.raises(InvalidInputError, match="Invalid answers format") as exc_info:
            engine.grade(sample_worksheet, answers)

        assert exc_info.value.field == "answers"

    def test_error_logged(self, engine: GradingEngine, caplog: pytest.LogCaptureFixture) -> None:
        """Test rejected input is logged before it propagates."""
        with caplog.at_level(logging.ERROR, logger="worksheet_grader"):
            with pytest.raises(InvalidInputError):
                engine.grade({"title": "No questions"}, {})

        assert "Error grading submission" in caplog.text

    def test_missing_questions_field(self, engine: GradingEngine) -> None:
        """Test the error names the missing field."""
        with pytest.raises(InvalidInputError) as exc_info:
            engine.grade({"title": "x"}, {})

        assert exc_info.value.field == "questions"


class TestPassScore:
    """Tests for pass-score resolution."""

    def test_default_when_unset(self, engine: GradingEngine) -> None:
        """Test an unset pass score uses the configured default."""
        worksheet = {"questions": [{"id": "a", "type": "multiple-choice", "correctAnswer": 0, "points": 10}]}

        result = engine.grade(worksheet, {"a": 0})

        assert result.pass_score == 70

    def test_explicit_zero_honoured(self, engine: GradingEngine) -> None:
        """Test a pass score of 0 is not replaced by the default."""
        worksheet = {
            "passScore": 0,
            "questions": [{"id": "a", "type": "multiple-choice", "correctAnswer": 0, "points": 10}],
        }

        result = engine.grade(worksheet, {"a": 1})

        assert result.pass_score == 0
        assert result.percentage == 0
        assert result.passed is True

    def test_configured_default(self, temp_dir) -> None:
        """Test the default comes from settings."""
        settings = Settings(default_pass_score=40, output_directory=temp_dir / "out")
        worksheet = {"questions": [{"id": "a", "type": "multiple-choice", "correctAnswer": 0, "points": 10}]}

        assert GradingEngine(settings).grade(worksheet, {"a": 0}).pass_score == 40

    def test_pass_boundary_inclusive(self, engine: GradingEngine) -> None:
        """Test a percentage equal to the pass score passes."""
        worksheet = {
            "passScore": 50,
            "questions": [
                {"id": "a", "type": "multiple-choice", "correctAnswer": 0, "points": 1},
                {"id": "b", "type": "multiple-choice", "correctAnswer": 0, "points": 1},
            ],
        }

        assert engine.grade(worksheet, {"a": 0, "b": 1}).passed is True

    def test_fractional_pass_score(self, engine: GradingEngine) -> None:
        """Test a fractional pass score is accepted and compared as a number."""
        worksheet = {
            "passScore": 62.5,
            "questions": [
                {"id": "a", "type": "multiple-choice", "correctAnswer": 0, "points": 1},
                {"id": "b", "type": "multiple-choice", "correctAnswer": 0, "points": 1},
            ],
        }

        half = engine.grade(worksheet, {"a": 0, "b": 1})
        full = grade_submission(worksheet, {"a": 0, "b": 0}, engine.settings)

        assert half.pass_score == Decimal("62.5")
        assert half.passed is False
        assert full.passed is True
        assert half.model_dump(mode="json", by_alias=True)["passScore"] == 62.5


class TestResultInvariants:
    """Properties that hold for any graded submission."""

    @pytest.mark.parametrize("answers_fixture", ["perfect_answers", "partial_answers"])
    def test_invariants(
        self,
        engine: GradingEngine,
        sample_worksheet: Worksheet,
        answers_fixture: str,
        request: pytest.FixtureRequest,
    ) -> None:
        """Test totals, ranges and the review flag agree with the entries."""
        result = engine.grade(sample_worksheet, request.getfixturevalue(answers_fixture))

        assert len(result.feedback) == len(sample_worksheet.questions)
        assert result.score == sum(entry.points_earned for entry in result.feedback)
        assert result.max_score == sample_worksheet.total_points
        assert 0 <= result.percentage <= 100
        assert result.passed == (result.percentage >= result.pass_score)
        assert result.requires_manual_review == any(
            entry.requires_manual_review for entry in result.feedback
        )
        for entry in result.feedback:
            assert 0 <= entry.points_earned <= entry.max_points

    def test_grading_is_idempotent(
        self, engine: GradingEngine, sample_worksheet: Worksheet, partial_answers: dict
    ) -> None:
        """Test identical inputs serialise identically."""
        first = engine.grade(sample_worksheet, partial_answers)
        second = engine.grade(sample_worksheet, partial_answers)

        assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)

    def test_inputs_not_mutated(
        self, engine: GradingEngine, sample_worksheet_data: dict, partial_answers: dict
    ) -> None:
        """Test grading leaves the raw inputs untouched."""
        worksheet_before = repr(sample_worksheet_data)
        answers_before = repr(partial_answers)

        engine.grade(sample_worksheet_data, partial_answers)

        assert repr(sample_worksheet_data) == worksheet_before
        assert repr(partial_answers) == answers_before

    def test_serialised_shape(
        self, engine: GradingEngine, sample_worksheet: Worksheet, partial_answers: dict
    ) -> None:
        """Test the JSON form uses camelCase names and plain numbers."""
        data = engine.grade(sample_worksheet, partial_answers).model_dump(mode="json", by_alias=True)

        assert data["score"] == 19
        assert data["maxScore"] == 49
        assert data["percentage"] == 39
        assert data["passed"] is False
        assert data["requiresManualReview"] is True
        assert data["feedback"][2]["questionId"] == "q3"
        assert data["feedback"][2]["pointsEarned"] == 8
        assert data["feedback"][2]["requiresManualReview"] is True


class TestManualReviewQueue:
    """Tests for get_questions_for_manual_review."""

    def test_flagged_entries(
        self, engine: GradingEngine, sample_worksheet: Worksheet, partial_answers: dict
    ) -> None:
        """Test only flagged entries are returned."""
        result = engine.grade(sample_worksheet, partial_answers)

        pending = get_questions_for_manual_review(result.feedback)

        assert [entry.question_id for entry in pending] == ["q3"]

    def test_nothing_flagged(
        self, engine: GradingEngine, sample_worksheet: Worksheet, perfect_answers: dict
    ) -> None:
        """Test a clean submission has an empty queue."""
        result = engine.grade(sample_worksheet, perfect_answers)

        assert get_questions_for_manual_review(result.feedback) == []


class TestAudit:
    """Tests for audit record creation."""

    def test_audit_fields(
        self, engine: GradingEngine, sample_worksheet: Worksheet, partial_answers: dict
    ) -> None:
        """Test the audit captures identifiers, hashes and settings."""
        result = engine.grade(sample_worksheet, partial_answers)

        audit = engine.create_audit(sample_worksheet, partial_answers, result)

        assert audit.worksheet_id == "ws-geo-1"
        assert audit.question_count == 5
        assert audit.pass_score == 70
        assert audit.similarity_threshold == 0.8
        assert len(audit.result_hash) == 64

    def test_hashes_reproducible(
        self, engine: GradingEngine, sample_worksheet: Worksheet, partial_answers: dict
    ) -> None:
        """Test repeated grading yields the same hashes."""
        first = engine.create_audit(
            sample_worksheet, partial_answers, engine.grade(sample_worksheet, partial_answers)
        )
        second = engine.create_audit(
            sample_worksheet, partial_answers, engine.grade(sample_worksheet, partial_answers)
        )

        assert first.audit_id != second.audit_id
        assert first.worksheet_hash == second.worksheet_hash
        assert first.answers_hash == second.answers_hash
        assert first.result_hash == second.result_hash

    def test_hash_changes_with_answers(
        self,
        engine: GradingEngine,
        sample_worksheet: Worksheet,
        partial_answers: dict,
        perfect_answers: dict,
    ) -> None:
        """Test different answers hash differently."""
        partial = engine.create_audit(
            sample_worksheet, partial_answers, engine.grade(sample_worksheet, partial_answers)
        )
        perfect = engine.create_audit(
            sample_worksheet, perfect_answers, engine.grade(sample_worksheet, perfect_answers)
        )

        assert partial.answers_hash != perfect.answers_hash
        assert partial.result_hash != perfect.result_hash


def test_result_is_frozen(sample_worksheet: Worksheet, perfect_answers: dict, test_settings: Settings) -> None:
    """Test results cannot be modified after grading."""
    result: GradingResult = grade_submission(sample_worksheet, perfect_answers, test_settings)

    with pytest.raises(ValidationError):
        result.pass_score = 10  # type: ignore[misc]

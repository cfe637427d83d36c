"""
Pydantic models for the Worksheet Grader.

These models define the strict schemas for:
- Worksheets and their question variants (the authored answer key)
- Grading results with per-question feedback
- Audit records for reproducibility

Input models accept the camelCase names used on the wire (``correctAnswer``,
``passScore``, ...) as well as snake_case. Output models serialize with
camelCase aliases.
"""

import json
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from hashlib import sha256
from typing import Annotated, Any, Literal, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    PlainSerializer,
    StrictInt,
    StrictStr,
    Tag,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# ==============================================================================
# Numeric helpers
# ==============================================================================


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric value to Decimal for precision.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"Invalid numeric value: {value!r}")
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid numeric value: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value!r}")
    return result


def round_half_up(value: Decimal) -> Decimal:
    """Round to a whole number, halves away from zero."""
    return value.quantize(Decimal(1), rounding=ROUND_HALF_UP)


def _decimal_to_number(value: Decimal) -> int | float:
    if value == value.to_integral_value():
        return int(value)
    return float(value)


# Point values are Decimal internally and plain JSON numbers on the wire.
Points = Annotated[Decimal, PlainSerializer(_decimal_to_number, when_used="json")]

# Answer-key values compared without coercion.
KeyValue = Union[StrictInt, StrictStr]


# ==============================================================================
# Question Models
# ==============================================================================


class QuestionType(str, Enum):
    """Gradable question types."""

    MULTIPLE_CHOICE = "multiple-choice"
    CHECKBOX = "checkbox"
    SHORT_ANSWER = "short-answer"
    MATCHING = "matching"
    ORDERING = "ordering"


_GRADABLE_TYPES = frozenset(t.value for t in QuestionType)

_INPUT_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


class QuestionBase(BaseModel):
    """Fields shared by every question variant."""

    model_config = _INPUT_CONFIG

    id: str = Field(..., description="Identifier, unique within a worksheet")

    points: Points = Field(
        default=Decimal(0),
        ge=0,
        description="Maximum score for this question",
    )

    text: str = Field(default="", description="Question prompt shown to students")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Question ids are opaque; numeric ids are kept as their string form."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("points", mode="before")
    @classmethod
    def convert_points(cls, v: Any) -> Decimal:
        """Convert numeric values to Decimal; a missing value counts as zero."""
        if v is None:
            return Decimal(0)
        return to_decimal(v)


class MultipleChoiceQuestion(QuestionBase):
    """Single selection. The answer is the index of the chosen option."""

    type: Literal["multiple-choice"] = "multiple-choice"
    correct_answer: KeyValue
    options: tuple[Any, ...] = ()


class CheckboxQuestion(QuestionBase):
    """Multiple selection. The answer is the list of every selected index."""

    type: Literal["checkbox"] = "checkbox"
    correct_answers: tuple[StrictInt, ...] = ()
    options: tuple[Any, ...] = ()


class ShortAnswerQuestion(QuestionBase):
    """Free text compared against one or more accepted answers."""

    type: Literal["short-answer"] = "short-answer"
    correct_answer: str | tuple[str, ...]
    case_sensitive: bool = False

    @property
    def accepted_answers(self) -> tuple[str, ...]:
        if isinstance(self.correct_answer, str):
            return (self.correct_answer,)
        return self.correct_answer


class MatchingPair(BaseModel):
    """One authored left-to-right match."""

    model_config = _INPUT_CONFIG

    left: str
    right: KeyValue

    @field_validator("left", mode="before")
    @classmethod
    def coerce_left(cls, v: Any) -> Any:
        # Submitted answers are JSON objects, so left items are always string keys
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class MatchingQuestion(QuestionBase):
    """Pair each left item with a right item."""

    type: Literal["matching"] = "matching"
    pairs: tuple[MatchingPair, ...] = ()


class OrderingQuestion(QuestionBase):
    """Arrange items into the canonical order."""

    type: Literal["ordering"] = "ordering"
    correct_order: tuple[KeyValue, ...] = ()


class UnsupportedQuestion(QuestionBase):
    """
    Any question whose type is outside the gradable set.

    Worksheets can embed non-gradable blocks (documents, videos, ...). They
    are kept so feedback stays aligned with the authored question order.
    """

    type: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v: Any) -> str:
        return "" if v is None else str(v)


def _question_tag(value: Any) -> str:
    """Pick the question variant from the ``type`` field."""
    if isinstance(value, dict):
        raw = value.get("type")
    else:
        raw = getattr(value, "type", None)
    if isinstance(raw, QuestionType):
        raw = raw.value
    if isinstance(raw, str) and raw in _GRADABLE_TYPES:
        return raw
    return "unsupported"


Question = Annotated[
    Union[
        Annotated[MultipleChoiceQuestion, Tag("multiple-choice")],
        Annotated[CheckboxQuestion, Tag("checkbox")],
        Annotated[ShortAnswerQuestion, Tag("short-answer")],
        Annotated[MatchingQuestion, Tag("matching")],
        Annotated[OrderingQuestion, Tag("ordering")],
        Annotated[UnsupportedQuestion, Tag("unsupported")],
    ],
    Discriminator(_question_tag),
]

GradableQuestion = Union[
    MultipleChoiceQuestion,
    CheckboxQuestion,
    ShortAnswerQuestion,
    MatchingQuestion,
    OrderingQuestion,
]


class Worksheet(BaseModel):
    """
    An authored worksheet: an ordered question list plus scoring metadata.

    The question list is immutable once loaded.
    """

    model_config = _INPUT_CONFIG

    id: str | None = Field(default=None, description="Worksheet identifier")

    title: str = Field(default="", description="Title of the worksheet")

    questions: tuple[Question, ...] = Field(
        ...,
        description="Questions in authored order",
    )

    pass_score: Points | None = Field(
        default=None,
        ge=0,
        le=100,
        description="Percentage needed to pass; unset means the configured default",
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("pass_score", mode="before")
    @classmethod
    def convert_pass_score(cls, v: Any) -> Decimal | None:
        """Pass scores may be fractional percentages."""
        if v is None:
            return None
        return to_decimal(v)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_points(self) -> Points:
        """Sum of authored points across all questions."""
        return sum((q.points for q in self.questions), Decimal(0))


# ==============================================================================
# Grading Result Models
# ==============================================================================

_OUTPUT_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class QuestionFeedback(BaseModel):
    """
    The grading outcome for a single question.

    ``correct`` is ``None`` only when a human has not settled the question.
    """

    model_config = _OUTPUT_CONFIG

    question_id: str = Field(..., description="Id of the graded question")

    question_type: str = Field(..., description="Type tag of the graded question")

    correct: bool | None = Field(..., description="Whether the answer was fully correct")

    points_earned: Points = Field(..., ge=0, description="Points awarded")

    max_points: Points = Field(..., ge=0, description="Maximum possible points")

    feedback: str = Field(..., description="Explanation shown to the student")

    requires_manual_review: bool = Field(
        default=False,
        description="Whether a human must confirm or override the score",
    )

    reviewed: bool = Field(
        default=False,
        description="Whether a human has overridden the automatic score",
    )

    @field_validator("points_earned", "max_points", mode="before")
    @classmethod
    def convert_to_decimal(cls, v: Any) -> Decimal:
        """Convert numeric values to Decimal for precision."""
        return to_decimal(v)

    @model_validator(mode="after")
    def validate_points_range(self) -> "QuestionFeedback":
        """Ensure awarded points don't exceed max points."""
        if self.points_earned > self.max_points:
            raise ValueError(
                f"Points earned ({self.points_earned}) cannot exceed "
                f"max points ({self.max_points})"
            )
        return self


class GradingResult(BaseModel):
    """
    Complete grading result for one submission.

    Totals are computed from the feedback entries on every access, so
    ``score`` always equals the sum of ``points_earned``.
    """

    model_config = _OUTPUT_CONFIG

    feedback: tuple[QuestionFeedback, ...] = Field(
        default=(),
        description="Per-question outcomes in authored order",
    )

    pass_score: Points = Field(
        ...,
        ge=0,
        le=100,
        description="Percentage needed to pass",
    )

    @field_validator("pass_score", mode="before")
    @classmethod
    def convert_pass_score(cls, v: Any) -> Decimal:
        return to_decimal(v)

    @computed_field(alias="score")  # type: ignore[prop-decorator]
    @property
    def score(self) -> Points:
        """Total points earned."""
        return sum((f.points_earned for f in self.feedback), Decimal(0))

    @computed_field(alias="maxScore")  # type: ignore[prop-decorator]
    @property
    def max_score(self) -> Points:
        """Total points available."""
        return sum((f.max_points for f in self.feedback), Decimal(0))

    @computed_field(alias="percentage")  # type: ignore[prop-decorator]
    @property
    def percentage(self) -> int:
        """Rounded percentage score, 0 when nothing is available."""
        max_score = self.max_score
        if max_score == 0:
            return 0
        return int(round_half_up(self.score / max_score * 100))

    @computed_field(alias="passed")  # type: ignore[prop-decorator]
    @property
    def passed(self) -> bool:
        return self.percentage >= self.pass_score

    @computed_field(alias="requiresManualReview")  # type: ignore[prop-decorator]
    @property
    def requires_manual_review(self) -> bool:
        """Whether any question still waits for a human grader."""
        return any(f.requires_manual_review for f in self.feedback)


# ==============================================================================
# Audit Models
# ==============================================================================


class AuditRecord(BaseModel):
    """
    Immutable audit record for reproducibility.

    Contains hashes of inputs and outputs to enable verification
    that the same inputs produce the same outputs.
    """

    model_config = ConfigDict(frozen=True)

    audit_id: UUID = Field(
        default_factory=uuid4,
        description="Unique identifier for this audit record",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Timestamp of the grading operation",
    )

    worksheet_id: str | None = Field(
        default=None,
        description="Identifier of the graded worksheet, if known",
    )

    worksheet_hash: str = Field(
        ...,
        description="SHA-256 hash of the worksheet definition",
    )

    answers_hash: str = Field(
        ...,
        description="SHA-256 hash of the submitted answers",
    )

    result_hash: str = Field(
        ...,
        description="SHA-256 hash of the grading result",
    )

    question_count: int = Field(
        ...,
        ge=0,
        description="Number of questions graded",
    )

    similarity_threshold: float = Field(
        ...,
        description="Short-answer similarity threshold used",
    )

    pass_score: Points = Field(
        ...,
        description="Pass threshold applied",
    )

    @staticmethod
    def compute_hash(content: str) -> str:
        """Compute SHA-256 hash of content."""
        return sha256(content.encode("utf-8")).hexdigest()

    @staticmethod
    def canonical_json(value: Any) -> str:
        """Serialize a value deterministically for hashing."""
        return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)

"""Pydantic schemas for papers, attempts, answers and reviews."""

from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BeforeValidator,
    ConfigDict,
    Field,
    WithJsonSchema,
    computed_field,
    field_validator,
)

from practice_exam.models.exam import AttemptStatus, SourceKind
from practice_exam.schemas.base import CamelModel, UtcDatetime
from practice_exam.services.scoring import FLAT, MarkingScheme, WeightedMarking
from practice_exam.services.source_ref import SourceRef

# ============================================================================
# Paper Schemas
# ============================================================================


class MarkingConfig(CamelModel):
    """Marking scheme for a paper (flat unless negative marking is wanted)."""

    kind: Literal["flat", "weighted"] = "flat"
    marks: float = Field(1.0, gt=0, le=100, description="Marks per correct answer")
    negative_marks: float = Field(0.0, ge=0, le=100, description="Marks lost per wrong answer")

    def to_scheme(self) -> MarkingScheme:
        if self.kind == "flat":
            return FLAT
        return WeightedMarking(marks=self.marks, negative_marks=self.negative_marks)


def _parse_source_ref(value: Any) -> SourceRef:
    if isinstance(value, SourceRef):
        return value
    if isinstance(value, str):
        return SourceRef.parse(value)
    if isinstance(value, dict):
        ref_id = str(value.get("id") or "").strip()
        if not ref_id:
            raise ValueError("Quiz source is required.")
        return SourceRef(SourceKind(str(value.get("kind", "quiz")).lower()), ref_id)
    raise ValueError("Quiz source is required.")


SourceRefField = Annotated[
    SourceRef,
    BeforeValidator(_parse_source_ref),
    WithJsonSchema(
        {
            "anyOf": [
                {"type": "string", "examples": ["quiz:abc", "topic:42"]},
                {
                    "type": "object",
                    "properties": {
                        "kind": {"type": "string", "enum": [k.value for k in SourceKind]},
                        "id": {"type": "string"},
                    },
                    "required": ["id"],
                },
            ]
        }
    ),
]


class PaperCreate(CamelModel):
    """Request to create an exam paper."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str = Field(..., min_length=1, max_length=255)
    source_ref: SourceRefField
    question_count: int = Field(..., ge=5, le=100)
    time_limit_minutes: int = Field(..., ge=5, le=180)
    difficulty: str | None = Field(None, max_length=50)
    shuffle_questions: bool = True
    marking: MarkingConfig = Field(default_factory=MarkingConfig)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required.")
        return value

    @field_validator("difficulty")
    @classmethod
    def blank_difficulty(cls, value: str | None) -> str | None:
        return value.strip() or None if value else None


class PaperOut(CamelModel):
    id: int
    user_id: str
    title: str
    source_kind: SourceKind
    source_id: str
    question_count: int
    time_limit_minutes: int
    difficulty: str | None
    shuffle_questions: bool
    marking: dict[str, Any] = Field(
        default_factory=lambda: {"kind": "flat"},
        validation_alias=AliasChoices("marking_json", "marking"),
    )
    created_at: UtcDatetime | None
    updated_at: UtcDatetime | None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def source_ref(self) -> str:
        return f"{self.source_kind.value}:{self.source_id}"


class PaperEnvelope(CamelModel):
    paper: PaperOut


class PaperListOut(CamelModel):
    papers: list[PaperOut]


# ============================================================================
# Attempt Schemas
# ============================================================================


class AttemptStart(CamelModel):
    paper_id: int


class AttemptOut(CamelModel):
    id: int
    user_id: str
    paper_id: int | None
    started_at: UtcDatetime
    submitted_at: UtcDatetime | None
    status: AttemptStatus
    time_limit_minutes: int
    total_questions: int
    correct_count: int | None
    wrong_count: int | None
    unattempted_count: int | None
    percent: int | None
    score: float | None
    max_score: float | None
    created_at: UtcDatetime | None = None


class AttemptEnvelope(CamelModel):
    attempt: AttemptOut


class AttemptWithPaperOut(CamelModel):
    attempt: AttemptOut
    paper: PaperOut | None


class AttemptListOut(CamelModel):
    attempts: list[AttemptOut]
    window_start: UtcDatetime | None


class AttemptSubmit(CamelModel):
    expired: bool = False


# ============================================================================
# Answer Schemas
# ============================================================================


class AnswerSave(CamelModel):
    """Save the selection and/or flag for one question; omitted fields are kept."""

    selected_option: str | None = Field(None, max_length=1000)
    is_flagged: bool | None = None

    @field_validator("selected_option", mode="before")
    @classmethod
    def option_to_text(cls, value: Any) -> Any:
        # Numeric option values are stored as text
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class AnswerOut(CamelModel):
    id: int
    attempt_id: int
    question_index: int
    selected_option: str | None
    is_flagged: bool
    is_correct: bool | None
    created_at: UtcDatetime | None
    updated_at: UtcDatetime | None


class AnswerEnvelope(CamelModel):
    answer: AnswerOut


# ============================================================================
# Player & Review Schemas
# ============================================================================


class AttemptQuestionItem(CamelModel):
    """Question as shown while the attempt runs (no answer, no explanation)."""

    question_index: int
    question: dict[str, Any]
    selected_option: str | None
    is_flagged: bool


class AttemptQuestionsOut(CamelModel):
    attempt: AttemptOut
    questions: list[AttemptQuestionItem]


class ReviewItem(CamelModel):
    question_index: int
    question: dict[str, Any]
    selected_option: str | None
    is_flagged: bool
    is_correct: bool | None


class AttemptReviewOut(CamelModel):
    attempt: AttemptOut
    review: list[ReviewItem]

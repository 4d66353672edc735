"""Pydantic models for math problem classification.

Python attributes are snake_case; JSON uses the camelCase names the tutor
frontend reads (``primarySubject``, ``subjectScores``, ...). Both spellings
are accepted on input.
"""

from typing import Any, Dict, List, Literal, Optional, Tuple, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


Subject = Literal["algebra", "geometry", "calculus", "trigonometry", "statistics", "arithmetic"]
GradeLevelName = Literal["middleSchool", "highSchool", "unknown"]

ALL_SUBJECTS: Tuple[str, ...] = get_args(Subject)


class CamelModel(BaseModel):
    """Base model that serialises field names as camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class GradeLevel(CamelModel):
    """Estimated grade band for a problem."""
    level: GradeLevelName = Field(description="middleSchool, highSchool, or unknown (fallback only)")
    grade_range: Tuple[int, int] = Field(alias="range", description="Inclusive [low, high] grade pair")
    confidence: int = Field(ge=0, le=100, description="Grade level confidence (0-100)")
    reasoning: str = Field(default="", description="Human-readable rationale")

    @field_validator("grade_range")
    @classmethod
    def validate_grade_range(cls, v: Tuple[int, int]) -> Tuple[int, int]:
        """Grade range must be an ascending pair."""
        low, high = v
        if low > high:
            raise ValueError(f"grade range must be ascending (got [{low}, {high}])")
        return v


class Complexity(CamelModel):
    """Descriptive complexity metrics, independent of subject and difficulty."""
    score: int = Field(ge=1, le=10)
    factors: List[str] = Field(min_length=1, description="Labels explaining the score")
    variable_count: int = Field(ge=0, default=0)
    operation_count: int = Field(ge=0, default=0)
    word_count: int = Field(ge=0, default=0)


class ClassificationResult(CamelModel):
    """Full classification of one problem text.

    A result with ``error`` set is the degraded fallback returned when the
    input could not be classified; check ``is_fallback`` rather than catching
    exceptions.
    """
    primary_subject: Subject
    subject_scores: Dict[Subject, int]
    difficulty: int = Field(ge=1, le=10)
    grade_level: GradeLevel
    complexity: Complexity
    confidence: int = Field(ge=0, le=100, description="Strength of the winning subject signal")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = Field(default=None, description="Set only on the fallback path")

    @model_validator(mode="after")
    def validate_subject_scores(self) -> "ClassificationResult":
        """Every subject must be scored, with non-negative values."""
        missing = [s for s in ALL_SUBJECTS if s not in self.subject_scores]
        if missing:
            raise ValueError(f"subject_scores is missing subjects: {missing}")
        negative = {s: v for s, v in self.subject_scores.items() if v < 0}
        if negative:
            raise ValueError(f"subject_scores must be non-negative: {negative}")
        return self

    @property
    def is_fallback(self) -> bool:
        return self.error is not None


class BatchItemResult(CamelModel):
    """Outcome of classifying one entry of a batch."""
    index: int = Field(ge=0)
    success: bool
    classification: Optional[ClassificationResult] = None
    error: Optional[str] = None
    original_text: str = Field(default="", description="First 100 characters of the input")


class FeedbackAcknowledgement(CamelModel):
    """Receipt for classification feedback. Feedback has no scoring effect."""
    updated: bool = True
    feedback: Dict[str, Any]
    timestamp: str


# =============================================================================
# HTTP REQUEST / RESPONSE BODIES
# =============================================================================

class AnalyzeRequest(CamelModel):
    """Body of POST /api/classification/analyze."""
    problem_text: Optional[str] = Field(default=None, description="Problem text to classify")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BatchRequest(CamelModel):
    """Body of POST /api/classification/batch."""
    problems: Optional[List[Any]] = Field(default=None, description="Problem texts, max 50")


class FeedbackRequest(CamelModel):
    """Body of PUT /api/classification/{problem_id}/feedback."""
    feedback: Optional[Dict[str, Any]] = None


class ClassificationStats(CamelModel):
    """Aggregate view over stored classifications."""
    total_problems: int = Field(ge=0, default=0)
    subject_distribution: Dict[str, int] = Field(default_factory=dict)
    grade_level_distribution: Dict[str, int] = Field(default_factory=dict)
    average_difficulty: float = 0.0
    average_confidence: float = 0.0

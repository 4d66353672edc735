"""Tests for classification Pydantic models."""

import pytest
from pydantic import ValidationError

from tutor_api.models.classification import (
    ALL_SUBJECTS,
    AnalyzeRequest,
    BatchItemResult,
    ClassificationResult,
    ClassificationStats,
    Complexity,
    GradeLevel,
)


def _result(**overrides) -> ClassificationResult:
    data = {
        "primary_subject": "algebra",
        "subject_scores": {s: 0 for s in ALL_SUBJECTS},
        "difficulty": 4,
        "grade_level": GradeLevel(level="middleSchool", grade_range=(6, 8), confidence=75),
        "complexity": Complexity(score=1, factors=["basic problem"]),
        "confidence": 60,
    }
    data.update(overrides)
    return ClassificationResult(**data)


class TestGradeLevel:
    def test_accepts_alias(self) -> None:
        grade = GradeLevel.model_validate({"level": "highSchool", "range": [9, 12], "confidence": 85})

        assert grade.grade_range == (9, 12)

    def test_rejects_descending_range(self) -> None:
        with pytest.raises(ValidationError, match="ascending"):
            GradeLevel(level="highSchool", grade_range=(12, 9), confidence=85)

    def test_rejects_unknown_level(self) -> None:
        with pytest.raises(ValidationError):
            GradeLevel(level="college", grade_range=(13, 16), confidence=50)


class TestComplexity:
    def test_requires_a_factor(self) -> None:
        with pytest.raises(ValidationError):
            Complexity(score=3, factors=[])

    @pytest.mark.parametrize("score", [0, 11])
    def test_score_bounds(self, score: int) -> None:
        with pytest.raises(ValidationError):
            Complexity(score=score, factors=["basic problem"])


class TestClassificationResult:
    def test_valid_result(self) -> None:
        result = _result()

        assert result.is_fallback is False

    def test_missing_subject_score(self) -> None:
        scores = {s: 0 for s in ALL_SUBJECTS if s != "calculus"}

        with pytest.raises(ValidationError, match="missing subjects"):
            _result(subject_scores=scores)

    def test_negative_subject_score(self) -> None:
        scores = {s: 0 for s in ALL_SUBJECTS}
        scores["geometry"] = -1

        with pytest.raises(ValidationError, match="non-negative"):
            _result(subject_scores=scores)

    @pytest.mark.parametrize("field,value", [
        ("difficulty", 0),
        ("difficulty", 11),
        ("confidence", -1),
        ("confidence", 101),
        ("primary_subject", "topology"),
    ])
    def test_out_of_range(self, field: str, value) -> None:
        with pytest.raises(ValidationError):
            _result(**{field: value})

    def test_error_marks_fallback(self) -> None:
        assert _result(error="bad input").is_fallback is True

    def test_serialises_camel_case(self) -> None:
        data = _result().model_dump(by_alias=True)

        assert {"primarySubject", "subjectScores", "gradeLevel"} <= set(data)
        assert data["gradeLevel"]["range"] == (6, 8)


class TestRequestBodies:
    def test_analyze_request_aliases(self) -> None:
        body = AnalyzeRequest.model_validate({"problemText": "1 + 1"})

        assert body.problem_text == "1 + 1"
        assert body.metadata == {}

    def test_analyze_request_snake_case(self) -> None:
        assert AnalyzeRequest(problem_text="x").problem_text == "x"

    def test_batch_item_defaults(self) -> None:
        item = BatchItemResult(index=0, success=False, error="bad")

        assert item.classification is None
        assert item.model_dump(by_alias=True)["originalText"] == ""

    def test_stats_defaults(self) -> None:
        stats = ClassificationStats().model_dump(by_alias=True)

        assert stats == {
            "totalProblems": 0,
            "subjectDistribution": {},
            "gradeLevelDistribution": {},
            "averageDifficulty": 0.0,
            "averageConfidence": 0.0,
        }

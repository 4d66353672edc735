"""Rule-based math problem classifier.

Scores free-text math problems against the tables in
``classification_patterns`` and produces a ``ClassificationResult``:

1. Subject scores (keywords, notation, structural shape) -> primary subject
2. Difficulty (subject base + complexity indicators + length)
3. Grade level (ordered decision list over subject, difficulty and text)
4. Complexity metrics (independent of 1-3)

Classification is a pure function of its input apart from the timestamp in
``metadata``. It never raises: unusable input yields a fallback result whose
``error`` field describes the problem.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from tutor_api.models.classification import (
    BatchItemResult,
    ClassificationResult,
    Complexity,
    FeedbackAcknowledgement,
    GradeLevel,
    Subject,
)
from tutor_api.services.classification_patterns import (
    ADVANCED_CONCEPTS,
    ADVANCED_DIFFICULTY,
    ADVANCED_MIDDLE_SCHOOL_PATTERNS,
    BASIC_PROBLEM_FACTOR,
    DEFAULT_BASE_DIFFICULTY,
    DEFAULT_SUBJECT,
    DIFFICULTY_INDICATORS,
    DIFFICULTY_LENGTH_STEPS,
    GRADE_LEVEL_PROFILES,
    HIGH_SCHOOL_DIFFICULTY,
    HIGH_SCHOOL_SUBJECTS,
    LENGTHY_PROBLEM_WORDS,
    MAX_COMPLEXITY_SCORE,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    MULTIPLE_OPERATIONS_THRESHOLD,
    MULTIPLE_VARIABLES_THRESHOLD,
    OPERATION_CHAR_PATTERN,
    SUBJECT_BASE_DIFFICULTY,
    SUBJECT_ORDER,
    SUBJECT_PATTERNS,
    VARIABLE_CHAR_PATTERN,
)

logger = logging.getLogger(__name__)

CLASSIFIER_VERSION = "1.0"
MAX_BATCH_SIZE = 50

# A winning raw score at or above this maps to 100% confidence
FULL_CONFIDENCE_SCORE = 10

_LOG_PREVIEW_LENGTH = 100
_BATCH_PREVIEW_LENGTH = 100


class InvalidProblemTextError(ValueError):
    """Problem text is missing, not a string, or empty."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _word_count(text: str) -> int:
    return len(text.split())


def preview_text(text: Any, limit: int) -> str:
    """Return the first ``limit`` characters of ``text``, marking truncation with '...'."""
    if not isinstance(text, str):
        return ""
    return text[:limit] + ("..." if len(text) > limit else "")


# ---------------------------------------------------------------------------
# Subject scoring
# ---------------------------------------------------------------------------

def score_subjects(problem_text: str) -> Dict[Subject, int]:
    """Score every subject against the problem text.

    Per subject: +2 for each keyword found in the lower-cased text, +3 if the
    notation pattern matches the original text, +1 per matching structural
    pattern.
    """
    lowered = problem_text.lower()
    scores: Dict[Subject, int] = {}

    for subject in SUBJECT_ORDER:
        pattern = SUBJECT_PATTERNS[subject]

        score = 2 * sum(1 for keyword in pattern.keywords if keyword in lowered)
        if pattern.symbols.search(problem_text):
            score += 3
        score += sum(1 for structure in pattern.structures if structure.search(problem_text))

        scores[subject] = score

    return scores


def select_primary_subject(scores: Mapping[str, int]) -> Tuple[Subject, int]:
    """Pick the highest scoring subject; earlier subjects win ties.

    Returns ``(DEFAULT_SUBJECT, 0)`` when nothing scored.
    """
    primary: Subject = DEFAULT_SUBJECT
    best = 0
    for subject in SUBJECT_ORDER:
        score = scores.get(subject, 0)
        if score > best:
            primary, best = subject, score
    return primary, best


# ---------------------------------------------------------------------------
# Difficulty
# ---------------------------------------------------------------------------

def assess_difficulty(problem_text: str, subject: str) -> int:
    """Estimate difficulty on a 1-10 scale."""
    difficulty = SUBJECT_BASE_DIFFICULTY.get(subject, DEFAULT_BASE_DIFFICULTY)

    for indicator in DIFFICULTY_INDICATORS:
        if indicator.pattern.search(problem_text):
            difficulty += indicator.points

    # Longer problems tend to be harder
    word_count = _word_count(problem_text)
    for threshold, points in DIFFICULTY_LENGTH_STEPS:
        if word_count > threshold:
            difficulty += points

    return min(MAX_DIFFICULTY, max(MIN_DIFFICULTY, difficulty))


# ---------------------------------------------------------------------------
# Grade level
# ---------------------------------------------------------------------------

def detect_grade_level(problem_text: str, subject: str, difficulty: int) -> GradeLevel:
    """Place the problem in the middle-school or high-school band.

    Rules are evaluated in order and the first match wins:

    1. High-school subject or difficulty >= 7 -> highSchool, confidence 85
    2. Advanced phrasing (quadratics, systems, coordinate plane, slope-intercept)
       or difficulty >= 5 -> highSchool, confidence 70
    3. Otherwise -> middleSchool, confidence 75
    """
    high_school = GRADE_LEVEL_PROFILES["highSchool"]
    middle_school = GRADE_LEVEL_PROFILES["middleSchool"]

    if subject in HIGH_SCHOOL_SUBJECTS or difficulty >= HIGH_SCHOOL_DIFFICULTY:
        return GradeLevel(
            level="highSchool",
            grade_range=high_school.grade_range,
            confidence=85,
            reasoning=f"{subject} and difficulty {difficulty} indicate high school level",
        )

    has_advanced = any(p.search(problem_text) for p in ADVANCED_MIDDLE_SCHOOL_PATTERNS)
    if has_advanced or difficulty >= ADVANCED_DIFFICULTY:
        return GradeLevel(
            level="highSchool",
            grade_range=high_school.grade_range,
            confidence=70,
            reasoning="Advanced concepts suggest high school level",
        )

    return GradeLevel(
        level="middleSchool",
        grade_range=middle_school.grade_range,
        confidence=75,
        reasoning="Basic concepts and moderate difficulty suggest middle school level",
    )


# ---------------------------------------------------------------------------
# Complexity
# ---------------------------------------------------------------------------

def analyze_complexity(problem_text: str) -> Complexity:
    """Compute descriptive complexity metrics.

    ``variable_count`` is the number of a-z letters in the lower-cased text,
    a rough proxy rather than real variable detection.
    """
    lowered = problem_text.lower()
    factors: List[str] = []
    score = 1

    variable_count = len(VARIABLE_CHAR_PATTERN.findall(lowered))
    if variable_count > MULTIPLE_VARIABLES_THRESHOLD:
        factors.append("multiple variables")
        score += 2

    operation_count = len(OPERATION_CHAR_PATTERN.findall(problem_text))
    if operation_count > MULTIPLE_OPERATIONS_THRESHOLD:
        factors.append("multiple operations")
        score += 1

    for concept in ADVANCED_CONCEPTS:
        if concept.pattern.search(lowered):
            factors.append(concept.label)
            score += concept.points

    word_count = _word_count(problem_text)
    if word_count > LENGTHY_PROBLEM_WORDS:
        factors.append("lengthy word problem")
        score += 1

    return Complexity(
        score=min(MAX_COMPLEXITY_SCORE, score),
        factors=factors or [BASIC_PROBLEM_FACTOR],
        variable_count=variable_count,
        operation_count=operation_count,
        word_count=word_count,
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def _classification_confidence(winning_score: int) -> int:
    return min(100, round(winning_score / FULL_CONFIDENCE_SCORE * 100))


def _fallback_result(error: str) -> ClassificationResult:
    """Well-formed result for input that could not be classified."""
    subject_scores: Dict[Subject, int] = {subject: 0 for subject in SUBJECT_ORDER}
    subject_scores["arithmetic"] = 1

    return ClassificationResult(
        primary_subject="arithmetic",
        subject_scores=subject_scores,
        difficulty=5,
        grade_level=GradeLevel(
            level="unknown",
            grade_range=(6, 12),
            confidence=0,
            reasoning="Grade level could not be determined",
        ),
        complexity=Complexity(score=5, factors=["unknown"]),
        confidence=0,
        metadata={"classifiedAt": _now_iso(), "version": CLASSIFIER_VERSION},
        error=error,
    )


def _classify(problem_text: Any, metadata: Optional[Mapping[str, Any]]) -> ClassificationResult:
    if not isinstance(problem_text, str) or not problem_text:
        raise InvalidProblemTextError("Problem text is required for classification")
    if metadata is not None and not isinstance(metadata, Mapping):
        raise TypeError(f"metadata must be a mapping, got {type(metadata).__name__}")

    subject_scores = score_subjects(problem_text)
    primary_subject, winning_score = select_primary_subject(subject_scores)
    difficulty = assess_difficulty(problem_text, primary_subject)
    grade_level = detect_grade_level(problem_text, primary_subject, difficulty)
    complexity = analyze_complexity(problem_text)

    # Caller-supplied keys override the generated ones
    result_metadata: Dict[str, Any] = {
        "classifiedAt": _now_iso(),
        "version": CLASSIFIER_VERSION,
    }
    result_metadata.update(metadata or {})

    return ClassificationResult(
        primary_subject=primary_subject,
        subject_scores=subject_scores,
        difficulty=difficulty,
        grade_level=grade_level,
        complexity=complexity,
        confidence=_classification_confidence(winning_score),
        metadata=result_metadata,
    )


def classify_problem(
    problem_text: Any,
    metadata: Optional[Mapping[str, Any]] = None,
) -> ClassificationResult:
    """Classify a math problem.

    Args:
        problem_text: Raw (typically OCR'd) problem text.
        metadata: Optional caller fields merged into ``result.metadata``;
            caller keys win over ``classifiedAt`` and ``version``.

    Returns:
        ClassificationResult. On invalid input the fallback result is returned
        with ``error`` set, ``confidence`` 0 and grade level ``unknown``.
    """
    try:
        result = _classify(problem_text, metadata)
    except Exception as e:
        logger.warning(
            "Problem classification failed: %s (text=%r)",
            e,
            preview_text(problem_text, _LOG_PREVIEW_LENGTH),
        )
        return _fallback_result(str(e))

    logger.info(
        "Problem classified: subject=%s difficulty=%d grade_level=%s confidence=%d",
        result.primary_subject,
        result.difficulty,
        result.grade_level.level,
        result.confidence,
    )
    return result


def classify_batch(
    problem_texts: Sequence[Any],
    max_batch_size: int = MAX_BATCH_SIZE,
) -> List[BatchItemResult]:
    """Classify each text independently, preserving input order.

    An item that cannot be classified is reported with ``success=False``;
    it never affects its siblings.

    Raises:
        ValueError: If the batch is empty, not a list of items, or larger
            than ``max_batch_size``.
    """
    if isinstance(problem_texts, (str, bytes)) or not isinstance(problem_texts, Sequence):
        raise ValueError("Problems array is required")
    if len(problem_texts) == 0:
        raise ValueError("Problems array is required")
    if len(problem_texts) > max_batch_size:
        raise ValueError(f"Maximum {max_batch_size} problems allowed per batch")

    results: List[BatchItemResult] = []
    for index, text in enumerate(problem_texts):
        classification = classify_problem(text)
        original_text = preview_text(text, _BATCH_PREVIEW_LENGTH)

        if classification.is_fallback:
            results.append(BatchItemResult(
                index=index,
                success=False,
                error=classification.error,
                original_text=original_text,
            ))
        else:
            results.append(BatchItemResult(
                index=index,
                success=True,
                classification=classification,
                original_text=original_text,
            ))

    return results


def summarize_batch(results: Sequence[BatchItemResult]) -> Dict[str, int]:
    successful = sum(1 for r in results if r.success)
    return {
        "total": len(results),
        "successful": successful,
        "failed": len(results) - successful,
    }


def update_classification_with_feedback(
    problem_id: str,
    feedback: Optional[Mapping[str, Any]],
) -> FeedbackAcknowledgement:
    """Acknowledge classification feedback.

    Feedback is recorded in the log only; it does not change any scoring.
    Applying corrections to a stored problem is the caller's job.
    """
    received = dict(feedback) if feedback else {}
    logger.info(
        "Classification feedback received: problem_id=%s fields=%s",
        problem_id,
        list(received),
    )
    return FeedbackAcknowledgement(
        updated=True,
        feedback=received,
        timestamp=_now_iso(),
    )

"""
Classification API endpoints.

Provides endpoints for classifying math problems (single and batch),
recording classification feedback, and reading classification statistics.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping

from fastapi import APIRouter, HTTPException, Request, Response, status

from tutor_api.config import get_settings
from tutor_api.db.problems import apply_classification_feedback, get_problem, list_classifications
from tutor_api.db.supabase_client import get_supabase_client
from tutor_api.middleware.logging import get_request_id
from tutor_api.middleware.rate_limit import limit_analyze, limit_batch, limit_feedback, limit_reads
from tutor_api.models.classification import (
    AnalyzeRequest,
    BatchRequest,
    ClassificationStats,
    FeedbackRequest,
)
from tutor_api.services.classification_patterns import SUBJECT_CATALOGUE
from tutor_api.services.problem_classifier import (
    classify_batch,
    classify_problem,
    preview_text,
    summarize_batch,
    update_classification_with_feedback,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/classification", tags=["classification"])

_ANALYZE_PREVIEW_LENGTH = 200


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_classification_stats(classifications: Iterable[Mapping[str, Any]]) -> ClassificationStats:
    """Aggregate stored classification documents.

    Documents without a ``primarySubject`` are skipped. Averages ignore
    documents whose difficulty/confidence is missing or not numeric and are
    rounded to 2 decimals.
    """
    subjects: Counter = Counter()
    grade_levels: Counter = Counter()
    difficulties: list[float] = []
    confidences: list[float] = []
    total = 0

    for classification in classifications:
        subject = classification.get("primarySubject")
        if not subject:
            continue
        total += 1
        subjects[subject] += 1

        grade_level = classification.get("gradeLevel")
        if isinstance(grade_level, dict) and grade_level.get("level"):
            grade_levels[grade_level["level"]] += 1

        difficulty = classification.get("difficulty")
        if isinstance(difficulty, (int, float)) and not isinstance(difficulty, bool):
            difficulties.append(float(difficulty))

        confidence = classification.get("confidence")
        if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
            confidences.append(float(confidence))

    average_difficulty = sum(difficulties) / len(difficulties) if difficulties else 0.0
    average_confidence = sum(confidences) / len(confidences) if confidences else 0.0

    return ClassificationStats(
        total_problems=total,
        subject_distribution=dict(subjects),
        grade_level_distribution=dict(grade_levels),
        average_difficulty=round(average_difficulty, 2),
        average_confidence=round(average_confidence, 2),
    )


@router.post("/analyze", status_code=status.HTTP_200_OK)
@limit_analyze
async def analyze_problem(request: Request, response: Response, body: AnalyzeRequest) -> Dict[str, Any]:
    """
    Classify a single math problem.

    Returns:
        200: {"success": true, "data": {"classification", "originalText", "processedAt"}}
        400: problemText missing, empty, or longer than max_problem_length

    The classification may be the fallback result (confidence 0, ``error`` set);
    that is still a 200 and is flagged with the X-Classification-Fallback header.
    """
    if not body.problem_text:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Problem text is required for classification"
        )

    max_problem_length = get_settings().max_problem_length
    if len(body.problem_text) > max_problem_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Problem text exceeds maximum length of {max_problem_length} characters"
        )

    logger.info(
        "Classification requested: request_id=%s text_length=%d has_metadata=%s",
        get_request_id(request),
        len(body.problem_text),
        bool(body.metadata),
    )

    classification = classify_problem(body.problem_text, body.metadata)

    response.headers["X-Primary-Subject"] = classification.primary_subject
    response.headers["X-Classification-Fallback"] = "true" if classification.is_fallback else "false"

    return {
        "success": True,
        "data": {
            "classification": classification.model_dump(mode="json", by_alias=True),
            "originalText": preview_text(body.problem_text, _ANALYZE_PREVIEW_LENGTH),
            "processedAt": _now_iso(),
        },
    }


@router.post("/batch", status_code=status.HTTP_200_OK)
@limit_batch
async def analyze_batch(request: Request, response: Response, body: BatchRequest) -> Dict[str, Any]:
    """
    Classify up to ``max_batch_size`` problems in one request.

    Each problem is classified independently; an unusable entry is reported
    as a failed item without affecting the others.

    Returns:
        200: {"success": true, "data": {"results", "summary", "processedAt"}}
        400: problems missing, empty, over the batch limit, or containing an
            over-long text
    """
    if not isinstance(body.problems, list) or len(body.problems) == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Problems array is required"
        )

    settings = get_settings()
    for index, text in enumerate(body.problems):
        if isinstance(text, str) and len(text) > settings.max_problem_length:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Problem {index} exceeds maximum length of "
                    f"{settings.max_problem_length} characters"
                )
            )

    logger.info(
        "Batch classification requested: request_id=%s count=%d",
        get_request_id(request),
        len(body.problems),
    )

    try:
        results = classify_batch(body.problems, max_batch_size=settings.max_batch_size)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )

    summary = summarize_batch(results)
    response.headers["X-Batch-Failed"] = str(summary["failed"])

    return {
        "success": True,
        "data": {
            "results": [r.model_dump(mode="json", by_alias=True) for r in results],
            "summary": summary,
            "processedAt": _now_iso(),
        },
    }


@router.put("/{problem_id}/feedback", status_code=status.HTTP_200_OK)
@limit_feedback
async def submit_feedback(
    request: Request,
    response: Response,
    problem_id: str,
    body: FeedbackRequest,
) -> Dict[str, Any]:
    """
    Apply user corrections to a stored problem's classification.

    Returns:
        200: {"success": true, "data": {"problemId", "updatedClassification", "appliedFeedback", "updatedAt"}}
        400: Missing feedback or malformed problem ID
        404: Problem not found
        500: Database error
    """
    if not body.feedback:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Feedback data is required"
        )

    supabase_client = get_supabase_client()

    try:
        problem = await get_problem(supabase_client, problem_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    if problem is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Problem {problem_id} not found"
        )

    acknowledgement = update_classification_with_feedback(problem_id, body.feedback)

    try:
        await apply_classification_feedback(
            supabase_client,
            problem_id,
            problem.get("classification") or {},
            body.feedback,
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update classification with feedback: {str(e)}"
        )

    return {
        "success": True,
        "data": {
            "problemId": problem_id,
            "updatedClassification": acknowledgement.model_dump(mode="json", by_alias=True),
            "appliedFeedback": body.feedback,
            "updatedAt": _now_iso(),
        },
    }


@router.get("/stats", status_code=status.HTTP_200_OK)
@limit_reads
async def get_classification_stats(request: Request, response: Response) -> Dict[str, Any]:
    """
    Aggregate statistics over stored classifications.

    Returns:
        200: {"success": true, "data": {"stats", "generatedAt"}} where stats has
            totalProblems, subjectDistribution, gradeLevelDistribution,
            averageDifficulty and averageConfidence
        500: Database error
    """
    supabase_client = get_supabase_client()

    try:
        classifications = await list_classifications(supabase_client)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database error: {str(e)}"
        )

    stats = build_classification_stats(classifications)

    return {
        "success": True,
        "data": {
            "stats": stats.model_dump(mode="json", by_alias=True),
            "generatedAt": _now_iso(),
        },
    }


@router.get("/subjects", status_code=status.HTTP_200_OK)
@limit_reads
async def get_subjects(request: Request, response: Response) -> Dict[str, Any]:
    """List the supported subjects with descriptions, typical grades and examples."""
    subjects = {
        subject: {
            "name": info["name"],
            "description": info["description"],
            "typicalGrades": list(info["typicalGrades"]),
            "examples": list(info["examples"]),
        }
        for subject, info in SUBJECT_CATALOGUE.items()
    }

    return {
        "success": True,
        "data": {
            "subjects": subjects,
            "totalSubjects": len(subjects),
            "generatedAt": _now_iso(),
        },
    }

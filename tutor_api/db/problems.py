"""Database functions for stored problems and their classifications.

Each row of the ``problems`` table carries a ``classification`` JSON column
holding a serialised ClassificationResult (camelCase keys) and, once users
have corrected it, a ``feedback`` object with the correction history.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID

from supabase import Client

# PostgREST caps unpaged selects at max-rows (1000 by default)
STATS_PAGE_SIZE = 1000


def _validate_problem_id(problem_id: str) -> None:
    try:
        UUID(problem_id)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid problem_id UUID format: {problem_id}")


def merge_feedback(
    classification: Mapping[str, Any],
    feedback: Mapping[str, Any],
    corrected_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Apply user feedback to a stored classification document.

    ``primarySubject`` and ``difficulty`` replace the stored values and
    ``gradeLevel`` replaces ``gradeLevel.level``. Every feedback field,
    applied or not, is appended to ``feedback.userCorrections`` together with
    the value it replaced.

    Args:
        classification: Stored classification document (not modified)
        feedback: Field -> corrected value
        corrected_at: Timestamp for the corrections (default: now, UTC)

    Returns:
        Dict: New classification document
    """
    stamp = (corrected_at or datetime.now(timezone.utc)).isoformat()
    updated: Dict[str, Any] = copy.deepcopy(dict(classification))

    grade_level = updated.get("gradeLevel")
    if not isinstance(grade_level, dict):
        grade_level = {}

    old_values = {field: updated.get(field) for field in feedback}
    if "gradeLevel" in feedback:
        old_values["gradeLevel"] = grade_level.get("level")

    if feedback.get("primarySubject"):
        updated["primarySubject"] = feedback["primarySubject"]
    if feedback.get("difficulty"):
        updated["difficulty"] = feedback["difficulty"]
    if feedback.get("gradeLevel"):
        grade_level["level"] = feedback["gradeLevel"]
        updated["gradeLevel"] = grade_level

    history = updated.get("feedback")
    if not isinstance(history, dict):
        history = {"userCorrections": []}
    corrections = list(history.get("userCorrections") or [])

    for field, new_value in feedback.items():
        corrections.append({
            "field": field,
            "oldValue": old_values.get(field),
            "newValue": new_value,
            "correctedAt": stamp,
        })

    history["userCorrections"] = corrections
    history["lastUpdated"] = stamp
    updated["feedback"] = history

    return updated


async def get_problem(client: Client, problem_id: str) -> Optional[Dict[str, Any]]:
    """Retrieve a stored problem by ID.

    Args:
        client: Supabase client instance
        problem_id: UUID of the problem

    Returns:
        Optional[Dict]: Problem row, or None if not found

    Raises:
        ValueError: If problem_id is not a UUID
        Exception: If the database query fails
    """
    _validate_problem_id(problem_id)

    try:
        response = (
            client.table('problems')
            .select('id, classification')
            .eq('id', problem_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise Exception(f"Failed to retrieve problem: {str(e)}")

    if not response.data:
        return None
    return response.data[0]


async def apply_classification_feedback(
    client: Client,
    problem_id: str,
    classification: Mapping[str, Any],
    feedback: Mapping[str, Any],
) -> Dict[str, Any]:
    """Merge feedback into a problem's classification and persist it.

    Args:
        client: Supabase client instance
        problem_id: UUID of the problem
        classification: Current stored classification document
        feedback: Corrections submitted by the user

    Returns:
        Dict: The classification document as stored

    Raises:
        ValueError: If problem_id is not a UUID
        Exception: If the database update fails
    """
    _validate_problem_id(problem_id)

    updated = merge_feedback(classification, feedback)

    try:
        response = (
            client.table('problems')
            .update({'classification': updated})
            .eq('id', problem_id)
            .execute()
        )
        if not response.data:
            raise Exception("Update returned no data")
    except Exception as e:
        raise Exception(f"Failed to update problem classification: {str(e)}")

    return updated


async def list_classifications(
    client: Client,
    page_size: int = STATS_PAGE_SIZE,
) -> List[Dict[str, Any]]:
    """Return every stored classification document that has a primary subject.

    Rows are read in pages of ``page_size`` until a short page comes back, so
    the server-side row cap never truncates the result.

    Raises:
        Exception: If the database query fails
    """
    rows: List[Dict[str, Any]] = []
    offset = 0

    while True:
        try:
            response = (
                client.table('problems')
                .select('id, classification')
                .not_.is_('classification', 'null')
                .order('id')
                .range(offset, offset + page_size - 1)
                .execute()
            )
        except Exception as e:
            raise Exception(f"Failed to retrieve classifications: {str(e)}")

        page = response.data or []
        rows.extend(page)
        if len(page) < page_size:
            break
        offset += page_size

    classifications: List[Dict[str, Any]] = []
    for row in rows:
        classification = row.get('classification')
        if isinstance(classification, dict) and classification.get('primarySubject'):
            classifications.append(classification)
    return classifications

"""Database operations for user feedback (dialectic_feedback)."""

from typing import Any

from dialectic_storage.core.logging import get_logger
from dialectic_storage.db.supabase_client import get_supabase

logger = get_logger(__name__)

FEEDBACK_TABLE = "dialectic_feedback"


def insert_feedback(record: dict[str, Any]) -> dict[str, Any]:
    """Insert a feedback row.

    Returns:
        Created row

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()

    response = supabase.table(FEEDBACK_TABLE).insert(record).execute()

    if not response.data:
        raise ValueError("Failed to create feedback record")

    feedback = response.data[0]
    logger.info(f"Created feedback {feedback['id']} for stage {record.get('stage_slug')}")
    return feedback


def list_stage_feedback(
    session_id: str,
    stage_slug: str,
    user_id: str,
    iteration_number: int,
) -> list[dict[str, Any]]:
    """List a user's feedback for one stage iteration, newest first."""
    supabase = get_supabase()

    response = (
        supabase.table(FEEDBACK_TABLE)
        .select("*")
        .eq("session_id", session_id)
        .eq("stage_slug", stage_slug)
        .eq("user_id", user_id)
        .eq("iteration_number", iteration_number)
        .order("created_at", desc=True)
        .execute()
    )

    return response.data or []

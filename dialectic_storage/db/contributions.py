"""Database operations for model contributions (dialectic_contributions)."""

from typing import Any

from dialectic_storage.core.logging import get_logger
from dialectic_storage.db.supabase_client import get_supabase

logger = get_logger(__name__)

CONTRIBUTIONS_TABLE = "dialectic_contributions"

CHAIN_COLUMNS = (
    "id, session_id, document_relationships, storage_bucket, storage_path, "
    "file_name, created_at, target_contribution_id, is_latest_edit"
)


def get_contribution(contribution_id: str) -> dict[str, Any] | None:
    """Get a contribution by ID.

    Args:
        contribution_id: Contribution UUID

    Returns:
        Contribution row or None
    """
    supabase = get_supabase()

    response = (
        supabase.table(CONTRIBUTIONS_TABLE)
        .select("*")
        .eq("id", contribution_id)
        .execute()
    )

    return response.data[0] if response.data else None


def list_session_contributions(session_id: str) -> list[dict[str, Any]]:
    """List every contribution of a session with the columns chain walking needs.

    Args:
        session_id: Session UUID

    Returns:
        Rows ordered by creation time
    """
    supabase = get_supabase()

    response = (
        supabase.table(CONTRIBUTIONS_TABLE)
        .select(CHAIN_COLUMNS)
        .eq("session_id", session_id)
        .order("created_at")
        .execute()
    )

    return response.data or []


def list_latest_contributions(
    session_id: str,
    stage_slug: str,
    iteration_number: int,
) -> list[dict[str, Any]]:
    """List the latest-edit contributions of a stage, newest first.

    Args:
        session_id: Session UUID
        stage_slug: Stage slug
        iteration_number: Iteration the contributions belong to

    Returns:
        Contribution rows
    """
    supabase = get_supabase()

    response = (
        supabase.table(CONTRIBUTIONS_TABLE)
        .select("*")
        .eq("session_id", session_id)
        .eq("stage", stage_slug)
        .eq("iteration_number", iteration_number)
        .eq("is_latest_edit", True)
        .order("created_at", desc=True)
        .execute()
    )

    return response.data or []


def insert_contribution(record: dict[str, Any]) -> dict[str, Any]:
    """Insert a contribution row.

    Returns:
        Created row

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()

    response = supabase.table(CONTRIBUTIONS_TABLE).insert(record).execute()

    if not response.data:
        raise ValueError("Failed to create contribution record")

    contribution = response.data[0]
    logger.info(
        f"Created contribution {contribution['id']}: {record.get('file_name')}",
        extra={"contribution_id": contribution["id"]},
    )
    return contribution


def set_latest_edit(contribution_ids: list[str], is_latest: bool) -> None:
    """Set is_latest_edit on a set of contributions."""
    if not contribution_ids:
        return
    supabase = get_supabase()

    query = supabase.table(CONTRIBUTIONS_TABLE).update({"is_latest_edit": is_latest})
    if len(contribution_ids) == 1:
        query = query.eq("id", contribution_ids[0])
    else:
        query = query.in_("id", contribution_ids)
    query.execute()

"""Database operations for project resources (dialectic_project_resources)."""

from typing import Any

from dialectic_storage.core.logging import get_logger
from dialectic_storage.db.supabase_client import get_supabase

logger = get_logger(__name__)

PROJECT_RESOURCES_TABLE = "dialectic_project_resources"

STORAGE_LOCATION_CONFLICT = "storage_bucket,storage_path,file_name"


def insert_project_resource(record: dict[str, Any]) -> dict[str, Any]:
    """Insert a project resource row.

    Returns:
        Created row

    Raises:
        ValueError: If the insert returned no row
    """
    supabase = get_supabase()

    response = supabase.table(PROJECT_RESOURCES_TABLE).insert(record).execute()

    if not response.data:
        raise ValueError("Failed to create project resource record")

    resource = response.data[0]
    logger.info(
        f"Created project resource {resource['id']}: {record.get('resource_type')} "
        f"{record.get('file_name')}"
    )
    return resource


def upsert_project_resource(record: dict[str, Any]) -> dict[str, Any]:
    """Insert or replace a resource keyed by its storage location.

    Used for artifacts regenerated in place, such as project exports.
    """
    supabase = get_supabase()

    response = (
        supabase.table(PROJECT_RESOURCES_TABLE)
        .upsert(record, on_conflict=STORAGE_LOCATION_CONFLICT)
        .execute()
    )

    if not response.data:
        raise ValueError("Failed to upsert project resource record")

    return response.data[0]


def list_stage_resources(
    project_id: str,
    session_id: str,
    stage_slug: str,
    iteration_number: int,
    resource_type: str,
) -> list[dict[str, Any]]:
    """List resources of one type for a stage iteration, newest first."""
    supabase = get_supabase()

    response = (
        supabase.table(PROJECT_RESOURCES_TABLE)
        .select("*")
        .eq("project_id", project_id)
        .eq("session_id", session_id)
        .eq("stage_slug", stage_slug)
        .eq("iteration_number", iteration_number)
        .eq("resource_type", resource_type)
        .order("created_at", desc=True)
        .execute()
    )

    return response.data or []

"""Lookup of stored-file rows across the three file tables."""

from typing import Any

from dialectic_storage.db.contributions import CONTRIBUTIONS_TABLE
from dialectic_storage.db.feedback import FEEDBACK_TABLE
from dialectic_storage.db.project_resources import PROJECT_RESOURCES_TABLE
from dialectic_storage.db.supabase_client import get_supabase

FILE_TABLES = (CONTRIBUTIONS_TABLE, FEEDBACK_TABLE, PROJECT_RESOURCES_TABLE)


def get_file_record(table: str, file_id: str) -> dict[str, Any] | None:
    """Get the storage location columns of a file row.

    Args:
        table: One of FILE_TABLES
        file_id: Row UUID

    Returns:
        Row with storage_bucket, storage_path, file_name and mime_type, or None

    Raises:
        ValueError: If table is not a file table
    """
    if table not in FILE_TABLES:
        raise ValueError(f"Unsupported file table '{table}'")
    supabase = get_supabase()

    response = (
        supabase.table(table)
        .select("id, storage_bucket, storage_path, file_name, mime_type")
        .eq("id", file_id)
        .execute()
    )

    return response.data[0] if response.data else None

"""Supabase Storage operations on the content bucket."""

from typing import Any

from dialectic_storage.core.logging import get_logger
from dialectic_storage.db.supabase_client import get_supabase

logger = get_logger(__name__)


def upload_to_storage(
    bucket: str,
    path: str,
    content: bytes | str,
    content_type: str,
    upsert: bool,
) -> None:
    """Upload content to a bucket path.

    Args:
        bucket: Bucket name
        path: Full object path (directory + filename)
        content: Bytes or text (encoded as UTF-8)
        content_type: MIME type
        upsert: Overwrite an existing object when True

    Raises:
        Exception: Storage error from the client; a name collision surfaces as a
            409 / "already exists" error when upsert is False
    """
    supabase = get_supabase()
    data = content.encode("utf-8") if isinstance(content, str) else content

    supabase.storage.from_(bucket).upload(
        path=path,
        file=data,
        file_options={
            "content-type": content_type,
            "upsert": "true" if upsert else "false",
        },
    )


def download_from_storage(bucket: str, path: str) -> bytes:
    """Download an object's bytes."""
    supabase = get_supabase()
    return supabase.storage.from_(bucket).download(path)


def list_storage_directory(bucket: str, directory: str) -> list[dict[str, Any]]:
    """List the entries directly under a directory.

    Returns:
        Entry dicts; each has at least a ``name`` key
    """
    supabase = get_supabase()
    return supabase.storage.from_(bucket).list(directory) or []


def remove_from_storage(bucket: str, paths: list[str]) -> None:
    """Remove exactly the given object paths."""
    if not paths:
        return
    supabase = get_supabase()
    supabase.storage.from_(bucket).remove(paths)


def create_signed_url(bucket: str, path: str, expires_in: int) -> str | None:
    """Create a temporary download URL for an object.

    Args:
        bucket: Bucket name
        path: Full object path
        expires_in: Lifetime in seconds

    Returns:
        Signed URL, or None when the response carried none
    """
    supabase = get_supabase()
    signed = supabase.storage.from_(bucket).create_signed_url(path, expires_in)
    return signed.get("signedURL") or signed.get("signedUrl")


def is_conflict_error(error: Exception) -> bool:
    """Whether a storage error means the object path is already taken."""
    status = getattr(error, "status", None) or getattr(error, "status_code", None)
    message = getattr(error, "message", None)

    payload = error.args[0] if error.args else None
    if isinstance(payload, dict):
        status = status or payload.get("statusCode") or payload.get("status")
        message = message or payload.get("message") or payload.get("error")

    if str(status) == "409":
        return True

    text = str(message or error).lower()
    return "already exists" in text or "duplicate" in text

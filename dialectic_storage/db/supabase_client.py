"""Supabase client shared by the table accessors and the storage helpers."""

from functools import lru_cache

from supabase import Client, create_client

from dialectic_storage.core.config import get_settings
from dialectic_storage.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """
    Get Supabase client instance (cached singleton).

    The service role key is used because bucket uploads, rollbacks and
    inserts into the dialectic tables all run on behalf of the pipeline,
    not an end user.

    Returns:
        Supabase client bound to the configured project

    Raises:
        RuntimeError: If settings cannot be loaded or the client cannot be created
    """
    try:
        settings = get_settings()
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize Supabase client for content storage: {e}") from e

    logger.info(
        f"Supabase client ready for {settings.SUPABASE_URL} "
        f"(content bucket {settings.SB_CONTENT_STORAGE_BUCKET})"
    )
    return client

"""API endpoints for registering uploads and signing downloads."""

from typing import Annotated

from fastapi import APIRouter, Body, HTTPException, Path

from dialectic_storage.core.logging import get_logger
from dialectic_storage.core.schemas_storage import FileManagerResponse, UploadContext
from dialectic_storage.db.file_records import FILE_TABLES
from dialectic_storage.services.file_manager import FileManagerService

logger = get_logger(__name__)

router = APIRouter()


@router.post("/register")
def register_file(context: Annotated[UploadContext, Body()]) -> FileManagerResponse:
    """Upload content and insert its database row.

    Text content only; the body's ``kind`` selects the target table.

    Raises:
        HTTPException 400: If the upload or registration failed
    """
    response = FileManagerService().upload_and_register_file(context)
    if response.error:
        logger.warning(
            f"Registration failed for {context.kind} "
            f"({context.path_context.file_type.value}): {response.error.message}"
        )
        raise HTTPException(status_code=400, detail=response.error.model_dump())
    return response


@router.get("/{table}/{file_id}/signed-url")
def get_signed_url(
    table: str,
    file_id: Annotated[str, Path(min_length=1)],
) -> dict:
    """Create a temporary download URL for a registered file.

    Raises:
        HTTPException 400: If the table is not a file table
        HTTPException 404: If the row or URL could not be produced
    """
    if table not in FILE_TABLES:
        raise HTTPException(status_code=400, detail=f"Unsupported file table '{table}'")

    result = FileManagerService().get_file_signed_url(file_id, table)
    if result.error:
        raise HTTPException(status_code=404, detail=result.error)
    return {"signed_url": result.signed_url}

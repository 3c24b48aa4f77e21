"""API endpoints for computing and parsing storage paths."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from dialectic_storage.core.logging import get_logger
from dialectic_storage.core.path_constructor import PathConstructionError, construct_storage_path
from dialectic_storage.core.path_deconstructor import deconstruct_storage_path
from dialectic_storage.core.schemas_storage import DeconstructedPath, PathContext
from dialectic_storage.core.stage_dirs import get_default_mapper

logger = get_logger(__name__)

router = APIRouter()


class ConstructPathResponse(BaseModel):
    """Constructed directory, filename and the joined object path."""

    storage_path: str
    file_name: str
    full_path: str


class DeconstructPathRequest(BaseModel):
    """Stored location to parse."""

    storage_path: str = Field(..., description="Directory inside the bucket")
    file_name: str = Field(..., min_length=1, description="Filename inside storage_path")


@router.post("/construct")
def construct_path(context: PathContext) -> ConstructPathResponse:
    """Compute the storage directory and filename for an artifact.

    Raises:
        HTTPException 422: If the context lacks fields its file type needs
    """
    try:
        constructed = construct_storage_path(context)
    except PathConstructionError as e:
        logger.info(f"Rejected path context for {context.file_type.value}: {e}")
        raise HTTPException(status_code=422, detail=str(e)) from e

    return ConstructPathResponse(
        storage_path=constructed.storage_path,
        file_name=constructed.file_name,
        full_path=constructed.full_path,
    )


@router.post("/deconstruct")
def deconstruct_path(request: DeconstructPathRequest) -> DeconstructedPath:
    """Recover structural metadata from a stored directory and filename."""
    return deconstruct_storage_path(request.storage_path, request.file_name, get_default_mapper())

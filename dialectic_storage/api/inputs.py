"""API endpoints for stage input gathering."""

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from dialectic_storage.core.logging import get_logger
from dialectic_storage.core.schemas_inputs import ProjectContext, SessionContext, SourceDocument
from dialectic_storage.services.input_gathering import InputGatheringError, gather_inputs_for_stage

logger = get_logger(__name__)

router = APIRouter()


class GatherInputsRequest(BaseModel):
    """Stage rules plus the project, session and iteration to resolve them in."""

    rules: Any = Field(..., description="Input rules; malformed rules gather nothing")
    project: ProjectContext
    session: SessionContext
    iteration_number: int = Field(..., ge=0)


class GatherInputsResponse(BaseModel):
    """Gathered source documents."""

    documents: list[SourceDocument]
    total: int


@router.post("/gather")
def gather_inputs(request: GatherInputsRequest) -> GatherInputsResponse:
    """Download every source the rules ask for.

    Raises:
        HTTPException 422: If a required source is missing or unreadable
    """
    try:
        documents = gather_inputs_for_stage(
            request.rules, request.project, request.session, request.iteration_number
        )
    except InputGatheringError as e:
        logger.warning(f"Input gathering failed for stage {e.stage_slug}: {e}")
        raise HTTPException(status_code=422, detail=str(e)) from e

    return GatherInputsResponse(documents=documents, total=len(documents))

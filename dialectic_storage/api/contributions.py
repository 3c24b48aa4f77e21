"""API endpoints for contribution chains."""

from fastapi import APIRouter, HTTPException

from dialectic_storage.core.schemas_storage import AssemblyResult
from dialectic_storage.services.document_assembly import assemble_and_save_final_document

router = APIRouter()


@router.post("/{contribution_id}/assemble")
def assemble_document(contribution_id: str) -> AssemblyResult:
    """Concatenate a document's continuation chain onto its root path.

    Raises:
        HTTPException 409: If the chain is missing, broken or could not be written
    """
    result = assemble_and_save_final_document(contribution_id)
    if result.error:
        raise HTTPException(status_code=409, detail=result.error)
    return result

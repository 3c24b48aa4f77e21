"""Pydantic schemas for storage paths, uploads and assembly results."""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from dialectic_storage.core.file_types import FileType


class PathContext(BaseModel):
    """Everything needed to place one artifact in the content bucket."""

    model_config = ConfigDict(frozen=True)

    file_type: FileType = Field(..., description="Kind of artifact being written")
    project_id: str | None = Field(None, description="Project UUID; the bucket root")
    session_id: str | None = Field(None, description="Session UUID")
    iteration: int | None = Field(None, ge=0, description="Iteration number")
    stage_slug: str | None = Field(None, description="Stage slug (thesis, antithesis...)")
    model_slug: str | None = Field(None, description="Model identifier used in filenames")
    attempt_count: int | None = Field(
        None, ge=0, description="Retry counter embedded in the filename"
    )
    document_key: str | None = Field(None, description="Document key, e.g. business_case")
    contribution_type: str | None = Field(
        None, description="Role of the output; may differ from the stage for synthesis roles"
    )
    source_model_slugs: list[str] | None = Field(
        None, description="Ordered source models (critique target, merge inputs)"
    )
    source_anchor_type: str | None = Field(None, description="Document type of the anchor")
    source_anchor_model_slug: str | None = Field(None, description="Model that wrote the anchor")
    source_attempt_count: int | None = Field(
        None, ge=0, description="Attempt count of the anchor document"
    )
    paired_model_slug: str | None = Field(None, description="Model paired with the anchor")
    is_continuation: bool = Field(False, description="Whether this chunk continues another")
    turn_index: int | None = Field(
        None, description="Continuation segment number; must be at least 1 for continuations"
    )
    original_file_name: str | None = Field(None, description="User-supplied filename")
    step_name: str | None = Field(None, description="Planner step name")
    original_storage_path: str | None = Field(
        None, description="Directory of the document a feedback file critiques"
    )
    original_base_name: str | None = Field(
        None, description="Base filename of the document a feedback file critiques"
    )
    source_contribution_id: str | None = Field(
        None, description="Contribution a project resource was rendered from"
    )


class ConstructedPath(BaseModel):
    """Directory and filename computed for a path context."""

    storage_path: str = Field(..., description="Directory inside the bucket")
    file_name: str = Field(..., description="Filename inside storage_path")

    @property
    def full_path(self) -> str:
        return f"{self.storage_path}/{self.file_name}"


class DeconstructedPath(BaseModel):
    """Structural metadata recovered from a stored directory and filename."""

    original_project_id: str | None = None
    short_session_id: str | None = None
    iteration: int | None = None
    stage_dir_name: str | None = None
    stage_slug: str | None = None
    model_slug: str | None = None
    attempt_count: int | None = None
    document_key: str | None = None
    contribution_type: str | None = None
    source_model_slug: str | None = None
    source_model_slugs: list[str] | None = None
    source_anchor_type: str | None = None
    source_attempt_count: int | None = None
    source_anchor_model_slug: str | None = None
    paired_model_slug: str | None = None
    step_name: str | None = None
    is_continuation: bool = False
    turn_index: int | None = None
    is_work_artifact: bool = False
    file_type_guess: FileType | None = None
    parsed_file_name: str | None = None
    error: str | None = None


# =============================================================================
# Upload contexts
# =============================================================================


class _UploadContextBase(BaseModel):
    path_context: PathContext
    file_content: bytes | str = Field(..., description="Content to upload")
    mime_type: str = Field(..., description="MIME type sent to storage")
    size_bytes: int = Field(..., ge=0, description="Content size in bytes")
    user_id: str | None = Field(None, description="User the row belongs to")
    description: str | None = Field(None, description="Free-form description")


class ResourceUploadContext(_UploadContextBase):
    """Upload of a project resource (readme, rendered document, export...)."""

    kind: Literal["resource"] = "resource"
    resource_type_for_db: str | None = Field(
        None, description="resource_type column; defaults to the file type"
    )


class ContributionMetadata(BaseModel):
    """Row fields for a model-generated chunk."""

    iteration_number: int = Field(..., ge=0)
    model_id_used: str
    model_name_display: str
    stage_slug: str | None = None
    contribution_type: str | None = None
    raw_json_response_content: Any | None = Field(
        None, description="Provider response stored beside the chunk"
    )
    tokens_used_input: int | None = None
    tokens_used_output: int | None = None
    processing_time_ms: int | None = None
    prompt_template_id_used: str | None = None
    citations: list[dict[str, Any]] | None = None
    error_details: str | None = None
    is_continuation: bool = False
    turn_index: int | None = None
    target_contribution_id: str | None = Field(
        None, description="Previous chunk in the chain; required for continuations"
    )
    document_relationships: dict[str, Any] | None = None
    edit_version: int = 1
    is_latest_edit: bool = True
    original_model_contribution_id: str | None = None


class ModelContributionUploadContext(_UploadContextBase):
    """Upload of a model output chunk."""

    kind: Literal["model_contribution"] = "model_contribution"
    contribution_metadata: ContributionMetadata


class UserFeedbackUploadContext(_UploadContextBase):
    """Upload of user feedback on a stage or document."""

    kind: Literal["user_feedback"] = "user_feedback"
    feedback_type_for_db: str | None = None
    resource_description_for_db: dict[str, Any] | None = None


UploadContext = Annotated[
    Union[ResourceUploadContext, ModelContributionUploadContext, UserFeedbackUploadContext],
    Field(discriminator="kind"),
]


# =============================================================================
# Results
# =============================================================================


class FileManagerError(BaseModel):
    """Failure description returned instead of raising."""

    message: str
    details: str | None = None


class FileManagerResponse(BaseModel):
    """Either the inserted row or an error."""

    record: dict[str, Any] | None = None
    error: FileManagerError | None = None


class AssemblyResult(BaseModel):
    """Final path of an assembled document or an error."""

    final_path: str | None = None
    error: str | None = None


class SignedUrlResult(BaseModel):
    """Signed URL or an error."""

    signed_url: str | None = None
    error: str | None = None

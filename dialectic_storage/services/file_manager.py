"""Upload artifacts to the content bucket and register them in the database.

Every registration runs in the same order: compute the path, upload the blob,
optionally upload the raw provider response beside it, then insert the row.
If the row cannot be written, only the objects this call uploaded are removed
from storage.
"""

import json
import logging
from typing import Any

from dialectic_storage.core.config import get_settings
from dialectic_storage.core.file_types import FileType
from dialectic_storage.core.logging import get_logger, log_with_context
from dialectic_storage.core.path_constructor import (
    PathConstructionError,
    StoragePathConstructor,
    get_default_constructor,
)
from dialectic_storage.core.schemas_storage import (
    AssemblyResult,
    ConstructedPath,
    FileManagerError,
    FileManagerResponse,
    ModelContributionUploadContext,
    PathContext,
    ResourceUploadContext,
    SignedUrlResult,
    UploadContext,
    UserFeedbackUploadContext,
)
from dialectic_storage.db import contributions as contributions_db
from dialectic_storage.db import feedback as feedback_db
from dialectic_storage.db import file_records as file_records_db
from dialectic_storage.db import project_resources as resources_db
from dialectic_storage.db import storage as storage_db

logger = get_logger(__name__)

UPLOAD_FAILED_MESSAGE = "Main content storage upload failed"
REGISTRATION_FAILED_MESSAGE = "Database registration failed after successful upload."


class UploadRetriesExhaustedError(Exception):
    """Every attempt count up to the bound collided with an existing object."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to upload file after {attempts} attempts due to filename collisions."
        )


class RegistrationValidationError(ValueError):
    """Upload context is missing fields the target table needs."""


class FileManagerService:
    """Registers uploaded files in the contributions, feedback and resources tables."""

    def __init__(
        self,
        bucket: str | None = None,
        constructor: StoragePathConstructor | None = None,
        max_upload_attempts: int | None = None,
    ):
        settings = get_settings()
        self.bucket = bucket or settings.SB_CONTENT_STORAGE_BUCKET
        self.constructor = constructor or get_default_constructor()
        self.max_upload_attempts = max_upload_attempts or settings.MAX_UPLOAD_ATTEMPTS
        self.signed_url_expiry = settings.SIGNED_URL_EXPIRY_SECONDS

    # =========================================================================
    # Registration
    # =========================================================================

    def upload_and_register_file(self, context: UploadContext) -> FileManagerResponse:
        """
        Upload a file and insert its database row.

        Model contributions never overwrite: on a name collision the attempt
        count is bumped and the upload retried with a fresh path. Other kinds
        overwrite in place.

        Args:
            context: Resource, model contribution or user feedback upload context

        Returns:
            FileManagerResponse with the inserted row, or an error
        """
        path_context = self._storage_path_context(context)

        try:
            if isinstance(context, ModelContributionUploadContext):
                constructed, path_context = self._upload_with_retries(context, path_context)
            else:
                constructed = self.constructor.construct(path_context)
                storage_db.upload_to_storage(
                    self.bucket,
                    constructed.full_path,
                    context.file_content,
                    context.mime_type,
                    upsert=True,
                )
        except PathConstructionError as e:
            logger.error(f"Invalid path context for {path_context.file_type.value}: {e}")
            return _error_response("Invalid path context", str(e))
        except Exception as e:
            logger.error(f"Storage upload failed for {path_context.file_type.value}: {e}")
            return _error_response(UPLOAD_FAILED_MESSAGE, str(e))

        raw_json_path = None
        if (
            isinstance(context, ModelContributionUploadContext)
            and context.contribution_metadata.raw_json_response_content is not None
        ):
            raw_json_path = self._upload_raw_json(context, path_context, constructed)

        try:
            record = self._register(context, path_context, constructed, raw_json_path)
        except RegistrationValidationError as e:
            logger.error(f"Rejected registration of {constructed.full_path}: {e}")
            self._rollback_upload(constructed, raw_json_path)
            return _error_response(str(e))
        except Exception as e:
            logger.error(f"Database registration failed for {constructed.full_path}: {e}")
            self._rollback_upload(constructed, raw_json_path)
            return _error_response(REGISTRATION_FAILED_MESSAGE, _describe_db_error(e))

        if isinstance(context, ModelContributionUploadContext):
            self._retire_parent(context.contribution_metadata.target_contribution_id)

        log_with_context(
            logger,
            logging.INFO,
            f"Registered {context.kind} file",
            storage_path=constructed.storage_path,
            file_name=constructed.file_name,
            record_id=record.get("id"),
        )
        return FileManagerResponse(record=record)

    def _storage_path_context(self, context: UploadContext) -> PathContext:
        if isinstance(context, ModelContributionUploadContext):
            meta = context.contribution_metadata
            if meta.is_continuation:
                return context.path_context.model_copy(
                    update={"is_continuation": True, "turn_index": meta.turn_index}
                )
        return context.path_context

    def _upload_with_retries(
        self,
        context: ModelContributionUploadContext,
        path_context: PathContext,
    ) -> tuple[ConstructedPath, PathContext]:
        """Upload without overwrite, bumping the attempt count on each collision."""
        for attempt in range(self.max_upload_attempts):
            attempt_context = path_context.model_copy(update={"attempt_count": attempt})
            constructed = self.constructor.construct(attempt_context)
            try:
                storage_db.upload_to_storage(
                    self.bucket,
                    constructed.full_path,
                    context.file_content,
                    context.mime_type,
                    upsert=False,
                )
            except Exception as e:
                if not storage_db.is_conflict_error(e):
                    raise
                logger.info(f"Path {constructed.full_path} already exists, retrying")
                continue
            return constructed, attempt_context

        raise UploadRetriesExhaustedError(self.max_upload_attempts)

    def _upload_raw_json(
        self,
        context: ModelContributionUploadContext,
        path_context: PathContext,
        constructed: ConstructedPath,
    ) -> str | None:
        """Upload the provider response beside the chunk; failures are non-fatal."""
        raw_context = path_context.model_copy(
            update={"file_type": FileType.MODEL_CONTRIBUTION_RAW_JSON}
        )
        try:
            raw_path = self.constructor.construct(raw_context)
            storage_db.upload_to_storage(
                self.bucket,
                raw_path.full_path,
                json.dumps(context.contribution_metadata.raw_json_response_content),
                "application/json",
                upsert=True,
            )
        except Exception as e:
            logger.warning(f"Raw JSON response upload failed for {constructed.file_name}: {e}")
            return None
        return raw_path.full_path

    def _register(
        self,
        context: UploadContext,
        path_context: PathContext,
        constructed: ConstructedPath,
        raw_json_path: str | None,
    ) -> dict[str, Any]:
        location = {
            "storage_bucket": self.bucket,
            "storage_path": constructed.storage_path,
            "file_name": constructed.file_name,
            "mime_type": context.mime_type,
            "size_bytes": context.size_bytes,
        }

        if isinstance(context, ResourceUploadContext):
            return self._register_resource(context, path_context, location)
        if isinstance(context, ModelContributionUploadContext):
            return self._register_contribution(context, path_context, location, raw_json_path)
        if isinstance(context, UserFeedbackUploadContext):
            return self._register_feedback(context, path_context, location)
        raise TypeError(f"Unhandled upload context kind: {type(context).__name__}")

    def _register_resource(
        self,
        context: ResourceUploadContext,
        path_context: PathContext,
        location: dict[str, Any],
    ) -> dict[str, Any]:
        description: dict[str, Any] = {"type": path_context.file_type.value}
        if context.description:
            description["originalDescription"] = context.description

        record = {
            "project_id": path_context.project_id,
            "session_id": path_context.session_id,
            "user_id": context.user_id,
            "stage_slug": path_context.stage_slug,
            "iteration_number": path_context.iteration,
            "resource_type": context.resource_type_for_db or path_context.file_type.value,
            "resource_description": description,
            "source_contribution_id": path_context.source_contribution_id,
            **location,
        }

        if path_context.file_type is FileType.PROJECT_EXPORT_ZIP:
            return resources_db.upsert_project_resource(record)
        return resources_db.insert_project_resource(record)

    def _register_contribution(
        self,
        context: ModelContributionUploadContext,
        path_context: PathContext,
        location: dict[str, Any],
        raw_json_path: str | None,
    ) -> dict[str, Any]:
        meta = context.contribution_metadata
        stage_slug = meta.stage_slug or path_context.stage_slug

        if not path_context.session_id or not stage_slug:
            raise RegistrationValidationError("Missing required metadata for contribution.")
        if meta.is_continuation and not meta.target_contribution_id:
            raise RegistrationValidationError("Missing target_contribution_id for continuation.")

        record = {
            "session_id": path_context.session_id,
            "model_id": meta.model_id_used,
            "model_name": meta.model_name_display,
            "user_id": context.user_id,
            "stage": stage_slug,
            "iteration_number": meta.iteration_number,
            "raw_response_storage_path": raw_json_path,
            "tokens_used_input": meta.tokens_used_input,
            "tokens_used_output": meta.tokens_used_output,
            "processing_time_ms": meta.processing_time_ms,
            "prompt_template_id_used": meta.prompt_template_id_used,
            "citations": meta.citations,
            "contribution_type": meta.contribution_type,
            "error": meta.error_details,
            "target_contribution_id": meta.target_contribution_id,
            "document_relationships": meta.document_relationships,
            "edit_version": meta.edit_version,
            "is_latest_edit": meta.is_latest_edit,
            "original_model_contribution_id": meta.original_model_contribution_id,
            **location,
        }
        return contributions_db.insert_contribution(record)

    def _register_feedback(
        self,
        context: UserFeedbackUploadContext,
        path_context: PathContext,
        location: dict[str, Any],
    ) -> dict[str, Any]:
        if (
            not path_context.project_id
            or not context.user_id
            or not path_context.stage_slug
            or path_context.iteration is None
            or not path_context.session_id
        ):
            raise RegistrationValidationError("Missing required fields for feedback record.")
        if not context.feedback_type_for_db:
            raise RegistrationValidationError(
                "'feedback_type_for_db' is missing for user_feedback uploads."
            )

        record = {
            "project_id": path_context.project_id,
            "session_id": path_context.session_id,
            "user_id": context.user_id,
            "stage_slug": path_context.stage_slug,
            "iteration_number": path_context.iteration,
            "feedback_type": context.feedback_type_for_db,
            "resource_description": context.resource_description_for_db,
            **location,
        }
        return feedback_db.insert_feedback(record)

    def _retire_parent(self, target_contribution_id: str | None) -> None:
        """Mark the chunk this one continues as no longer the latest edit."""
        if not target_contribution_id:
            return
        try:
            contributions_db.set_latest_edit([target_contribution_id], False)
        except Exception as e:
            logger.warning(
                f"Could not clear is_latest_edit on parent {target_contribution_id}: {e}",
                extra={"contribution_id": target_contribution_id},
            )

    def _rollback_upload(self, constructed: ConstructedPath, raw_json_path: str | None) -> None:
        """Remove exactly the objects this call uploaded, leaving their neighbours."""
        targets: dict[str, set[str]] = {constructed.storage_path: {constructed.file_name}}
        if raw_json_path:
            raw_dir, raw_name = raw_json_path.rsplit("/", 1)
            targets.setdefault(raw_dir, set()).add(raw_name)

        for directory, names in targets.items():
            try:
                entries = storage_db.list_storage_directory(self.bucket, directory)
            except Exception as e:
                logger.error(
                    f"Failed to list {directory} for cleanup; manual cleanup may be required: {e}"
                )
                continue

            present = sorted(names & {entry.get("name") for entry in entries})
            if not present:
                continue
            try:
                storage_db.remove_from_storage(
                    self.bucket, [f"{directory}/{name}" for name in present]
                )
                logger.info(f"Rolled back {len(present)} object(s) in {directory}")
            except Exception as e:
                logger.error(f"Failed to remove {present} from {directory} during cleanup: {e}")

    # =========================================================================
    # Access
    # =========================================================================

    def get_file_signed_url(self, file_id: str, table: str) -> SignedUrlResult:
        """
        Create a temporary download URL for a registered file.

        Args:
            file_id: Row UUID
            table: dialectic_contributions, dialectic_feedback or dialectic_project_resources

        Returns:
            SignedUrlResult with the URL or an error
        """
        try:
            record = file_records_db.get_file_record(table, file_id)
        except ValueError as e:
            return SignedUrlResult(error=str(e))
        except Exception as e:
            logger.error(f"Failed to fetch file record {file_id} from {table}: {e}")
            return SignedUrlResult(error=f"Failed to fetch file record: {e}")

        if not record or not record.get("storage_path") or not record.get("file_name"):
            return SignedUrlResult(error=f"File record {file_id} not found in {table}")

        bucket = record.get("storage_bucket") or self.bucket
        full_path = f"{record['storage_path'].rstrip('/')}/{record['file_name']}"
        try:
            signed_url = storage_db.create_signed_url(bucket, full_path, self.signed_url_expiry)
        except Exception as e:
            logger.error(f"Failed to sign {full_path}: {e}")
            return SignedUrlResult(error=f"Failed to create signed URL: {e}")

        if not signed_url:
            return SignedUrlResult(error=f"No signed URL returned for {full_path}")
        return SignedUrlResult(signed_url=signed_url)

    def assemble_and_save_final_document(self, root_contribution_id: str) -> AssemblyResult:
        """Concatenate a document's chunks onto its root path."""
        from dialectic_storage.services.document_assembly import assemble_and_save_final_document

        return assemble_and_save_final_document(root_contribution_id, bucket=self.bucket)


def _error_response(message: str, details: str | None = None) -> FileManagerResponse:
    return FileManagerResponse(error=FileManagerError(message=message, details=details))


def _describe_db_error(error: Exception) -> str:
    """Flatten a PostgREST error (code/details/message) into one string."""
    code = getattr(error, "code", None)
    details = getattr(error, "details", None)
    message = getattr(error, "message", None) or str(error)
    if not code and not details:
        return message
    return json.dumps({"code": code, "details": details, "message": message})

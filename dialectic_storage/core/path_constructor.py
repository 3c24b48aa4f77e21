"""Deterministic storage paths for every artifact the pipeline writes.

Layout inside the content bucket::

    {project_id}/
        project_readme.md, project_settings.json, general_resource/, Pending/ ...
        session_{short_session_id}/iteration_{n}/{ordinal}_{stage}/
            seed_prompt.md
            user_feedback_{stage}.md
            documents/        finished document-keyed chunks and renders
            raw_responses/    provider responses for root chunks
            _work/            continuations, pairwise and reduced synthesis, RAG summaries
                raw_responses/
                context/      header contexts
                prompts/      planner, turn and continuation prompts
                assembled_json/

Two different contexts never resolve to the same directory + filename: the
attempt count and document key are embedded in every contribution filename,
and continuation chunks carry both a ``_continuation_{n}`` suffix and the
``_work`` directory.

Rendered documents keep a ``_rendered`` suffix. The rendered document and the
assembled root chunk both live in ``documents/`` under the same base name, and
without the suffix a render would overwrite the chunk it was built from.
"""

from functools import lru_cache

from dialectic_storage.core.file_types import (
    ASSEMBLED_JSON_DIR,
    ASSEMBLED_SUFFIX,
    CONTEXT_DIR,
    CONTEXT_FILE_TYPES,
    CONTINUATION_MARKER,
    DOCUMENT_FAMILY_FILE_TYPES,
    DOCUMENTS_DIR,
    INTERMEDIATE_TYPES,
    JSON_ARTIFACT_TYPES,
    PROJECT_SUBFOLDERS,
    PROMPT_FILE_TYPES,
    PROMPTS_DIR,
    RAG_SOURCE_SEPARATOR,
    RAG_SUMMARY_SUFFIX,
    RAW_JSON_SUFFIX,
    RAW_RESPONSES_DIR,
    RENDERED_SUFFIX,
    WORK_DIR,
    ContributionType,
    FileType,
    PathShape,
    get_path_shape,
    is_document_key_type,
    is_special_synthesis_role,
    type_value,
)
from dialectic_storage.core.path_utils import generate_short_id, sanitize_for_path
from dialectic_storage.core.schemas_storage import ConstructedPath, PathContext
from dialectic_storage.core.stage_dirs import StageDirectoryMapper, get_default_mapper

DOCUMENT_FAMILY_REQUIRED_FIELDS = (
    "project_id",
    "session_id",
    "iteration",
    "stage_slug",
    "model_slug",
    "attempt_count",
    "document_key",
)

STAGE_ROOT_REQUIRED_FIELDS = ("project_id", "session_id", "iteration", "stage_slug")


class PathConstructionError(ValueError):
    """Raised when a path context lacks the fields its file type needs."""


def _is_missing(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _missing_fields(context: PathContext, field_names: tuple[str, ...]) -> list[str]:
    return [name for name in field_names if _is_missing(getattr(context, name))]


def _require(context: PathContext, field_names: tuple[str, ...], what: str) -> None:
    missing = _missing_fields(context, field_names)
    if missing:
        raise PathConstructionError(f"{what} requires: {', '.join(missing)}")


def _continuation_suffix(context: PathContext) -> str:
    if context.turn_index is None or context.turn_index < 1:
        raise PathConstructionError(
            "turn_index is required and must be a number > 0 for continuation chunks"
        )
    return f"{CONTINUATION_MARKER}{context.turn_index}"


class StoragePathConstructor:
    """Computes (directory, filename) pairs from a PathContext."""

    def __init__(self, stage_mapper: StageDirectoryMapper | None = None) -> None:
        self.stage_mapper = stage_mapper or StageDirectoryMapper()

    def construct(self, context: PathContext) -> ConstructedPath:
        """
        Compute the storage location for an artifact.

        Args:
            context: Structural description of the artifact

        Returns:
            ConstructedPath with the directory and filename

        Raises:
            PathConstructionError: If fields required by the file type are missing.
                Document-family types report every missing field at once.
        """
        file_type = context.file_type

        if file_type in DOCUMENT_FAMILY_FILE_TYPES:
            missing = _missing_fields(context, DOCUMENT_FAMILY_REQUIRED_FIELDS)
            if missing:
                raise PathConstructionError(
                    f"Missing required fields for file type '{file_type.value}': "
                    f"{', '.join(missing)}"
                )

        if (
            file_type is FileType.USER_FEEDBACK
            and not _is_missing(context.original_storage_path)
            and not _is_missing(context.original_base_name)
        ):
            return self._colocated_feedback_path(context)

        shape = get_path_shape(file_type)
        if shape is PathShape.PROJECT:
            return self._project_path(context)
        if shape is PathShape.STAGE:
            return self._stage_path(context)
        if shape is PathShape.CONTRIBUTION:
            return self._contribution_path(context)
        raise PathConstructionError(f"Unhandled path shape '{shape}' for '{file_type.value}'")

    # -------------------------------------------------------------------------
    # Shapes
    # -------------------------------------------------------------------------

    def stage_root_path(self, context: PathContext) -> str:
        """Root directory of a stage within a session iteration."""
        _require(context, STAGE_ROOT_REQUIRED_FIELDS, f"'{context.file_type.value}'")
        short_session_id = generate_short_id(context.session_id)
        stage_dir = self.stage_mapper.map_stage_slug_to_dir_name(context.stage_slug)
        return (
            f"{context.project_id}/session_{short_session_id}"
            f"/iteration_{context.iteration}/{stage_dir}"
        )

    def _project_path(self, context: PathContext) -> ConstructedPath:
        file_type = context.file_type
        _require(context, ("project_id",), f"'{file_type.value}'")
        project_root = context.project_id

        if file_type is FileType.PROJECT_README:
            return ConstructedPath(storage_path=project_root, file_name="project_readme.md")
        if file_type is FileType.PROJECT_SETTINGS_FILE:
            return ConstructedPath(storage_path=project_root, file_name="project_settings.json")
        if file_type is FileType.PROJECT_EXPORT_ZIP:
            if _is_missing(context.original_file_name):
                file_name = f"project_export_{sanitize_for_path(project_root)}.zip"
            else:
                file_name = self._user_file_name(context)
            return ConstructedPath(storage_path=project_root, file_name=file_name)
        if file_type is FileType.INITIAL_USER_PROMPT:
            return ConstructedPath(storage_path=project_root, file_name=self._user_file_name(context))
        if file_type in PROJECT_SUBFOLDERS:
            return ConstructedPath(
                storage_path=f"{project_root}/{PROJECT_SUBFOLDERS[file_type]}",
                file_name=self._user_file_name(context),
            )
        raise PathConstructionError(f"No project-level layout for '{file_type.value}'")

    def _stage_path(self, context: PathContext) -> ConstructedPath:
        file_type = context.file_type
        stage_root = self.stage_root_path(context)

        if file_type is FileType.SEED_PROMPT:
            return ConstructedPath(storage_path=stage_root, file_name="seed_prompt.md")
        if file_type is FileType.USER_FEEDBACK:
            stage_token = sanitize_for_path(context.stage_slug)
            return ConstructedPath(
                storage_path=stage_root, file_name=f"user_feedback_{stage_token}.md"
            )
        raise PathConstructionError(f"No stage-level layout for '{file_type.value}'")

    def _colocated_feedback_path(self, context: PathContext) -> ConstructedPath:
        base_name = sanitize_for_path(context.original_base_name)
        if not base_name:
            raise PathConstructionError("original_base_name sanitizes to an empty string")
        return ConstructedPath(
            storage_path=context.original_storage_path.rstrip("/"),
            file_name=f"{base_name}_feedback.md",
        )

    def _contribution_path(self, context: PathContext) -> ConstructedPath:
        file_type = context.file_type
        stage_root = self.stage_root_path(context)

        if file_type is FileType.RAG_CONTEXT_SUMMARY:
            return self._rag_summary_path(context, stage_root)

        _require(context, ("model_slug", "attempt_count"), f"'{file_type.value}'")
        model = sanitize_for_path(context.model_slug)
        attempt = context.attempt_count

        if file_type in PROMPT_FILE_TYPES:
            return self._prompt_path(context, stage_root, model, attempt)
        if file_type is FileType.ASSEMBLED_DOCUMENT_JSON:
            _require(context, ("document_key",), "Assembled document JSON")

        effective_type = self.effective_contribution_type(context)
        base_name = self._base_file_name(
            context, effective_type, self._type_token(context, effective_type), model, attempt
        )

        if context.is_continuation:
            base_name += _continuation_suffix(context)
        if file_type is FileType.RENDERED_DOCUMENT:
            base_name += RENDERED_SUFFIX
        elif file_type is FileType.ASSEMBLED_DOCUMENT_JSON:
            base_name += ASSEMBLED_SUFFIX

        return ConstructedPath(
            storage_path=self._contribution_directory(context, stage_root, effective_type),
            file_name=base_name + self._extension(context, effective_type),
        )

    def _prompt_path(
        self, context: PathContext, stage_root: str, model: str, attempt: int
    ) -> ConstructedPath:
        """
        Prompts live under ``_work/prompts``.

        Planner prompts may name their step. Turn prompts sent to continue a
        chunk carry the same ``_continuation_{n}`` marker as the chunk, and
        dedicated continuation prompts end in ``_continuation_prompt.md`` so
        they never collide with the turn prompt for the same segment.
        """
        file_type = context.file_type
        storage_path = f"{stage_root}/{WORK_DIR}/{PROMPTS_DIR}"

        if file_type is FileType.PLANNER_PROMPT:
            if _is_missing(context.step_name):
                file_name = f"{model}_{attempt}_planner_prompt.md"
            else:
                step = sanitize_for_path(context.step_name)
                file_name = f"{model}_{attempt}_{step}_planner_prompt.md"
            return ConstructedPath(storage_path=storage_path, file_name=file_name)

        label = "Turn prompts" if file_type is FileType.TURN_PROMPT else "Continuation prompts"
        _require(context, ("document_key",), label)
        stem = f"{model}_{attempt}_{sanitize_for_path(context.document_key)}"

        if file_type is FileType.TURN_PROMPT:
            if context.is_continuation:
                stem += _continuation_suffix(context)
            file_name = f"{stem}_prompt.md"
        else:
            file_name = f"{stem}{_continuation_suffix(context)}_continuation_prompt.md"
        return ConstructedPath(storage_path=storage_path, file_name=file_name)

    @staticmethod
    def _rag_summary_path(context: PathContext, stage_root: str) -> ConstructedPath:
        _require(context, ("model_slug",), "RAG context summaries")
        if not context.source_model_slugs:
            raise PathConstructionError("RAG context summaries require: source_model_slugs")
        model = sanitize_for_path(context.model_slug)
        sources = RAG_SOURCE_SEPARATOR.join(
            sorted(sanitize_for_path(slug) for slug in context.source_model_slugs)
        )
        return ConstructedPath(
            storage_path=f"{stage_root}/{WORK_DIR}",
            file_name=f"{model}_compressing_{sources}{RAG_SUMMARY_SUFFIX}",
        )

    # -------------------------------------------------------------------------
    # Contribution naming
    # -------------------------------------------------------------------------

    @staticmethod
    def effective_contribution_type(context: PathContext) -> str:
        """
        Decide which contribution type drives the filename.

        Document-keyed file types use their document key unless they are
        explicitly playing a critique or merge role. Other file types prefer an
        explicit contribution type and fall back to the file type itself.
        """
        if is_document_key_type(context.file_type):
            if is_special_synthesis_role(context.contribution_type):
                return type_value(context.contribution_type)
            return context.document_key
        if not _is_missing(context.contribution_type):
            return type_value(context.contribution_type)
        return context.file_type.value

    @staticmethod
    def _type_token(context: PathContext, effective_type: str) -> str:
        if context.file_type in CONTEXT_FILE_TYPES:
            return context.file_type.value
        if _is_missing(context.document_key):
            return effective_type
        return sanitize_for_path(context.document_key)

    @staticmethod
    def _base_file_name(
        context: PathContext,
        effective_type: str,
        type_token: str,
        model: str,
        attempt: int,
    ) -> str:
        if effective_type == ContributionType.ANTITHESIS.value:
            missing = []
            if not context.source_model_slugs or len(context.source_model_slugs) != 1:
                missing.append("source_model_slugs (exactly one)")
            if _is_missing(context.source_anchor_type):
                missing.append("source_anchor_type")
            if context.source_attempt_count is None:
                missing.append("source_attempt_count")
            if missing:
                raise PathConstructionError(f"Antithesis filenames require: {', '.join(missing)}")
            source_model = sanitize_for_path(context.source_model_slugs[0])
            anchor_type = sanitize_for_path(context.source_anchor_type)
            return (
                f"{model}_critiquing_({source_model}'s_{anchor_type}_"
                f"{context.source_attempt_count})_{attempt}_{type_token}"
            )

        if effective_type == ContributionType.PAIRWISE_SYNTHESIS_CHUNK.value:
            _require(
                context,
                ("source_anchor_type", "source_anchor_model_slug", "paired_model_slug"),
                "Pairwise synthesis filenames",
            )
            anchor = sanitize_for_path(context.source_anchor_model_slug)
            paired = sanitize_for_path(context.paired_model_slug)
            anchor_type = sanitize_for_path(context.source_anchor_type)
            return (
                f"{model}_synthesizing_{anchor}_with_{paired}_on_{anchor_type}"
                f"_{attempt}_{type_token}"
            )

        if effective_type == ContributionType.REDUCED_SYNTHESIS.value:
            _require(
                context,
                ("source_anchor_type", "source_anchor_model_slug"),
                "Reduced synthesis filenames",
            )
            anchor = sanitize_for_path(context.source_anchor_model_slug)
            anchor_type = sanitize_for_path(context.source_anchor_type)
            return f"{model}_reducing_{anchor_type}_by_{anchor}_{attempt}_{type_token}"

        return f"{model}_{attempt}_{type_token}"

    @staticmethod
    def _extension(context: PathContext, effective_type: str) -> str:
        file_type = context.file_type
        if file_type is FileType.MODEL_CONTRIBUTION_RAW_JSON:
            return RAW_JSON_SUFFIX
        if file_type is FileType.RENDERED_DOCUMENT:
            return ".md"
        if (
            file_type.value in JSON_ARTIFACT_TYPES
            or effective_type in JSON_ARTIFACT_TYPES
            or context.document_key in JSON_ARTIFACT_TYPES
        ):
            return ".json"
        return ".md"

    @staticmethod
    def _contribution_directory(context: PathContext, stage_root: str, effective_type: str) -> str:
        file_type = context.file_type
        is_raw_json = file_type is FileType.MODEL_CONTRIBUTION_RAW_JSON

        if file_type in CONTEXT_FILE_TYPES:
            return f"{stage_root}/{WORK_DIR}/{CONTEXT_DIR}"
        if file_type is FileType.ASSEMBLED_DOCUMENT_JSON:
            return f"{stage_root}/{WORK_DIR}/{ASSEMBLED_JSON_DIR}"

        is_intermediate = (
            context.is_continuation
            or file_type.value in INTERMEDIATE_TYPES
            or effective_type in INTERMEDIATE_TYPES
        )
        if is_intermediate:
            if is_raw_json:
                return f"{stage_root}/{WORK_DIR}/{RAW_RESPONSES_DIR}"
            return f"{stage_root}/{WORK_DIR}"
        if is_raw_json:
            return f"{stage_root}/{RAW_RESPONSES_DIR}"
        if not _is_missing(context.document_key):
            return f"{stage_root}/{DOCUMENTS_DIR}"
        return stage_root

    @staticmethod
    def _user_file_name(context: PathContext) -> str:
        _require(context, ("original_file_name",), f"'{context.file_type.value}'")
        file_name = sanitize_for_path(context.original_file_name)
        if not file_name:
            raise PathConstructionError("original_file_name sanitizes to an empty string")
        return file_name


@lru_cache(maxsize=1)
def get_default_constructor() -> StoragePathConstructor:
    """Constructor bound to the configured stage directory table."""
    return StoragePathConstructor(get_default_mapper())


def construct_storage_path(context: PathContext) -> ConstructedPath:
    """Compute the storage directory and filename for a path context."""
    return get_default_constructor().construct(context)

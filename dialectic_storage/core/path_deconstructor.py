"""Best-effort recovery of artifact metadata from a stored path.

The database row is always authoritative. This parser exists so callers that
already hold a list of rows (storage_path + file_name) can read the document
key, model and continuation state without another query per row.
"""

import re

from dialectic_storage.core.file_types import (
    ASSEMBLED_JSON_DIR,
    ASSEMBLED_SUFFIX,
    CONTEXT_DIR,
    CONTEXT_FILE_TYPES,
    CONTINUATION_MARKER,
    DOCUMENTS_DIR,
    PROJECT_SUBFOLDERS,
    PROMPTS_DIR,
    RAG_SOURCE_SEPARATOR,
    RAG_SUMMARY_SUFFIX,
    RAW_JSON_SUFFIX,
    RAW_RESPONSES_DIR,
    RENDERED_SUFFIX,
    WORK_DIR,
    ContributionType,
    FileType,
    is_document_name_token,
    known_name_tokens,
)
from dialectic_storage.core.schemas_storage import DeconstructedPath
from dialectic_storage.core.stage_dirs import StageDirectoryMapper

_SESSION_RE = re.compile(r"^session_(?P<short>[A-Za-z0-9]+)$")
_ITERATION_RE = re.compile(r"^iteration_(?P<n>\d+)$")
_CONTINUATION_RE = re.compile(rf"^(?P<stem>.+){CONTINUATION_MARKER}(?P<turn>\d+)$")
# Last "_{attempt}_" before a letter-led token, so model slugs may carry digit segments
_GENERIC_NAME_RE = re.compile(r"^(?P<prefix>.+)_(?P<attempt>\d+)_(?P<token>[a-z][a-z0-9_.-]*)$")

_ANTITHESIS_RE = re.compile(
    r"^(?P<model>.+?)_critiquing_\((?P<source_model>.+)'s_(?P<anchor_type>.+)_(?P<source_attempt>\d+)\)$"
)
_PAIRWISE_RE = re.compile(
    r"^(?P<model>.+?)_synthesizing_(?P<anchor>.+?)_with_(?P<paired>.+?)_on_(?P<anchor_type>.+)$"
)
_REDUCED_RE = re.compile(r"^(?P<model>.+?)_reducing_(?P<anchor_type>.+?)_by_(?P<anchor>.+)$")

_PLANNER_PROMPT_RE = re.compile(
    r"^(?P<model>.+)_(?P<attempt>\d+)(?:_(?P<step>[a-z][a-z0-9_.-]*))?_planner_prompt\.md$"
)
_CONTINUATION_PROMPT_RE = re.compile(r"^(?P<stem>.+)_continuation_prompt\.md$")
_PROMPT_RE = re.compile(r"^(?P<stem>.+)_prompt\.md$")
_RAG_SUMMARY_RE = re.compile(
    rf"^(?P<model>.+?)_compressing_(?P<sources>.+){re.escape(RAG_SUMMARY_SUFFIX)}$"
)

_PROJECT_FILES = {
    "project_readme.md": FileType.PROJECT_README,
    "project_settings.json": FileType.PROJECT_SETTINGS_FILE,
}
_SUBFOLDER_FILE_TYPES = {folder: file_type for file_type, folder in PROJECT_SUBFOLDERS.items()}

_TOKEN_PATTERNS = [
    (token, re.compile(rf"^(?P<prefix>.+)_(?P<attempt>\d+)_{re.escape(token)}$"))
    for token in known_name_tokens()
]


def _split_name_and_token(stem: str) -> tuple[str, int, str] | None:
    """Split ``{prefix}_{attempt}_{token}`` using the known type tokens first."""
    for token, pattern in _TOKEN_PATTERNS:
        match = pattern.match(stem)
        if match:
            return match.group("prefix"), int(match.group("attempt")), token
    match = _GENERIC_NAME_RE.match(stem)
    if match:
        return match.group("prefix"), int(match.group("attempt")), match.group("token")
    return None


def _guess_from_token(token: str) -> FileType:
    try:
        return FileType(token)
    except ValueError:
        return FileType.MODEL_CONTRIBUTION_MAIN


def deconstruct_storage_path(
    storage_dir: str,
    file_name: str,
    mapper: StageDirectoryMapper | None = None,
) -> DeconstructedPath:
    """
    Recover structural metadata from a stored directory and filename.

    Never raises; unparseable input comes back with ``error`` set and whatever
    fields could be read.

    Args:
        storage_dir: Directory inside the bucket (``storage_path`` column)
        file_name: Filename (``file_name`` column)
        mapper: Stage directory mapper used to turn directory names back into slugs

    Returns:
        DeconstructedPath
    """
    mapper = mapper or StageDirectoryMapper()
    info: dict = {"parsed_file_name": file_name}
    segments = [segment for segment in storage_dir.strip("/").split("/") if segment]

    session_index = next(
        (i for i, segment in enumerate(segments) if _SESSION_RE.match(segment)), None
    )
    if session_index is None:
        return _deconstruct_project_path(segments, file_name, info)

    info["original_project_id"] = "/".join(segments[:session_index]) or None
    info["short_session_id"] = _SESSION_RE.match(segments[session_index]).group("short")

    rest = segments[session_index + 1:]
    if len(rest) < 2 or not _ITERATION_RE.match(rest[0]):
        info["error"] = f"Directory '{storage_dir}' has no iteration and stage segments"
        return DeconstructedPath(**info)

    info["iteration"] = int(_ITERATION_RE.match(rest[0]).group("n"))
    info["stage_dir_name"] = rest[1]
    info["stage_slug"] = mapper.map_dir_name_to_stage_slug(rest[1])
    subdirs = rest[2:]
    info["is_work_artifact"] = bool(subdirs) and subdirs[0] == WORK_DIR

    if not subdirs:
        if file_name == "seed_prompt.md":
            info["file_type_guess"] = FileType.SEED_PROMPT
            return DeconstructedPath(**info)
        if file_name.startswith("user_feedback_") and file_name.endswith(".md"):
            info["file_type_guess"] = FileType.USER_FEEDBACK
            return DeconstructedPath(**info)

    if subdirs == [WORK_DIR, PROMPTS_DIR]:
        return _deconstruct_prompt(file_name, info)

    if file_name.endswith(RAG_SUMMARY_SUFFIX):
        return _deconstruct_rag_summary(file_name, info)

    if file_name.endswith("_feedback.md") and subdirs and subdirs[0] == DOCUMENTS_DIR:
        # Feedback co-located with the document it critiques
        original = _deconstruct_contribution_name(file_name[: -len("_feedback.md")] + ".md", subdirs, info)
        original["file_type_guess"] = FileType.USER_FEEDBACK
        return DeconstructedPath(**original)

    return DeconstructedPath(**_deconstruct_contribution_name(file_name, subdirs, info))


def _deconstruct_project_path(segments: list[str], file_name: str, info: dict) -> DeconstructedPath:
    if not segments:
        info["error"] = "Empty storage directory"
        return DeconstructedPath(**info)

    info["original_project_id"] = segments[0]
    if len(segments) == 1:
        if file_name in _PROJECT_FILES:
            info["file_type_guess"] = _PROJECT_FILES[file_name]
        elif file_name.endswith(".zip"):
            info["file_type_guess"] = FileType.PROJECT_EXPORT_ZIP
        else:
            info["file_type_guess"] = FileType.INITIAL_USER_PROMPT
        return DeconstructedPath(**info)

    subfolder = "/".join(segments[1:])
    if subfolder in _SUBFOLDER_FILE_TYPES:
        info["file_type_guess"] = _SUBFOLDER_FILE_TYPES[subfolder]
    else:
        info["error"] = f"Unrecognised project subfolder '{subfolder}'"
    return DeconstructedPath(**info)


def _deconstruct_prompt(file_name: str, info: dict) -> DeconstructedPath:
    info["is_work_artifact"] = True
    planner = _PLANNER_PROMPT_RE.match(file_name)
    if planner:
        info.update(
            model_slug=planner.group("model"),
            attempt_count=int(planner.group("attempt")),
            step_name=planner.group("step"),
            file_type_guess=FileType.PLANNER_PROMPT,
        )
        return DeconstructedPath(**info)

    file_type = FileType.CONTINUATION_PROMPT
    prompt = _CONTINUATION_PROMPT_RE.match(file_name)
    if not prompt:
        file_type = FileType.TURN_PROMPT
        prompt = _PROMPT_RE.match(file_name)
    if not prompt:
        info["error"] = f"Unrecognised prompt filename '{file_name}'"
        return DeconstructedPath(**info)
    info["file_type_guess"] = file_type

    stem = prompt.group("stem")
    continuation = _CONTINUATION_RE.match(stem)
    if continuation:
        stem = continuation.group("stem")
        info.update(is_continuation=True, turn_index=int(continuation.group("turn")))
    elif file_type is FileType.CONTINUATION_PROMPT:
        info["error"] = f"Continuation prompt '{file_name}' has no turn index"
        return DeconstructedPath(**info)

    parts = _split_name_and_token(stem)
    if parts is None:
        info["error"] = f"Unrecognised prompt filename '{file_name}'"
        return DeconstructedPath(**info)
    model, attempt, token = parts
    info.update(model_slug=model, attempt_count=attempt, document_key=token)
    return DeconstructedPath(**info)


def _deconstruct_rag_summary(file_name: str, info: dict) -> DeconstructedPath:
    match = _RAG_SUMMARY_RE.match(file_name)
    if not match:
        info["error"] = f"Unrecognised RAG summary filename '{file_name}'"
        return DeconstructedPath(**info)
    info.update(
        model_slug=match.group("model"),
        source_model_slugs=match.group("sources").split(RAG_SOURCE_SEPARATOR),
        file_type_guess=FileType.RAG_CONTEXT_SUMMARY,
    )
    return DeconstructedPath(**info)


def _deconstruct_contribution_name(file_name: str, subdirs: list[str], info: dict) -> dict:
    is_raw_json = file_name.endswith(RAW_JSON_SUFFIX)
    if is_raw_json:
        stem = file_name[: -len(RAW_JSON_SUFFIX)]
    elif file_name.endswith(".json"):
        stem = file_name[: -len(".json")]
    elif file_name.endswith(".md"):
        stem = file_name[: -len(".md")]
    else:
        info["error"] = f"Unrecognised extension on '{file_name}'"
        return info

    is_rendered = stem.endswith(RENDERED_SUFFIX)
    if is_rendered:
        stem = stem[: -len(RENDERED_SUFFIX)]

    is_assembled = subdirs[:2] == [WORK_DIR, ASSEMBLED_JSON_DIR]
    if is_assembled:
        if not stem.endswith(ASSEMBLED_SUFFIX):
            info["error"] = f"Assembled document '{file_name}' lacks the {ASSEMBLED_SUFFIX} suffix"
            return info
        stem = stem[: -len(ASSEMBLED_SUFFIX)]

    continuation = _CONTINUATION_RE.match(stem)
    if continuation:
        stem = continuation.group("stem")
        info["is_continuation"] = True
        info["turn_index"] = int(continuation.group("turn"))

    parts = _split_name_and_token(stem)
    if parts is None:
        info["error"] = f"Filename '{file_name}' does not match any contribution pattern"
        return info
    prefix, attempt, token = parts
    info["attempt_count"] = attempt

    role = None
    antithesis = _ANTITHESIS_RE.match(prefix)
    pairwise = _PAIRWISE_RE.match(prefix)
    reduced = _REDUCED_RE.match(prefix)
    if antithesis:
        role = ContributionType.ANTITHESIS.value
        info.update(
            model_slug=antithesis.group("model"),
            source_model_slug=antithesis.group("source_model"),
            source_anchor_type=antithesis.group("anchor_type"),
            source_attempt_count=int(antithesis.group("source_attempt")),
        )
    elif pairwise:
        role = ContributionType.PAIRWISE_SYNTHESIS_CHUNK.value
        info.update(
            model_slug=pairwise.group("model"),
            source_anchor_model_slug=pairwise.group("anchor"),
            paired_model_slug=pairwise.group("paired"),
            source_anchor_type=pairwise.group("anchor_type"),
        )
    elif reduced:
        role = ContributionType.REDUCED_SYNTHESIS.value
        info.update(
            model_slug=reduced.group("model"),
            source_anchor_type=reduced.group("anchor_type"),
            source_anchor_model_slug=reduced.group("anchor"),
        )
    else:
        info["model_slug"] = prefix

    if is_document_name_token(token):
        info["document_key"] = token
        info["contribution_type"] = role
    else:
        info["contribution_type"] = role or token

    if is_raw_json:
        info["file_type_guess"] = FileType.MODEL_CONTRIBUTION_RAW_JSON
    elif is_rendered:
        info["file_type_guess"] = FileType.RENDERED_DOCUMENT
    elif is_assembled:
        info["file_type_guess"] = FileType.ASSEMBLED_DOCUMENT_JSON
    elif subdirs[:2] == [WORK_DIR, CONTEXT_DIR]:
        context_types = {file_type.value: file_type for file_type in CONTEXT_FILE_TYPES}
        info["file_type_guess"] = context_types.get(token, FileType.HEADER_CONTEXT)
    else:
        info["file_type_guess"] = _guess_from_token(token)

    if subdirs and subdirs[-1] == RAW_RESPONSES_DIR and not is_raw_json:
        info["error"] = f"Non raw-JSON file '{file_name}' found under {RAW_RESPONSES_DIR}"
    return info

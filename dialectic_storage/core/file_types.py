"""File type and contribution type classifications for stored artifacts.

Every artifact written to the content bucket is tagged with a ``FileType``.
The tables in this module decide which path shape a file type takes and how
its filename is finished (extension, working directory). The path constructor
and deconstructor both read from here so the two stay in agreement.
"""

from enum import Enum


class FileType(str, Enum):
    """Every kind of artifact the pipeline stores."""

    # Project-scoped singletons
    PROJECT_README = "project_readme"
    PROJECT_SETTINGS_FILE = "project_settings_file"
    PROJECT_EXPORT_ZIP = "project_export_zip"
    INITIAL_USER_PROMPT = "initial_user_prompt"
    GENERAL_RESOURCE = "general_resource"
    PENDING_FILE = "pending_file"
    CURRENT_FILE = "current_file"
    COMPLETE_FILE = "complete_file"

    # Stage-scoped singletons
    SEED_PROMPT = "seed_prompt"
    USER_FEEDBACK = "user_feedback"

    # Model contribution family
    MODEL_CONTRIBUTION_MAIN = "model_contribution_main"
    MODEL_CONTRIBUTION_RAW_JSON = "model_contribution_raw_json"
    PAIRWISE_SYNTHESIS_CHUNK = "pairwise_synthesis_chunk"
    REDUCED_SYNTHESIS = "reduced_synthesis"
    SYNTHESIS = "synthesis"
    RENDERED_DOCUMENT = "rendered_document"
    HEADER_CONTEXT = "header_context"
    SYNTHESIS_HEADER_CONTEXT = "synthesis_header_context"
    ASSEMBLED_DOCUMENT_JSON = "assembled_document_json"
    PLANNER_PROMPT = "planner_prompt"
    TURN_PROMPT = "turn_prompt"
    CONTINUATION_PROMPT = "continuation_prompt"
    RAG_CONTEXT_SUMMARY = "rag_context_summary"

    # Document keys
    BUSINESS_CASE = "business_case"
    FEATURE_SPEC = "feature_spec"
    TECHNICAL_APPROACH = "technical_approach"
    SUCCESS_METRICS = "success_metrics"
    BUSINESS_CASE_CRITIQUE = "business_case_critique"
    TECHNICAL_FEASIBILITY_ASSESSMENT = "technical_feasibility_assessment"
    RISK_REGISTER = "risk_register"
    NON_FUNCTIONAL_REQUIREMENTS = "non_functional_requirements"
    DEPENDENCY_MAP = "dependency_map"
    COMPARISON_VECTOR = "comparison_vector"
    SYNTHESIS_PAIRWISE_BUSINESS_CASE = "synthesis_pairwise_business_case"
    SYNTHESIS_PAIRWISE_FEATURE_SPEC = "synthesis_pairwise_feature_spec"
    SYNTHESIS_PAIRWISE_TECHNICAL_APPROACH = "synthesis_pairwise_technical_approach"
    SYNTHESIS_PAIRWISE_SUCCESS_METRICS = "synthesis_pairwise_success_metrics"
    SYNTHESIS_DOCUMENT_BUSINESS_CASE = "synthesis_document_business_case"
    SYNTHESIS_DOCUMENT_FEATURE_SPEC = "synthesis_document_feature_spec"
    SYNTHESIS_DOCUMENT_TECHNICAL_APPROACH = "synthesis_document_technical_approach"
    SYNTHESIS_DOCUMENT_SUCCESS_METRICS = "synthesis_document_success_metrics"
    PRODUCT_REQUIREMENTS = "product_requirements"
    SYSTEM_ARCHITECTURE = "system_architecture"
    TECH_STACK = "tech_stack"
    TECHNICAL_REQUIREMENTS = "technical_requirements"
    MASTER_PLAN = "master_plan"
    MILESTONE_SCHEMA = "milestone_schema"
    UPDATED_MASTER_PLAN = "updated_master_plan"
    ACTIONABLE_CHECKLIST = "actionable_checklist"
    ADVISOR_RECOMMENDATIONS = "advisor_recommendations"


class ContributionType(str, Enum):
    """Role a model output plays within its stage."""

    THESIS = "thesis"
    ANTITHESIS = "antithesis"
    SYNTHESIS = "synthesis"
    PARENTHESIS = "parenthesis"
    PARALYSIS = "paralysis"
    PAIRWISE_SYNTHESIS_CHUNK = "pairwise_synthesis_chunk"
    REDUCED_SYNTHESIS = "reduced_synthesis"
    FINAL_SYNTHESIS = "final_synthesis"


class PathShape(str, Enum):
    """The three directory shapes a stored artifact can take."""

    PROJECT = "project"
    STAGE = "stage"
    CONTRIBUTION = "contribution"


PROJECT_SCOPED_FILE_TYPES: frozenset[FileType] = frozenset(
    {
        FileType.PROJECT_README,
        FileType.PROJECT_SETTINGS_FILE,
        FileType.PROJECT_EXPORT_ZIP,
        FileType.INITIAL_USER_PROMPT,
        FileType.GENERAL_RESOURCE,
        FileType.PENDING_FILE,
        FileType.CURRENT_FILE,
        FileType.COMPLETE_FILE,
    }
)

STAGE_SCOPED_FILE_TYPES: frozenset[FileType] = frozenset(
    {FileType.SEED_PROMPT, FileType.USER_FEEDBACK}
)

DOCUMENT_KEY_FILE_TYPES: frozenset[FileType] = frozenset(
    {
        FileType.BUSINESS_CASE,
        FileType.FEATURE_SPEC,
        FileType.TECHNICAL_APPROACH,
        FileType.SUCCESS_METRICS,
        FileType.BUSINESS_CASE_CRITIQUE,
        FileType.TECHNICAL_FEASIBILITY_ASSESSMENT,
        FileType.RISK_REGISTER,
        FileType.NON_FUNCTIONAL_REQUIREMENTS,
        FileType.DEPENDENCY_MAP,
        FileType.COMPARISON_VECTOR,
        FileType.SYNTHESIS_PAIRWISE_BUSINESS_CASE,
        FileType.SYNTHESIS_PAIRWISE_FEATURE_SPEC,
        FileType.SYNTHESIS_PAIRWISE_TECHNICAL_APPROACH,
        FileType.SYNTHESIS_PAIRWISE_SUCCESS_METRICS,
        FileType.SYNTHESIS_DOCUMENT_BUSINESS_CASE,
        FileType.SYNTHESIS_DOCUMENT_FEATURE_SPEC,
        FileType.SYNTHESIS_DOCUMENT_TECHNICAL_APPROACH,
        FileType.SYNTHESIS_DOCUMENT_SUCCESS_METRICS,
        FileType.PRODUCT_REQUIREMENTS,
        FileType.SYSTEM_ARCHITECTURE,
        FileType.TECH_STACK,
        FileType.TECHNICAL_REQUIREMENTS,
        FileType.MASTER_PLAN,
        FileType.MILESTONE_SCHEMA,
        FileType.UPDATED_MASTER_PLAN,
        FileType.ACTIONABLE_CHECKLIST,
        FileType.ADVISOR_RECOMMENDATIONS,
    }
)

MODEL_CONTRIBUTION_FILE_TYPES: frozenset[FileType] = frozenset(
    {
        FileType.MODEL_CONTRIBUTION_MAIN,
        FileType.MODEL_CONTRIBUTION_RAW_JSON,
        FileType.PAIRWISE_SYNTHESIS_CHUNK,
        FileType.REDUCED_SYNTHESIS,
        FileType.SYNTHESIS,
        FileType.RENDERED_DOCUMENT,
        FileType.HEADER_CONTEXT,
        FileType.SYNTHESIS_HEADER_CONTEXT,
        FileType.ASSEMBLED_DOCUMENT_JSON,
        FileType.PLANNER_PROMPT,
        FileType.TURN_PROMPT,
        FileType.CONTINUATION_PROMPT,
        FileType.RAG_CONTEXT_SUMMARY,
    }
) | DOCUMENT_KEY_FILE_TYPES

# File types whose path requires the full document identity up front
DOCUMENT_FAMILY_FILE_TYPES: frozenset[FileType] = DOCUMENT_KEY_FILE_TYPES | frozenset(
    {FileType.RENDERED_DOCUMENT}
)

# Contribution roles that replace the generic filename with a descriptive one
SPECIAL_SYNTHESIS_ROLES: frozenset[ContributionType] = frozenset(
    {
        ContributionType.ANTITHESIS,
        ContributionType.PAIRWISE_SYNTHESIS_CHUNK,
        ContributionType.REDUCED_SYNTHESIS,
    }
)

# Types that always live in the stage's _work directory
INTERMEDIATE_TYPES: frozenset[str] = frozenset(
    {
        FileType.PAIRWISE_SYNTHESIS_CHUNK.value,
        FileType.REDUCED_SYNTHESIS.value,
    }
)

# Intermediate synthesis artifacts stored as plain JSON
JSON_ARTIFACT_TYPES: frozenset[str] = frozenset(
    {
        FileType.PAIRWISE_SYNTHESIS_CHUNK.value,
        FileType.REDUCED_SYNTHESIS.value,
        FileType.HEADER_CONTEXT.value,
        FileType.SYNTHESIS_HEADER_CONTEXT.value,
        FileType.ASSEMBLED_DOCUMENT_JSON.value,
        FileType.COMPARISON_VECTOR.value,
        FileType.SYNTHESIS_PAIRWISE_BUSINESS_CASE.value,
        FileType.SYNTHESIS_PAIRWISE_FEATURE_SPEC.value,
        FileType.SYNTHESIS_PAIRWISE_TECHNICAL_APPROACH.value,
        FileType.SYNTHESIS_PAIRWISE_SUCCESS_METRICS.value,
        FileType.SYNTHESIS_DOCUMENT_BUSINESS_CASE.value,
        FileType.SYNTHESIS_DOCUMENT_FEATURE_SPEC.value,
        FileType.SYNTHESIS_DOCUMENT_TECHNICAL_APPROACH.value,
        FileType.SYNTHESIS_DOCUMENT_SUCCESS_METRICS.value,
    }
)

CONTEXT_FILE_TYPES: frozenset[FileType] = frozenset(
    {FileType.HEADER_CONTEXT, FileType.SYNTHESIS_HEADER_CONTEXT}
)

PROMPT_FILE_TYPES: frozenset[FileType] = frozenset(
    {FileType.PLANNER_PROMPT, FileType.TURN_PROMPT, FileType.CONTINUATION_PROMPT}
)

# Fixed subfolders for project-scoped uploads
PROJECT_SUBFOLDERS: dict[FileType, str] = {
    FileType.GENERAL_RESOURCE: "general_resource",
    FileType.PENDING_FILE: "Pending",
    FileType.CURRENT_FILE: "Current",
    FileType.COMPLETE_FILE: "Complete",
}

# Subdirectory names under a stage root
DOCUMENTS_DIR = "documents"
RAW_RESPONSES_DIR = "raw_responses"
WORK_DIR = "_work"
CONTEXT_DIR = "context"
PROMPTS_DIR = "prompts"
ASSEMBLED_JSON_DIR = "assembled_json"

RAW_JSON_SUFFIX = "_raw.json"
CONTINUATION_MARKER = "_continuation_"
RENDERED_SUFFIX = "_rendered"
ASSEMBLED_SUFFIX = "_assembled"
RAG_SUMMARY_SUFFIX = "_rag_summary.txt"
RAG_SOURCE_SEPARATOR = "_and_"


def _build_shape_table() -> dict[FileType, PathShape]:
    table: dict[FileType, PathShape] = {}
    for file_type in PROJECT_SCOPED_FILE_TYPES:
        table[file_type] = PathShape.PROJECT
    for file_type in STAGE_SCOPED_FILE_TYPES:
        table[file_type] = PathShape.STAGE
    for file_type in MODEL_CONTRIBUTION_FILE_TYPES:
        table[file_type] = PathShape.CONTRIBUTION

    unhandled = [file_type.value for file_type in FileType if file_type not in table]
    if unhandled:
        raise RuntimeError(f"File types without a path shape: {', '.join(sorted(unhandled))}")
    return table


FILE_TYPE_SHAPES: dict[FileType, PathShape] = _build_shape_table()


def get_path_shape(file_type: FileType) -> PathShape:
    """Return the directory shape for a file type."""
    return FILE_TYPE_SHAPES[file_type]


_DOCUMENT_KEY_VALUES = frozenset(file_type.value for file_type in DOCUMENT_KEY_FILE_TYPES)
_SPECIAL_ROLE_VALUES = frozenset(role.value for role in SPECIAL_SYNTHESIS_ROLES)


def type_value(value: str | Enum | None) -> str | None:
    """Plain string value of an enum member or string."""
    if isinstance(value, Enum):
        return value.value
    return value


def is_document_key_type(value: str | Enum | None) -> bool:
    """Check whether a value names a declared document key."""
    return type_value(value) in _DOCUMENT_KEY_VALUES


def is_special_synthesis_role(value: str | Enum | None) -> bool:
    """Check whether a contribution type is a critique or merge role."""
    return type_value(value) in _SPECIAL_ROLE_VALUES


_NON_DOCUMENT_TOKENS = (
    frozenset(file_type.value for file_type in MODEL_CONTRIBUTION_FILE_TYPES)
    | frozenset(contribution_type.value for contribution_type in ContributionType)
) - _DOCUMENT_KEY_VALUES


def is_document_name_token(token: str | None) -> bool:
    """
    Check whether a filename's trailing type token is a document key.

    Declared document keys always are. Any other token counts as a document
    key unless it names a contribution type or a non-document file type.
    """
    if not token:
        return False
    return token in _DOCUMENT_KEY_VALUES or token not in _NON_DOCUMENT_TOKENS


def known_name_tokens() -> list[str]:
    """All type tokens that may terminate a contribution filename, longest first."""
    tokens = {file_type.value for file_type in MODEL_CONTRIBUTION_FILE_TYPES}
    tokens.update(contribution_type.value for contribution_type in ContributionType)
    return sorted(tokens, key=lambda token: (-len(token), token))

"""Resolve a stage's declared inputs into downloaded source documents.

Each input rule names a source family (contribution, feedback or document) and
the stage that produced it. Required sources that cannot be found or
downloaded raise InputGatheringError naming the stage's display name; optional
ones are logged and skipped.
"""

from typing import Any

from pydantic import TypeAdapter, ValidationError

from dialectic_storage.core.config import get_settings
from dialectic_storage.core.file_types import FileType
from dialectic_storage.core.logging import get_logger
from dialectic_storage.core.path_deconstructor import deconstruct_storage_path
from dialectic_storage.core.schemas_inputs import (
    InputRule,
    InputRuleType,
    ProjectContext,
    SessionContext,
    SourceDocument,
    SourceDocumentMetadata,
)
from dialectic_storage.core.stage_dirs import get_default_mapper
from dialectic_storage.db import contributions as contributions_db
from dialectic_storage.db import feedback as feedback_db
from dialectic_storage.db import project_resources as resources_db
from dialectic_storage.db import stages as stages_db
from dialectic_storage.db import storage as storage_db

logger = get_logger(__name__)

ANY_DOCUMENT_KEY = "*"

_RULES_ADAPTER = TypeAdapter(list[InputRule])


class InputGatheringError(Exception):
    """A required input source is missing or could not be read."""

    def __init__(self, message: str, stage_slug: str):
        self.stage_slug = stage_slug
        super().__init__(message)


def parse_input_rules(raw_rules: Any) -> list[InputRule]:
    """
    Validate a stage's input rules.

    Accepts a list of rule objects or a ``{"sources": [...]}`` wrapper. Never
    raises: a missing, empty or malformed rule set is logged and yields [].
    """
    if isinstance(raw_rules, dict) and "sources" in raw_rules:
        raw_rules = raw_rules["sources"]

    if not isinstance(raw_rules, list):
        logger.error(f"Input rules must be a list, got {type(raw_rules).__name__}")
        return []
    if not raw_rules:
        logger.error("Input rules are empty")
        return []

    try:
        return _RULES_ADAPTER.validate_python(raw_rules)
    except ValidationError as e:
        logger.error(f"Malformed input rules: {e}")
        return []


def gather_inputs_for_stage(
    rules: Any,
    project: ProjectContext,
    session: SessionContext,
    iteration_number: int,
    bucket: str | None = None,
) -> list[SourceDocument]:
    """
    Download every source a stage's rules ask for.

    Args:
        rules: Raw or parsed input rules
        project: Project the session belongs to (its owner reads feedback)
        session: Session being generated
        iteration_number: Iteration being generated
        bucket: Fallback bucket for rows without storage_bucket

    Returns:
        Source documents in rule order

    Raises:
        InputGatheringError: If a required source is missing or unreadable
    """
    parsed_rules = parse_input_rules(rules)
    if not parsed_rules:
        return []

    gatherer = _InputGatherer(project, session, iteration_number, bucket)
    gatherer.load_display_names(parsed_rules)
    documents: list[SourceDocument] = []
    seen: set[tuple[str, str]] = set()

    for rule in parsed_rules:
        for document in gatherer.gather(rule):
            key = (document.type.value, document.id)
            if key in seen:
                continue
            seen.add(key)
            documents.append(document)

    logger.info(
        f"Gathered {len(documents)} source document(s) for session {session.id} "
        f"iteration {iteration_number}"
    )
    return documents


class _InputGatherer:
    """Per-call state: the stage display names and the query coordinates."""

    def __init__(
        self,
        project: ProjectContext,
        session: SessionContext,
        iteration_number: int,
        bucket: str | None,
    ):
        self.project = project
        self.session = session
        self.iteration_number = iteration_number
        self.bucket = bucket or get_settings().SB_CONTENT_STORAGE_BUCKET
        self.display_names: dict[str, str] = {}

    def gather(self, rule: InputRule) -> list[SourceDocument]:
        if rule.type is InputRuleType.CONTRIBUTION:
            return self._gather_contributions(rule)
        if rule.type is InputRuleType.FEEDBACK:
            return self._gather_feedback(rule)
        return self._gather_documents(rule)

    def load_display_names(self, rules: list[InputRule]) -> None:
        try:
            self.display_names = stages_db.get_stage_display_names(
                [rule.stage_slug for rule in rules]
            )
        except Exception as e:
            logger.warning(f"Could not fetch stage display names: {e}")
            self.display_names = {}

    def display_name(self, stage_slug: str) -> str:
        name = self.display_names.get(stage_slug)
        return name or stage_slug[:1].upper() + stage_slug[1:]

    # -------------------------------------------------------------------------
    # Rule families
    # -------------------------------------------------------------------------

    def _gather_contributions(self, rule: InputRule) -> list[SourceDocument]:
        name = self.display_name(rule.stage_slug)
        try:
            rows = contributions_db.list_latest_contributions(
                self.session.id, rule.stage_slug, self.iteration_number
            )
        except Exception as e:
            logger.error(f"Failed to retrieve contributions for stage {rule.stage_slug}: {e}")
            self._fail_if_required(
                rule, f"Failed to retrieve REQUIRED AI contributions for stage '{name}'."
            )
            return []

        if not rows:
            self._fail_if_required(rule, f"Required contributions for stage '{name}' were not found.")
            logger.info(f"No optional contributions for stage {rule.stage_slug}")
            return []

        return self._download_rows(rule, rows if rule.multiple else rows[:1])

    def _gather_feedback(self, rule: InputRule) -> list[SourceDocument]:
        name = self.display_name(rule.stage_slug)
        # Feedback left on iteration N informs iteration N + 1
        target_iteration = self.iteration_number - 1 if self.iteration_number > 1 else 1
        try:
            rows = feedback_db.list_stage_feedback(
                self.session.id, rule.stage_slug, self.project.user_id, target_iteration
            )
        except Exception as e:
            logger.error(f"Failed to retrieve feedback for stage {rule.stage_slug}: {e}")
            rows = []

        if not rows:
            self._fail_if_required(rule, f"Required feedback for stage '{name}' was not found.")
            return []

        return self._download_rows(rule, rows if rule.multiple else rows[:1])

    def _gather_documents(self, rule: InputRule) -> list[SourceDocument]:
        name = self.display_name(rule.stage_slug)
        document_key = rule.document_key if rule.document_key != ANY_DOCUMENT_KEY else None

        try:
            resources = resources_db.list_stage_resources(
                self.project.id,
                self.session.id,
                rule.stage_slug,
                self.iteration_number,
                FileType.RENDERED_DOCUMENT.value,
            )
        except Exception as e:
            logger.error(f"Failed to retrieve rendered documents for stage {rule.stage_slug}: {e}")
            resources = []

        candidates = _dedupe_by_file_name(
            [row for row in resources if document_key is None or _row_document_key(row) == document_key]
        )

        if not candidates and document_key is None:
            try:
                candidates = contributions_db.list_latest_contributions(
                    self.session.id, rule.stage_slug, self.iteration_number
                )
            except Exception as e:
                logger.error(f"Failed to retrieve contributions for stage {rule.stage_slug}: {e}")
                candidates = []

        if not candidates:
            self._fail_if_required(
                rule,
                f"Required document '{document_key or ANY_DOCUMENT_KEY}' "
                f"for stage '{name}' was not found.",
            )
            logger.info(f"No optional documents for stage {rule.stage_slug}")
            return []

        return self._download_rows(rule, candidates if rule.multiple else candidates[:1])

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _download_rows(self, rule: InputRule, rows: list[dict[str, Any]]) -> list[SourceDocument]:
        name = self.display_name(rule.stage_slug)
        documents = []
        for row in rows:
            if not row.get("storage_path") or not row.get("file_name"):
                logger.warning(f"{rule.type.value} {row.get('id')} is missing storage details")
                self._fail_if_required(
                    rule,
                    f"REQUIRED Contribution {row.get('id')} from stage '{name}' "
                    "is missing storage details.",
                )
                continue

            path = f"{row['storage_path'].rstrip('/')}/{row['file_name']}"
            try:
                content = storage_db.download_from_storage(
                    row.get("storage_bucket") or self.bucket, path
                ).decode("utf-8")
            except UnicodeDecodeError as e:
                logger.error(f"Content at {path} for stage {rule.stage_slug} is not UTF-8: {e}")
                self._fail_if_required(
                    rule,
                    f"Failed to decode REQUIRED content for contribution {row.get('id')} "
                    f"from stage '{name}'.",
                )
                continue
            except Exception as e:
                logger.error(f"Failed to download {path} for stage {rule.stage_slug}: {e}")
                self._fail_if_required(
                    rule,
                    f"Failed to download REQUIRED content for contribution {row.get('id')} "
                    f"from stage '{name}'.",
                )
                continue

            documents.append(
                SourceDocument(
                    id=row["id"],
                    type=rule.type,
                    content=content,
                    metadata=SourceDocumentMetadata(
                        display_name=name,
                        stage_slug=rule.stage_slug,
                        header=rule.section_header,
                        model_name=row.get("model_name"),
                        document_key=_row_document_key(row),
                    ),
                )
            )
        return documents

    @staticmethod
    def _fail_if_required(rule: InputRule, message: str) -> None:
        if rule.required:
            raise InputGatheringError(message, rule.stage_slug)
        logger.warning(f"Skipping optional input: {message}")


def _row_document_key(row: dict[str, Any]) -> str | None:
    if not row.get("storage_path") or not row.get("file_name"):
        return None
    parsed = deconstruct_storage_path(row["storage_path"], row["file_name"], get_default_mapper())
    return parsed.document_key


def _dedupe_by_file_name(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    seen: set[str] = set()
    deduped = []
    for row in rows:
        file_name = row.get("file_name")
        if file_name in seen:
            continue
        seen.add(file_name)
        deduped.append(row)
    return deduped

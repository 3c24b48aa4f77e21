"""Tests for recovering metadata from stored paths."""

import pytest

from dialectic_storage.core.file_types import FileType
from dialectic_storage.core.path_constructor import construct_storage_path
from dialectic_storage.core.path_deconstructor import deconstruct_storage_path
from dialectic_storage.core.schemas_storage import PathContext

PROJECT_ID = "proj-123"
SESSION_ID = "abcd1234-ef56-7890-abcd-ef1234567890"
THESIS_DIR = f"{PROJECT_ID}/session_abcd1234/iteration_1/1_thesis"

MODEL_SLUGS = ["gpt-4o", "meta_llama_3_70b", "gpt_4o_2024_08_06"]
UNDECLARED_KEYS = ["executive_summary", "custom_doc_2", "risk_summary_v2"]
DOCUMENT_KEYS = UNDECLARED_KEYS + ["business_case"]


def _context(**overrides) -> PathContext:
    fields = {
        "file_type": FileType.BUSINESS_CASE,
        "project_id": PROJECT_ID,
        "session_id": SESSION_ID,
        "iteration": 1,
        "stage_slug": "thesis",
        "model_slug": "gpt-4o",
        "attempt_count": 0,
        "document_key": "business_case",
    }
    fields.update(overrides)
    return PathContext(**fields)


def _round_trip(context: PathContext):
    constructed = construct_storage_path(context)
    return deconstruct_storage_path(constructed.storage_path, constructed.file_name)


class TestContributionRoundTrip:
    def test_root_chunk(self):
        parsed = _round_trip(_context())

        assert parsed.error is None
        assert parsed.original_project_id == PROJECT_ID
        assert parsed.short_session_id == "abcd1234"
        assert parsed.iteration == 1
        assert parsed.stage_dir_name == "1_thesis"
        assert parsed.stage_slug == "thesis"
        assert parsed.model_slug == "gpt-4o"
        assert parsed.attempt_count == 0
        assert parsed.document_key == "business_case"
        assert parsed.is_continuation is False
        assert parsed.is_work_artifact is False
        assert parsed.file_type_guess == FileType.BUSINESS_CASE

    def test_continuation_chunk(self):
        parsed = _round_trip(_context(is_continuation=True, turn_index=4))

        assert parsed.is_continuation is True
        assert parsed.turn_index == 4
        assert parsed.is_work_artifact is True
        assert parsed.document_key == "business_case"
        assert parsed.model_slug == "gpt-4o"

    def test_raw_json(self):
        parsed = _round_trip(
            _context(file_type=FileType.MODEL_CONTRIBUTION_RAW_JSON, contribution_type="thesis")
        )

        assert parsed.error is None
        assert parsed.file_type_guess == FileType.MODEL_CONTRIBUTION_RAW_JSON
        assert parsed.document_key == "business_case"
        assert parsed.attempt_count == 0

    @pytest.mark.parametrize("model_slug", ["meta_llama_3_70b", "gpt_4o_2024_08_06", "claude"])
    def test_model_slugs_with_underscores_and_digits(self, model_slug):
        parsed = _round_trip(_context(model_slug=model_slug, attempt_count=2))

        assert parsed.model_slug == model_slug
        assert parsed.attempt_count == 2
        assert parsed.document_key == "business_case"

    def test_plain_contribution_type(self):
        parsed = _round_trip(
            _context(
                file_type=FileType.MODEL_CONTRIBUTION_MAIN,
                document_key=None,
                contribution_type="thesis",
            )
        )

        assert parsed.document_key is None
        assert parsed.contribution_type == "thesis"
        assert parsed.model_slug == "gpt-4o"

    def test_antithesis(self):
        parsed = _round_trip(
            _context(
                file_type=FileType.BUSINESS_CASE_CRITIQUE,
                document_key="business_case_critique",
                stage_slug="antithesis",
                contribution_type="antithesis",
                source_model_slugs=["claude-3"],
                source_anchor_type="business_case",
                source_attempt_count=1,
            )
        )

        assert parsed.stage_slug == "antithesis"
        assert parsed.model_slug == "gpt-4o"
        assert parsed.contribution_type == "antithesis"
        assert parsed.source_model_slug == "claude-3"
        assert parsed.source_anchor_type == "business_case"
        assert parsed.source_attempt_count == 1
        assert parsed.document_key == "business_case_critique"

    def test_pairwise(self):
        parsed = _round_trip(
            _context(
                file_type=FileType.SYNTHESIS_PAIRWISE_BUSINESS_CASE,
                document_key="synthesis_pairwise_business_case",
                stage_slug="synthesis",
                contribution_type="pairwise_synthesis_chunk",
                source_anchor_type="business_case",
                source_anchor_model_slug="claude-3",
                paired_model_slug="gemini",
            )
        )

        assert parsed.is_work_artifact is True
        assert parsed.contribution_type == "pairwise_synthesis_chunk"
        assert parsed.model_slug == "gpt-4o"
        assert parsed.source_anchor_model_slug == "claude-3"
        assert parsed.paired_model_slug == "gemini"
        assert parsed.source_anchor_type == "business_case"
        assert parsed.document_key == "synthesis_pairwise_business_case"

    def test_reduced(self):
        parsed = _round_trip(
            _context(
                file_type=FileType.SYNTHESIS_DOCUMENT_BUSINESS_CASE,
                document_key="synthesis_document_business_case",
                stage_slug="synthesis",
                contribution_type="reduced_synthesis",
                source_anchor_type="business_case",
                source_anchor_model_slug="claude-3",
            )
        )

        assert parsed.contribution_type == "reduced_synthesis"
        assert parsed.model_slug == "gpt-4o"
        assert parsed.source_anchor_type == "business_case"
        assert parsed.source_anchor_model_slug == "claude-3"
        assert parsed.document_key == "synthesis_document_business_case"

    def test_rendered_document(self):
        parsed = _round_trip(_context(file_type=FileType.RENDERED_DOCUMENT))

        assert parsed.file_type_guess == FileType.RENDERED_DOCUMENT
        assert parsed.document_key == "business_case"
        assert parsed.model_slug == "gpt-4o"

    def test_header_context(self):
        parsed = _round_trip(
            _context(file_type=FileType.HEADER_CONTEXT, document_key=None)
        )

        assert parsed.file_type_guess == FileType.HEADER_CONTEXT
        assert parsed.is_work_artifact is True
        assert parsed.document_key is None
        assert parsed.contribution_type == "header_context"
        assert parsed.model_slug == "gpt-4o"

    def test_synthesis_header_context(self):
        parsed = _round_trip(
            _context(
                file_type=FileType.SYNTHESIS_HEADER_CONTEXT,
                document_key=None,
                stage_slug="synthesis",
            )
        )

        assert parsed.file_type_guess == FileType.SYNTHESIS_HEADER_CONTEXT
        assert parsed.attempt_count == 0

    def test_header_context_by_name(self):
        parsed = deconstruct_storage_path(
            f"{THESIS_DIR}/_work/context", "gpt-4-turbo_0_header_context.json"
        )

        assert parsed.error is None
        assert parsed.model_slug == "gpt-4-turbo"
        assert parsed.attempt_count == 0
        assert parsed.file_type_guess == FileType.HEADER_CONTEXT

    def test_assembled_document_json_by_name(self):
        parsed = deconstruct_storage_path(
            f"{THESIS_DIR}/_work/assembled_json", "gpt-4_0_technical_approach_assembled.json"
        )

        assert parsed.error is None
        assert parsed.model_slug == "gpt-4"
        assert parsed.document_key == "technical_approach"
        assert parsed.file_type_guess == FileType.ASSEMBLED_DOCUMENT_JSON
        assert parsed.is_work_artifact is True

    def test_assembled_json_without_suffix_is_flagged(self):
        parsed = deconstruct_storage_path(
            f"{THESIS_DIR}/_work/assembled_json", "gpt-4_0_technical_approach.json"
        )
        assert parsed.error is not None


class TestPromptRoundTrip:
    def test_planner_prompt(self):
        parsed = _round_trip(_context(file_type=FileType.PLANNER_PROMPT, step_name="Plan Outline"))

        assert parsed.file_type_guess == FileType.PLANNER_PROMPT
        assert parsed.step_name == "plan_outline"
        assert parsed.model_slug == "gpt-4o"

    def test_turn_prompt(self):
        parsed = _round_trip(_context(file_type=FileType.TURN_PROMPT))

        assert parsed.file_type_guess == FileType.TURN_PROMPT
        assert parsed.document_key == "business_case"

    def test_continuation_prompt(self):
        parsed = _round_trip(_context(file_type=FileType.CONTINUATION_PROMPT, turn_index=3))

        assert parsed.file_type_guess == FileType.CONTINUATION_PROMPT
        assert parsed.is_continuation is True
        assert parsed.turn_index == 3
        assert parsed.document_key == "business_case"

    def test_planner_prompt_without_step(self):
        parsed = _round_trip(_context(file_type=FileType.PLANNER_PROMPT, attempt_count=1))

        assert parsed.error is None
        assert parsed.file_type_guess == FileType.PLANNER_PROMPT
        assert parsed.step_name is None
        assert parsed.model_slug == "gpt-4o"
        assert parsed.attempt_count == 1

    @pytest.mark.parametrize("model_slug", MODEL_SLUGS)
    @pytest.mark.parametrize("step_name", [None, "Plan Outline"])
    def test_planner_prompt_fields(self, model_slug, step_name):
        parsed = _round_trip(
            _context(
                file_type=FileType.PLANNER_PROMPT,
                model_slug=model_slug,
                attempt_count=2,
                step_name=step_name,
            )
        )

        assert parsed.error is None
        assert parsed.model_slug == model_slug
        assert parsed.attempt_count == 2
        assert parsed.step_name == (step_name and "plan_outline")

    @pytest.mark.parametrize("model_slug", MODEL_SLUGS)
    @pytest.mark.parametrize("document_key", DOCUMENT_KEYS)
    @pytest.mark.parametrize(
        "file_type, continuation, expected_type",
        [
            (FileType.TURN_PROMPT, {}, FileType.TURN_PROMPT),
            (FileType.TURN_PROMPT, {"is_continuation": True, "turn_index": 2}, FileType.TURN_PROMPT),
            (FileType.CONTINUATION_PROMPT, {"turn_index": 2}, FileType.CONTINUATION_PROMPT),
        ],
    )
    def test_document_prompts(self, model_slug, document_key, file_type, continuation, expected_type):
        parsed = _round_trip(
            _context(
                file_type=file_type,
                model_slug=model_slug,
                attempt_count=1,
                document_key=document_key,
                **continuation,
            )
        )

        assert parsed.error is None
        assert parsed.file_type_guess == expected_type
        assert parsed.model_slug == model_slug
        assert parsed.attempt_count == 1
        assert parsed.document_key == document_key
        assert parsed.turn_index == continuation.get("turn_index")
        assert parsed.is_continuation is bool(continuation)

    def test_turn_prompt_continuation_by_name(self):
        parsed = deconstruct_storage_path(
            f"{THESIS_DIR}/_work/prompts", "gpt-4o_1_executive_summary_continuation_2_prompt.md"
        )

        assert parsed.file_type_guess == FileType.TURN_PROMPT
        assert parsed.document_key == "executive_summary"
        assert parsed.is_continuation is True
        assert parsed.turn_index == 2


class TestDocumentKeyRoundTrip:
    @pytest.mark.parametrize("model_slug", MODEL_SLUGS)
    @pytest.mark.parametrize("document_key", UNDECLARED_KEYS)
    @pytest.mark.parametrize(
        "file_type, extra, expected_type",
        [
            (FileType.MODEL_CONTRIBUTION_MAIN, {}, FileType.MODEL_CONTRIBUTION_MAIN),
            (
                FileType.MODEL_CONTRIBUTION_MAIN,
                {"is_continuation": True, "turn_index": 3},
                FileType.MODEL_CONTRIBUTION_MAIN,
            ),
            (FileType.MODEL_CONTRIBUTION_RAW_JSON, {}, FileType.MODEL_CONTRIBUTION_RAW_JSON),
            (
                FileType.MODEL_CONTRIBUTION_RAW_JSON,
                {"is_continuation": True, "turn_index": 3},
                FileType.MODEL_CONTRIBUTION_RAW_JSON,
            ),
            (FileType.RENDERED_DOCUMENT, {}, FileType.RENDERED_DOCUMENT),
            (FileType.ASSEMBLED_DOCUMENT_JSON, {}, FileType.ASSEMBLED_DOCUMENT_JSON),
        ],
    )
    def test_document_key_survives(self, model_slug, document_key, file_type, extra, expected_type):
        parsed = _round_trip(
            _context(
                file_type=file_type,
                model_slug=model_slug,
                attempt_count=1,
                document_key=document_key,
                contribution_type="thesis",
                **extra,
            )
        )

        assert parsed.error is None
        assert parsed.model_slug == model_slug
        assert parsed.attempt_count == 1
        assert parsed.document_key == document_key
        assert parsed.contribution_type is None
        assert parsed.file_type_guess == expected_type
        assert parsed.turn_index == extra.get("turn_index")

    def test_rendered_document_with_undeclared_key(self):
        parsed = deconstruct_storage_path(
            f"{THESIS_DIR}/documents", "gpt-4o_1_executive_summary_rendered.md"
        )

        assert parsed.document_key == "executive_summary"
        assert parsed.contribution_type is None
        assert parsed.file_type_guess == FileType.RENDERED_DOCUMENT

    def test_undeclared_key_is_not_a_contribution_type(self):
        parsed = deconstruct_storage_path(f"{THESIS_DIR}/documents", "gpt-4o_1_executive_summary.md")

        assert parsed.document_key == "executive_summary"
        assert parsed.contribution_type is None

    def test_contribution_type_token_is_not_a_document_key(self):
        parsed = deconstruct_storage_path(THESIS_DIR, "gpt-4o_1_final_synthesis.md")

        assert parsed.document_key is None
        assert parsed.contribution_type == "final_synthesis"


class TestRagContextSummary:
    def test_round_trip(self):
        parsed = _round_trip(
            _context(
                file_type=FileType.RAG_CONTEXT_SUMMARY,
                stage_slug="synthesis",
                model_slug="gpt-4-turbo",
                source_model_slugs=["gemini-1.5-pro", "claude-3-opus"],
            )
        )

        assert parsed.error is None
        assert parsed.stage_slug == "synthesis"
        assert parsed.is_work_artifact is True
        assert parsed.model_slug == "gpt-4-turbo"
        assert parsed.source_model_slugs == ["claude-3-opus", "gemini-1.5-pro"]
        assert parsed.contribution_type is None
        assert parsed.attempt_count is None
        assert parsed.file_type_guess == FileType.RAG_CONTEXT_SUMMARY

    def test_single_source(self):
        parsed = deconstruct_storage_path(
            f"{PROJECT_ID}/session_abcd1234/iteration_1/3_synthesis/_work",
            "claude_compressing_gpt-4o_rag_summary.txt",
        )

        assert parsed.model_slug == "claude"
        assert parsed.source_model_slugs == ["gpt-4o"]


class TestStageAndProjectFiles:
    def test_seed_prompt(self):
        parsed = _round_trip(_context(file_type=FileType.SEED_PROMPT))
        assert parsed.file_type_guess == FileType.SEED_PROMPT
        assert parsed.stage_slug == "thesis"

    def test_stage_feedback(self):
        parsed = _round_trip(_context(file_type=FileType.USER_FEEDBACK))
        assert parsed.file_type_guess == FileType.USER_FEEDBACK

    def test_colocated_feedback(self):
        document = construct_storage_path(_context())
        feedback = construct_storage_path(
            PathContext(
                file_type=FileType.USER_FEEDBACK,
                original_storage_path=document.storage_path,
                original_base_name=document.file_name.removesuffix(".md"),
            )
        )
        parsed = deconstruct_storage_path(feedback.storage_path, feedback.file_name)

        assert parsed.file_type_guess == FileType.USER_FEEDBACK
        assert parsed.document_key == "business_case"

    def test_project_readme(self):
        parsed = deconstruct_storage_path(PROJECT_ID, "project_readme.md")
        assert parsed.original_project_id == PROJECT_ID
        assert parsed.file_type_guess == FileType.PROJECT_README

    def test_general_resource(self):
        parsed = deconstruct_storage_path(f"{PROJECT_ID}/general_resource", "notes.txt")
        assert parsed.file_type_guess == FileType.GENERAL_RESOURCE


class TestUnparseable:
    @pytest.mark.parametrize(
        "storage_dir, file_name",
        [
            ("", "orphan.md"),
            ("proj/unknown_folder", "file.bin"),
            ("proj/session_abcd1234", "file.md"),
            ("proj/session_abcd1234/iteration_1/1_thesis/documents", "no-structure.md"),
            ("proj/session_abcd1234/iteration_1/1_thesis/documents", "file.exe"),
            ("proj/session_abcd1234/iteration_1/1_thesis/_work/prompts", "random.txt"),
        ],
    )
    def test_reports_error_without_raising(self, storage_dir, file_name):
        parsed = deconstruct_storage_path(storage_dir, file_name)
        assert parsed.error is not None
        assert parsed.parsed_file_name == file_name

    def test_markdown_under_raw_responses_is_flagged(self):
        parsed = deconstruct_storage_path(
            "proj/session_abcd1234/iteration_1/1_thesis/raw_responses", "gpt_0_thesis.md"
        )
        assert parsed.error is not None
        assert parsed.model_slug == "gpt"

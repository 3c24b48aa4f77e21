"""Tests for path sanitizing and stage directory mapping."""

import pytest

from dialectic_storage.core.path_utils import generate_short_id, sanitize_for_path
from dialectic_storage.core.stage_dirs import (
    StageDirectoryMapper,
    get_default_mapper,
    map_stage_slug_to_dir_name,
)


class TestSanitizeForPath:
    def test_model_name(self):
        assert sanitize_for_path("My Model v2.1!") == "my_model_v2.1"

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("  Claude 3 Opus  ", "claude_3_opus"),
            ("tabs\tand\nnewlines", "tabs_and_newlines"),
            ("multiple   spaces", "multiple_spaces"),
            ("keep-dashes_and.dots", "keep-dashes_and.dots"),
            ("Ünïcödé/slashes\\", "ncdslashes"),
            ("", ""),
        ],
    )
    def test_cases(self, raw, expected):
        assert sanitize_for_path(raw) == expected

    def test_idempotent(self):
        once = sanitize_for_path("Gemini 1.5 Pro (preview)")
        assert sanitize_for_path(once) == once


class TestGenerateShortId:
    def test_strips_hyphens_and_truncates(self):
        assert generate_short_id("abcd1234-ef56-7890-abcd-ef1234567890") == "abcd1234"

    def test_custom_length(self):
        assert generate_short_id("ab-cd-ef", length=4) == "abcd"

    def test_short_value_unchanged(self):
        assert generate_short_id("abc") == "abc"


class TestStageDirectoryMapper:
    def test_known_stage(self):
        assert map_stage_slug_to_dir_name("synthesis") == "3_synthesis"

    def test_unknown_stage_passes_through(self):
        assert map_stage_slug_to_dir_name("unknown_stage") == "unknown_stage"

    def test_all_default_stages(self):
        mapper = StageDirectoryMapper()
        assert [mapper.map_stage_slug_to_dir_name(s) for s in (
            "thesis", "antithesis", "synthesis", "parenthesis", "paralysis"
        )] == ["1_thesis", "2_antithesis", "3_synthesis", "4_parenthesis", "5_paralysis"]

    def test_slug_is_normalised(self):
        assert StageDirectoryMapper().map_stage_slug_to_dir_name(" Thesis ") == "1_thesis"

    def test_injected_table(self):
        mapper = StageDirectoryMapper({"review": "6_review"})
        assert mapper.map_stage_slug_to_dir_name("review") == "6_review"
        assert mapper.map_stage_slug_to_dir_name("thesis") == "thesis"
        assert map_stage_slug_to_dir_name("review", mapper) == "6_review"

    def test_reverse_lookup(self):
        mapper = StageDirectoryMapper()
        assert mapper.map_dir_name_to_stage_slug("2_antithesis") == "antithesis"
        assert mapper.map_dir_name_to_stage_slug("custom") == "custom"

    def test_table_is_read_only(self):
        mapper = StageDirectoryMapper()
        with pytest.raises(TypeError):
            mapper.stage_dir_names["thesis"] = "0_thesis"

    def test_injected_table_is_copied(self):
        table = {"thesis": "1_thesis"}
        mapper = StageDirectoryMapper(table)
        table["thesis"] = "changed"
        assert mapper.map_stage_slug_to_dir_name("thesis") == "1_thesis"

    def test_default_mapper_uses_settings(self):
        assert get_default_mapper().map_stage_slug_to_dir_name("paralysis") == "5_paralysis"

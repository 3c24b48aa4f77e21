"""Tests for db helpers against a mocked Supabase client."""

from unittest.mock import MagicMock, patch

import pytest

from dialectic_storage.db.storage import is_conflict_error


class TestIsConflictError:
    @pytest.mark.parametrize(
        "error",
        [
            type("StorageError", (Exception,), {"status": 409})("conflict"),
            type("HttpError", (Exception,), {"status_code": "409"})("conflict"),
            Exception({"statusCode": "409", "message": "Duplicate"}),
            Exception({"error": "Duplicate", "message": "The resource already exists"}),
            Exception("The resource already exists"),
        ],
    )
    def test_conflicts(self, error):
        assert is_conflict_error(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            Exception("connection reset"),
            Exception({"statusCode": "500", "message": "Internal error"}),
            type("StorageError", (Exception,), {"status": 404})("Object not found"),
        ],
    )
    def test_other_errors(self, error):
        assert is_conflict_error(error) is False


class TestStorageOperations:
    def test_upload_encodes_text_and_passes_options(self):
        mock_supabase = MagicMock()

        with patch("dialectic_storage.db.storage.get_supabase", return_value=mock_supabase):
            from dialectic_storage.db.storage import upload_to_storage

            upload_to_storage("bucket", "a/b.md", "héllo", "text/markdown", upsert=False)

        mock_supabase.storage.from_.assert_called_once_with("bucket")
        mock_supabase.storage.from_.return_value.upload.assert_called_once_with(
            path="a/b.md",
            file="héllo".encode("utf-8"),
            file_options={"content-type": "text/markdown", "upsert": "false"},
        )

    def test_remove_nothing_skips_client(self):
        mock_supabase = MagicMock()

        with patch("dialectic_storage.db.storage.get_supabase", return_value=mock_supabase):
            from dialectic_storage.db.storage import remove_from_storage

            remove_from_storage("bucket", [])

        mock_supabase.storage.from_.assert_not_called()

    @pytest.mark.parametrize("key", ["signedURL", "signedUrl"])
    def test_signed_url_key_variants(self, key):
        mock_supabase = MagicMock()
        mock_supabase.storage.from_.return_value.create_signed_url.return_value = {key: "https://x"}

        with patch("dialectic_storage.db.storage.get_supabase", return_value=mock_supabase):
            from dialectic_storage.db.storage import create_signed_url

            assert create_signed_url("bucket", "a/b.md", 60) == "https://x"


class TestContributionOperations:
    def test_set_latest_edit_single_id_uses_eq(self):
        mock_supabase = MagicMock()

        with patch("dialectic_storage.db.contributions.get_supabase", return_value=mock_supabase):
            from dialectic_storage.db.contributions import set_latest_edit

            set_latest_edit(["c1"], False)

        update = mock_supabase.table.return_value.update
        update.assert_called_once_with({"is_latest_edit": False})
        update.return_value.eq.assert_called_once_with("id", "c1")
        update.return_value.in_.assert_not_called()

    def test_set_latest_edit_many_ids_uses_in(self):
        mock_supabase = MagicMock()

        with patch("dialectic_storage.db.contributions.get_supabase", return_value=mock_supabase):
            from dialectic_storage.db.contributions import set_latest_edit

            set_latest_edit(["c1", "c2"], True)

        update = mock_supabase.table.return_value.update
        update.return_value.in_.assert_called_once_with("id", ["c1", "c2"])

    def test_insert_without_row_raises(self):
        mock_response = MagicMock()
        mock_response.data = []

        mock_supabase = MagicMock()
        mock_supabase.table.return_value.insert.return_value.execute.return_value = mock_response

        with patch("dialectic_storage.db.contributions.get_supabase", return_value=mock_supabase):
            from dialectic_storage.db.contributions import insert_contribution

            with pytest.raises(ValueError):
                insert_contribution({"session_id": "s1"})

    def test_file_record_rejects_unknown_table(self):
        from dialectic_storage.db.file_records import get_file_record

        with pytest.raises(ValueError, match="Unsupported file table"):
            get_file_record("users", "id-1")

"""Pytest configuration and fixtures."""

import os
from contextlib import ExitStack
from unittest.mock import patch

import pytest

from tests.fakes.fake_supabase import FakeSupabase

TEST_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SERVICE_ROLE_KEY": "test-key",
    "STORAGE_ENV": "test",
    "SB_CONTENT_STORAGE_BUCKET": "test-bucket",
}

# Modules import settings at import time through get_logger
os.environ.update(TEST_ENV)

DB_MODULES = (
    "dialectic_storage.db.storage",
    "dialectic_storage.db.contributions",
    "dialectic_storage.db.feedback",
    "dialectic_storage.db.project_resources",
    "dialectic_storage.db.stages",
    "dialectic_storage.db.file_records",
)

BUCKET = TEST_ENV["SB_CONTENT_STORAGE_BUCKET"]


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ.update(TEST_ENV)


@pytest.fixture
def fake_supabase():
    """In-memory Supabase client patched into every db module."""
    fake = FakeSupabase()
    with ExitStack() as stack:
        for module in DB_MODULES:
            stack.enter_context(patch(f"{module}.get_supabase", return_value=fake))
        yield fake

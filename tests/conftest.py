"""Global pytest fixtures and environment overrides.

Credentials are set at module level so `get_settings()` never reaches for a real
project. No test performs a network call: the REST client is either mocked or
replaced by `tests.fakes.FakeStore`.
"""

import os

import pytest

from intranet_reconciler.config import get_settings

os.environ["SUPABASE_URL"] = "https://test-project.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test_service_role_key"
os.environ.pop("SUPABASE_SQL_RPC", None)


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Reset credentials and the settings cache for every test."""
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "test_service_role_key")
    monkeypatch.delenv("SUPABASE_SQL_RPC", raising=False)
    monkeypatch.delenv("ALLOW_SCAFFOLD_WRITES", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()



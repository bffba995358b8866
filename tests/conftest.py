"""Shared test fixtures for goose-reply.

Provides settings, client configuration and fake-backend fixtures used
across unit and integration tests.
"""

from collections.abc import Generator

import pytest
from pydantic import SecretStr

from goose_reply.client import ReplyClientConfig, ReplySession
from goose_reply.settings import Settings, get_settings
from tests.helpers.sse import FakeBackend


# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Generator[None, None, None]:
    """Settings are cached process-wide; start every test from scratch."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        environment="testing",
        goose_url="http://goose.test",
        goose_secret_key=SecretStr("test-secret"),
        reply_timeout=5.0,
        connect_timeout=1.0,
    )


@pytest.fixture
def mock_settings(test_settings: Settings, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Make get_settings() return the test settings everywhere."""
    from goose_reply import settings

    monkeypatch.setattr(settings, "get_settings", lambda: test_settings)
    monkeypatch.setattr("goose_reply.client.base.get_settings", lambda: test_settings)
    monkeypatch.setattr("goose_reply.cli.main.get_settings", lambda: test_settings)
    monkeypatch.setattr("goose_reply.logging_config.get_settings", lambda: test_settings)
    return test_settings


# =============================================================================
# CLIENT
# =============================================================================


@pytest.fixture
def reply_config(test_settings: Settings) -> ReplyClientConfig:
    return ReplyClientConfig.from_settings(test_settings)


@pytest.fixture
def make_session(reply_config: ReplyClientConfig):
    """Build a ReplySession wired to a FakeBackend."""
    sessions: list[ReplySession] = []

    def _make(backend: FakeBackend) -> ReplySession:
        session = ReplySession(reply_config, client=backend.client())
        sessions.append(session)
        return session

    yield _make

    for session in sessions:
        session._http_client.close()  # type: ignore[union-attr]

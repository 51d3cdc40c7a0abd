from __future__ import annotations

import os

import pytest

from robodash.config import Config

pytest_plugins = ["nicegui.testing.user_plugin"]


@pytest.fixture(scope="session", autouse=True)
def dashboard_env_session() -> None:
    """
    Global test defaults (set at session start via os.environ):
      - keep the log quiet unless a test asks for more
      - never trace per-tick cache activity
    These can still be overridden per-test with monkeypatch.setenv if needed.
    """
    os.environ.setdefault("ROBODASH_LOG_LEVEL", "WARNING")
    os.environ["ROBODASH_TRACE"] = "0"


@pytest.fixture
def cfg() -> Config:
    return Config(
        API_URL="https://backend.test",
        API_KEY="secret-key",
        ROBOT_ID="robot0",
        REFETCH_INTERVAL_S=1.0,
        REQUEST_TIMEOUT_S=0.5,
    )

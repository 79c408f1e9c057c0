"""Fixtures for tests that exercise the gateway end to end."""

import os

import pytest

from todoist_mcp.config import TodoistConfig


@pytest.fixture()
def live_todoist_config() -> TodoistConfig:
    """Configuration for the real Todoist API, taken from the environment."""
    if not os.getenv("TODOIST_API_TOKEN"):
        pytest.skip("TODOIST_API_TOKEN is not set")
    return TodoistConfig.from_env()

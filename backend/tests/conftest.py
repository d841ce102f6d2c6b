"""
Pytest configuration and shared fixtures for backend tests.

WHAT: Centralized test configuration, markers and a clean database per test
WHY: Controllers use the module-level engine, so every test needs fresh tables
HOW: Point settings at a temp SQLite file before any app import; drop/create around each test
"""

import os
import tempfile
from pathlib import Path

_TEST_DIR = Path(tempfile.gettempdir()) / "agentmarket-tests"
_TEST_DIR.mkdir(parents=True, exist_ok=True)

# Must run before agentmarket modules build the settings singleton and engine
os.environ["DATABASE_URL"] = f"sqlite:///{(_TEST_DIR / 'test_marketplace.db').as_posix()}"
os.environ["LOG_FILE"] = str(_TEST_DIR / "test.log")
os.environ["LM_STUDIO_ENABLED"] = "false"
os.environ["LLM_ENABLE_OPENROUTER"] = "false"
os.environ["LLM_PROVIDER"] = "lm_studio"
os.environ["AUTO_CONTINUE_DELAY_SECONDS"] = "0.01"
os.environ["ESCROW_MOCK_TRANSACTIONS"] = "false"
os.environ["ENABLE_DEV_ROUTES"] = "false"

import pytest

from agentmarket.core.database import Base, engine
from agentmarket.core import models  # noqa: F401
from agentmarket.core.step_guard import step_guard
from agentmarket.llm.provider_factory import reset_provider
from agentmarket.services.realtime import realtime_hub


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (multiple components)"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests (full system)"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time to run"
    )


@pytest.fixture(autouse=True)
def reset_provider_singleton():
    """
    Reset provider singleton before each test.

    WHAT: Clear provider cache between tests
    WHY: Prevent test pollution and ensure clean state
    HOW: Call reset_provider() before and after each test
    """
    reset_provider()
    yield
    reset_provider()


@pytest.fixture(autouse=True)
def clean_database():
    """
    Fresh schema and in-memory state for every test.

    WHAT: Drop and recreate all tables; clear the step guard and realtime hub
    WHY: Negotiation state persists in the store between tests otherwise
    HOW: Base.metadata drop_all/create_all on the shared test engine
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    step_guard.clear()
    realtime_hub.clear()
    yield
    step_guard.clear()
    realtime_hub.clear()

# tests/conftest.py
"""Pytest configuration and fixtures"""
import pytest
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from fakes import EngineHarness  # noqa: E402


@pytest.fixture
def harness():
    """Engine wired to in-memory fakes"""
    return EngineHarness()


@pytest.fixture
def user_id():
    """Default Telegram user id for tests"""
    return "1001"

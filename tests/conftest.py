"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.strategy.models import SyllabusSubject, Topic  # noqa: E402
from tests.factories import make_user  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (document stores)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def today():
    """Fixed 'now' so date arithmetic is deterministic."""
    return datetime(2024, 3, 15, 9, 30)


@pytest.fixture
def sample_syllabus():
    """Two subjects with estimated hours on some topics."""
    return [
        SyllabusSubject(
            id="history",
            name="History",
            topics=[
                Topic(id="h1", name="Harappan Civilisation", estimated_hours=2.0),
                Topic(id="h2", name="Mauryan Empire"),
                Topic(id="h3", name="Mughal Empire", estimated_hours=3.0),
            ],
        ),
        SyllabusSubject(
            id="polity",
            name="Polity",
            topics=[
                Topic(id="p1", name="Preamble"),
                Topic(id="p2", name="Fundamental Rights", estimated_hours=4.0),
            ],
            tier=2,
        ),
    ]


@pytest.fixture
def sample_user(today):
    """User 30 days into preparation with an exam 60 days out."""
    return make_user(start=today - timedelta(days=30), exam=today + timedelta(days=60))


@pytest.fixture
def sample_plan(today):
    """Plan document as read by StrategyPlan.from_dict."""
    return {
        "user": {
            "user_id": "alice",
            "preparation_start_date": (today - timedelta(days=20)).date().isoformat(),
            "current_exam": {
                "id": "prelims",
                "name": "Prelims",
                "target_date": (today + timedelta(days=40)).date().isoformat(),
            },
            "preferences": {"daily_study_goal_minutes": 120},
        },
        "syllabus": [
            {
                "id": "history",
                "name": "History",
                "topics": [{"id": "h1", "estimated_hours": 2}, {"id": "h2"}],
            },
            {"id": "polity", "name": "Polity", "topics": [{"id": "p1"}, {"id": "p2"}]},
        ],
        "topic_progress": {
            "h1": {"status": "completed", "total_study_time": 90, "subject_id": "history"},
            "h2": {"status": "mastered", "subject_id": "history", "mastery_score": 90},
            "p1": {
                "status": "in_progress",
                "subject_id": "polity",
                "next_revision": (today - timedelta(days=1)).isoformat(),
            },
        },
    }

"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import random
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from growfluent.srs.models import DAY_MS, Card, CardStatus, Language

NOW = 1_700_000_000_000


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture
def now():
    """A fixed clock reading (ms epoch)."""
    return NOW


@pytest.fixture
def rng():
    """Seeded randomness so selections are reproducible."""
    return random.Random(42)


@pytest.fixture
def make_card():
    """Factory for cards with sensible defaults, created a day ago and due now."""

    def _make(card_id, **overrides):
        fields = {
            "id": card_id,
            "phrase": f"phrase {card_id}",
            "language": Language.ENGLISH,
            "created_at": NOW - DAY_MS,
            "next_review_at": NOW,
            "translation": f"traducción {card_id}",
        }
        fields.update(overrides)
        return Card(**fields)

    return _make


@pytest.fixture
def mastered_card(make_card):
    """A card that has already graduated."""
    return make_card(
        "mastered",
        last_interval=25,
        repetition_count=3,
        easiness_factor=2.8,
        status=CardStatus.MASTERED,
        next_review_at=NOW + 25 * DAY_MS,
    )

"""
Pytest configuration for live monitor tests.
"""

import pytest

from livemonitor.models import DiffRef, EditEvent
from livemonitor.services.cluster_registry import ClusterRegistry

T0 = 1_700_000_000_000


def pytest_configure(config):
    """Configure pytest with asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


def edit(
    key: str,
    editor: str = "Alice",
    at: int = T0,
    delta: int = 10,
    is_bot: bool = False,
    diff_ref: DiffRef = None,
) -> EditEvent:
    """EditEvent for a "lang:Title" key observed at `at` ms"""
    language, _, title = key.partition(':')
    return EditEvent(
        language=language,
        title=title.replace('_', ' '),
        editor=editor,
        is_bot=is_bot,
        delta_bytes=delta,
        observed_at_millis=at,
        diff_ref=diff_ref,
    )


@pytest.fixture
def registry():
    """Fresh registry sized for a threshold of 5"""
    return ClusterRegistry(interval_window=5, max_changes=100)


@pytest.fixture
def make_edit():
    """Factory for EditEvents, see edit()"""
    return edit

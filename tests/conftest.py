"""Shared pytest configuration and fixtures for the herdview test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from herdview.core.config_manager import ViewSettings  # noqa: E402
from tests.infrastructure.mocks.compositor_mocks import FakeCompositor, make_item  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings(tmp_path) -> ViewSettings:
    """Default settings with retries off and state kept under tmp_path."""
    return ViewSettings(
        retry_disabled=True,
        state_file=tmp_path / "state.json",
    )


@pytest.fixture
def compositor() -> FakeCompositor:
    """A two-scene compositor.

    "Main" holds three cameras laid out as one large and two small windows
    plus an overlay; "Night" holds two cameras.
    """
    fake = FakeCompositor()
    fake.add_scene(
        "Main",
        make_item(1, "Treat", 0, 0, 1920, 1080),
        make_item(2, "Does", 1280, 600, 960, 540),
        make_item(3, "Kidding A", 1280, 0, 960, 540),
        make_item(4, "Barn", 0, 0, 640, 360, enabled=False),
        make_item(5, "Logo", 20, 20, 200, 100, kind="image_source"),
    )
    fake.add_scene(
        "Night",
        make_item(11, "Treat", 0, 0, 1280, 720),
        make_item(12, "Does", 1280, 0, 640, 360),
    )
    return fake

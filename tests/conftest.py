"""Shared pytest configuration and fixtures for the replay recorder test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )
    config.addinivalue_line(
        "markers", "subprocess: mark test as spawning a real child process"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def engine():
    """Playback engine double that emits events on demand."""
    from tests.infrastructure.mocks.playback_mocks import FakePlaybackEngine
    return FakePlaybackEngine()


@pytest.fixture
def controller():
    """Connected, idle recording controller double."""
    from tests.infrastructure.mocks.playback_mocks import FakeRecordingController
    return FakeRecordingController()

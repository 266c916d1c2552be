"""Unit test fixtures for isolated, fast test execution.

This conftest provides fixtures specifically for unit tests that:
- Run in complete isolation (no OBS, no Dolphin)
- Execute quickly (< 1s per test, unless marked slow)
- Keep generated queue files and logs inside pytest's tmp_path

The root conftest provides:
- project_root
- engine, controller (playback and recording doubles)
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

import pytest


# =============================================================================
# Filesystem Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def queue_dir(tmp_path: Path) -> Path:
    """Directory for generated queue files."""
    directory = tmp_path / "queues"
    directory.mkdir()
    return directory


# =============================================================================
# Data Generation Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def dolphin_output() -> Callable[..., list]:
    """Generate the stdout lines Dolphin prints for one queue entry.

    Example:
        def test_parse(dolphin_output):
            lines = dolphin_output("a.slp", game_end=10)
    """
    def generate(
        path: str = "C:/replays/Game_1.slp",
        start: int = -123,
        game_end: int = 10,
        playback_end: int = 2 ** 31 - 1,
        frames: Iterable[int] | None = None,
    ) -> list:
        lines = [
            f"[FILE_PATH] {path}",
            f"[PLAYBACK_START_FRAME] {start}",
            f"[GAME_END_FRAME] {game_end}",
            f"[PLAYBACK_END_FRAME] {playback_end}",
        ]
        if frames is None:
            frames = range(start, game_end + 1)
        lines.extend(f"[CURRENT_FRAME] {n}" for n in frames)
        return lines

    return generate

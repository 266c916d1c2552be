"""Centralized path constants for the replay recorder."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path


def _app_data_dir() -> Path:
    """Return the per-user application data directory for this platform."""
    if sys.platform.startswith("win"):
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata)
        return Path.home() / "AppData" / "Roaming"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    return Path(xdg).expanduser() if xdg else Path.home() / ".config"


def default_dolphin_path() -> Path:
    """Location of the playback Dolphin bundled with the Slippi Desktop App."""
    executable = "Dolphin.exe" if sys.platform.startswith("win") else "dolphin-emu"
    return _app_data_dir() / "Slippi Desktop App" / "dolphin" / executable


PACKAGE_ROOT = Path(__file__).resolve().parents[1]
PROJECT_ROOT = PACKAGE_ROOT.parent

# Configuration
CONFIG_PATH = PROJECT_ROOT / "config.txt"

# User-specific state (allows running from read-only install directories)
_USER_STATE_ENV = os.environ.get("REPLAY_RECORDER_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".replay_recorder")

# Logging
LOGS_DIR = USER_STATE_DIR / "logs"
RECORDER_LOG_FILE = LOGS_DIR / "recorder.log"

# Generated queue files handed to Dolphin
QUEUE_TEMP_DIR = Path(tempfile.gettempdir())


def ensure_directories() -> None:
    """Create necessary directories if they don't exist."""

    LOGS_DIR.mkdir(parents=True, exist_ok=True)


__all__ = [
    'PACKAGE_ROOT',
    'PROJECT_ROOT',
    'CONFIG_PATH',
    'LOGS_DIR',
    'RECORDER_LOG_FILE',
    'USER_STATE_DIR',
    'QUEUE_TEMP_DIR',
    'default_dolphin_path',
    'ensure_directories',
]

"""Application entrypoints for the replay recorder."""

from .main import parse_args
from .recorder_app import RecorderApp

__all__ = ["parse_args", "RecorderApp"]

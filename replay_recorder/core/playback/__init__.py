"""Dolphin playback engine and its event stream."""

from .engine import DolphinProcess, EventListener, ExitListener, PlaybackEngine
from .events import DolphinOutputParser, PlaybackEvent, PlaybackStatus

__all__ = [
    'DolphinOutputParser',
    'DolphinProcess',
    'EventListener',
    'ExitListener',
    'PlaybackEngine',
    'PlaybackEvent',
    'PlaybackStatus',
]

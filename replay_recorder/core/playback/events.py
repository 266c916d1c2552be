"""
Playback events derived from Dolphin's stdout.

When launched with ``--cout`` Dolphin prints one command per line while it
works through a queue::

    [FILE_PATH] C:/replays/Game_1.slp
    [LRAS] -1
    [PLAYBACK_START_FRAME] -123
    [GAME_END_FRAME] 4211
    [PLAYBACK_END_FRAME] 2147483647
    [CURRENT_FRAME] -123
    ...
    [NO_GAME]

``DolphinOutputParser`` keeps the frame bookkeeping for the current file
and turns those lines into ``PlaybackEvent`` values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from replay_recorder.core.logging_utils import get_module_logger

logger = get_module_logger("DolphinOutput")

DEFAULT_START_FRAME = -123
MAX_FRAME = 2 ** 31 - 1


class PlaybackStatus(Enum):
    FILE_LOADED = "file_loaded"
    PLAYBACK_START = "playback_start"
    PLAYBACK_END = "playback_end"
    QUEUE_EMPTY = "queue_empty"
    CURRENT_FRAME = "current_frame"


@dataclass(frozen=True)
class PlaybackEvent:
    status: PlaybackStatus
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def game_ended(self) -> bool:
        return bool(self.data.get("game_ended"))

    @classmethod
    def playback_end(cls, game_ended: bool) -> "PlaybackEvent":
        return cls(PlaybackStatus.PLAYBACK_END, {"game_ended": game_ended})


class DolphinOutputParser:
    """Stateful line parser for Dolphin's ``--cout`` output.

    ``start_buffer`` delays the start event by that many frames past the
    playback start frame; ``end_buffer`` fires the end event that many
    frames early.
    """

    def __init__(self, start_buffer: int = 0, end_buffer: int = 0):
        self.start_buffer = start_buffer
        self.end_buffer = end_buffer
        self.current_path: Optional[str] = None
        self._reset_file_state()

    def _reset_file_state(self) -> None:
        self.start_frame = DEFAULT_START_FRAME
        self.game_end_frame: Optional[int] = None
        self.playback_end_frame = MAX_FRAME
        self.playing = False
        self.ended = False

    @staticmethod
    def split_line(line: str) -> Optional[tuple]:
        text = line.strip()
        if not text.startswith("["):
            return None
        close = text.find("]")
        if close == -1:
            return None
        command = text[:close + 1]
        value = text[close + 1:].strip()
        return command, value

    @staticmethod
    def _parse_frame(command: str, value: str) -> Optional[int]:
        try:
            return int(value)
        except ValueError:
            logger.warning("Ignoring %s with non-integer value %r", command, value)
            return None

    def _end_target(self) -> int:
        if self.game_end_frame is None:
            return self.playback_end_frame
        return min(self.game_end_frame, self.playback_end_frame)

    def _game_ended(self) -> bool:
        return self.game_end_frame is not None and self.game_end_frame <= self.playback_end_frame

    def _finish_skipped(self, events: List[PlaybackEvent]) -> None:
        if self.playing and not self.ended:
            events.append(PlaybackEvent.playback_end(False))
            self.ended = True

    def feed_line(self, line: str) -> List[PlaybackEvent]:
        """Consume one stdout line and return the events it produces."""
        parts = self.split_line(line)
        if parts is None:
            return []

        command, value = parts
        events: List[PlaybackEvent] = []

        if command == "[FILE_PATH]":
            if not value:
                return events
            self._finish_skipped(events)
            self._reset_file_state()
            self.current_path = value
            events.append(PlaybackEvent(PlaybackStatus.FILE_LOADED, {"path": value}))

        elif command == "[PLAYBACK_START_FRAME]":
            frame = self._parse_frame(command, value)
            if frame is not None:
                self.start_frame = frame

        elif command == "[GAME_END_FRAME]":
            frame = self._parse_frame(command, value)
            if frame is not None:
                self.game_end_frame = frame

        elif command == "[PLAYBACK_END_FRAME]":
            frame = self._parse_frame(command, value)
            if frame is not None:
                self.playback_end_frame = frame

        elif command == "[CURRENT_FRAME]":
            frame = self._parse_frame(command, value)
            if frame is not None:
                events.extend(self._handle_current_frame(frame))

        elif command == "[NO_GAME]":
            self._finish_skipped(events)
            self._reset_file_state()
            self.current_path = None
            events.append(PlaybackEvent(PlaybackStatus.QUEUE_EMPTY))

        else:
            logger.debug("Unhandled Dolphin command %s %s", command, value)

        return events

    def _handle_current_frame(self, frame: int) -> List[PlaybackEvent]:
        events = [PlaybackEvent(PlaybackStatus.CURRENT_FRAME, {"frame": frame})]

        if not self.playing and frame >= self.start_frame + self.start_buffer:
            self.playing = True
            events.append(PlaybackEvent(
                PlaybackStatus.PLAYBACK_START,
                {"path": self.current_path, "frame": frame},
            ))

        if self.playing and not self.ended and frame >= self._end_target() - self.end_buffer:
            self.ended = True
            events.append(PlaybackEvent.playback_end(self._game_ended()))

        return events

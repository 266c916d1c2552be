"""
Queue Descriptor - The JSON playback queue consumed by Dolphin.

File format::

    {
      "mode": "queue",
      "replay": "",
      "queue": [
        {"path": "C:/replays/Game_1.slp"},
        {"path": "C:/replays/Game_2.slp", "startFrame": 300, "endFrame": 900}
      ]
    }

Queue-level options sit at the top level next to ``queue``. Unknown
keys are preserved so a file read back is written out unchanged.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

QUEUE_KEY = "queue"
REPLAY_EXTENSION = ".slp"
JSON_INDENT = 2

PathLike = Union[str, Path]


class QueueFormatError(ValueError):
    """Raised when a queue document cannot be interpreted."""


def is_replay_file(path: PathLike) -> bool:
    return Path(path).suffix == REPLAY_EXTENSION


@dataclass(frozen=True)
class QueueEntry:
    """One replay in the queue, optionally trimmed to a frame window."""

    path: str
    start_frame: Optional[int] = None
    end_frame: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path}
        if self.start_frame is not None:
            data["startFrame"] = self.start_frame
        if self.end_frame is not None:
            data["endFrame"] = self.end_frame
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "QueueEntry":
        if not isinstance(data, Mapping):
            raise QueueFormatError(f"Queue entry must be an object, got {type(data).__name__}")
        path = data.get("path")
        if not isinstance(path, str) or not path:
            raise QueueFormatError("Queue entry is missing a 'path'")
        return cls(
            path=path,
            start_frame=data.get("startFrame"),
            end_frame=data.get("endFrame"),
        )

    @classmethod
    def for_path(cls, path: PathLike) -> "QueueEntry":
        return cls(path=str(path))


@dataclass(frozen=True)
class QueueDescriptor:
    """Ordered replay entries plus queue-level options."""

    entries: Tuple[QueueEntry, ...]
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple(self.entries))
        options = dict(self.options)
        if QUEUE_KEY in options:
            raise QueueFormatError(f"'{QUEUE_KEY}' is reserved and cannot be a queue option")
        object.__setattr__(self, "options", options)

    @classmethod
    def from_paths(cls, paths: Iterable[PathLike], options: Optional[Mapping[str, Any]] = None) -> "QueueDescriptor":
        return cls(
            entries=tuple(QueueEntry.for_path(p) for p in paths),
            options=dict(options or {}),
        )

    @property
    def paths(self) -> Tuple[str, ...]:
        return tuple(entry.path for entry in self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        payload = dict(self.options)
        payload[QUEUE_KEY] = [entry.to_dict() for entry in self.entries]
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=JSON_INDENT)

    @classmethod
    def from_dict(cls, data: Any) -> "QueueDescriptor":
        if not isinstance(data, Mapping):
            raise QueueFormatError("Queue document must be a JSON object")
        raw_queue = data.get(QUEUE_KEY, [])
        if not isinstance(raw_queue, list):
            raise QueueFormatError(f"'{QUEUE_KEY}' must be a list")
        options = {key: value for key, value in data.items() if key != QUEUE_KEY}
        return cls(
            entries=tuple(QueueEntry.from_dict(item) for item in raw_queue),
            options=options,
        )

    @classmethod
    def from_json(cls, text: str) -> "QueueDescriptor":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise QueueFormatError(f"Invalid queue JSON: {exc}") from exc
        return cls.from_dict(data)

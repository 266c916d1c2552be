"""
Queue Materializer - Writes playback queues to disk for Dolphin.

Dolphin is handed a path to a JSON queue. Ad-hoc file lists and the
pending queue are written to uniquely named files in the queue
directory; Dolphin owns them after hand-off. The pending queue can also
be exported to a user-chosen location for later reuse.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import aiofiles

from replay_recorder.core.logging_utils import get_module_logger
from replay_recorder.core.paths import QUEUE_TEMP_DIR

from .descriptor import PathLike, QueueDescriptor, QueueEntry, is_replay_file

logger = get_module_logger("QueueMaterializer")

QUEUE_FILE_SUFFIX = "_dolphin_queue.json"
_MAX_NAME_ATTEMPTS = 1000


def build_descriptor(
    files: Iterable[PathLike],
    options: Optional[Dict[str, Any]] = None,
) -> Optional[QueueDescriptor]:
    """Keep the replay files from ``files`` in order; None if none remain."""
    replays = [str(f) for f in files if is_replay_file(f)]
    if not replays:
        return None
    return QueueDescriptor.from_paths(replays, options)


async def _write_exclusive(directory: Path, payload: str) -> Path:
    """Write ``payload`` to a fresh ``<millis>_dolphin_queue.json`` in ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    stamp = int(time.time() * 1000)

    for attempt in range(_MAX_NAME_ATTEMPTS):
        suffix = f"_{attempt}" if attempt else ""
        candidate = directory / f"{stamp}{suffix}{QUEUE_FILE_SUFFIX}"
        try:
            async with aiofiles.open(candidate, "x", encoding="utf-8") as f:
                await f.write(payload)
        except FileExistsError:
            continue
        return candidate

    raise FileExistsError(f"Could not find a free queue file name in {directory}")


async def write_descriptor(descriptor: QueueDescriptor, queue_dir: Path = QUEUE_TEMP_DIR) -> Path:
    path = await _write_exclusive(Path(queue_dir), descriptor.to_json())
    logger.debug("Wrote queue with %d entries to %s", len(descriptor), path)
    return path


async def materialize_files(
    files: Iterable[PathLike],
    options: Optional[Dict[str, Any]] = None,
    queue_dir: Path = QUEUE_TEMP_DIR,
) -> Optional[Path]:
    """Write a queue for the replay files in ``files``.

    Returns the queue path, or None (and writes nothing) when no replay
    files are left after filtering.
    """
    descriptor = build_descriptor(files, options)
    if descriptor is None:
        logger.info("No replay files to load")
        return None
    return await write_descriptor(descriptor, queue_dir)


async def read_queue_file(path: PathLike) -> QueueDescriptor:
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        text = await f.read()
    return QueueDescriptor.from_json(text)


class PendingQueue:
    """The queue the user is building up before playback.

    One instance lives for the whole process and is passed to whoever
    needs it.
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        self._entries: List[QueueEntry] = []
        self._options: Dict[str, Any] = dict(options or {})

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Sequence[QueueEntry]:
        return tuple(self._entries)

    @property
    def options(self) -> Dict[str, Any]:
        return dict(self._options)

    def append(self, entry: QueueEntry) -> None:
        self._entries.append(entry)

    def extend(self, files: Iterable[PathLike]) -> int:
        """Append the replay files from ``files``; returns how many were added."""
        added = [QueueEntry.for_path(f) for f in files if is_replay_file(f)]
        self._entries.extend(added)
        return len(added)

    def remove(self, index: int) -> QueueEntry:
        return self._entries.pop(index)

    def clear(self) -> None:
        self._entries.clear()

    def set_options(self, **options: Any) -> None:
        self._options.update(options)

    def snapshot(self) -> QueueDescriptor:
        return QueueDescriptor(entries=tuple(self._entries), options=dict(self._options))


async def materialize_pending(pending: PendingQueue, queue_dir: Path = QUEUE_TEMP_DIR) -> Optional[Path]:
    """Write the pending queue to a fresh file for playback."""
    if not len(pending):
        logger.info("Pending queue is empty, nothing to load")
        return None
    return await write_descriptor(pending.snapshot(), queue_dir)


async def save_queue_to_file(pending: PendingQueue, path: Optional[PathLike]) -> bool:
    """Export the pending queue to ``path``. Nothing is written without a path."""
    if not path:
        logger.error("Could not save queue because path is undefined")
        return False

    target = Path(path)
    try:
        async with aiofiles.open(target, "w", encoding="utf-8") as f:
            await f.write(pending.snapshot().to_json())
    except OSError as e:
        logger.error("Failed to save queue to %s: %s", target, e)
        return False

    logger.info("Saved queue with %d entries to %s", len(pending), target)
    return True

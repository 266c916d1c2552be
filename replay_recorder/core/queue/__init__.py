"""Playback queue files."""

from .descriptor import (
    QueueDescriptor,
    QueueEntry,
    QueueFormatError,
    REPLAY_EXTENSION,
    is_replay_file,
)
from .materializer import (
    PendingQueue,
    build_descriptor,
    materialize_files,
    materialize_pending,
    read_queue_file,
    save_queue_to_file,
    write_descriptor,
)

__all__ = [
    'PendingQueue',
    'QueueDescriptor',
    'QueueEntry',
    'QueueFormatError',
    'REPLAY_EXTENSION',
    'build_descriptor',
    'is_replay_file',
    'materialize_files',
    'materialize_pending',
    'read_queue_file',
    'save_queue_to_file',
    'write_descriptor',
]

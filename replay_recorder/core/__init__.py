
from .config_manager import ConfigManager, RecorderConfig
from .orchestrator import SETTLE_DELAY, PlaybackRecorder, PlayerOptions
from .playback import DolphinProcess, PlaybackEvent, PlaybackStatus
from .queue import PendingQueue, QueueDescriptor, QueueEntry, materialize_files, save_queue_to_file
from .recording import OBSConnection, RecordingAction

__all__ = [
    'ConfigManager',
    'DolphinProcess',
    'OBSConnection',
    'PendingQueue',
    'PlaybackEvent',
    'PlaybackRecorder',
    'PlaybackStatus',
    'PlayerOptions',
    'QueueDescriptor',
    'QueueEntry',
    'RecorderConfig',
    'RecordingAction',
    'SETTLE_DELAY',
    'materialize_files',
    'save_queue_to_file',
]

"""
Playback Recorder - Keeps OBS recording in step with Dolphin playback.

Playback events are put on a single queue and handled by one worker
task, each to completion (settle delay and OBS round-trip included)
before the next is taken. Recording commands therefore reach OBS in the
order Dolphin emitted the events, and never overlap.

Policy per event, while armed (recording enabled and OBS connected):

    PLAYBACK_START  resume action if OBS is recording, else hard START
    PLAYBACK_END    suspend action, after SETTLE_DELAY if the game ended
    QUEUE_EMPTY     hard STOP, then kill Dolphin
    engine exit     hard STOP if OBS is recording

Events arriving while disarmed are dropped. Each accepted event carries
the resume/suspend pair of the queue it came from, and a running Dolphin
is shut down before a new queue's mode takes effect.
"""

from __future__ import annotations

import asyncio
import dataclasses
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Protocol, Tuple, Union

from .asyncio_utils import cancel_task, create_logged_task
from .logging_utils import get_module_logger
from .playback import PlaybackEngine, PlaybackEvent, PlaybackStatus
from .recording import RecordingAction

logger = get_module_logger("PlaybackRecorder")

SETTLE_DELAY = 1.0

DRIVING_STATUSES = frozenset({
    PlaybackStatus.PLAYBACK_START,
    PlaybackStatus.PLAYBACK_END,
    PlaybackStatus.QUEUE_EMPTY,
})

BasenameListener = Callable[[str], None]


class RecordingController(Protocol):
    def is_connected(self) -> bool: ...

    def is_recording(self) -> bool: ...

    async def set_recording_state(self, action: RecordingAction) -> None: ...


@dataclass(frozen=True)
class PlayerOptions:
    """Recording mode for one loaded queue."""

    record: bool = False
    pause_between_entries: bool = True

    @property
    def recording_actions(self) -> Tuple[RecordingAction, RecordingAction]:
        """The (resume, suspend) pair used at entry boundaries."""
        if self.pause_between_entries:
            return RecordingAction.UNPAUSE, RecordingAction.PAUSE
        return RecordingAction.START, RecordingAction.STOP

    @classmethod
    def resolve(cls, options: Union["PlayerOptions", Mapping[str, Any], None]) -> "PlayerOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return dataclasses.replace(cls(), **dict(options))


class _EngineExited:
    def __repr__(self) -> str:
        return "<engine exited>"


ENGINE_EXITED = _EngineExited()

QueueItem = Union[PlaybackEvent, _EngineExited]


def replay_basename(path: str) -> str:
    """File name of a Dolphin path, which may use either separator."""
    return PureWindowsPath(path).name


class PlaybackRecorder:
    """Drives an OBS connection from a playback engine's events.

    Holds the engine by reference; one instance per process.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        connection: RecordingController,
        *,
        settle_delay: float = SETTLE_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.engine = engine
        self.connection = connection
        self.settle_delay = settle_delay
        self._sleep = sleep

        self.options = PlayerOptions()
        self.start_action = RecordingAction.START
        self.end_action = RecordingAction.STOP

        self._queue: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._basename = ""
        self._basename_listeners: List[BasenameListener] = []

        self.engine.subscribe(self._on_playback_event)
        self.engine.on_exit(self._on_engine_exit)

    # ------------------------------------------------------------------
    # Public API

    @property
    def current_basename(self) -> str:
        return self._basename

    def add_basename_listener(self, listener: BasenameListener) -> None:
        if listener not in self._basename_listeners:
            self._basename_listeners.append(listener)

    def remove_basename_listener(self, listener: BasenameListener) -> None:
        if listener in self._basename_listeners:
            self._basename_listeners.remove(listener)

    def is_armed(self) -> bool:
        return self.options.record and self.connection.is_connected()

    def start(self) -> None:
        """Start the event worker. Must be called from the event loop."""
        if self._worker is None or self._worker.done():
            self._worker = create_logged_task(
                self._run(),
                logger=logger,
                context="PlaybackRecorder.worker",
            )

    async def close(self) -> None:
        self.engine.unsubscribe(self._on_playback_event)
        self.engine.remove_exit_listener(self._on_engine_exit)
        await cancel_task(self._worker)
        self._worker = None

    async def load_queue(
        self,
        queue_path: Path,
        options: Union[PlayerOptions, Mapping[str, Any], None] = None,
    ) -> None:
        """Set the recording mode for this queue and start playing it."""
        options = PlayerOptions.resolve(options)
        await self.stop_playback()

        self.options = options
        if self.options.record:
            self.start_action, self.end_action = self.options.recording_actions

        logger.info(
            "Loading queue %s (record=%s, pause_between_entries=%s)",
            queue_path,
            self.options.record,
            self.options.pause_between_entries,
        )
        await self.engine.load_queue(Path(queue_path))

    async def stop_playback(self) -> None:
        """Shut down a running engine under the current queue's mode."""
        self.start()
        if self.engine.is_running():
            logger.info("Stopping current playback")
            await self.engine.stop()

    async def wait_idle(self) -> None:
        """Wait until every accepted event has been handled."""
        self.start()
        await self._queue.join()

    # ------------------------------------------------------------------
    # Engine callbacks (synchronous, called in emission order)

    def _on_playback_event(self, event: PlaybackEvent) -> None:
        if event.status is PlaybackStatus.FILE_LOADED:
            self._set_basename(replay_basename(event.data.get("path", "")))
        elif event.status is PlaybackStatus.QUEUE_EMPTY:
            self._set_basename("")

        if event.status not in DRIVING_STATUSES:
            return
        if not self.is_armed():
            logger.debug("Not armed, dropping %s", event.status.value)
            return
        self._enqueue(event)

    def _on_engine_exit(self, returncode: Optional[int]) -> None:
        self._set_basename("")
        if not self.is_armed():
            return
        self._enqueue(ENGINE_EXITED)

    def _enqueue(self, item: QueueItem) -> None:
        self._queue.put_nowait((item, (self.start_action, self.end_action)))

    def _set_basename(self, name: str) -> None:
        if name == self._basename:
            return
        self._basename = name
        for listener in list(self._basename_listeners):
            try:
                listener(name)
            except Exception as e:
                logger.error("Basename listener error: %s", e, exc_info=True)

    # ------------------------------------------------------------------
    # Worker

    async def _run(self) -> None:
        while True:
            item, actions = await self._queue.get()
            try:
                if item is ENGINE_EXITED:
                    if self.connection.is_recording():
                        await self.connection.set_recording_state(RecordingAction.STOP)
                else:
                    await self._handle_playback(item, *actions)
            except Exception as e:
                logger.error("Failed to handle %s: %s", item, e, exc_info=True)
            finally:
                self._queue.task_done()

    async def _handle_playback(
        self,
        event: PlaybackEvent,
        start_action: RecordingAction,
        end_action: RecordingAction,
    ) -> None:
        logger.debug("Handling %s %s", event.status.value, event.data)

        if event.status is PlaybackStatus.PLAYBACK_START:
            if self.connection.is_recording():
                action = start_action
            else:
                action = RecordingAction.START
            await self.connection.set_recording_state(action)

        elif event.status is PlaybackStatus.PLAYBACK_END:
            if event.game_ended:
                # let the encoder catch up on the last frames
                await self._sleep(self.settle_delay)
            await self.connection.set_recording_state(end_action)

        elif event.status is PlaybackStatus.QUEUE_EMPTY:
            try:
                await self.connection.set_recording_state(RecordingAction.STOP)
            finally:
                self.engine.kill()

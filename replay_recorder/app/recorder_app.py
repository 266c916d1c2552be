"""Process-scoped wiring of the OBS connection, Dolphin and the recorder."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from replay_recorder.core.config_manager import RecorderConfig
from replay_recorder.core.logging_utils import get_module_logger
from replay_recorder.core.orchestrator import PlaybackRecorder, PlayerOptions
from replay_recorder.core.playback import DolphinProcess
from replay_recorder.core.queue import (
    PendingQueue,
    materialize_files,
    materialize_pending,
    save_queue_to_file,
)
from replay_recorder.core.recording import OBSConnection

logger = get_module_logger("RecorderApp")

OptionsLike = Union[PlayerOptions, Mapping[str, Any], None]


class RecorderApp:
    """
    Owns one OBS connection, one Dolphin process, one recorder and the
    pending queue for the lifetime of the process.

    Responsibilities:
    - Turn file lists or the pending queue into queue files and play them
    - Connect to OBS on request
    - Tear everything down in ``close``
    """

    def __init__(
        self,
        config: RecorderConfig,
        *,
        connection: Optional[OBSConnection] = None,
        engine: Optional[DolphinProcess] = None,
    ):
        self.config = config
        self.connection = connection or OBSConnection()
        self.engine = engine or DolphinProcess(
            config.dolphin_path,
            melee_iso_path=config.melee_iso_path,
            batch=config.batch_mode,
            start_buffer=config.start_buffer,
            end_buffer=config.end_buffer,
        )
        self.recorder = PlaybackRecorder(self.engine, self.connection)
        self.pending_queue = PendingQueue()

        self._playback_finished = asyncio.Event()
        self.engine.on_exit(self._on_engine_exit)

    def default_options(self) -> PlayerOptions:
        return PlayerOptions(
            record=self.config.record,
            pause_between_entries=self.config.pause_between_entries,
        )

    def _on_engine_exit(self, returncode: Optional[int]) -> None:
        self._playback_finished.set()

    async def connect_obs(self) -> bool:
        return await self.connection.connect(
            self.config.obs_host,
            self.config.obs_port,
            self.config.obs_password,
        )

    async def open_queue_file(self, queue_path: Path, options: OptionsLike = None) -> None:
        # the outgoing Dolphin must exit before the flag is rearmed
        await self.recorder.stop_playback()
        self._playback_finished.clear()
        await self.recorder.load_queue(queue_path, options if options is not None else self.default_options())

    async def load_files(self, files: Iterable[Union[str, Path]], options: OptionsLike = None) -> bool:
        """Play the replay files in ``files``. False if there was nothing to play."""
        queue_path = await materialize_files(files, queue_dir=self.config.queue_dir)
        if queue_path is None:
            return False
        await self.open_queue_file(queue_path, options)
        return True

    async def load_pending_queue(self, options: OptionsLike = None) -> bool:
        queue_path = await materialize_pending(self.pending_queue, self.config.queue_dir)
        if queue_path is None:
            return False
        await self.open_queue_file(queue_path, options)
        return True

    async def save_pending_queue(self, path: Optional[Union[str, Path]]) -> bool:
        return await save_queue_to_file(self.pending_queue, path)

    async def wait_for_playback(self) -> None:
        """Wait for Dolphin to exit and for the recorder to settle."""
        await self._playback_finished.wait()
        await self.recorder.wait_idle()

    def stop_playback(self) -> None:
        self.engine.kill()

    async def close(self) -> None:
        logger.info("Shutting down")
        await self.engine.close()
        await self.recorder.wait_idle()
        await self.recorder.close()
        await self.connection.disconnect()

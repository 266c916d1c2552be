
import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from replay_recorder.core.asyncio_utils import cancel_task, create_logged_task
from replay_recorder.core.logging_utils import get_module_logger

from .events import DolphinOutputParser, PlaybackEvent

EventListener = Callable[[PlaybackEvent], None]
ExitListener = Callable[[Optional[int]], None]


class PlaybackEngine(Protocol):
    """What the orchestrator needs from a playback engine."""

    def subscribe(self, listener: EventListener) -> None: ...

    def unsubscribe(self, listener: EventListener) -> None: ...

    def on_exit(self, listener: ExitListener) -> None: ...

    def remove_exit_listener(self, listener: ExitListener) -> None: ...

    async def load_queue(self, queue_path: Path) -> None: ...

    def kill(self) -> None: ...

    async def stop(self) -> None: ...

    def is_running(self) -> bool: ...


class DolphinProcess:
    """Launches Dolphin on a queue file and publishes its playback events."""

    def __init__(
        self,
        dolphin_path: Path,
        *,
        melee_iso_path: Optional[Path] = None,
        batch: bool = True,
        start_buffer: int = 0,
        end_buffer: int = 0,
    ):
        self.dolphin_path = Path(dolphin_path)
        self.melee_iso_path = melee_iso_path
        self.batch = batch
        self.start_buffer = start_buffer
        self.end_buffer = end_buffer

        self.logger = get_module_logger("DolphinProcess")

        self.process: Optional[asyncio.subprocess.Process] = None
        self.stdout_task: Optional[asyncio.Task] = None
        self.stderr_task: Optional[asyncio.Task] = None
        self.monitor_task: Optional[asyncio.Task] = None

        self._event_listeners: List[EventListener] = []
        self._exit_listeners: List[ExitListener] = []

    # ------------------------------------------------------------------
    # Subscriptions

    def subscribe(self, listener: EventListener) -> None:
        if listener not in self._event_listeners:
            self._event_listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._event_listeners:
            self._event_listeners.remove(listener)

    def on_exit(self, listener: ExitListener) -> None:
        if listener not in self._exit_listeners:
            self._exit_listeners.append(listener)

    def remove_exit_listener(self, listener: ExitListener) -> None:
        if listener in self._exit_listeners:
            self._exit_listeners.remove(listener)

    def _publish(self, event: PlaybackEvent) -> None:
        for listener in list(self._event_listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.error("Playback listener error on %s: %s", event.status.value, e, exc_info=True)

    def _notify_exit(self, returncode: Optional[int]) -> None:
        for listener in list(self._exit_listeners):
            try:
                listener(returncode)
            except Exception as e:
                self.logger.error("Exit listener error: %s", e, exc_info=True)

    # ------------------------------------------------------------------
    # Process lifecycle

    def build_command(self, queue_path: Path) -> List[str]:
        cmd = [str(self.dolphin_path), "-i", str(queue_path)]
        if self.melee_iso_path:
            cmd.extend(["-e", str(self.melee_iso_path)])
        if self.batch:
            cmd.append("-b")
        cmd.append("--cout")
        return cmd

    async def load_queue(self, queue_path: Path) -> None:
        """Start Dolphin on ``queue_path``, replacing any running instance.

        Launch failures are reported through the exit listeners.
        """
        if self.is_running():
            self.logger.info("Dolphin already running, restarting with new queue")
            await self.stop()

        cmd = self.build_command(queue_path)
        self.logger.debug("Command: %s", ' '.join(cmd))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            self.logger.error("Failed to start Dolphin at %s: %s", self.dolphin_path, e)
            self._notify_exit(None)
            return

        self.process = process
        self.logger.info("Dolphin started with PID %d on %s", process.pid, queue_path)

        parser = DolphinOutputParser(self.start_buffer, self.end_buffer)
        self.stdout_task = create_logged_task(
            self._stdout_reader(process, parser),
            logger=self.logger,
            context="DolphinProcess.stdout",
        )
        self.stderr_task = create_logged_task(
            self._stderr_reader(process),
            logger=self.logger,
            context="DolphinProcess.stderr",
        )
        self.monitor_task = create_logged_task(
            self._process_monitor(process, self.stdout_task),
            logger=self.logger,
            context="DolphinProcess.monitor",
        )

    async def _stdout_reader(self, process: asyncio.subprocess.Process, parser: DolphinOutputParser) -> None:
        if process.stdout is None:
            return

        while True:
            line = await process.stdout.readline()
            if not line:
                break

            line_str = line.decode(errors="replace").strip()
            if not line_str:
                continue

            events = parser.feed_line(line_str)
            if not events:
                self.logger.debug("Dolphin output: %s", line_str)
            for event in events:
                self._publish(event)

    async def _stderr_reader(self, process: asyncio.subprocess.Process) -> None:
        if process.stderr is None:
            return

        while True:
            line = await process.stderr.readline()
            if not line:
                break

            line_str = line.decode(errors="replace").strip()
            if line_str:
                self.logger.warning("Dolphin stderr: %s", line_str)

    async def _process_monitor(self, process: asyncio.subprocess.Process, stdout_task: asyncio.Task) -> None:
        returncode = await process.wait()
        # deliver every parsed event before the exit signal
        await asyncio.wait([stdout_task])

        if self.process is process:
            self.process = None

        if returncode == 0:
            self.logger.info("Dolphin exited normally")
        else:
            self.logger.warning("Dolphin exited with code %s", returncode)

        self._notify_exit(returncode)

    def kill(self) -> None:
        if self.process is None or self.process.returncode is not None:
            return
        self.logger.info("Killing Dolphin (PID %d)", self.process.pid)
        try:
            self.process.kill()
        except ProcessLookupError:
            pass

    async def stop(self) -> None:
        """Kill Dolphin and wait until its exit has been published."""
        self.kill()
        if self.monitor_task and not self.monitor_task.done():
            await asyncio.wait([self.monitor_task])

    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    async def close(self) -> None:
        await self.stop()
        for task in (self.stdout_task, self.stderr_task, self.monitor_task):
            await cancel_task(task)
        self.process = None

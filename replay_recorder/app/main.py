import argparse
import asyncio
import signal
from dataclasses import replace
from pathlib import Path
from typing import Optional

from replay_recorder.core.config_manager import ConfigManager, RecorderConfig
from replay_recorder.core.logging_config import configure_logging
from replay_recorder.core.logging_utils import get_module_logger
from replay_recorder.core.orchestrator import PlayerOptions
from replay_recorder.core.paths import CONFIG_PATH, RECORDER_LOG_FILE, ensure_directories
from replay_recorder.core.update_checker import UpdateNotification, UpdateNotifier, UpdateStatus

from .recorder_app import RecorderApp


logger = get_module_logger(__name__)

LOG_LEVELS = ['debug', 'info', 'warning', 'error', 'critical']


def _config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument(
        "--config",
        type=Path,
        default=CONFIG_PATH,
        help=f"Configuration file (default: {CONFIG_PATH.name})"
    )
    return parser


def load_config(argv: Optional[list[str]] = None) -> RecorderConfig:
    known, _ = _config_parser().parse_known_args(argv)
    return ConfigManager().load_recorder_config(known.config)


def parse_args(argv: Optional[list[str]] = None, config: Optional[RecorderConfig] = None) -> argparse.Namespace:
    """Parse command-line arguments with config file defaults."""
    if config is None:
        config = load_config(argv)

    parser = argparse.ArgumentParser(
        description="Replay recorder - play Slippi replays in Dolphin and record them with OBS",
        parents=[_config_parser()],
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=config.log_level if config.log_level in LOG_LEVELS else 'info',
        help="Logging level (default: info)"
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=RECORDER_LOG_FILE,
        help="Rotating log file"
    )
    parser.add_argument(
        "--console",
        dest="console_output",
        action="store_true",
        default=config.console_output,
        help="Also log to console"
    )
    parser.add_argument(
        "--no-console",
        dest="console_output",
        action="store_false",
        help="Log to file only"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    play = subparsers.add_parser("play", help="Play replay files, optionally recording them")
    play.add_argument("files", nargs="+", type=Path, help="Replay (.slp) files; others are ignored")
    play.add_argument("--dolphin-path", type=Path, default=config.dolphin_path, help="Playback Dolphin executable")
    play.add_argument("--iso", dest="melee_iso_path", type=Path, default=config.melee_iso_path, help="Melee ISO to boot")
    record_group = play.add_mutually_exclusive_group()
    record_group.add_argument("--record", dest="record", action="store_true", default=config.record,
                              help="Record playback with OBS")
    record_group.add_argument("--no-record", dest="record", action="store_false", help="Only play back")
    pause_group = play.add_mutually_exclusive_group()
    pause_group.add_argument("--pause", dest="pause_between_entries", action="store_true",
                             default=config.pause_between_entries,
                             help="Pause recording between replays (single output file)")
    pause_group.add_argument("--no-pause", dest="pause_between_entries", action="store_false",
                             help="Stop recording between replays (one file per replay)")
    play.add_argument("--obs-host", default=config.obs_host, help="OBS WebSocket host")
    play.add_argument("--obs-port", type=int, default=config.obs_port, help="OBS WebSocket port")
    play.add_argument("--obs-password", default=config.obs_password, help="OBS WebSocket password")

    save = subparsers.add_parser("save-queue", help="Export replay files as a reusable queue file")
    save.add_argument("files", nargs="+", type=Path, help="Replay (.slp) files; others are ignored")
    save.add_argument("--output", "-o", type=Path, default=None, help="Where to write the queue JSON")

    updates = subparsers.add_parser("check-updates", help="Check GitHub for a newer release")
    updates.add_argument("--repo", default=config.update_repo, help="GitHub repository (owner/name) publishing releases")

    return parser.parse_args(argv)


def _apply_play_overrides(config: RecorderConfig, args: argparse.Namespace) -> RecorderConfig:
    return replace(
        config,
        dolphin_path=args.dolphin_path,
        melee_iso_path=args.melee_iso_path,
        record=args.record,
        pause_between_entries=args.pause_between_entries,
        obs_host=args.obs_host,
        obs_port=args.obs_port,
        obs_password=args.obs_password,
    )


async def run_play(args: argparse.Namespace, config: RecorderConfig) -> int:
    config = _apply_play_overrides(config, args)
    app = RecorderApp(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, app.stop_playback)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    try:
        if config.record and not await app.connect_obs():
            logger.warning("OBS not connected, playing back without recording")

        options = PlayerOptions(record=config.record, pause_between_entries=config.pause_between_entries)
        if not await app.load_files(args.files, options):
            logger.error("No replay files to play")
            return 1

        await app.wait_for_playback()
        return 0
    finally:
        await app.close()


async def run_save_queue(args: argparse.Namespace, config: RecorderConfig) -> int:
    app = RecorderApp(config)
    try:
        added = app.pending_queue.extend(args.files)
        if not added:
            logger.error("No replay files to save")
            return 1
        return 0 if await app.save_pending_queue(args.output) else 1
    finally:
        await app.close()


async def run_check_updates(args: argparse.Namespace) -> int:
    from replay_recorder import __version__

    result: list[UpdateNotification] = []

    def report(notification: UpdateNotification) -> None:
        result.append(notification)
        if notification.status is UpdateStatus.UPDATE_AVAILABLE:
            logger.info("Update available: %s", notification.payload["version"])
        elif notification.status is UpdateStatus.NO_UPDATE:
            logger.info("Up to date (%s)", __version__)
        else:
            logger.warning("Update check failed: %s", notification.payload)

    await UpdateNotifier(__version__, report, repo=args.repo).check_for_updates()
    return 1 if result and result[-1].status is UpdateStatus.UPDATE_ERROR else 0


async def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the replay recorder CLI."""
    config = load_config(argv)
    args = parse_args(argv, config)

    ensure_directories()

    configure_logging(
        args.log_level,
        console=args.console_output,
        log_file=args.log_file,
    )

    logger.info("Replay recorder starting (%s)", args.command)
    logger.debug("Config file: %s", args.config)

    if args.command == "play":
        return await run_play(args, config)
    if args.command == "save-queue":
        return await run_save_queue(args, config)
    return await run_check_updates(args)

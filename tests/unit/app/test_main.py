"""Unit tests for the command line."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

import replay_recorder.app.main as main_module
from replay_recorder.app.main import _apply_play_overrides, load_config, parse_args
from replay_recorder.core.config_manager import RecorderConfig


@pytest.fixture
def config(tmp_path):
    return RecorderConfig(
        dolphin_path=Path("/opt/dolphin"),
        record=True,
        pause_between_entries=True,
        obs_port=4455,
        queue_dir=tmp_path,
        log_level="warning",
        console_output=False,
    )


class TestParseArgs:
    """Test argument parsing with config defaults."""

    def test_play_uses_config_defaults(self, config):
        args = parse_args(["play", "a.slp", "b.slp"], config)

        assert args.command == "play"
        assert args.files == [Path("a.slp"), Path("b.slp")]
        assert args.record is True
        assert args.pause_between_entries is True
        assert args.dolphin_path == Path("/opt/dolphin")
        assert args.log_level == "warning"
        assert args.console_output is False

    def test_play_flags_override_config(self, config):
        args = parse_args(
            ["--console", "play", "a.slp", "--no-record", "--no-pause", "--obs-port", "4460", "--iso", "/g/melee.iso"],
            config,
        )
        overridden = _apply_play_overrides(config, args)

        assert overridden.record is False
        assert overridden.pause_between_entries is False
        assert overridden.obs_port == 4460
        assert overridden.melee_iso_path == Path("/g/melee.iso")
        assert args.console_output is True

    def test_save_queue(self, config):
        args = parse_args(["save-queue", "a.slp", "-o", "out.json"], config)

        assert args.command == "save-queue"
        assert args.output == Path("out.json")

    def test_check_updates_repo(self, config):
        assert parse_args(["check-updates"], config).repo == ""
        assert parse_args(["check-updates", "--repo", "me/recorder"], config).repo == "me/recorder"

    def test_command_required(self, config):
        with pytest.raises(SystemExit):
            parse_args([], config)

    def test_record_flags_are_exclusive(self, config):
        with pytest.raises(SystemExit):
            parse_args(["play", "a.slp", "--record", "--no-record"], config)


class TestLoadConfig:
    """Test the --config pre-parse."""

    def test_reads_given_file(self, tmp_path):
        path = tmp_path / "custom.txt"
        path.write_text("record = true\nobs_port = 4999\n", encoding="utf-8")

        config = load_config(["--config", str(path), "play", "a.slp"])

        assert config.record is True
        assert config.obs_port == 4999


class TestMain:
    """Test command dispatch."""

    @pytest.mark.asyncio
    async def test_dispatches_save_queue(self, tmp_path):
        output = tmp_path / "saved.json"
        config_path = tmp_path / "config.txt"
        config_path.write_text(f"queue_dir = {tmp_path}\n", encoding="utf-8")

        with patch.object(main_module, "configure_logging"), \
                patch.object(main_module, "ensure_directories"):
            code = await main_module.main(
                ["--config", str(config_path), "--no-console", "save-queue", "a.slp", "b.txt", "-o", str(output)]
            )

        assert code == 0
        assert '"path": "a.slp"' in output.read_text()
        assert "b.txt" not in output.read_text()

    @pytest.mark.asyncio
    async def test_save_queue_without_replays_fails(self, tmp_path):
        with patch.object(main_module, "configure_logging"), \
                patch.object(main_module, "ensure_directories"):
            code = await main_module.main(
                ["--config", str(tmp_path / "none.txt"), "save-queue", "b.txt", "-o", str(tmp_path / "o.json")]
            )

        assert code == 1
        assert not (tmp_path / "o.json").exists()

    @pytest.mark.asyncio
    async def test_check_updates_without_repo_fails(self, tmp_path):
        fetch = MagicMock()

        with patch.object(main_module, "configure_logging"), \
                patch.object(main_module, "ensure_directories"), \
                patch("replay_recorder.core.update_checker.fetch_latest_release_tag", fetch):
            code = await main_module.main(["--config", str(tmp_path / "none.txt"), "check-updates"])

        assert code == 1
        fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_check_updates_reads_repo_from_config(self, tmp_path):
        config_path = tmp_path / "config.txt"
        config_path.write_text("update_repo = me/recorder\n", encoding="utf-8")

        with patch.object(main_module, "configure_logging"), \
                patch.object(main_module, "ensure_directories"), \
                patch("replay_recorder.core.update_checker.fetch_latest_release_tag", return_value="v0.0.1") as fetch:
            code = await main_module.main(["--config", str(config_path), "check-updates"])

        assert code == 0
        fetch.assert_called_once_with("me/recorder")

    @pytest.mark.asyncio
    async def test_dispatches_play(self, tmp_path):
        run_play = AsyncMock(return_value=0)

        with patch.object(main_module, "configure_logging"), \
                patch.object(main_module, "ensure_directories"), \
                patch.object(main_module, "run_play", run_play):
            code = await main_module.main(["--config", str(tmp_path / "none.txt"), "play", "a.slp"])

        assert code == 0
        args, config = run_play.await_args.args
        assert args.files == [Path("a.slp")]
        assert isinstance(config, RecorderConfig)

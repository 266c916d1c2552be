"""Unit tests for ConfigManager."""

from pathlib import Path

import pytest

from replay_recorder.core.config_manager import ConfigManager, RecorderConfig
from replay_recorder.core.paths import QUEUE_TEMP_DIR, default_dolphin_path


@pytest.fixture
def manager():
    return ConfigManager()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.txt"
    path.write_text(
        "\n".join([
            "# Replay recorder",
            "dolphin_path = /opt/slippi/dolphin-emu",
            "melee_iso_path = '/games/Melee 1.02.iso'",
            "",
            "record = true",
            "pause_between_entries = no   # one file per replay",
            "obs_port = 4444",
            "obs_password = \"hunter2\"",
            "start_buffer = 30",
            "log_level = DEBUG",
            "this line has no separator",
        ]),
        encoding="utf-8",
    )
    return path


class TestParsing:
    """Test key = value parsing."""

    def test_comments_quotes_and_blank_lines(self, manager, config_file):
        raw = manager.read_config(config_file)

        assert raw["dolphin_path"] == "/opt/slippi/dolphin-emu"
        assert raw["melee_iso_path"] == "/games/Melee 1.02.iso"
        assert raw["pause_between_entries"] == "no"
        assert "this line has no separator" not in raw

    def test_missing_file(self, manager, tmp_path):
        assert manager.read_config(tmp_path / "nope.txt") == {}

    @pytest.mark.asyncio
    async def test_async_read_matches_sync(self, manager, config_file):
        assert await manager.read_config_async(config_file) == manager.read_config(config_file)

    @pytest.mark.asyncio
    async def test_async_missing_file(self, manager, tmp_path):
        assert await manager.read_config_async(tmp_path / "nope.txt") == {}


class TestTypedGetters:
    """Test value coercion."""

    @pytest.mark.parametrize("value,expected", [("true", True), ("1", True), ("On", True), ("no", False), ("", False)])
    def test_get_bool(self, manager, value, expected):
        assert manager.get_bool({"k": value}, "k") is expected

    def test_get_bool_default(self, manager):
        assert manager.get_bool({}, "k", default=True) is True

    def test_get_int_invalid_uses_default(self, manager):
        assert manager.get_int({"k": "four"}, "k", default=7) == 7

    def test_get_float(self, manager):
        assert manager.get_float({"k": "1.5"}, "k") == 1.5
        assert manager.get_float({"k": "x"}, "k", default=2.0) == 2.0

    def test_get_path_blank_is_default(self, manager):
        assert manager.get_path({"k": "  "}, "k") is None
        assert manager.get_path({"k": "~/q"}, "k") == Path("~/q").expanduser()


class TestRecorderConfig:
    """Test building a RecorderConfig."""

    def test_defaults(self, manager):
        config = manager.build_recorder_config({})

        assert config == RecorderConfig(dolphin_path=default_dolphin_path())
        assert config.record is False
        assert config.pause_between_entries is True
        assert config.obs_port == 4455
        assert config.queue_dir == QUEUE_TEMP_DIR
        assert config.update_repo == ""

    def test_values_from_file(self, manager, config_file):
        config = manager.load_recorder_config(config_file)

        assert config.dolphin_path == Path("/opt/slippi/dolphin-emu")
        assert config.melee_iso_path == Path("/games/Melee 1.02.iso")
        assert config.record is True
        assert config.pause_between_entries is False
        assert config.obs_port == 4444
        assert config.obs_password == "hunter2"
        assert config.start_buffer == 30
        assert config.log_level == "debug"

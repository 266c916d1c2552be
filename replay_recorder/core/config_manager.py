
import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional

import aiofiles

from .logging_utils import get_module_logger
from .paths import QUEUE_TEMP_DIR, default_dolphin_path


logger = get_module_logger("ConfigManager")


@dataclass(frozen=True)
class RecorderConfig:
    """Settings read from ``config.txt``; CLI flags override them."""

    dolphin_path: Path
    melee_iso_path: Optional[Path] = None
    batch_mode: bool = True
    start_buffer: int = 0
    end_buffer: int = 0
    obs_host: str = "localhost"
    obs_port: int = 4455
    obs_password: str = ""
    record: bool = False
    pause_between_entries: bool = True
    queue_dir: Path = QUEUE_TEMP_DIR
    log_level: str = "info"
    console_output: bool = True
    update_repo: str = ""


class ConfigManager:

    def __init__(self):
        self.logger = get_module_logger("ConfigManager")

    # ------------------------------------------------------------------
    # Internal helpers

    def _parse_config_lines(self, lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#')[0].strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

            config[key] = value

        return config

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Synchronous read, for use before the event loop is running."""
        if not config_path.exists():
            return {}

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return self._parse_config_lines(f)
        except OSError as e:
            self.logger.error("Failed to read config %s: %s", config_path, e)
            return {}

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        if not await asyncio.to_thread(config_path.exists):
            return {}

        try:
            async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                lines = await f.readlines()
        except OSError as e:
            self.logger.error("Failed to read config %s: %s", config_path, e)
            return {}

        return self._parse_config_lines(lines)

    def get_bool(self, config: Dict[str, str], key: str, default: bool = False) -> bool:
        if key not in config:
            return default

        value = config[key].lower()
        return value in ('true', '1', 'yes', 'on')

    def get_int(self, config: Dict[str, str], key: str, default: int = 0) -> int:
        if key not in config:
            return default

        try:
            return int(config[key])
        except ValueError:
            self.logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
            return default

    def get_float(self, config: Dict[str, str], key: str, default: float = 0.0) -> float:
        if key not in config:
            return default

        try:
            return float(config[key])
        except ValueError:
            self.logger.warning("Invalid float value for %s: %s, using default %f", key, config[key], default)
            return default

    def get_str(self, config: Dict[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)

    def get_path(self, config: Dict[str, str], key: str, default: Optional[Path] = None) -> Optional[Path]:
        value = config.get(key, "").strip()
        if not value:
            return default
        return Path(value).expanduser()

    def build_recorder_config(self, config: Dict[str, str]) -> RecorderConfig:
        """Map raw ``key = value`` pairs onto a RecorderConfig."""
        return RecorderConfig(
            dolphin_path=self.get_path(config, 'dolphin_path', default_dolphin_path()),
            melee_iso_path=self.get_path(config, 'melee_iso_path'),
            batch_mode=self.get_bool(config, 'batch_mode', default=True),
            start_buffer=self.get_int(config, 'start_buffer', default=0),
            end_buffer=self.get_int(config, 'end_buffer', default=0),
            obs_host=self.get_str(config, 'obs_host', default='localhost'),
            obs_port=self.get_int(config, 'obs_port', default=4455),
            obs_password=self.get_str(config, 'obs_password'),
            record=self.get_bool(config, 'record', default=False),
            pause_between_entries=self.get_bool(config, 'pause_between_entries', default=True),
            queue_dir=self.get_path(config, 'queue_dir', QUEUE_TEMP_DIR),
            log_level=self.get_str(config, 'log_level', default='info').lower(),
            console_output=self.get_bool(config, 'console_output', default=True),
            update_repo=self.get_str(config, 'update_repo'),
        )

    def load_recorder_config(self, config_path: Path) -> RecorderConfig:
        return self.build_recorder_config(self.read_config(config_path))

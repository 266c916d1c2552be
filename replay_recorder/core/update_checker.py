"""
Update checker for the replay recorder.

Checks the GitHub releases API for a newer version and reports the
result as a one-shot status notification.
"""

import asyncio
import json
import re
import urllib.error
import urllib.request
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .logging_utils import get_module_logger

logger = get_module_logger(__name__)

RELEASES_API_URL = "https://api.github.com/repos/{repo}/releases/latest"

_VERSION_RE = re.compile(r"^[=v\s]*(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)\s*$")


class UpdateStatus(Enum):
    UPDATE_AVAILABLE = "update_available"
    NO_UPDATE = "no_update"
    DOWNLOAD_COMPLETE = "download_complete"
    UPDATE_ERROR = "update_error"


@dataclass(frozen=True)
class UpdateNotification:
    status: UpdateStatus
    payload: Any = None


def clean_version(version: str) -> Optional[str]:
    """Normalise "v1.2.3" / " =1.2.3 " to "1.2.3"; None if not a version."""
    match = _VERSION_RE.match(version)
    return match.group(1) if match else None


def parse_version(version_str: str) -> tuple:
    """Parse version string into comparable tuple.

    Handles versions like "2.0.0", "v2.0.0", "2.0.0-beta".
    """
    version = version_str.strip().lstrip('v')

    if '-' in version:
        version = version.split('-')[0]

    try:
        parts = tuple(int(p) for p in version.split('.'))
    except ValueError:
        return (0, 0, 0)

    while len(parts) < 3:
        parts = parts + (0,)
    return parts


def is_newer_version(current: str, latest: str) -> bool:
    """Check if latest version is newer than current."""
    return parse_version(latest) > parse_version(current)


class UpdateNotifier:
    """Sends version status messages to whatever surface is listening."""

    def __init__(
        self,
        current_version: str,
        send: Callable[[UpdateNotification], None],
        repo: str = "",
    ):
        self.current_version = current_version
        self.repo = repo
        self._send = send

    def _send_status(self, status: UpdateStatus, payload: Any = None) -> None:
        self._send(UpdateNotification(status, payload))

    def send_latest_version(self, version: str) -> None:
        version_string = clean_version(version) or version
        payload: Dict[str, str] = {
            "version": version_string,
            "last_checked": datetime.now(timezone.utc).isoformat(),
        }
        if is_newer_version(self.current_version, version_string):
            self._send_status(UpdateStatus.UPDATE_AVAILABLE, payload)
        else:
            self._send_status(UpdateStatus.NO_UPDATE, payload)

    def send_download_complete(self) -> None:
        self._send_status(UpdateStatus.DOWNLOAD_COMPLETE)

    def send_update_error(self, message: str) -> None:
        self._send_status(UpdateStatus.UPDATE_ERROR, message)

    async def check_for_updates(self) -> None:
        """Fetch the latest release and report it; errors are reported, not raised."""
        if not self.repo:
            self.send_update_error("No release repository configured (update_repo)")
            return
        tag = await asyncio.to_thread(fetch_latest_release_tag, self.repo)
        if tag is None:
            self.send_update_error("Could not fetch the latest release")
            return
        logger.debug("Latest release: %s (running %s)", tag, self.current_version)
        self.send_latest_version(tag)


def fetch_latest_release_tag(repo: str) -> Optional[str]:
    """Fetch the latest release tag of ``owner/name`` from the GitHub API, or None on error."""
    try:
        request = urllib.request.Request(
            RELEASES_API_URL.format(repo=repo),
            headers={
                'Accept': 'application/vnd.github.v3+json',
                'User-Agent': 'replay-recorder-update-checker'
            }
        )

        with urllib.request.urlopen(request, timeout=10) as response:
            data = json.loads(response.read().decode('utf-8'))

    except (urllib.error.URLError, json.JSONDecodeError, OSError) as e:
        logger.debug("Failed to fetch release info: %s", e)
        return None

    tag_name = data.get('tag_name', '') if isinstance(data, dict) else ''
    return tag_name or None

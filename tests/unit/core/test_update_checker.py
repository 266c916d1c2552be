"""Unit tests for update status notifications."""

import io
import json
import urllib.error
from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from replay_recorder.core.update_checker import (
    UpdateNotification,
    UpdateNotifier,
    UpdateStatus,
    clean_version,
    fetch_latest_release_tag,
    is_newer_version,
)


@pytest.fixture
def send():
    return MagicMock()


@pytest.fixture
def notifier(send):
    return UpdateNotifier("1.2.0", send, repo="me/recorder")


class TestVersions:
    """Test version helpers."""

    @pytest.mark.parametrize("raw,expected", [
        ("v1.2.3", "1.2.3"),
        (" =1.2.3 ", "1.2.3"),
        ("1.2.3-beta.1", "1.2.3-beta.1"),
        ("latest", None),
    ])
    def test_clean_version(self, raw, expected):
        assert clean_version(raw) == expected

    @pytest.mark.parametrize("current,latest,newer", [
        ("1.2.0", "1.3.0", True),
        ("1.2.0", "v1.2.0", False),
        ("1.10.0", "1.9.9", False),
        ("1.2", "1.2.1", True),
    ])
    def test_is_newer_version(self, current, latest, newer):
        assert is_newer_version(current, latest) is newer


class TestNotifier:
    """Test one-shot status messages."""

    def test_update_available(self, notifier, send):
        notifier.send_latest_version("v1.3.0")

        notification = send.call_args.args[0]
        assert notification.status is UpdateStatus.UPDATE_AVAILABLE
        assert notification.payload["version"] == "1.3.0"
        assert datetime.fromisoformat(notification.payload["last_checked"]).tzinfo is not None

    def test_no_update(self, notifier, send):
        notifier.send_latest_version("1.2.0")

        assert send.call_args.args[0].status is UpdateStatus.NO_UPDATE

    def test_download_complete(self, notifier, send):
        notifier.send_download_complete()

        send.assert_called_once_with(UpdateNotification(UpdateStatus.DOWNLOAD_COMPLETE))

    def test_update_error(self, notifier, send):
        notifier.send_update_error("offline")

        send.assert_called_once_with(UpdateNotification(UpdateStatus.UPDATE_ERROR, "offline"))

    @pytest.mark.asyncio
    async def test_check_for_updates_reports_latest(self, notifier, send):
        with patch("replay_recorder.core.update_checker.fetch_latest_release_tag", return_value="v2.0.0"):
            await notifier.check_for_updates()

        assert send.call_args.args[0].status is UpdateStatus.UPDATE_AVAILABLE

    @pytest.mark.asyncio
    async def test_check_for_updates_needs_a_repo(self, send):
        notifier = UpdateNotifier("1.2.0", send)

        with patch("replay_recorder.core.update_checker.fetch_latest_release_tag") as fetch:
            await notifier.check_for_updates()

        fetch.assert_not_called()
        assert send.call_args.args[0].status is UpdateStatus.UPDATE_ERROR

    @pytest.mark.asyncio
    async def test_check_for_updates_reports_failure(self, notifier, send):
        with patch("replay_recorder.core.update_checker.fetch_latest_release_tag", return_value=None):
            await notifier.check_for_updates()

        assert send.call_args.args[0].status is UpdateStatus.UPDATE_ERROR


class TestFetchLatestRelease:
    """Test the GitHub API call."""

    def test_reads_tag_name(self):
        response = MagicMock()
        response.__enter__.return_value = io.BytesIO(json.dumps({"tag_name": "v1.4.0"}).encode())

        with patch("urllib.request.urlopen", return_value=response) as urlopen:
            assert fetch_latest_release_tag("me/recorder") == "v1.4.0"

        request = urlopen.call_args.args[0]
        assert request.full_url == "https://api.github.com/repos/me/recorder/releases/latest"

    def test_network_error(self):
        with patch("urllib.request.urlopen", side_effect=urllib.error.URLError("offline")):
            assert fetch_latest_release_tag("me/recorder") is None

    def test_missing_tag(self):
        response = MagicMock()
        response.__enter__.return_value = io.BytesIO(b"{}")

        with patch("urllib.request.urlopen", return_value=response):
            assert fetch_latest_release_tag("me/recorder") is None

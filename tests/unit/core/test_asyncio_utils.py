"""Unit tests for asyncio helpers."""

import asyncio
import logging

import pytest

from replay_recorder.core.asyncio_utils import cancel_task, create_logged_task


class TestCreateLoggedTask:
    """Test fire-and-forget tasks."""

    @pytest.mark.asyncio
    async def test_exception_is_logged(self, caplog):
        async def boom():
            raise RuntimeError("kaput")

        with caplog.at_level(logging.ERROR, logger="replay_recorder"):
            task = create_logged_task(boom(), context="Test.boom")
            await asyncio.wait([task])
            await asyncio.sleep(0)

        assert "Unhandled exception in Test.boom" in caplog.text
        assert task.get_name() == "Test.boom"

    @pytest.mark.asyncio
    async def test_pending_set_is_maintained(self):
        pending = set()

        task = create_logged_task(asyncio.sleep(0), pending=pending)
        assert task in pending

        await task
        await asyncio.sleep(0)
        assert task not in pending


class TestCancelTask:
    """Test cancellation helper."""

    @pytest.mark.asyncio
    async def test_cancels_running_task(self):
        task = asyncio.ensure_future(asyncio.sleep(10))

        await cancel_task(task)

        assert task.cancelled()

    @pytest.mark.asyncio
    async def test_none_and_done_tasks(self):
        await cancel_task(None)
        task = asyncio.ensure_future(asyncio.sleep(0))
        await task
        await cancel_task(task)

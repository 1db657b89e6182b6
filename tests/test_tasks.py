"""
Tests for the in-process background task dispatcher.
"""
import asyncio

import pytest
from prometheus_client import REGISTRY

from docspace.core.tasks import BackgroundTaskDispatcher


def failure_count(task: str) -> float:
    return REGISTRY.get_sample_value("background_task_failures_total", {"task": task}) or 0.0


class TestBackgroundTaskDispatcher:
    """Test cases for BackgroundTaskDispatcher."""

    @pytest.mark.asyncio
    async def test_spawn_runs_coroutine(self):
        """Test a spawned coroutine runs and its result is kept on the task."""
        # Arrange
        dispatcher = BackgroundTaskDispatcher()
        seen = []

        async def work(value):
            seen.append(value)
            return value * 2

        # Act
        task = dispatcher.spawn("test.work", work, 21)
        await dispatcher.drain()

        # Assert
        assert seen == [21]
        assert task.result() == 42
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_failure_is_contained_and_counted(self):
        """Test an exception is logged and counted, not raised."""
        # Arrange
        dispatcher = BackgroundTaskDispatcher()
        before = failure_count("test.boom")

        async def boom():
            raise RuntimeError("boom")

        # Act
        task = dispatcher.spawn("test.boom", boom)
        await dispatcher.drain()

        # Assert
        assert task.exception() is None
        assert task.result() is None
        assert failure_count("test.boom") == before + 1

    @pytest.mark.asyncio
    async def test_drain_waits_for_nested_spawns(self):
        """Test tasks spawned by running tasks are drained too."""
        dispatcher = BackgroundTaskDispatcher()
        finished = []

        async def child():
            await asyncio.sleep(0.01)
            finished.append("child")

        async def parent():
            dispatcher.spawn("test.child", child)
            finished.append("parent")

        dispatcher.spawn("test.parent", parent)
        await dispatcher.drain()

        assert finished == ["parent", "child"]
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_shutdown_cancels_slow_tasks(self):
        """Test shutdown gives up after the timeout and cancels what is left."""
        dispatcher = BackgroundTaskDispatcher()

        async def slow():
            await asyncio.sleep(10)

        task = dispatcher.spawn("test.slow", slow)
        await dispatcher.shutdown(timeout=0.05)

        assert task.cancelled()
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_shutdown_without_tasks(self):
        await BackgroundTaskDispatcher().shutdown(timeout=0.01)

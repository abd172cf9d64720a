"""Tests for TaskQueue."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from polyglot.models import Task, TaskType


class TestTaskQueueSubscribe:
    """Tests for TaskQueue subscription."""

    def test_subscribe_handler(self, task_queue):
        async def handler(task: Task):
            pass

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        assert task_queue._handlers[TaskType.TRANSLATE_MESSAGE] is handler

    def test_subscribe_twice_raises(self, task_queue):
        async def handler(task: Task):
            pass

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        with pytest.raises(ValueError):
            task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)


class TestTaskQueueEnqueue:
    """Tests for TaskQueue.enqueue()."""

    async def test_enqueue_persists_pending_task(self, task_queue, storage):
        before = datetime.now(timezone.utc)
        task = await task_queue.enqueue(
            TaskType.ASSISTANT_MENTION, {"chat_id": "c1"}, delay=1.0
        )

        stored = await storage.get_task(task.id)
        assert stored.status == "pending"
        assert stored.payload == {"chat_id": "c1"}
        assert stored.run_at >= before + timedelta(seconds=1)

    async def test_not_run_before_delay(self, task_queue):
        calls = []

        async def handler(task: Task):
            calls.append(task.id)

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        task = await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {}, delay=60)

        assert await task_queue.run_due() == 0
        assert calls == []

        later = datetime.now(timezone.utc) + timedelta(seconds=61)
        assert await task_queue.run_due(now=later) == 1
        await task_queue.join(timeout=1)
        assert calls == [task.id]


class TestTaskQueueExecution:
    """Tests for task execution outcomes."""

    async def test_successful_task_is_done(self, task_queue, storage):
        async def handler(task: Task):
            pass

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        task = await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})

        await task_queue.run_due()
        await task_queue.join(timeout=1)

        assert (await storage.get_task(task.id)).status == "done"

    async def test_failing_task_is_failed_without_retry(self, task_queue, storage):
        calls = []

        async def handler(task: Task):
            calls.append(task.id)
            raise RuntimeError("Test error")

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        task = await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})

        await task_queue.run_due()
        await task_queue.join(timeout=1)
        await task_queue.run_due()

        stored = await storage.get_task(task.id)
        assert stored.status == "failed"
        assert stored.last_error == "Test error"
        assert calls == [task.id]

    async def test_failure_does_not_affect_other_tasks(self, task_queue, storage):
        async def failing(task: Task):
            raise RuntimeError("boom")

        async def normal(task: Task):
            pass

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, failing)
        task_queue.subscribe(TaskType.ASSISTANT_MENTION, normal)
        bad = await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})
        good = await task_queue.enqueue(TaskType.ASSISTANT_MENTION, {})

        await task_queue.run_due()
        await task_queue.join(timeout=1)

        assert (await storage.get_task(bad.id)).status == "failed"
        assert (await storage.get_task(good.id)).status == "done"

    async def test_task_without_handler_fails(self, task_queue, storage):
        task = await task_queue.enqueue(TaskType.ASSISTANT_MENTION, {})

        await task_queue.run_due()
        await task_queue.join(timeout=1)

        stored = await storage.get_task(task.id)
        assert stored.status == "failed"
        assert "No handler" in stored.last_error

    async def test_tasks_run_concurrently(self, task_queue):
        started = asyncio.Event()
        release = asyncio.Event()
        running = []

        async def handler(task: Task):
            running.append(task.id)
            if len(running) == 2:
                started.set()
            await release.wait()

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})
        await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})

        await task_queue.run_due()
        await asyncio.wait_for(started.wait(), timeout=1)
        release.set()
        await task_queue.join(timeout=1)

        assert len(running) == 2

    async def test_concurrency_limit(self, storage):
        from polyglot.tasks import TaskQueue

        queue = TaskQueue(storage, poll_interval=0.01, max_concurrency=1)
        release = asyncio.Event()

        async def handler(task: Task):
            await release.wait()

        queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        await queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})
        await queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})

        assert await queue.run_due() == 1
        assert await queue.run_due() == 0

        release.set()
        await asyncio.sleep(0.05)
        assert await queue.run_due() == 1
        await queue.join(timeout=1)


class TestTaskQueueWorker:
    """Tests for the background worker."""

    async def test_worker_runs_due_tasks(self, task_queue, storage):
        done = asyncio.Event()

        async def handler(task: Task):
            done.set()

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        await task_queue.start()
        task = await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {}, delay=0.05)

        await asyncio.wait_for(done.wait(), timeout=2)
        await task_queue.join(timeout=2)
        assert (await storage.get_task(task.id)).status == "done"

    async def test_start_recovers_interrupted_tasks(self, task_queue, storage):
        calls = []

        async def handler(task: Task):
            calls.append(task.id)

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        task = await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})
        # Simulate a process that died after claiming the task
        await storage.claim_due_tasks(datetime.now(timezone.utc))

        await task_queue.start()
        await task_queue.join(timeout=2)

        assert calls == [task.id]
        stored = await storage.get_task(task.id)
        assert stored.status == "done"
        assert stored.attempts == 2

    async def test_stop_waits_for_inflight(self, task_queue, storage):
        finished = []

        async def handler(task: Task):
            await asyncio.sleep(0.05)
            finished.append(task.id)

        task_queue.subscribe(TaskType.TRANSLATE_MESSAGE, handler)
        task = await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {})
        await task_queue.start()

        await asyncio.sleep(0.03)
        await task_queue.stop()

        assert finished == [task.id]
        assert not task_queue.running

    async def test_join_times_out_when_work_remains(self, task_queue):
        await task_queue.enqueue(TaskType.TRANSLATE_MESSAGE, {}, delay=60)

        with pytest.raises(asyncio.TimeoutError):
            await task_queue.join(timeout=0.1)

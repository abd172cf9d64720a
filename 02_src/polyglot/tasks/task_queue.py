"""Durable deferred-task queue backed by Storage."""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Protocol

from ..config import task_max_concurrency, task_poll_interval
from ..logging_config import get_logger
from ..models import Task, TaskType
from ..storage import IStorage

logger = get_logger(__name__)


TaskHandler = Callable[[Task], Awaitable[None]]


class ITaskQueue(Protocol):
    """Schedules work to run after a delay, at least once."""

    def subscribe(self, task_type: TaskType, handler: TaskHandler) -> None:
        """Register the handler for a task type."""
        ...

    async def enqueue(
        self, task_type: TaskType, payload: dict, delay: float = 0.0
    ) -> Task:
        """Persist a task that becomes due after `delay` seconds."""
        ...


class TaskQueue:
    """
    Polling worker over the tasks table.

    Tasks are written to Storage before enqueue() returns, so a crash never
    loses scheduled work: tasks left running by a dead process are put back
    to pending on start(). A handler that raises marks its task failed;
    nothing is retried automatically.
    """

    def __init__(
        self,
        storage: IStorage,
        poll_interval: float | None = None,
        max_concurrency: int | None = None,
    ):
        self._storage = storage
        self._poll_interval = (
            poll_interval if poll_interval is not None else task_poll_interval()
        )
        self._max_concurrency = (
            max_concurrency if max_concurrency is not None else task_max_concurrency()
        )
        self._handlers: dict[TaskType, TaskHandler] = {}
        self._inflight: set[asyncio.Task] = set()
        self._runner: asyncio.Task | None = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def subscribe(self, task_type: TaskType, handler: TaskHandler) -> None:
        """Register the handler for a task type."""
        if task_type in self._handlers:
            raise ValueError(f"Handler already registered for {task_type.value}")
        self._handlers[task_type] = handler

    async def enqueue(
        self, task_type: TaskType, payload: dict, delay: float = 0.0
    ) -> Task:
        """Persist a task that becomes due after `delay` seconds."""
        now = datetime.now(timezone.utc)
        task = Task(
            id=str(uuid.uuid4()),
            task_type=task_type,
            payload=payload,
            run_at=now + timedelta(seconds=delay),
            status="pending",
            created_at=now,
        )
        await self._storage.save_task(task)
        logger.debug(
            "Enqueued %s task %s (delay %.2fs)",
            task_type.value,
            task.id,
            delay,
            extra={"task_id": task.id, "task_type": task_type.value},
        )
        return task

    async def start(self) -> None:
        """Recover interrupted tasks and start the worker loop."""
        if self._running:
            return

        recovered = await self._storage.requeue_running_tasks()
        if recovered:
            logger.warning("Requeued %s interrupted tasks", recovered)

        self._running = True
        self._runner = asyncio.create_task(self._run())
        logger.info("TaskQueue started")

    async def stop(self) -> None:
        """Stop the worker loop and wait for in-flight tasks."""
        self._running = False

        if self._runner:
            self._runner.cancel()
            try:
                await self._runner
            except asyncio.CancelledError:
                pass
            self._runner = None

        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        logger.info("TaskQueue stopped")

    async def run_due(self, now: datetime | None = None) -> int:
        """
        Claim due tasks and start executing them.

        Args:
            now: Reference time; defaults to the current UTC time.

        Returns:
            Number of tasks dispatched.
        """
        free = self._max_concurrency - len(self._inflight)
        if free <= 0:
            return 0

        tasks = await self._storage.claim_due_tasks(
            now or datetime.now(timezone.utc), limit=free
        )
        for task in tasks:
            runner = asyncio.create_task(self._execute(task))
            self._inflight.add(runner)
            runner.add_done_callback(self._inflight.discard)
        return len(tasks)

    async def join(self, timeout: float = 5.0) -> None:
        """
        Wait until no task is pending or running.

        Pending tasks count as open work, so on a stopped queue this only
        returns once someone else has dispatched them with run_due.
        """

        async def _wait_idle() -> None:
            while True:
                if not self._inflight and await self._storage.count_open_tasks() == 0:
                    return
                await asyncio.sleep(self._poll_interval)

        await asyncio.wait_for(_wait_idle(), timeout)

    async def _execute(self, task: Task) -> None:
        """Run one claimed task and record its outcome."""
        handler = self._handlers.get(task.task_type)
        if handler is None:
            logger.error(
                "No handler for task type %s",
                task.task_type.value,
                extra={"task_id": task.id, "task_type": task.task_type.value},
            )
            await self._storage.fail_task(
                task.id, f"No handler for task type {task.task_type.value}"
            )
            return

        try:
            await handler(task)
        except Exception as e:
            logger.error(
                "Task %s (%s) failed: %s",
                task.id,
                task.task_type.value,
                e,
                exc_info=True,
                extra={"task_id": task.id, "task_type": task.task_type.value},
            )
            await self._storage.fail_task(task.id, str(e))
            return

        await self._storage.complete_task(task.id)

    async def _run(self) -> None:
        """Background loop dispatching due tasks."""
        while self._running:
            try:
                await self.run_due()
                await asyncio.sleep(self._poll_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Task worker error: %s", e, exc_info=True)
                await asyncio.sleep(self._poll_interval)

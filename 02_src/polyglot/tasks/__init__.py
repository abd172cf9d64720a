"""Deferred task module."""

from .task_queue import ITaskQueue, TaskHandler, TaskQueue

__all__ = ["ITaskQueue", "TaskHandler", "TaskQueue"]

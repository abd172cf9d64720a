"""Deferred task data models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal

TaskStatus = Literal["pending", "running", "done", "failed"]


class TaskType(str, Enum):
    """Kinds of deferred work."""

    TRANSLATE_MESSAGE = "translate_message"
    ASSISTANT_MENTION = "assistant_mention"


@dataclass
class Task:
    """A unit of deferred work persisted in the task queue."""

    id: str
    task_type: TaskType
    payload: dict  # varies by task type
    run_at: datetime  # not executed before this instant
    status: TaskStatus
    created_at: datetime
    attempts: int = 0
    last_error: str | None = None

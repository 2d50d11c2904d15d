"""Core task models and constants."""

from __future__ import annotations

from dataclasses import dataclass
import datetime as dt
from typing import Literal

EmptyBehaviour = Literal["last", "all"]
DoneHandling = Literal["show", "hide"]

APP_NAME = "td-todo"
DEFAULT_TASKS_FILE = "tasks.csv"
CSV_HEADER = ("text", "created", "completed")


def local_now() -> dt.datetime:
    return dt.datetime.now().astimezone()


@dataclass(slots=True)
class Task:
    text: str
    created: dt.datetime
    completed: dt.datetime | None = None

    @classmethod
    def from_text(cls, text: str, now: dt.datetime | None = None) -> Task:
        return cls(text=text, created=now or local_now())

    @property
    def is_completed(self) -> bool:
        return self.completed is not None

    def __str__(self) -> str:
        if self.completed is None:
            return self.text
        return f"X {self.text}"


class TaskError(Exception):
    """Base error for task operations."""


class TaskNotFoundError(TaskError):
    """Raised when a position does not refer to a task."""

    def __init__(self, message: str = "Task not found") -> None:
        super().__init__(message)


class InvalidPatternError(TaskError):
    """Raised when a selector expression is not a valid regular expression."""


class TaskFileError(TaskError):
    """Base error for reading or writing the tasks file."""

    default_message = "Task file error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class TaskFileNotFoundError(TaskFileError):
    default_message = "Task file not found"


class MissingColumnError(TaskFileError):
    default_message = "Task file missing column"


class ParseColumnError(TaskFileError):
    default_message = "Failed to parse task"


class WriteColumnError(TaskFileError):
    default_message = "Failed to write task"

"""Task store: ordering, selection and lifecycle of tasks."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Callable, Iterable

import typer

from .models import DoneHandling, Task, TaskNotFoundError, local_now
from .selectors import Selector
from . import storage


class TaskStore:
    """Ordered task list, most recent first.

    Positions are 0-based and shift on every mutation. Created and promoted
    tasks go to position 0; completed tasks go to the end.
    """

    def __init__(
        self,
        tasks: Iterable[Task] | None = None,
        *,
        now: Callable[[], dt.datetime] = local_now,
        echo: Callable[[str], None] = typer.echo,
    ) -> None:
        self.tasks: list[Task] = list(tasks or [])
        self.now = now
        self.echo = echo

    def __len__(self) -> int:
        return len(self.tasks)

    def __getitem__(self, position: int) -> Task:
        return self.tasks[position]

    def _text_at(self, position: int) -> str | None:
        if 0 <= position < len(self.tasks):
            return self.tasks[position].text
        return None

    def _check_position(self, position: int) -> None:
        if not 0 <= position < len(self.tasks):
            raise TaskNotFoundError()

    def new_task(self, text: str) -> Task:
        return Task.from_text(text, now=self.now())

    def active_positions(self) -> list[int]:
        return [idx for idx, task in enumerate(self.tasks) if not task.is_completed]

    def select(self, selector: Selector, done: DoneHandling = "hide") -> list[int]:
        selected: list[int] = []
        for position, task in enumerate(self.tasks):
            if done == "hide" and task.is_completed:
                continue
            if selector.matches(position, self._text_at):
                selected.append(position)
        return selected

    def create(self, task: Task) -> None:
        self.echo(f"Created new task: {task}")
        self.tasks.insert(0, task)

    def promote(self, position: int) -> Task:
        self._check_position(position)
        task = self.tasks[position]
        self.echo(f"working on {task}!")
        self.tasks.insert(0, self.tasks.pop(position))
        return task

    def complete(self, position: int) -> Task:
        self._check_position(position)
        task = self.tasks.pop(position)
        self.echo(f"completed {task}!")
        task.completed = max(self.now(), task.created)
        self.tasks.append(task)
        return task

    def complete_many(self, positions: Iterable[int]) -> list[Task]:
        """Complete every task in a selection snapshot.

        Positions are resolved to task objects before anything moves, then
        each task's live position is looked up again right before it is
        completed.
        """
        targets: list[Task] = []
        for position in sorted(set(positions)):
            self._check_position(position)
            targets.append(self.tasks[position])

        completed: list[Task] = []
        for target in targets:
            live = next(idx for idx, task in enumerate(self.tasks) if task is target)
            completed.append(self.complete(live))
        return completed

    def load(self, path: Path) -> None:
        for task in storage.iter_tasks(path):
            self.tasks.append(task)

    def save(self, path: Path) -> None:
        storage.write_tasks(path, self.tasks)

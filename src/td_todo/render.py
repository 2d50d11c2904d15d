"""Renderers for status and selection output."""

from __future__ import annotations

from typing import Iterable

from .models import Task
from .service import TaskStore


def _stamp(value) -> str:
    if value is None:
        return "-"
    return value.strftime("%Y-%m-%d %H:%M")


def render_task_line(position: int, task: Task) -> str:
    return f"{position + 1} {task}"


def render_selection_plain(store: TaskStore, positions: Iterable[int]) -> str:
    return "\n".join(render_task_line(position, store[position]) for position in positions)


def render_status_plain(store: TaskStore) -> str:
    lines = ["Tasks:"]
    for position in store.active_positions():
        lines.append(render_task_line(position, store[position]))
    return "\n".join(lines)


def _task_table(store: TaskStore, positions: Iterable[int], *, show_completed: bool):
    from rich import box
    from rich.table import Table
    from rich.text import Text

    table = Table(
        box=box.SIMPLE_HEAVY,
        show_header=True,
        header_style="bold white",
        pad_edge=False,
    )
    table.add_column("#", justify="right", style="dim")
    table.add_column("task", style="bold")
    table.add_column("created", style="dim", no_wrap=True)
    if show_completed:
        table.add_column("completed", no_wrap=True)

    for position in positions:
        task = store[position]
        if task.is_completed:
            text_cell = Text(task.text, style="strike green")
        else:
            text_cell = Text(task.text)
        row: list[str | Text] = [str(position + 1), text_cell, _stamp(task.created)]
        if show_completed:
            row.append(Text(_stamp(task.completed), style="green" if task.is_completed else "dim"))
        table.add_row(*row)
    return table


def render_status_rich(store: TaskStore):
    from rich.console import Group
    from rich.text import Text

    positions = store.active_positions()
    title = Text(f"Tasks ({len(positions)})", style="bold magenta")
    if not positions:
        return Group(title, Text("No active tasks.", style="dim"))
    return Group(title, _task_table(store, positions, show_completed=False))


def render_selection_rich(store: TaskStore, positions: Iterable[int]):
    from rich.text import Text

    selected = list(positions)
    if not selected:
        return Text("No tasks found.", style="dim")
    return _task_table(store, selected, show_completed=True)

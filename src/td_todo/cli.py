"""CLI entrypoint for td-todo."""

from __future__ import annotations

from pathlib import Path
import sys
from typing import Annotated, Callable, Sequence

import typer

from . import render, storage
from .models import InvalidPatternError, TaskError, TaskFileError, TaskNotFoundError
from .selectors import parse_selector
from .service import TaskStore

DataDirOption = Annotated[
    Path | None,
    typer.Option(
        "--data-dir",
        envvar="TD_TODO_DIR",
        help="Directory holding tasks.csv and config.yaml",
        show_default=False,
    ),
]
TasksFileOption = Annotated[
    Path | None,
    typer.Option("--file", help="Explicit tasks CSV path", show_default=False),
]
PlainOption = Annotated[bool, typer.Option("--plain", help="Disable rich table output")]
TokensArgument = Annotated[
    list[str] | None,
    typer.Argument(
        help=(
            "'done EXPR', 'do EXPR', 'show EXPR', or comma-separated task texts "
            "(each text is trimmed; blank segments are skipped)"
        ),
        show_default=False,
    ),
]

app = typer.Typer(
    help="Personal task tracker: add, select, promote and complete tasks.",
    add_completion=False,
)


def _can_render_rich_output() -> bool:
    return sys.stdout.isatty()


def _print_rich(renderable) -> None:
    from rich.console import Console

    Console().print(renderable)


def _warn_config(message: str) -> None:
    typer.echo(f"Warning: {message}", err=True)


def _run_and_handle(fn: Callable[[], None]) -> None:
    try:
        fn()
    except InvalidPatternError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    except TaskError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _resolve_data_dir(data_dir: Path | None) -> Path:
    root = (data_dir or storage.default_data_dir()).expanduser()
    try:
        if storage.ensure_data_dir(root):
            storage.write_default_config_if_missing(root)
    except OSError as exc:
        raise TaskError(f"Unable to create data directory {root}: {exc}") from exc
    return root


def _show_status(store: TaskStore, *, rich: bool) -> None:
    if rich:
        _print_rich(render.render_status_rich(store))
    else:
        store.echo(render.render_status_plain(store))


def _show_selection(store: TaskStore, positions: list[int], *, rich: bool) -> None:
    if rich:
        _print_rich(render.render_selection_rich(store, positions))
    elif positions:
        store.echo(render.render_selection_plain(store, positions))


def dispatch(store: TaskStore, tokens: Sequence[str], *, rich: bool = False) -> None:
    """Run one command against a loaded store.

    The first token picks the command; the rest are joined with spaces into a
    selector expression. Unknown first tokens start a list of new tasks.
    """
    if not tokens:
        _show_status(store, rich=rich)
        return

    action = tokens[0]
    expression = " ".join(tokens[1:])

    if action == "done":
        positions = store.select(parse_selector(expression, "last"), "hide")
        store.complete_many(positions)
        _show_status(store, rich=rich)
    elif action == "do":
        positions = store.select(parse_selector(expression, "last"), "hide")
        if not positions:
            store.echo("Task not found")
            return
        try:
            store.promote(positions[0])
        except TaskNotFoundError as exc:
            store.echo(f"Error doing task: {exc}")
    elif action == "show":
        positions = store.select(parse_selector(expression, "all"), "show")
        _show_selection(store, positions, rich=rich)
    else:
        for segment in " ".join(tokens).split(","):
            text = segment.strip()
            if text:
                store.create(store.new_task(text))
        _show_status(store, rich=rich)


@app.command(
    context_settings={
        "allow_extra_args": True,
        "allow_interspersed_args": False,
        "ignore_unknown_options": True,
    }
)
def run(
    tokens: TokensArgument = None,
    data_dir: DataDirOption = None,
    tasks_file: TasksFileOption = None,
    plain: PlainOption = False,
) -> None:
    """Show active tasks, or run done/do/show, or add comma-separated tasks."""

    def _inner() -> None:
        if tasks_file is not None:
            root = (data_dir or storage.default_data_dir()).expanduser()
            path = tasks_file.expanduser()
        else:
            root = _resolve_data_dir(data_dir)
            path = storage.resolve_tasks_file(root, warn=_warn_config)

        use_rich = (
            not plain
            and _can_render_rich_output()
            and storage.resolve_rich_output(root, warn=_warn_config)
        )

        store = TaskStore()
        try:
            store.load(path)
        except TaskFileError as exc:
            typer.echo(f"Error loading tasks: {exc}")

        dispatch(store, list(tokens or []), rich=use_rich)

        try:
            store.save(path)
        except TaskFileError as exc:
            typer.echo(f"Error saving tasks: {exc}")

    _run_and_handle(_inner)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

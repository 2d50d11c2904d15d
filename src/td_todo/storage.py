"""Filesystem operations: data directory, config.yaml and the tasks CSV file."""

from __future__ import annotations

import csv
import datetime as dt
from pathlib import Path
import re
from typing import Any, Callable, Iterable, Iterator

import click
import yaml

from .models import (
    APP_NAME,
    CSV_HEADER,
    DEFAULT_TASKS_FILE,
    MissingColumnError,
    ParseColumnError,
    Task,
    TaskFileNotFoundError,
    WriteColumnError,
)

DEFAULT_RICH_OUTPUT = True
SUPPORTED_SETTINGS_KEYS = {"tasks_file", "rich_output"}
FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def default_data_dir() -> Path:
    return Path(click.get_app_dir(APP_NAME))


def ensure_data_dir(data_dir: Path) -> bool:
    if data_dir.is_dir():
        return False
    data_dir.mkdir(parents=True, exist_ok=True)
    return True


def config_path(data_dir: Path) -> Path:
    return data_dir / "config.yaml"


def default_config(
    tasks_file: str = DEFAULT_TASKS_FILE,
    rich_output: bool = DEFAULT_RICH_OUTPUT,
) -> dict[str, Any]:
    return {
        "settings": {
            "tasks_file": tasks_file,
            "rich_output": rich_output,
        }
    }


def write_default_config_if_missing(data_dir: Path) -> bool:
    path = config_path(data_dir)
    if path.exists():
        return False
    payload = yaml.safe_dump(default_config(), sort_keys=False, default_flow_style=False)
    path.write_text(payload, encoding="utf-8")
    return True


def read_config(data_dir: Path, warn: Callable[[str], None] | None = None) -> dict[str, Any]:
    path = config_path(data_dir)
    if not path.exists():
        return {}
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        if warn is not None:
            warn(f"Unable to parse config at {path}. Falling back to defaults.")
        return {}
    if not isinstance(payload, dict):
        if warn is not None:
            warn(f"Invalid config format at {path}. Falling back to defaults.")
        return {}
    return payload


def _settings(data_dir: Path, warn: Callable[[str], None] | None) -> dict[str, Any]:
    data = read_config(data_dir, warn=warn)
    for key in data.keys():
        if key != "settings" and warn is not None:
            warn(f"Unsupported config key '{key}' in {config_path(data_dir)}. Ignoring.")

    settings = data.get("settings", {})
    if not isinstance(settings, dict):
        if warn is not None:
            warn(f"Invalid settings section in {config_path(data_dir)}. Using defaults.")
        return {}

    for key in settings.keys():
        if key not in SUPPORTED_SETTINGS_KEYS and warn is not None:
            warn(f"Unsupported settings key '{key}' in {config_path(data_dir)}. Ignoring.")
    return settings


def resolve_tasks_file(data_dir: Path, warn: Callable[[str], None] | None = None) -> Path:
    tasks_file = _settings(data_dir, warn).get("tasks_file")
    if tasks_file is None:
        return data_dir / DEFAULT_TASKS_FILE
    if not isinstance(tasks_file, str) or not tasks_file.strip():
        if warn is not None:
            warn(
                f"Invalid settings.tasks_file in {config_path(data_dir)}. "
                f"Using default '{DEFAULT_TASKS_FILE}'."
            )
        return data_dir / DEFAULT_TASKS_FILE
    return data_dir / tasks_file.strip()


def resolve_rich_output(data_dir: Path, warn: Callable[[str], None] | None = None) -> bool:
    rich_output = _settings(data_dir, warn).get("rich_output")
    if rich_output is None:
        return DEFAULT_RICH_OUTPUT
    if not isinstance(rich_output, bool):
        if warn is not None:
            warn(
                f"Invalid settings.rich_output in {config_path(data_dir)}. "
                f"Using default '{DEFAULT_RICH_OUTPUT}'."
            )
        return DEFAULT_RICH_OUTPUT
    return rich_output


def format_timestamp(value: dt.datetime) -> str:
    return value.isoformat()


def parse_timestamp(value: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp that carries an explicit UTC offset.

    Fractions finer than microseconds are truncated.
    """
    parsed = dt.datetime.fromisoformat(FRACTION_RE.sub(r"\1", value.strip()))
    if parsed.tzinfo is None or parsed.utcoffset() is None:
        raise ValueError(f"Timestamp has no UTC offset: {value}")
    return parsed


def task_from_row(row: list[str]) -> Task:
    if len(row) < len(CSV_HEADER):
        raise MissingColumnError()
    text, created_raw, completed_raw = row[0], row[1], row[2]
    try:
        created = parse_timestamp(created_raw)
    except ValueError as exc:
        raise ParseColumnError() from exc
    try:
        completed = parse_timestamp(completed_raw) if completed_raw else None
    except ValueError:
        completed = None
    return Task(text=text, created=created, completed=completed)


def task_to_row(task: Task) -> list[str]:
    completed = format_timestamp(task.completed) if task.completed is not None else ""
    return [task.text, format_timestamp(task.created), completed]


def _iter_rows(reader: Iterator[list[str]]) -> Iterator[list[str]]:
    while True:
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error:
            continue
        if row:
            yield row


def iter_tasks(path: Path) -> Iterator[Task]:
    """Yield tasks from a CSV file one row at a time.

    The first row is the header. Rows the csv module rejects and blank rows
    are skipped. A short row or a bad ``created`` column stops the read with
    an error; tasks already yielded stay valid.
    """
    try:
        fh = path.open("r", encoding="utf-8", newline="")
    except OSError as exc:
        raise TaskFileNotFoundError() from exc
    with fh:
        rows = _iter_rows(csv.reader(fh))
        try:
            next(rows, None)
            for row in rows:
                yield task_from_row(row)
        except UnicodeDecodeError as exc:
            raise ParseColumnError() from exc


def write_tasks(path: Path, tasks: Iterable[Task]) -> None:
    try:
        fh = path.open("w", encoding="utf-8", newline="")
    except OSError as exc:
        raise TaskFileNotFoundError() from exc
    try:
        with fh:
            writer = csv.writer(fh, lineterminator="\n")
            writer.writerow(CSV_HEADER)
            for task in tasks:
                writer.writerow(task_to_row(task))
    except (OSError, csv.Error) as exc:
        raise WriteColumnError() from exc

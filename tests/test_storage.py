from __future__ import annotations

import datetime as dt
from pathlib import Path

import pytest
import yaml

from td_todo import storage
from td_todo.models import (
    MissingColumnError,
    ParseColumnError,
    Task,
    TaskFileNotFoundError,
    WriteColumnError,
)
from td_todo.service import TaskStore


def _write_config(data_dir: Path, content: str) -> None:
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "config.yaml").write_text(content, encoding="utf-8")


def _write_csv(path: Path, content: str) -> None:
    path.write_text(content, encoding="utf-8")


def _load(path: Path) -> TaskStore:
    store = TaskStore(echo=lambda _: None)
    store.load(path)
    return store


def test_load_reads_rows_in_file_order(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    _write_csv(
        path,
        (
            "text,created,completed\n"
            "Buy milk,2024-01-15T09:30:00+00:00,\n"
            "Write report,2024-01-10T08:00:00+00:00,2024-01-12T17:45:00+00:00\n"
        ),
    )
    store = _load(path)
    assert [task.text for task in store.tasks] == ["Buy milk", "Write report"]
    assert store[0].created == dt.datetime(2024, 1, 15, 9, 30, tzinfo=dt.timezone.utc)
    assert store[0].completed is None
    assert store[1].completed == dt.datetime(2024, 1, 12, 17, 45, tzinfo=dt.timezone.utc)


def test_load_missing_file_raises_not_found(tmp_path: Path) -> None:
    with pytest.raises(TaskFileNotFoundError, match="Task file not found"):
        _load(tmp_path / "missing.csv")


def test_load_short_row_raises_missing_column(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    _write_csv(
        path,
        (
            "text,created,completed\n"
            "Buy milk,2024-01-15T09:30:00+00:00,\n"
            "Broken,2024-01-15T09:30:00+00:00\n"
        ),
    )
    store = TaskStore(echo=lambda _: None)
    with pytest.raises(MissingColumnError, match="Task file missing column"):
        store.load(path)
    assert [task.text for task in store.tasks] == ["Buy milk"]


@pytest.mark.parametrize("created", ["yesterday", "2024-01-15T09:30:00", ""])
def test_load_bad_created_raises_parse_column(tmp_path: Path, created: str) -> None:
    path = tmp_path / "tasks.csv"
    _write_csv(path, f"text,created,completed\nBuy milk,{created},\n")
    with pytest.raises(ParseColumnError, match="Failed to parse task"):
        _load(path)


def test_load_bad_completed_is_treated_as_active(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    _write_csv(path, "text,created,completed\nBuy milk,2024-01-15T09:30:00+00:00,soon\n")
    store = _load(path)
    assert store[0].completed is None


def test_load_skips_blank_rows(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    _write_csv(
        path,
        (
            "text,created,completed\n"
            "\n"
            "Buy milk,2024-01-15T09:30:00+00:00,\n"
            "\n"
        ),
    )
    assert [task.text for task in _load(path).tasks] == ["Buy milk"]


def test_load_accepts_nanosecond_timestamps(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    _write_csv(
        path,
        "text,created,completed\nBuy milk,2024-01-15T09:30:00.123456789+01:00,\n",
    )
    created = _load(path)[0].created
    assert created.microsecond == 123456
    assert created.utcoffset() == dt.timedelta(hours=1)


def test_save_writes_header_and_rows(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    created = dt.datetime(2024, 1, 15, 9, 30, tzinfo=dt.timezone.utc)
    store = TaskStore(
        [
            Task("Buy milk", created),
            Task("Write, then send", created, created + dt.timedelta(hours=1)),
        ],
        echo=lambda _: None,
    )
    store.save(path)
    assert path.read_text(encoding="utf-8").splitlines() == [
        "text,created,completed",
        "Buy milk,2024-01-15T09:30:00+00:00,",
        '"Write, then send",2024-01-15T09:30:00+00:00,2024-01-15T10:30:00+00:00',
    ]


def test_save_into_missing_directory_raises_not_found(tmp_path: Path) -> None:
    store = TaskStore(echo=lambda _: None)
    with pytest.raises(TaskFileNotFoundError):
        store.save(tmp_path / "nope" / "tasks.csv")


def test_write_failure_raises_write_column(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _boom(_task: Task) -> list[str]:
        raise OSError("disk full")

    monkeypatch.setattr(storage, "task_to_row", _boom)
    created = dt.datetime(2024, 1, 15, 9, 30, tzinfo=dt.timezone.utc)
    with pytest.raises(WriteColumnError, match="Failed to write task"):
        storage.write_tasks(tmp_path / "tasks.csv", [Task("Buy milk", created)])


def test_round_trip_preserves_offsets_and_microseconds(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    tz = dt.timezone(dt.timedelta(hours=-5, minutes=-30))
    created = dt.datetime(2024, 3, 1, 7, 5, 9, 250000, tzinfo=tz)
    tasks = [
        Task("plain", created),
        Task('quote " inside', created, created + dt.timedelta(seconds=1)),
    ]
    storage.write_tasks(path, tasks)
    loaded = list(storage.iter_tasks(path))
    assert loaded == tasks
    assert [task.created.utcoffset() for task in loaded] == [tz.utcoffset(None)] * 2


def test_empty_store_round_trips(tmp_path: Path) -> None:
    path = tmp_path / "tasks.csv"
    TaskStore(echo=lambda _: None).save(path)
    assert path.read_bytes() == b"text,created,completed\n"
    assert _load(path).tasks == []


def test_ensure_data_dir_reports_creation(tmp_path: Path) -> None:
    data_dir = tmp_path / "td-todo"
    assert storage.ensure_data_dir(data_dir) is True
    assert storage.ensure_data_dir(data_dir) is False
    assert data_dir.is_dir()


def test_write_default_config_if_missing(tmp_path: Path) -> None:
    assert storage.write_default_config_if_missing(tmp_path) is True
    assert storage.write_default_config_if_missing(tmp_path) is False
    cfg = yaml.safe_load((tmp_path / "config.yaml").read_text(encoding="utf-8"))
    assert cfg == {"settings": {"tasks_file": "tasks.csv", "rich_output": True}}


def test_resolve_settings_use_defaults_when_missing(tmp_path: Path) -> None:
    warnings: list[str] = []
    assert storage.resolve_tasks_file(tmp_path, warn=warnings.append) == tmp_path / "tasks.csv"
    assert storage.resolve_rich_output(tmp_path, warn=warnings.append) is True
    assert warnings == []


def test_resolve_settings_read_valid_values(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        (
            "settings:\n"
            "  tasks_file: work.csv\n"
            "  rich_output: false\n"
        ),
    )
    assert storage.resolve_tasks_file(tmp_path) == tmp_path / "work.csv"
    assert storage.resolve_rich_output(tmp_path) is False


def test_resolve_settings_invalid_values_warn_and_fall_back(tmp_path: Path) -> None:
    _write_config(
        tmp_path,
        (
            "settings:\n"
            "  tasks_file: 12\n"
            "  rich_output: maybe\n"
            "  colour: red\n"
        ),
    )
    warnings: list[str] = []
    assert storage.resolve_tasks_file(tmp_path, warn=warnings.append) == tmp_path / "tasks.csv"
    assert storage.resolve_rich_output(tmp_path, warn=warnings.append) is True
    assert any("Invalid settings.tasks_file" in message for message in warnings)
    assert any("Invalid settings.rich_output" in message for message in warnings)
    assert any("Unsupported settings key 'colour'" in message for message in warnings)


def test_read_config_unparseable_warns(tmp_path: Path) -> None:
    _write_config(tmp_path, "settings: [unclosed\n")
    warnings: list[str] = []
    assert storage.read_config(tmp_path, warn=warnings.append) == {}
    assert any("Unable to parse config" in message for message in warnings)


def test_read_config_non_mapping_warns(tmp_path: Path) -> None:
    _write_config(tmp_path, "- just\n- a list\n")
    warnings: list[str] = []
    assert storage.read_config(tmp_path, warn=warnings.append) == {}
    assert any("Invalid config format" in message for message in warnings)

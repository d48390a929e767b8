"""TodoStateRepository のテスト"""

import json
from pathlib import Path

import pytest

from src.todo.exceptions import StateCorruptError
from src.todo.models import Task, TodoState
from src.todo.repository import TodoStateRepository, state_path_for


def test_state_path_for_todo_file() -> None:
    """状態ファイルは正規リストの隣に置く"""
    assert state_path_for(Path("/notes/todo.md")) == Path("/notes/.todo_state.json")


def test_missing_file_returns_fresh_state(tmp_path: Path) -> None:
    """ファイルがなければ新規状態（要移行）"""
    repo = TodoStateRepository(todo_path=tmp_path / "todo.md")
    state = repo.read()

    assert not repo.exists()
    assert state.tasks == {}
    assert state.needs_migration()


def test_write_then_read(tmp_path: Path) -> None:
    """書き込んだ状態を読み戻す"""
    repo = TodoStateRepository(tmp_path / ".todo_state.json")
    state = TodoState(migrated=True)
    task = Task(text="Buy milk", section="2025-01-15")
    state.add_task(task, "note.md")

    repo.write(state)
    loaded = repo.read()

    assert loaded.migrated is True
    assert loaded.get_task(task.identifier).text == "Buy milk"
    assert loaded.get_task(task.identifier).section == "2025-01-15"

    raw = json.loads(repo.state_path.read_text(encoding="utf-8"))
    assert raw["version"] == "1"
    assert task.identifier in raw["tasks"]


@pytest.mark.parametrize(
    "content",
    [
        "",
        "{not json",
        json.dumps({"tasks": {"abcdef12": {"identifier": "NOTHEX", "text": "x"}}}),
    ],
)
def test_corrupt_file_raises(tmp_path: Path, content: str) -> None:
    """壊れた状態ファイルは致命的エラー"""
    path = tmp_path / ".todo_state.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(StateCorruptError) as excinfo:
        TodoStateRepository(path).read()
    assert excinfo.value.path == path


def test_repository_requires_path(monkeypatch) -> None:
    """パスが指定されていない"""
    monkeypatch.delenv("TASK_SYNC_STATE_PATH", raising=False)
    with pytest.raises(ValueError):
        TodoStateRepository()

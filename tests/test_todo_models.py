"""TodoState / TaskState のテスト"""

from datetime import date

import pytest
from pydantic import ValidationError

from src.todo.models import (
    DEFAULT_SECTION,
    Priority,
    Task,
    TaskState,
    TodoState,
    ensure_task_id,
    generate_task_id,
)


def test_generate_task_id_is_deterministic() -> None:
    """同じ本文なら同じ識別子（前後の空白は無視）"""
    assert generate_task_id("Buy milk") == generate_task_id("  Buy milk ")
    assert generate_task_id("Buy milk") != generate_task_id("Buy milk!")
    assert len(generate_task_id("Buy milk")) == 8


def test_ensure_task_id_keeps_existing() -> None:
    """既存の識別子は変更しない"""
    task = Task(text="Call Bob", identifier="abcdef12")
    assert ensure_task_id(task) == "abcdef12"


def test_add_task_records_open_task() -> None:
    """新規タスクは未完了・未アーカイブで登録"""
    state = TodoState()
    task = Task(text="Write report", completed=True, tags={"work", "q1"}, priority=Priority.P1)

    record = state.add_task(task, "diary/2025/01-Jan/2025-01-15-Wed.md")

    assert record.identifier == task.identifier
    assert record.completed is False
    assert record.archived is False
    assert record.section == DEFAULT_SECTION
    assert record.tags == ["q1", "work"]
    assert state.has_task(task.identifier)


def test_migration_runs_once_and_keeps_completion() -> None:
    """移行はセクションと完了状態を引き継ぎ、migratedを立てる"""
    state = TodoState()
    assert state.needs_migration()

    tasks = [
        Task(text="Open item", section="Someday"),
        Task(text="Done item", section="Someday", completed=True, completed_date=date(2025, 1, 10)),
    ]
    assert state.migrate_from_markdown(tasks) == 2
    assert not state.needs_migration()

    done = state.get_task(generate_task_id("Done item"))
    assert done.completed is True
    assert done.completed_at.date() == date(2025, 1, 10)
    assert done.section == "Someday"
    assert done.source_path == "migration"

    # 同じタスクは二重登録しない
    assert state.migrate_from_markdown(tasks) == 0
    assert len(state.tasks) == 2


def test_apply_list_edit() -> None:
    """正規リスト側の編集を反映"""
    state = TodoState()
    task = Task(text="Draft plan")
    state.add_task(task, "note.md")

    edited = Task(text="Draft plan v2", completed=True, identifier=task.identifier)
    assert state.apply_list_edit(edited) is True

    record = state.get_task(task.identifier)
    assert record.text == "Draft plan v2"
    assert record.completed is True
    assert record.completed_at is not None

    assert state.apply_list_edit(edited) is False


def test_filters_and_mark_archived() -> None:
    """アクティブ・完了・未完了の絞り込みとアーカイブ"""
    state = TodoState()
    for text in ("A", "B", "C"):
        state.add_task(Task(text=text), "note.md")
    state.get_task(generate_task_id("B")).completed = True

    assert len(state.get_active_tasks()) == 3
    assert [t.text for t in state.get_completed_tasks()] == ["B"]
    assert sorted(t.text for t in state.get_open_tasks()) == ["A", "C"]

    assert state.mark_archived() == 1
    assert state.last_archive is not None
    assert len(state.get_active_tasks()) == 2
    assert state.get_completed_tasks() == []
    # レコードは削除しない
    assert len(state.tasks) == 3


def test_malformed_identifier_rejected() -> None:
    """不正な識別子は検証エラー"""
    with pytest.raises(ValidationError):
        TaskState(identifier="XYZ", text="bad")


def test_key_must_match_identifier() -> None:
    """キーと識別子の不一致は検証エラー"""
    record = TaskState(identifier="abcdef12", text="x")
    with pytest.raises(ValidationError):
        TodoState(tasks={"12345678": record})


def test_add_task_keeps_existing_record() -> None:
    """登録済みの識別子は上書きせず既存のレコードを返す"""
    state = TodoState()
    first = state.add_task(Task(text="Pay rent"), "note.md")
    first.archived = True
    created_at = first.created_at

    again = state.add_task(Task(text="Pay rent"), "other.md")

    assert again is first
    assert again.archived is True
    assert again.created_at == created_at
    assert again.source_path == "note.md"


def test_apply_daily_edit_uses_last_seen_text() -> None:
    """日次ノート側の本文が前回から変わったときだけ反映"""
    state = TodoState()
    task = Task(text="Buy milk")
    state.add_task(task, "note.md")

    unchanged = Task(text="Buy milk", identifier=task.identifier)
    assert state.apply_daily_edit(unchanged) is False

    edited = Task(text="Buy whole milk", identifier=task.identifier, priority=Priority.P1, tags={"home"})
    assert state.apply_daily_edit(edited) is True
    record = state.get_task(task.identifier)
    assert record.text == "Buy whole milk"
    assert record.priority == Priority.P1
    assert record.tags == ["home"]
    assert record.source_text == "Buy whole milk"

    # リスト側の編集後も、同じ日次ノートの本文では戻らない
    state.apply_list_edit(Task(text="Buy oat milk", identifier=task.identifier))
    assert state.apply_daily_edit(edited) is False
    assert record.text == "Buy oat milk"


def test_detect_and_retire_deletions() -> None:
    """両方から消えた未完了タスクだけを引退させる"""
    state = TodoState()
    for text in ("Keep", "Drop", "Done"):
        state.add_task(Task(text=text), "note.md")
    state.get_task(generate_task_id("Done")).completed = True

    missing = state.detect_deletions([], [generate_task_id("Keep")])
    assert missing == [generate_task_id("Drop")]

    assert state.retire_task(generate_task_id("Drop")) is True
    record = state.get_task(generate_task_id("Drop"))
    assert record.archived is True
    assert record.deleted is True

    assert state.retire_task(generate_task_id("Drop")) is False
    assert state.retire_task("00000000") is False
    assert state.detect_deletions([], [generate_task_id("Keep")]) == []

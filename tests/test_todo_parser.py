"""Markdownタスク行パーサーのテスト"""

from datetime import date

import pytest

from src.durable_io import FileOperationError
from src.todo.exceptions import InvalidTaskIdError
from src.todo.models import Priority, Task
from src.todo.parser import format_task, parse_task_line, parse_tasks, read_tasks


def test_parse_plain_task() -> None:
    task = parse_task_line("- [ ] Buy milk", "Tasks", 3)
    assert task.text == "Buy milk"
    assert task.section == "Tasks"
    assert task.completed is False
    assert task.identifier is None
    assert task.line == 3


def test_parse_non_task_line() -> None:
    assert parse_task_line("Just some prose") is None
    assert parse_task_line("## Heading") is None


def test_parse_task_metadata() -> None:
    """識別子・優先度・タグ・期限・完了日"""
    task = parse_task_line(
        "* [x] [P1] Ship release #work due: 2025-02-01 <!-- id: abcdef12 --> @completed(2025-01-20)"
    )
    assert task.completed is True
    assert task.identifier == "abcdef12"
    assert task.priority is Priority.P1
    assert task.tags == {"work"}
    assert task.due_date == date(2025, 2, 1)
    assert task.completed_date == date(2025, 1, 20)
    assert task.text == "[P1] Ship release #work due: 2025-02-01"


def test_malformed_identifier_raises() -> None:
    """不正な識別子マーカー"""
    with pytest.raises(InvalidTaskIdError) as excinfo:
        parse_task_line("- [ ] Broken <!-- id: nothex!! -->", line_no=7)
    assert excinfo.value.line == 7


def test_parse_tasks_tracks_sections() -> None:
    """## 見出しでセクションを追跡"""
    content = "# 2025-01-15\n\n## Notes\n- [ ] Note item\n\n## Tasks\n- [ ] First\n+ [X] Second\n"
    tasks = parse_tasks(content)

    assert [(t.section, t.text, t.completed) for t in tasks] == [
        ("Notes", "Note item", False),
        ("Tasks", "First", False),
        ("Tasks", "Second", True),
    ]


def test_format_task_embeds_identifier() -> None:
    """識別子を行末に埋め込む"""
    open_task = Task(text="Buy milk", identifier="0a1b2c3d")
    assert format_task(open_task) == "- [ ] Buy milk <!-- id: 0a1b2c3d -->"

    done = Task(text="Ship", completed=True, identifier="0a1b2c3d", completed_date=date(2025, 1, 20))
    assert format_task(done) == "- [x] Ship <!-- id: 0a1b2c3d --> @completed(2025-01-20)"


def test_formatted_line_parses_back() -> None:
    """整形した行を再度パースすると同じ識別子と本文"""
    original = Task(text="[P2] Review #team", identifier="deadbeef")
    parsed = parse_task_line(format_task(original))
    assert parsed.identifier == "deadbeef"
    assert parsed.text == original.text


def test_read_tasks_rejects_undecodable_file(tmp_path) -> None:
    """UTF-8として読めないファイルは FileOperationError（元の例外を保持）"""
    path = tmp_path / "note.md"
    path.write_bytes(b"- [ ] caf\xe9\n")

    with pytest.raises(FileOperationError) as excinfo:
        read_tasks(path)

    assert isinstance(excinfo.value.__cause__, UnicodeDecodeError)

"""Markdownタスク行のパーサー/フォーマッター

チェックリスト行（``- [ ]`` / ``* [x]`` / ``+ [ ]``）と Task を相互変換します。
識別子は ``<!-- id: xxxxxxxx -->`` として行末に埋め込みます。
"""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Union

from src.durable_io import wrap_file_error

from .exceptions import InvalidTaskIdError
from .models import Priority, Task, is_valid_task_id

TASK_LINE_RE = re.compile(r"^([-*+])\s*\[([ xX])\]\s*(.*)$")
SECTION_RE = re.compile(r"^##\s+(.+?)\s*$")
TASK_ID_RE = re.compile(r"\s*<!--\s*id:\s*([^\s>]*)\s*-->")
PRIORITY_RE = re.compile(r"\[P([0-3])\]")
TAG_RE = re.compile(r"(?:^|\s)#([A-Za-z0-9_-]+)")
DUE_RE = re.compile(r"due:\s*(\d{4}-\d{2}-\d{2})")
COMPLETED_RE = re.compile(r"\s*@completed\((\d{4}-\d{2}-\d{2})\)")


def _parse_date(value: str) -> Optional[date]:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def extract_task_id(text: str, line: int = 0) -> Optional[str]:
    """
    埋め込まれた識別子を取り出す

    Raises:
        InvalidTaskIdError: マーカーはあるが識別子の形式が不正な場合
    """
    match = TASK_ID_RE.search(text)
    if not match:
        return None
    identifier = match.group(1)
    if not is_valid_task_id(identifier):
        raise InvalidTaskIdError(identifier, line)
    return identifier


def strip_markers(text: str) -> str:
    """識別子マーカーと@completedタグを除去"""
    text = TASK_ID_RE.sub("", text)
    text = COMPLETED_RE.sub("", text)
    return text.strip()


def parse_task_line(line: str, section: str = "", line_no: int = 0) -> Optional[Task]:
    """1行をTaskに変換（タスク行でなければNone）"""
    match = TASK_LINE_RE.match(line.strip())
    if not match:
        return None

    raw = match.group(3)
    identifier = extract_task_id(raw, line_no)

    completed_match = COMPLETED_RE.search(raw)
    completed_date = _parse_date(completed_match.group(1)) if completed_match else None

    text = strip_markers(raw)

    priority_match = PRIORITY_RE.search(text)
    due_match = DUE_RE.search(text)

    return Task(
        text=text,
        section=section,
        completed=match.group(2) in ("x", "X"),
        identifier=identifier,
        priority=Priority(f"P{priority_match.group(1)}") if priority_match else None,
        tags=set(TAG_RE.findall(text)),
        due_date=_parse_date(due_match.group(1)) if due_match else None,
        completed_date=completed_date,
        line=line_no,
    )


def parse_tasks(content: str) -> List[Task]:
    """Markdown本文からタスクを抽出（``## `` 見出しをセクションとして追跡）"""
    tasks: List[Task] = []
    section = ""

    for index, line in enumerate(content.splitlines(), start=1):
        heading = SECTION_RE.match(line)
        if heading:
            section = heading.group(1)
            continue

        task = parse_task_line(line, section, index)
        if task is not None:
            tasks.append(task)

    return tasks


def read_tasks(path: Union[str, Path]) -> List[Task]:
    """
    ファイルからタスクを読み込む

    Raises:
        FileOperationError: ファイルが読めない場合（UTF-8として解釈できない場合を含む）
        InvalidTaskIdError: 不正な識別子が含まれる場合
    """
    source = Path(path)
    try:
        content = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise wrap_file_error("read tasks from", source, e)
    return parse_tasks(content)


def format_task(task: Task) -> str:
    """Taskをチェックリスト行に整形"""
    checkbox = "- [x] " if task.completed else "- [ ] "
    line = checkbox + strip_markers(task.text)

    if task.identifier:
        line += f" <!-- id: {task.identifier} -->"
    if task.completed and task.completed_date is not None:
        line += f" @completed({task.completed_date.isoformat()})"

    return line

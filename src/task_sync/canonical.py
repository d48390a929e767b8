"""正規リストの再生成

正規リストはその場で編集せず、常にState Storeのタスクから全体を再生成する。
日付（YYYY-MM-DD）のセクションは新しい順に先頭へ、それ以外のセクションは
出現順のまま後ろに並べる。
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from src.durable_io import atomic_write_text, backup_before_overwrite
from src.todo.models import DEFAULT_SECTION, TaskState
from src.todo.parser import format_task

logger = logging.getLogger(__name__)

LIST_TITLE = "# To-Do List"

_DATE_SHAPE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def section_date(name: str) -> Optional[date]:
    """セクション名がISO日付ならその日付を返す"""
    if not _DATE_SHAPE_RE.match(name):
        return None
    try:
        return datetime.strptime(name, "%Y-%m-%d").date()
    except ValueError:
        return None


def order_sections(names: Iterable[str]) -> List[str]:
    """日付セクションを新しい順に先頭へ、その他は出現順を保って後ろへ"""
    dated: List[tuple[date, str]] = []
    undated: List[str] = []
    for name in names:
        day = section_date(name)
        if day is not None:
            dated.append((day, name))
        else:
            undated.append(name)

    dated.sort(key=lambda item: item[0], reverse=True)
    return [name for _, name in dated] + undated


def group_by_section(tasks: Iterable[TaskState]) -> Dict[str, List[TaskState]]:
    groups: Dict[str, List[TaskState]] = {}
    for task in sorted(tasks, key=lambda t: t.created_at):
        groups.setdefault(task.section or DEFAULT_SECTION, []).append(task)
    return groups


def render_canonical_list(tasks: Iterable[TaskState]) -> str:
    """タスクから正規リストのMarkdownを生成"""
    groups = group_by_section(tasks)

    lines = [LIST_TITLE, ""]
    for name in order_sections(groups):
        lines.append(f"## {name}")
        lines.append("")
        lines.extend(format_task(task.to_task()) for task in groups[name])
        lines.append("")

    return "\n".join(lines)


def write_canonical_list(todo_path: Union[str, Path], tasks: Iterable[TaskState]) -> Path:
    """
    正規リストをバックアップした上でアトミックに書き直す

    呼び出し側で正規リストのロックを取得しておくこと。
    """
    path = Path(todo_path)
    content = render_canonical_list(tasks)

    backup_before_overwrite(path)
    atomic_write_text(path, content)

    logger.debug(f"Regenerated canonical list {path}")
    return path

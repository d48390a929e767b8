"""
TaskArchiveEngine: 完了済みタスクを月次アーカイブへ移動する

処理の流れ（正規リストのロック内）:
1. State Storeを読み込み、必要なら移行、正規リスト側の編集を反映
   （リストと当日の日次ノートの両方から消えた未完了タスクは引退させる）
2. 完了済みタスクがなければ何も書き込まずに終了
3. archive-YYYY-MM.md に「## Archived on YYYY-MM-DD」として追記
4. 未完了タスクだけで正規リストを再生成
5. 完了済みタスクを archived=True にしてStoreを書き込む
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.durable_io import acquire_lock, atomic_write_text, ensure_dir, wrap_file_error
from src.journal import build_daily_note_path
from src.todo.models import Task, TaskState, ensure_task_id
from src.todo.parser import read_tasks
from src.todo.repository import TodoStateRepository

from .canonical import write_canonical_list
from .config import SyncConfig
from .exceptions import OperationCancelledError
from .sync_engine import bootstrap_state, fold_list_edits, read_todo_tasks, retire_deleted

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass
class ArchiveResult:
    """アーカイブ結果"""

    archived_count: int
    remaining_count: int
    archive_path: Optional[Path] = None
    archived_ids: List[str] = field(default_factory=list)
    retired_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "archived_count": self.archived_count,
            "remaining_count": self.remaining_count,
            "archive_path": str(self.archive_path) if self.archive_path else None,
            "archived_ids": list(self.archived_ids),
            "retired_ids": list(self.retired_ids),
        }


def archive_document_path(archive_dir: Path, day: date) -> Path:
    return archive_dir / f"archive-{day.year:04d}-{day.month:02d}.md"


def archive_title(day: date) -> str:
    return f"# Archive - {MONTH_NAMES[day.month - 1]} {day.year}"


def render_archive_entry(tasks: List[TaskState], day: date) -> str:
    """アーカイブ文書に追記する1回分のブロック"""
    lines = ["", f"## Archived on {day.isoformat()}", ""]
    lines.extend(f"- [x] {task.text}" for task in tasks)
    lines.append("")
    return "\n".join(lines)


class TaskArchiveEngine:
    """完了済みタスクのアーカイブエンジン"""

    def __init__(
        self,
        config: SyncConfig,
        repository: Optional[TodoStateRepository] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.config = config
        self.verbose = config.verbose
        self.repository = repository or TodoStateRepository(config.state_path)
        self.cancel_event = cancel_event

    def _detail(self, message: str) -> None:
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)

    def _check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelledError("archive cancelled before commit; nothing was written")

    def archive_tasks(self, today: Optional[date] = None) -> ArchiveResult:
        """
        完了済みタスクを今月のアーカイブ文書へ移動

        Args:
            today: アーカイブ日（省略時は今日）

        Returns:
            ArchiveResult（完了済みがなければ archived_count=0, archive_path=None）

        Raises:
            StateCorruptError: 状態ファイルが壊れている
            LockTimeoutError: 正規リストのロックを取得できない
            OperationCancelledError: キャンセルされた（何も書き込まない）
        """
        today = today or date.today()
        todo_path = self.config.todo_path

        self._check_cancelled()
        ensure_dir(todo_path.parent)

        with acquire_lock(todo_path, timeout=self.config.lock_timeout):
            state = self.repository.read()
            todo_existed = todo_path.exists()
            todo_tasks = read_todo_tasks(todo_path)

            bootstrap_state(state, todo_tasks)
            fold_list_edits(state, todo_tasks, todo_path)
            retired: List[str] = []
            if todo_existed:
                retired = retire_deleted(state, self._daily_section_tasks(today), todo_tasks)

            completed = sorted(state.get_completed_tasks(), key=lambda t: t.created_at)
            remaining = state.get_open_tasks()

            if not completed:
                logger.info("No completed tasks to archive")
                return ArchiveResult(archived_count=0, remaining_count=len(remaining))

            self._check_cancelled()

            archive_path = archive_document_path(self.config.archive_path, today)
            self._append_archive(archive_path, completed, today)

            write_canonical_list(todo_path, remaining)

            archived = state.mark_archived()
            self.repository.write(state)

        for task in completed:
            self._detail(f"Archived: {task.text} (id: {task.identifier})")
        logger.info(f"Archived {archived} tasks to {archive_path}, {len(remaining)} remaining")

        return ArchiveResult(
            archived_count=archived,
            remaining_count=len(remaining),
            archive_path=archive_path,
            archived_ids=[task.identifier for task in completed],
            retired_ids=retired,
        )

    def _daily_section_tasks(self, day: date) -> List[Task]:
        """当日の日次ノートのタスクセクション（ノートがなければ空）"""
        note_path = build_daily_note_path(self.config.diary_path, day)
        if not note_path.exists():
            return []
        tasks = [t for t in read_tasks(note_path) if t.section == self.config.task_section]
        for task in tasks:
            ensure_task_id(task)
        return tasks

    def _append_archive(self, archive_path: Path, tasks: List[TaskState], day: date) -> None:
        """アーカイブ文書を読み込み、追記した全体をアトミックに書き込む"""
        ensure_dir(archive_path.parent)

        if archive_path.exists():
            try:
                existing = archive_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise wrap_file_error("read archive", archive_path, e)
            existing = existing.rstrip("\n") + "\n"
        else:
            existing = archive_title(day) + "\n"

        atomic_write_text(archive_path, existing + render_archive_entry(tasks, day))

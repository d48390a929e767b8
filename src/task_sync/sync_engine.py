"""
TaskSyncEngine: 日次ノートのタスクを正規リストへ同期する

設計方針:
- 日次ノートは読み取り専用の入力
- State Storeが「何を同期済みか」の唯一の情報源
- 正規リストは常にState Storeから全体を再生成する（その場で編集しない）
- 正規リストのロック内で「リスト書き込み → Store書き込み」の順に確定する
  （リスト書き込みに失敗した場合、以前の永続状態がそのまま残る）

関連:
- src/todo/repository.py: State Store
- src/task_sync/canonical.py: 正規リストの再生成
- src/task_sync/conflicts.py: 競合検出
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from src.durable_io import acquire_lock, ensure_dir
from src.journal import build_daily_note_path, find_latest_daily_note
from src.todo.models import MIGRATION_ORIGIN, Task, TaskState, TodoState, ensure_task_id
from src.todo.parser import read_tasks
from src.todo.repository import TodoStateRepository

from .canonical import write_canonical_list
from .config import SyncConfig
from .conflicts import ConflictDetail, detect_conflicts
from .exceptions import DailyNoteNotFoundError, OperationCancelledError

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """同期結果"""

    daily_path: Path
    todo_path: Path
    state_path: Path
    tasks_read: int = 0
    tasks_synced: int = 0
    tasks_updated: int = 0
    tasks_adopted: int = 0
    tasks_migrated: int = 0
    tasks_deleted: int = 0
    synced_ids: List[str] = field(default_factory=list)
    deleted_ids: List[str] = field(default_factory=list)
    conflicts: List[ConflictDetail] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "daily_path": str(self.daily_path),
            "todo_path": str(self.todo_path),
            "state_path": str(self.state_path),
            "tasks_read": self.tasks_read,
            "tasks_synced": self.tasks_synced,
            "tasks_updated": self.tasks_updated,
            "tasks_adopted": self.tasks_adopted,
            "tasks_migrated": self.tasks_migrated,
            "tasks_deleted": self.tasks_deleted,
            "synced_ids": list(self.synced_ids),
            "deleted_ids": list(self.deleted_ids),
            "conflicts": [c.to_dict() for c in self.conflicts],
        }


def read_todo_tasks(todo_path: Path) -> List[Task]:
    """正規リストのタスクを読み込む（ファイルがなければ空）"""
    if not todo_path.exists():
        return []
    return read_tasks(todo_path)


def bootstrap_state(state: TodoState, todo_tasks: Sequence[Task]) -> Optional[int]:
    """
    Storeが新規作成されたものなら既存の正規リストを一度だけ取り込む

    Returns:
        取り込んだタスク数、移行が不要だった場合はNone
    """
    if not state.needs_migration():
        return None
    folded = state.migrate_from_markdown(list(todo_tasks), MIGRATION_ORIGIN)
    if folded:
        logger.info(f"Migrated {folded} tasks from existing canonical list")
    return folded


def fold_list_edits(state: TodoState, todo_tasks: Sequence[Task], todo_path: Path) -> Tuple[List[str], int]:
    """
    正規リスト側の変更をStoreへ反映

    - Storeにある識別子: リスト側の編集（本文・完了状態など）を反映
    - Storeにないタスク: 手で追加された行としてセクションごと取り込む
      （再生成で消えないようにする）

    Returns:
        (更新した識別子, 取り込み件数)
    """
    updated: List[str] = []
    adopted = 0
    for task in todo_tasks:
        if task.identifier and state.has_task(task.identifier):
            if state.apply_list_edit(task):
                updated.append(task.identifier)
            continue
        if state.adopt_task(task, str(todo_path)) is not None:
            adopted += 1
    return updated, adopted


def fold_daily_edits(state: TodoState, daily_tasks: Sequence[Task], skip_ids: Iterable[str] = ()) -> int:
    """
    日次ノート側の編集（本文・優先度・タグ）をStoreへ反映

    日次ノート自体は書き換えない。skip_ids には正規リスト側で
    既に反映済みの識別子を渡す。

    Returns:
        更新件数
    """
    skip = set(skip_ids)
    updated = 0
    for task in daily_tasks:
        if not task.identifier or task.identifier in skip:
            continue
        if state.apply_daily_edit(task):
            updated += 1
    return updated


def retire_deleted(state: TodoState, daily_tasks: Sequence[Task], todo_tasks: Sequence[Task]) -> List[str]:
    """
    日次ノートのタスクセクションと正規リストの両方から消えた未完了タスクを引退させる

    Returns:
        引退させた識別子
    """
    daily_ids = [t.identifier for t in daily_tasks if t.identifier]
    todo_ids = [t.identifier for t in todo_tasks if t.identifier]

    retired = []
    for identifier in state.detect_deletions(daily_ids, todo_ids):
        if state.retire_task(identifier):
            logger.info(f"Retired task {identifier}: removed from the canonical list")
            retired.append(identifier)
    return retired


class TaskSyncEngine:
    """日次ノート → State Store → 正規リストの同期エンジン"""

    def __init__(
        self,
        config: SyncConfig,
        repository: Optional[TodoStateRepository] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        """
        初期化

        Args:
            config: 同期設定（verboseもここから受け取る）
            repository: State Store（テスト用にDI可能）
            cancel_event: キャンセル通知
        """
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
            raise OperationCancelledError("sync cancelled before commit; nothing was written")

    def sync_tasks(self, today: Optional[date] = None) -> SyncResult:
        """
        今日の日次ノートのタスクセクションを正規リストへ同期

        Args:
            today: 対象日（省略時は今日）

        Returns:
            SyncResult（競合がある場合は conflicts が設定され、何も書き込まない）

        Raises:
            DailyNoteNotFoundError: 今日のノートがない（副作用なし）
            StateCorruptError: 状態ファイルが壊れている
            InvalidTaskIdError: 不正な識別子がある
            LockTimeoutError: 正規リストのロックを取得できない
            OperationCancelledError: キャンセルされた（何も書き込まない）
        """
        today = today or date.today()
        todo_path = self.config.todo_path
        note_path = build_daily_note_path(self.config.diary_path, today)

        result = SyncResult(daily_path=note_path, todo_path=todo_path, state_path=self.repository.state_path)

        if not note_path.exists():
            if self.verbose:
                latest = find_latest_daily_note(self.config.diary_path, before=today, cancel_event=self.cancel_event)
                if latest is not None:
                    logger.info(f"Most recent daily note is {latest}")
            raise DailyNoteNotFoundError(note_path, today)

        logger.info(f"Syncing tasks from {note_path}")

        daily_tasks = read_tasks(note_path)
        result.tasks_read = len(daily_tasks)

        section_tasks = [t for t in daily_tasks if t.section == self.config.task_section]
        for task in section_tasks:
            ensure_task_id(task)
        candidates = [t for t in section_tasks if not t.completed]

        self._check_cancelled()
        ensure_dir(todo_path.parent)

        with acquire_lock(todo_path, timeout=self.config.lock_timeout):
            state = self.repository.read()
            todo_existed = todo_path.exists()
            todo_tasks = read_todo_tasks(todo_path)

            # 既存ファイル上のタスク（Storeへの取り込み前に控えておく）
            present_ids = {t.identifier for t in todo_tasks if t.identifier}
            present_texts = {t.text for t in todo_tasks}

            migrated = bootstrap_state(state, todo_tasks)
            changed = migrated is not None
            result.tasks_migrated = migrated or 0

            conflicts = detect_conflicts(state, section_tasks, todo_tasks)
            if conflicts:
                for conflict in conflicts:
                    logger.warning(f"Conflict on task {conflict.identifier}: {conflict.reason}")
                result.conflicts = conflicts
                return result

            list_updated, result.tasks_adopted = fold_list_edits(state, todo_tasks, todo_path)
            daily_updated = fold_daily_edits(state, section_tasks, skip_ids=list_updated)
            result.tasks_updated = len(list_updated) + daily_updated

            # 正規リストがない場合は削除とみなさない（全体を再生成する）
            if todo_existed:
                result.deleted_ids = retire_deleted(state, section_tasks, todo_tasks)
                result.tasks_deleted = len(result.deleted_ids)

            section_label = today.isoformat()
            for task in candidates:
                if (
                    state.has_task(task.identifier)
                    or task.identifier in present_ids
                    or task.text in present_texts
                ):
                    self._detail(f"Already present: {task.text} (id: {task.identifier})")
                    continue

                task.section = section_label
                state.add_task(task, str(note_path))
                result.tasks_synced += 1
                result.synced_ids.append(task.identifier)
                self._detail(f"Added: {task.text} (id: {task.identifier})")

            changed = changed or bool(
                result.tasks_synced or result.tasks_updated or result.tasks_adopted or result.tasks_deleted
            )
            if not changed:
                logger.info("Everything is in sync")
                return result

            self._check_cancelled()
            state.last_sync = datetime.now(timezone.utc)
            self._commit(state, state.get_active_tasks())

        logger.info(
            f"Sync complete: {result.tasks_synced} new, {result.tasks_updated} updated, "
            f"{result.tasks_adopted} adopted, {result.tasks_deleted} retired"
        )
        return result

    def _commit(self, state: TodoState, tasks: List[TaskState]) -> None:
        """正規リストを再生成してからStoreを書き込む（ロック取得済みであること）"""
        write_canonical_list(self.config.todo_path, tasks)
        self.repository.write(state)

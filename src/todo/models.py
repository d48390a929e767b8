"""Todo Models

タスクとタスク状態のデータモデル定義。

- Task: Markdownから毎回再導出される一時的なタスク
- TaskState: 同期済みタスクの永続レコード（State Storeが所有）
- TodoState: 正規リスト1つにつき1つの集約ルート

Related Classes: TodoStateRepository (repository.py), parser.py
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

STATE_VERSION = "1"
MIGRATION_ORIGIN = "migration"
DEFAULT_SECTION = "Tasks"

TASK_ID_PATTERN = re.compile(r"^[a-f0-9]{8}$")


class Priority(str, Enum):
    """タスク優先度（[P0]〜[P3]）"""

    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_task_id(text: str) -> str:
    """タスク本文から8桁の識別子を生成（同じ本文なら同じID）"""
    digest = hashlib.sha256(text.strip().encode("utf-8")).hexdigest()
    return digest[:8]


def is_valid_task_id(identifier: str) -> bool:
    return bool(TASK_ID_PATTERN.match(identifier))


@dataclass(slots=True)
class Task:
    """Markdownのチェックリスト行から得られるタスク"""

    text: str
    section: str = ""
    completed: bool = False
    identifier: Optional[str] = None
    priority: Optional[Priority] = None
    tags: set[str] = field(default_factory=set)
    due_date: Optional[date] = None
    completed_date: Optional[date] = None
    line: int = 0


def ensure_task_id(task: Task) -> str:
    """識別子がなければ本文から生成して設定する"""
    if not task.identifier:
        task.identifier = generate_task_id(task.text)
    return task.identifier


class TaskState(BaseModel):
    """同期済みタスクの永続レコード

    一度付与された identifier は変更されない。
    アーカイブ時もレコードは削除せず archived=True にする（監査証跡）。
    正規リストから手で消されたタスクは archived=True, deleted=True になる。
    """

    identifier: str = Field(..., description="8桁16進の安定識別子")
    text: str
    section: str = DEFAULT_SECTION
    completed: bool = False
    created_at: datetime = Field(default_factory=_now)
    source_path: str = ""
    archived: bool = False
    deleted: bool = False
    priority: Optional[Priority] = None
    tags: List[str] = Field(default_factory=list)
    completed_at: Optional[datetime] = None
    last_modified: datetime = Field(default_factory=_now)
    # 取り込み元で最後に見た本文（日次ノート側の編集の検出に使う）
    source_text: Optional[str] = None

    @field_validator("identifier")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        if not is_valid_task_id(value):
            raise ValueError(f"malformed task identifier: {value!r}")
        return value

    def to_task(self) -> Task:
        return Task(
            text=self.text,
            section=self.section,
            completed=self.completed,
            identifier=self.identifier,
            priority=self.priority,
            tags=set(self.tags),
            completed_date=self.completed_at.date() if self.completed_at else None,
        )


class TodoState(BaseModel):
    """正規リストに対応する集約ルート"""

    version: str = STATE_VERSION
    tasks: Dict[str, TaskState] = Field(default_factory=dict)
    migrated: bool = False
    last_sync: Optional[datetime] = None
    last_archive: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_keys(self) -> "TodoState":
        for key, task in self.tasks.items():
            if key != task.identifier:
                raise ValueError(f"task key {key!r} does not match identifier {task.identifier!r}")
        return self

    def needs_migration(self) -> bool:
        return not self.migrated

    def has_task(self, identifier: Optional[str]) -> bool:
        return bool(identifier) and identifier in self.tasks

    def get_task(self, identifier: str) -> Optional[TaskState]:
        return self.tasks.get(identifier)

    def add_task(self, task: Task, source_path: str) -> TaskState:
        """
        新しいタスクを未完了・未アーカイブとして登録

        Args:
            task: 登録するタスク（識別子がなければ付与される）
            source_path: 取り込み元のパス

        Returns:
            登録されたTaskState（既に登録済みの識別子なら既存のレコードをそのまま返す）
        """
        identifier = ensure_task_id(task)
        existing = self.tasks.get(identifier)
        if existing is not None:
            return existing

        now = _now()
        state = TaskState(
            identifier=identifier,
            text=task.text,
            section=task.section or DEFAULT_SECTION,
            completed=False,
            created_at=now,
            source_path=source_path,
            archived=False,
            priority=task.priority,
            tags=sorted(task.tags),
            last_modified=now,
            source_text=task.text,
        )
        self.tasks[identifier] = state
        self.last_sync = now
        return state

    def migrate_from_markdown(self, tasks: Iterable[Task], origin_label: str = MIGRATION_ORIGIN) -> int:
        """
        既存の正規リストのタスクを一度だけ取り込む

        完了状態とセクションはリストのものを引き継ぐ。
        既に登録済みの識別子はスキップする。

        Returns:
            取り込んだタスク数
        """
        folded = sum(1 for task in tasks if self.adopt_task(task, origin_label) is not None)
        self.migrated = True
        return folded

    def adopt_task(self, task: Task, source_path: str) -> Optional[TaskState]:
        """
        Markdown上の既存タスクをセクションと完了状態を保ったまま登録

        Returns:
            登録したTaskState、既に登録済みならNone
        """
        identifier = ensure_task_id(task)
        if identifier in self.tasks:
            return None
        state = self.add_task(task, source_path)
        if task.completed:
            state.completed = True
            state.completed_at = _completed_at(task)
        return state

    def apply_list_edit(self, task: Task) -> bool:
        """
        正規リスト側だけで行われた編集をレコードに反映

        Returns:
            レコードが変更された場合True
        """
        state = self.tasks.get(task.identifier or "")
        if state is None or state.archived:
            return False

        tags = sorted(task.tags)
        if (
            state.text == task.text
            and state.completed == task.completed
            and state.priority == task.priority
            and state.tags == tags
        ):
            return False

        if task.completed and not state.completed:
            state.completed_at = _completed_at(task)
        elif not task.completed:
            state.completed_at = None

        state.text = task.text
        state.completed = task.completed
        state.priority = task.priority
        state.tags = tags
        state.last_modified = _now()
        return True

    def apply_daily_edit(self, task: Task) -> bool:
        """
        日次ノート側で行われた編集（本文・優先度・タグ）をレコードに反映

        前回見た本文（source_text）から変わっていない行は無視する。
        正規リスト側の編集は古い日次ノートの本文で上書きされない。

        Returns:
            レコードが変更された場合True
        """
        state = self.tasks.get(task.identifier or "")
        if state is None or state.archived:
            return False

        baseline = state.source_text if state.source_text is not None else state.text
        if task.text == baseline:
            return False

        state.text = task.text
        state.priority = task.priority
        state.tags = sorted(task.tags)
        state.source_text = task.text
        state.last_modified = _now()
        return True

    def retire_task(self, identifier: str) -> bool:
        """
        手で削除されたタスクを引退させる（レコードは監査証跡として残す）

        Returns:
            引退させた場合True（未登録・アーカイブ済みならFalse）
        """
        state = self.tasks.get(identifier)
        if state is None or state.archived:
            return False
        state.archived = True
        state.deleted = True
        state.last_modified = _now()
        return True

    def detect_deletions(self, daily_ids: Iterable[str], todo_ids: Iterable[str]) -> List[str]:
        """
        日次ノートのタスクセクションと正規リストの両方から消えた未完了タスクの識別子

        完了済みタスクはアーカイブ待ちのため対象外。
        """
        present = set(daily_ids) | set(todo_ids)
        return sorted(
            identifier
            for identifier, state in self.tasks.items()
            if not state.archived and not state.completed and identifier not in present
        )

    def get_active_tasks(self) -> List[TaskState]:
        """アーカイブされていないタスク"""
        return [t for t in self.tasks.values() if not t.archived]

    def get_completed_tasks(self) -> List[TaskState]:
        """完了済みかつ未アーカイブのタスク"""
        return [t for t in self.tasks.values() if t.completed and not t.archived]

    def get_open_tasks(self) -> List[TaskState]:
        """未完了かつ未アーカイブのタスク"""
        return [t for t in self.tasks.values() if not t.completed and not t.archived]

    def mark_archived(self) -> int:
        """完了済みタスクを全てアーカイブ済みにする"""
        now = _now()
        count = 0
        for task in self.get_completed_tasks():
            task.archived = True
            task.last_modified = now
            count += 1
        self.last_archive = now
        return count


def _completed_at(task: Task) -> datetime:
    if task.completed_date is not None:
        return datetime(
            task.completed_date.year, task.completed_date.month, task.completed_date.day, tzinfo=timezone.utc
        )
    return _now()

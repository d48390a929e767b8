"""日次ノートと正規リストの競合検出

同じ識別子のタスクが両方で独立に変更された場合は、どちらも採用せず
競合として呼び出し側に返す。

判定ルール（text と completed を比較）:
  - 識別子がState Storeにあり、日次ノートのタスクセクションと正規リストの両方に存在する
  - 日次ノート側がStoreと異なる
  - 正規リスト側がStoreと異なる
  - 日次ノート側と正規リスト側も互いに異なる
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable, List

from src.todo.models import Task, TaskState, TodoState


@dataclass(slots=True)
class ConflictDetail:
    """競合の詳細"""

    identifier: str
    text_from_daily: str
    text_from_todo: str
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


def _differs(state: TaskState, task: Task) -> bool:
    return state.text != task.text or state.completed != task.completed


def _describe(daily: Task, todo: Task) -> str:
    parts = []
    if daily.text != todo.text:
        parts.append(f"text differs (daily: '{daily.text}', todo: '{todo.text}')")
    if daily.completed != todo.completed:
        parts.append(f"completion differs (daily: {daily.completed}, todo: {todo.completed})")
    return "; ".join(parts)


def _index(tasks: Iterable[Task]) -> Dict[str, Task]:
    return {task.identifier: task for task in tasks if task.identifier}


def detect_conflicts(state: TodoState, daily_tasks: Iterable[Task], todo_tasks: Iterable[Task]) -> List[ConflictDetail]:
    """
    競合を検出

    Args:
        state: 現在のState Store
        daily_tasks: 日次ノートのタスクセクションのタスク
        todo_tasks: 正規リストのタスク

    Returns:
        競合のリスト（識別子順）
    """
    daily_index = _index(daily_tasks)
    todo_index = _index(todo_tasks)

    conflicts: List[ConflictDetail] = []
    for identifier in sorted(daily_index.keys() & todo_index.keys()):
        stored = state.get_task(identifier)
        if stored is None or stored.archived:
            continue

        daily = daily_index[identifier]
        todo = todo_index[identifier]
        if not (_differs(stored, daily) and _differs(stored, todo)):
            continue

        reason = _describe(daily, todo)
        if reason:
            conflicts.append(
                ConflictDetail(
                    identifier=identifier,
                    text_from_daily=daily.text,
                    text_from_todo=todo.text,
                    reason=reason,
                )
            )

    return conflicts

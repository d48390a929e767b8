"""Task Syncのカスタム例外定義

エラー分類:
  - 入力の欠如（今日のノートがない）: 回復可能、副作用なし
  - 検証・識別子（状態ファイル破損、不正な識別子）: その実行は失敗
  - 資源競合（ロックタイムアウト、空き容量・権限不足）: 失敗、再試行可能
  - 競合（同じ識別子が両方で変更）: 例外ではなく結果として返す
"""

from datetime import date
from pathlib import Path
from typing import Union

from src.todo.exceptions import InvalidTaskIdError, StateCorruptError, TaskSyncError


class DailyNoteNotFoundError(TaskSyncError):
    """今日の日次ノートが存在しない"""

    def __init__(self, path: Union[str, Path], day: date):
        self.path = Path(path)
        self.day = day
        super().__init__(f"no note for today ({day.isoformat()}): {self.path}")


class OperationCancelledError(TaskSyncError):
    """キャンセルにより処理を中断した（何もコミットしていない）"""

    pass


class ConfigurationError(TaskSyncError):
    """設定エラー"""

    pass


__all__ = [
    "TaskSyncError",
    "StateCorruptError",
    "InvalidTaskIdError",
    "DailyNoteNotFoundError",
    "OperationCancelledError",
    "ConfigurationError",
]

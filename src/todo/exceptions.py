"""Todoのカスタム例外定義

State Storeと識別子に関する検証エラーを定義します。
エンジン側の例外は src.task_sync.exceptions を参照。
"""

from pathlib import Path
from typing import Union


class TaskSyncError(Exception):
    """タスク同期の基底例外"""

    pass


class StateCorruptError(TaskSyncError):
    """状態ファイルが読めない・壊れている（識別子の安定性が保証できない）"""

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"state file {self.path} is unreadable or corrupt: {reason}")


class InvalidTaskIdError(TaskSyncError):
    """埋め込まれた識別子の形式が不正"""

    def __init__(self, identifier: str, line: int = 0):
        self.identifier = identifier
        self.line = line
        location = f" (line {line})" if line else ""
        super().__init__(f"malformed task identifier {identifier!r}{location}")

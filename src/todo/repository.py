"""Todo State Repository

TodoStateのJSON永続化を提供するリポジトリクラス。
状態ファイルは正規リストと同じディレクトリに ``.<name>_state.json`` として置く。

Related Classes: TodoState (models.py)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from src.durable_io import atomic_write_text

from .exceptions import StateCorruptError
from .models import TodoState

logger = logging.getLogger(__name__)


def state_path_for(todo_path: Union[str, Path]) -> Path:
    """正規リストのパスから状態ファイルのパスを導出"""
    todo = Path(todo_path)
    return todo.with_name(f".{todo.stem}_state.json")


class TodoStateRepository:
    """JSONファイルベースのState Store"""

    def __init__(self, state_path: Optional[Union[str, Path]] = None, todo_path: Optional[Union[str, Path]] = None):
        env_path = os.getenv("TASK_SYNC_STATE_PATH")
        if state_path:
            self.state_path = Path(state_path)
        elif todo_path:
            self.state_path = state_path_for(todo_path)
        elif env_path:
            self.state_path = Path(env_path)
        else:
            raise ValueError("state_path or todo_path is required")

    def exists(self) -> bool:
        return self.state_path.exists()

    def read(self) -> TodoState:
        """
        状態ファイルを読み込む

        Returns:
            TodoState（ファイルがなければ migrated=False の空の状態）

        Raises:
            StateCorruptError: 読み込めない・解析できない場合
        """
        if not self.state_path.exists():
            logger.debug(f"No state file at {self.state_path}, starting fresh")
            return TodoState()

        try:
            raw = self.state_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StateCorruptError(self.state_path, str(e)) from e

        if not raw.strip():
            raise StateCorruptError(self.state_path, "file is empty")

        try:
            state = TodoState.model_validate_json(raw)
        except ValidationError as e:
            raise StateCorruptError(self.state_path, str(e)) from e

        logger.debug(f"Loaded {len(state.tasks)} tasks from {self.state_path}")
        return state

    def write(self, state: TodoState) -> None:
        """状態をアトミックに書き込む"""
        payload = state.model_dump_json(indent=2)
        atomic_write_text(self.state_path, payload + "\n")
        logger.debug(f"Wrote {len(state.tasks)} tasks to {self.state_path}")

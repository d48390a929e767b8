"""
設定管理モジュール

関連クラス:
  - sync_engine.TaskSyncEngine: この設定を使用する同期エンジン
  - archive_engine.TaskArchiveEngine: この設定を使用するアーカイブエンジン
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from src.todo.models import DEFAULT_SECTION
from src.todo.repository import state_path_for

from .exceptions import ConfigurationError


def _section(yaml_data: Dict[str, Any], name: str, config_path: Path) -> Dict[str, Any]:
    """YAMLのセクションを取り出す（空のセクションは空の辞書として扱う）"""
    value = yaml_data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"設定ファイルの {name} セクションの形式が不正です: {config_path}")
    return value


def _parse_timeout(value: Any, source: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{source} must be a number: {value!r}") from e


@dataclass
class SyncConfig:
    """同期設定クラス"""

    # パス設定
    base_dir: str = "."
    diary_dir: str = "diary"
    todo_file: str = "todo"
    archive_dir: str = "Archive"

    # フォーマット設定
    task_section: str = DEFAULT_SECTION

    # 同期設定
    lock_timeout: float = 10.0
    verbose: bool = False

    # ログ設定
    log_level: str = "INFO"
    log_file: str = "logs/task_sync.log"

    def __post_init__(self):
        """値の検証"""
        if not self.base_dir:
            raise ConfigurationError("base_dir is required")
        if not self.task_section.strip():
            raise ConfigurationError("task_section must not be empty")
        if self.lock_timeout <= 0:
            raise ConfigurationError(f"lock_timeout must be positive: {self.lock_timeout}")

    @property
    def diary_path(self) -> Path:
        return Path(self.base_dir) / self.diary_dir

    @property
    def todo_path(self) -> Path:
        name = self.todo_file
        if name.endswith(".md"):
            name = name[: -len(".md")]
        return Path(self.base_dir) / f"{name}.md"

    @property
    def state_path(self) -> Path:
        return state_path_for(self.todo_path)

    @property
    def archive_path(self) -> Path:
        return Path(self.base_dir) / self.archive_dir

    @classmethod
    def from_yaml(cls, config_path: Path) -> "SyncConfig":
        """YAMLファイルから設定を読み込む

        Args:
            config_path: 設定ファイルパス

        Returns:
            SyncConfig: 設定インスタンス

        Raises:
            ConfigurationError: ファイルがない・解析できない・値が不正な場合
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(f"設定ファイルが見つかりません: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_data: Dict[str, Any] = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"設定ファイルの解析に失敗しました: {config_path}: {e}") from e

        if not isinstance(yaml_data, dict):
            raise ConfigurationError(f"設定ファイルの形式が不正です: {config_path}")

        # YAML構造から設定を抽出
        paths_data = _section(yaml_data, "paths", config_path)
        format_data = _section(yaml_data, "format", config_path)
        sync_data = _section(yaml_data, "sync", config_path)
        log_data = _section(yaml_data, "log", config_path)

        # base_dirは設定ファイルからの相対パスとして解決
        base_dir = Path(os.path.expanduser(paths_data.get("base_dir", ".")))
        if not base_dir.is_absolute():
            base_dir = config_path.parent / base_dir

        return cls(
            base_dir=str(base_dir),
            diary_dir=paths_data.get("diary_dir", "diary"),
            todo_file=paths_data.get("todo_file", "todo"),
            archive_dir=paths_data.get("archive_dir", "Archive"),
            task_section=format_data.get("task_section", DEFAULT_SECTION),
            lock_timeout=_parse_timeout(sync_data.get("lock_timeout", 10.0), "sync.lock_timeout"),
            verbose=bool(sync_data.get("verbose", False)),
            log_level=log_data.get("level", "INFO"),
            log_file=log_data.get("file", "logs/task_sync.log"),
        )

    @classmethod
    def from_env(cls, base_dir: Optional[str] = None) -> "SyncConfig":
        """環境変数から設定を読み込む"""
        return cls(
            base_dir=base_dir or os.getenv("TASK_SYNC_BASE_DIR", "."),
            diary_dir=os.getenv("TASK_SYNC_DIARY_DIR", "diary"),
            todo_file=os.getenv("TASK_SYNC_TODO_FILE", "todo"),
            archive_dir=os.getenv("TASK_SYNC_ARCHIVE_DIR", "Archive"),
            task_section=os.getenv("TASK_SYNC_TASK_SECTION", DEFAULT_SECTION),
            lock_timeout=_parse_timeout(os.getenv("TASK_SYNC_LOCK_TIMEOUT", "10"), "TASK_SYNC_LOCK_TIMEOUT"),
            verbose=os.getenv("TASK_SYNC_VERBOSE", "").lower() in ("1", "true", "yes"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/task_sync.log"),
        )

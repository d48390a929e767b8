"""共通フィクスチャ"""

from datetime import date
from pathlib import Path

import pytest

from src.journal import build_daily_note_path
from src.task_sync.config import SyncConfig

TODAY = date(2025, 1, 15)


@pytest.fixture
def config(tmp_path: Path) -> SyncConfig:
    """tmp_path をベースにした同期設定"""
    return SyncConfig(base_dir=str(tmp_path), log_file="", lock_timeout=0.5)


@pytest.fixture
def write_note(config: SyncConfig):
    """日次ノートを書き込むヘルパー"""

    def _write(body: str, day: date = TODAY) -> Path:
        path = build_daily_note_path(config.diary_path, day)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body, encoding="utf-8")
        return path

    return _write

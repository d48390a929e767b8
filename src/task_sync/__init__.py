"""
Task sync module for reconciling daily notes with the canonical to-do list.

This module provides functionality for:
- Syncing open tasks from today's daily note into the canonical list
- Detecting conflicting edits between the daily note and the canonical list
- Archiving completed tasks into monthly archive documents
"""

from src.task_sync.archive_engine import ArchiveResult, TaskArchiveEngine
from src.task_sync.canonical import render_canonical_list, write_canonical_list
from src.task_sync.config import SyncConfig
from src.task_sync.conflicts import ConflictDetail, detect_conflicts
from src.task_sync.exceptions import (
    ConfigurationError,
    DailyNoteNotFoundError,
    InvalidTaskIdError,
    OperationCancelledError,
    StateCorruptError,
    TaskSyncError,
)
from src.task_sync.logger import setup_logger
from src.task_sync.sync_engine import SyncResult, TaskSyncEngine

__all__ = [
    "ArchiveResult",
    "TaskArchiveEngine",
    "render_canonical_list",
    "write_canonical_list",
    "SyncConfig",
    "ConflictDetail",
    "detect_conflicts",
    "ConfigurationError",
    "DailyNoteNotFoundError",
    "InvalidTaskIdError",
    "OperationCancelledError",
    "StateCorruptError",
    "TaskSyncError",
    "setup_logger",
    "SyncResult",
    "TaskSyncEngine",
]

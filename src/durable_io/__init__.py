"""Durable I/O Primitives

クラッシュセーフな永続化のための基本操作を提供します。
アトミック書き込み、上書き前バックアップ、アドバイザリファイルロック、
書き込み前の権限・空き容量チェックを含みます。

Design Reference: DESIGN.md (Durable I/O primitives)

Example:
    >>> from src.durable_io import acquire_lock, atomic_write_text
    >>> with acquire_lock("todo.md", timeout=5.0):
    ...     atomic_write_text("todo.md", "# To-Do List\\n")
"""

from .exceptions import (
    DurableIOError,
    FileOperationError,
    WritePermissionError,
    InsufficientDiskSpaceError,
    LockTimeoutError,
    wrap_file_error,
)
from .preflight import (
    FILE_PERM,
    LOCK_FILE_PERM,
    DIR_PERM,
    check_write_permission,
    check_disk_space,
    ensure_dir,
    required_space,
)
from .atomic import atomic_write, atomic_write_text, backup_before_overwrite
from .locking import (
    FileLock,
    LockBackend,
    FcntlLockBackend,
    MsvcrtLockBackend,
    NoopLockBackend,
    acquire_lock,
    try_acquire_lock,
    release_lock,
    lock_path_for,
)


__all__ = [
    "DurableIOError",
    "FileOperationError",
    "WritePermissionError",
    "InsufficientDiskSpaceError",
    "LockTimeoutError",
    "wrap_file_error",
    "FILE_PERM",
    "LOCK_FILE_PERM",
    "DIR_PERM",
    "check_write_permission",
    "check_disk_space",
    "ensure_dir",
    "required_space",
    "atomic_write",
    "atomic_write_text",
    "backup_before_overwrite",
    "FileLock",
    "LockBackend",
    "FcntlLockBackend",
    "MsvcrtLockBackend",
    "NoopLockBackend",
    "acquire_lock",
    "try_acquire_lock",
    "release_lock",
    "lock_path_for",
]

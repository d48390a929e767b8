"""アトミックなファイル書き込み

同一ディレクトリに一時ファイルを作成し、fsync後にos.replaceで置き換えます。
失敗時は一時ファイルを削除し、対象ファイルは変更されません。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .exceptions import DurableIOError, wrap_file_error
from .preflight import FILE_PERM, check_disk_space, check_write_permission, required_space

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup"


def atomic_write(path: Union[str, Path], data: bytes, permissions: int = FILE_PERM) -> None:
    """
    ファイルをアトミックに書き込む

    Args:
        path: 書き込み先パス
        data: 書き込むバイト列
        permissions: 書き込み後のファイルパーミッション

    Raises:
        WritePermissionError: ディレクトリに書き込めない場合
        InsufficientDiskSpaceError: 空き容量が不足している場合
        FileOperationError: 書き込み・リネームに失敗した場合
    """
    target = Path(path)
    directory = target.parent

    logger.debug(f"Starting atomic write to {target} ({len(data)} bytes)")

    check_write_permission(directory)
    check_disk_space(target, required_space(len(data)))

    try:
        fd, tmp_name = tempfile.mkstemp(dir=os.fspath(directory), prefix=f".{target.name}.", suffix=".tmp")
    except OSError as e:
        raise wrap_file_error("create temp file for", target, e)

    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.chmod(tmp_name, permissions)
        os.replace(tmp_name, target)
    except BaseException as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        if isinstance(e, OSError):
            raise wrap_file_error("atomic write", target, e)
        raise

    logger.debug(f"Atomic write completed: {target}")


def atomic_write_text(path: Union[str, Path], text: str, permissions: int = FILE_PERM) -> None:
    """UTF-8テキストをアトミックに書き込む"""
    atomic_write(path, text.encode("utf-8"), permissions)


def backup_before_overwrite(path: Union[str, Path]) -> Optional[Path]:
    """
    上書き前にバックアップを作成

    Args:
        path: バックアップ対象のファイル

    Returns:
        バックアップファイルのパス、対象が存在しない場合はNone
    """
    source = Path(path)
    if not source.exists():
        return None

    try:
        data = source.read_bytes()
    except OSError as e:
        raise wrap_file_error("read for backup", source, e)

    backup_path = source.with_name(source.name + BACKUP_SUFFIX)
    try:
        atomic_write(backup_path, data)
    except DurableIOError:
        logger.error(f"Failed to back up {source}")
        raise

    logger.debug(f"Backed up {source} -> {backup_path}")
    return backup_path

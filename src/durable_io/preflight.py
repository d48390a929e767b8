"""書き込み前の事前チェック

書き込み権限とディスク空き容量を確認します。
空き容量が取得できない環境ではチェックをスキップします（警告のみ）。
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

import psutil

from .exceptions import InsufficientDiskSpaceError, WritePermissionError

logger = logging.getLogger(__name__)

# ファイルパーミッション
FILE_PERM = 0o644
LOCK_FILE_PERM = 0o600
DIR_PERM = 0o755

_TEST_FILE_NAME = ".write_test_temp"


def required_space(size: int) -> int:
    """書き込みに必要な空き容量（10%のバッファ + 4096バイト）"""
    return size + size // 10 + 4096


def check_write_permission(path: Union[str, Path]) -> None:
    """
    書き込み権限を確認

    ディレクトリの場合は一時ファイルの作成・削除で確認し、
    既存ファイルの場合は書き込みモードで開けるかを確認する。
    存在しないパスは親ディレクトリを確認する。

    Args:
        path: 確認するファイルまたはディレクトリ

    Raises:
        WritePermissionError: 書き込みできない場合
    """
    target = Path(path)

    if target.is_dir():
        test_file = target / _TEST_FILE_NAME
        try:
            test_file.touch()
            test_file.unlink()
        except OSError as e:
            raise WritePermissionError(f"no write permission to directory {target}: {e}") from e
        return

    if target.exists():
        try:
            with open(target, "ab"):
                pass
        except OSError as e:
            raise WritePermissionError(f"no write permission to file {target}: {e}") from e
        return

    parent = target.parent
    if parent == target:
        raise WritePermissionError(f"cannot resolve a writable parent for {target}")
    check_write_permission(parent)


def check_disk_space(path: Union[str, Path], required_bytes: int) -> None:
    """
    ディスク空き容量を確認

    Args:
        path: 書き込み先のファイルまたはディレクトリ
        required_bytes: 必要なバイト数

    Raises:
        InsufficientDiskSpaceError: 空き容量が不足している場合
    """
    target = Path(path)
    directory = target if target.is_dir() else target.parent

    try:
        available = psutil.disk_usage(os.fspath(directory)).free
    except (OSError, NotImplementedError) as e:
        logger.warning(f"Could not determine free space for {directory}, skipping check: {e}")
        return

    if available < required_bytes:
        raise InsufficientDiskSpaceError(target, required_bytes, available)


def ensure_dir(path: Union[str, Path]) -> Path:
    """ディレクトリを作成（親ディレクトリの書き込み権限を確認した上で）"""
    directory = Path(path)
    if directory.is_dir():
        return directory

    existing = directory.parent
    while not existing.exists() and existing.parent != existing:
        existing = existing.parent
    check_write_permission(existing)

    directory.mkdir(mode=DIR_PERM, parents=True, exist_ok=True)
    return directory

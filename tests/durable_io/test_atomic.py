"""アトミック書き込みとバックアップのテスト"""

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from src.durable_io import (
    FileOperationError,
    atomic_write,
    atomic_write_text,
    backup_before_overwrite,
)


def _leftover_temps(directory: Path) -> list[Path]:
    return [p for p in directory.iterdir() if p.name.endswith(".tmp")]


def test_atomic_write_creates_file(tmp_path: Path) -> None:
    """新規ファイルの書き込み"""
    target = tmp_path / "todo.md"
    atomic_write(target, b"hello\n")

    assert target.read_bytes() == b"hello\n"
    assert _leftover_temps(tmp_path) == []


def test_atomic_write_replaces_existing(tmp_path: Path) -> None:
    """既存ファイルの置き換え"""
    target = tmp_path / "todo.md"
    target.write_text("old", encoding="utf-8")

    atomic_write_text(target, "新しい内容")

    assert target.read_text(encoding="utf-8") == "新しい内容"


@pytest.mark.skipif(os.name == "nt", reason="POSIXのパーミッションのみ")
def test_atomic_write_applies_permissions(tmp_path: Path) -> None:
    """パーミッションの適用"""
    target = tmp_path / "state.json"
    atomic_write(target, b"{}", permissions=0o600)

    assert stat.S_IMODE(target.stat().st_mode) == 0o600


def test_failed_replace_leaves_original_untouched(tmp_path: Path) -> None:
    """リネーム失敗時は元のファイルが残り、一時ファイルも残らない"""
    target = tmp_path / "todo.md"
    target.write_bytes(b"original")

    with patch("src.durable_io.atomic.os.replace", side_effect=OSError("disk on fire")):
        with pytest.raises(FileOperationError) as excinfo:
            atomic_write(target, b"replacement")

    assert target.read_bytes() == b"original"
    assert _leftover_temps(tmp_path) == []
    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.path == target


def test_failed_fsync_leaves_original_untouched(tmp_path: Path) -> None:
    """fsync失敗時も元のファイルは変更されない"""
    target = tmp_path / "todo.md"
    target.write_bytes(b"original")

    with patch("src.durable_io.atomic.os.fsync", side_effect=OSError("io error")):
        with pytest.raises(FileOperationError):
            atomic_write(target, b"replacement")

    assert target.read_bytes() == b"original"
    assert _leftover_temps(tmp_path) == []


def test_interrupt_cleans_up_temp(tmp_path: Path) -> None:
    """OSError以外の中断でも一時ファイルを削除して再送出する"""
    target = tmp_path / "todo.md"

    with patch("src.durable_io.atomic.os.replace", side_effect=KeyboardInterrupt):
        with pytest.raises(KeyboardInterrupt):
            atomic_write(target, b"data")

    assert not target.exists()
    assert _leftover_temps(tmp_path) == []


def test_backup_before_overwrite(tmp_path: Path) -> None:
    """上書き前のバックアップ"""
    target = tmp_path / "todo.md"
    target.write_text("# To-Do List\n", encoding="utf-8")

    backup = backup_before_overwrite(target)

    assert backup == tmp_path / "todo.md.backup"
    assert backup.read_text(encoding="utf-8") == "# To-Do List\n"


def test_backup_of_missing_file_is_noop(tmp_path: Path) -> None:
    """存在しないファイルはバックアップしない"""
    assert backup_before_overwrite(tmp_path / "missing.md") is None
    assert list(tmp_path.iterdir()) == []

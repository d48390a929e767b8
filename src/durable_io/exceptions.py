"""Durable I/Oのカスタム例外定義

アトミック書き込み・ファイルロック・事前チェックで使用する
例外クラスを定義します。

Design Reference: DESIGN.md (Durable I/O primitives)
"""

from pathlib import Path
from typing import Optional, Union


class DurableIOError(Exception):
    """Durable I/O基底例外"""

    pass


class FileOperationError(DurableIOError):
    """ファイル操作エラー（操作名とパスを保持）"""

    def __init__(self, operation: str, path: Union[str, Path], cause: Optional[BaseException] = None):
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        message = f"{operation} {self.path}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class WritePermissionError(DurableIOError):
    """書き込み権限がない"""

    pass


class InsufficientDiskSpaceError(DurableIOError):
    """ディスク空き容量不足"""

    def __init__(self, path: Union[str, Path], required: int, available: int):
        self.path = Path(path)
        self.required = required
        self.available = available
        super().__init__(
            f"insufficient disk space for {self.path}: "
            f"need {required} bytes, have {available} bytes available"
        )


class LockTimeoutError(DurableIOError):
    """ファイルロック取得のタイムアウト"""

    def __init__(self, path: Union[str, Path], timeout: float):
        self.path = Path(path)
        self.timeout = timeout
        super().__init__(f"timeout waiting for file lock: {self.path} ({timeout:.1f}s)")


def wrap_file_error(operation: str, path: Union[str, Path], exc: BaseException) -> FileOperationError:
    """
    下位のI/Oエラーを操作名とパスの文脈付きでラップする

    Args:
        operation: 操作名（例: "read state file"）
        path: 対象パス
        exc: 元の例外

    Returns:
        元の例外を__cause__に持つFileOperationError
    """
    error = FileOperationError(operation, path, exc)
    error.__cause__ = exc
    return error

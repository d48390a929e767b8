"""アドバイザリファイルロック

``<target>.lock`` サイドカーファイルに排他ロックを取得します。
ロックファイルは削除せず、実行をまたいで再利用します。

プラットフォームごとの実装は LockBackend インターフェースで切り替えます。
ネイティブのアドバイザリロックがない環境では NoopLockBackend が使われ、
取得は常に成功します（ベストエフォートのみで排他性は保証されない）。
"""

from __future__ import annotations

import logging
import os
import sys
import time
from pathlib import Path
from typing import IO, Optional, Protocol, Union

from .exceptions import LockTimeoutError, wrap_file_error
from .preflight import LOCK_FILE_PERM

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
POLL_INTERVAL = 0.05


class LockBackend(Protocol):
    """プラットフォーム別のロック実装"""

    def try_lock(self, fd: int) -> bool:
        """ノンブロッキングで排他ロックを試みる。取得できればTrue"""
        ...

    def unlock(self, fd: int) -> None:
        """ロックを解放する"""
        ...


class FcntlLockBackend:
    """POSIX (flock) 実装"""

    def try_lock(self, fd: int) -> bool:
        import fcntl

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            return False
        return True

    def unlock(self, fd: int) -> None:
        import fcntl

        fcntl.flock(fd, fcntl.LOCK_UN)


class MsvcrtLockBackend:
    """Windows (msvcrt) 実装"""

    def try_lock(self, fd: int) -> bool:
        import msvcrt

        os.lseek(fd, 0, os.SEEK_SET)
        try:
            msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
        except OSError:
            return False
        return True

    def unlock(self, fd: int) -> None:
        import msvcrt

        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)


class NoopLockBackend:
    """ロック非対応プラットフォーム用（常に成功、ベストエフォート）"""

    def try_lock(self, fd: int) -> bool:
        return True

    def unlock(self, fd: int) -> None:
        return None


def default_backend() -> LockBackend:
    """実行中のプラットフォームに合ったバックエンドを返す"""
    if os.name == "posix":
        return FcntlLockBackend()
    if sys.platform == "win32":
        return MsvcrtLockBackend()
    return NoopLockBackend()


class FileLock:
    """取得済みのファイルロック。with文で解放できる"""

    def __init__(self, target: Path, handle: IO[bytes], backend: LockBackend):
        self.target = target
        self.lock_path = lock_path_for(target)
        self._handle: Optional[IO[bytes]] = handle
        self._backend = backend

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def release(self) -> None:
        """ロックを解放し、ファイルハンドルを閉じる（二重解放は無視）"""
        handle = self._handle
        if handle is None:
            return
        self._handle = None
        try:
            self._backend.unlock(handle.fileno())
        except OSError as e:
            raise wrap_file_error("release lock", self.lock_path, e)
        finally:
            handle.close()
        logger.debug(f"Released lock {self.lock_path}")

    def __enter__(self) -> "FileLock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def lock_path_for(path: Union[str, Path]) -> Path:
    target = Path(path)
    return target.with_name(target.name + LOCK_SUFFIX)


def _open_lock_file(path: Path) -> IO[bytes]:
    lock_path = lock_path_for(path)
    try:
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, LOCK_FILE_PERM)
    except OSError as e:
        raise wrap_file_error("open lock file", lock_path, e)
    return os.fdopen(fd, "r+b")


def acquire_lock(
    path: Union[str, Path],
    timeout: float = 10.0,
    backend: Optional[LockBackend] = None,
) -> FileLock:
    """
    排他ロックを取得（50msごとにポーリング）

    Args:
        path: ロック対象のファイル（実際のロックは <path>.lock に取る）
        timeout: 最大待機秒数
        backend: ロック実装（省略時はプラットフォーム既定）

    Returns:
        取得済みのFileLock

    Raises:
        LockTimeoutError: timeout内に取得できなかった場合
    """
    target = Path(path)
    backend = backend or default_backend()
    handle = _open_lock_file(target)
    deadline = time.monotonic() + timeout

    while True:
        try:
            acquired = backend.try_lock(handle.fileno())
        except OSError as e:
            handle.close()
            raise wrap_file_error("acquire lock", lock_path_for(target), e)

        if acquired:
            logger.debug(f"Acquired lock {lock_path_for(target)}")
            return FileLock(target, handle, backend)

        if time.monotonic() >= deadline:
            handle.close()
            raise LockTimeoutError(target, timeout)

        time.sleep(POLL_INTERVAL)


def try_acquire_lock(path: Union[str, Path], backend: Optional[LockBackend] = None) -> Optional[FileLock]:
    """
    ノンブロッキングで排他ロックを試みる

    Returns:
        取得できればFileLock、他プロセスが保持中ならNone
    """
    target = Path(path)
    backend = backend or default_backend()
    handle = _open_lock_file(target)

    try:
        acquired = backend.try_lock(handle.fileno())
    except OSError as e:
        handle.close()
        raise wrap_file_error("acquire lock", lock_path_for(target), e)

    if not acquired:
        handle.close()
        return None
    return FileLock(target, handle, backend)


def release_lock(lock: Optional[FileLock]) -> None:
    """ロックを解放（Noneは無視）"""
    if lock is not None:
        lock.release()

# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Filesystem helpers: private writes, atomic replace, removal, locking."""

import logging
import os
import shutil
import stat
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

PRIVATE_DIR_MODE = 0o700
PRIVATE_FILE_MODE = 0o600


def make_private_dir(path: Path) -> None:
    """Create a new directory readable only by the owning process.

    Raises:
        FileExistsError: If the path already exists
        OSError: On any other creation failure
    """
    path.mkdir(mode=PRIVATE_DIR_MODE)
    # mkdir's mode is filtered through the umask; apply it explicitly.
    os.chmod(path, PRIVATE_DIR_MODE)


def write_private_file(path: Path, text: str) -> None:
    """Create a new owner-only file and write ``text`` to it.

    Raises:
        FileExistsError: If the path already exists
        OSError: On any other write failure
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, PRIVATE_FILE_MODE)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(text)
    os.chmod(path, PRIVATE_FILE_MODE)


def _fsync_dir(path: Path) -> None:
    try:
        fd = os.open(str(path), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def atomic_write_text(path: Path, text: str, mode: int = PRIVATE_FILE_MODE) -> None:
    """Write ``text`` to ``path`` via temp file, fsync, and ``os.replace``.

    Readers observe either the previous content or the new content, never a
    partial file.

    Raises:
        OSError: If the temp file cannot be written or replaced
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
        _fsync_dir(path.parent)
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                logger.warning(f"Could not remove temp file {tmp_path}")


def _make_writable_and_retry(func, path, _exc) -> None:
    # Owner-only read-only files inside extracted archives block rmtree.
    try:
        os.chmod(path, stat.S_IRWXU)
        func(path)
    except OSError:
        pass


def remove_tree(path: Path) -> bool:
    """Best-effort recursive removal of a directory.

    Failures are logged and reported through the return value; they never
    raise, so cleanup cannot mask the error that triggered it.

    Args:
        path: Directory to remove

    Returns:
        True if the path no longer exists afterwards
    """
    if not path.exists() and not path.is_symlink():
        return True
    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            shutil.rmtree(path, onexc=_make_writable_and_retry)
    except OSError as e:
        logger.warning(f"Could not remove {path}: {e}")
    if path.exists():
        logger.warning(f"Directory still present after removal: {path}")
        return False
    return True


def _lock_handle(handle) -> None:
    if os.name == "nt":
        import msvcrt

        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_LOCK, 1)  # type: ignore[attr-defined]
        return
    import fcntl

    fcntl.flock(handle.fileno(), fcntl.LOCK_EX)


def _unlock_handle(handle) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            return
        return
    import fcntl

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    except OSError:
        return


@contextmanager
def exclusive_lock(lock_path: Path) -> Iterator[None]:
    """Hold an advisory exclusive lock on ``lock_path`` for the block.

    Blocks until the lock is available. The lock file is created when
    missing and left in place afterwards.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a+", encoding="utf-8") as handle:
        _lock_handle(handle)
        try:
            yield
        finally:
            _unlock_handle(handle)

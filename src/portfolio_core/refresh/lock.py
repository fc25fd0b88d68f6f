"""Process-external advisory locks guarding refresh runs.

Exactly one refresh may run system-wide.  Acquisition never blocks: a held
lock is reported immediately as :class:`ConcurrencyConflictError`.
"""

from __future__ import annotations

import fcntl
import os
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog
from sqlalchemy import Connection, Engine, text

from portfolio_core.errors import ConcurrencyConflictError

log = structlog.get_logger("refresh_lock")

DEFAULT_LOCK_KEY = (4242, 1701)


class AdvisoryLock(ABC):
    @abstractmethod
    def try_acquire(self) -> bool:
        """Take the lock without waiting; False if another holder has it."""

    @abstractmethod
    def release(self) -> None:
        """Give the lock back.  Safe to call when not held."""

    @contextmanager
    def hold(self) -> Iterator[AdvisoryLock]:
        """Hold the lock for the block; released on every exit path."""
        if not self.try_acquire():
            log.info("refresh_lock_busy", lock=repr(self))
            raise ConcurrencyConflictError("A valuation refresh is already running")
        try:
            yield self
        finally:
            self.release()


class PostgresAdvisoryLock(AdvisoryLock):
    """Session-level ``pg_try_advisory_lock`` on a dedicated connection."""

    def __init__(self, engine: Engine, key: tuple[int, int] = DEFAULT_LOCK_KEY) -> None:
        self.engine = engine
        self.key = key
        self._conn: Connection | None = None

    def __repr__(self) -> str:
        return f"PostgresAdvisoryLock(key={self.key})"

    def try_acquire(self) -> bool:
        if self._conn is not None:
            return False
        conn = self.engine.connect()
        try:
            acquired = bool(
                conn.execute(
                    text("SELECT pg_try_advisory_lock(:k1, :k2)"),
                    {"k1": self.key[0], "k2": self.key[1]},
                ).scalar()
            )
            conn.commit()
        except Exception:
            conn.close()
            raise
        if not acquired:
            conn.close()
            return False
        self._conn = conn
        return True

    def release(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.execute(
                text("SELECT pg_advisory_unlock(:k1, :k2)"),
                {"k1": self.key[0], "k2": self.key[1]},
            )
            conn.commit()
        finally:
            conn.close()


class FileAdvisoryLock(AdvisoryLock):
    """``flock`` on a lock file; POSIX only, works across processes."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fd: int | None = None

    def __repr__(self) -> str:
        return f"FileAdvisoryLock(path={str(self.path)!r})"

    def try_acquire(self) -> bool:
        if self._fd is not None:
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        self._fd = fd
        return True

    def release(self) -> None:
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)

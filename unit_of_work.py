from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from errors import LendingTimeoutError

logger = logging.getLogger("app.lending")


@dataclass
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class AssetLocks:
    """One lock per asset id. Entries live only while someone holds or waits."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[str, _LockEntry] = {}

    def acquire(self, asset_id: str, timeout: float) -> bool:
        with self._guard:
            entry = self._entries.setdefault(asset_id, _LockEntry())
            entry.users += 1
        if entry.lock.acquire(timeout=timeout):
            return True
        self._leave(asset_id, entry)
        return False

    def release(self, asset_id: str) -> None:
        with self._guard:
            entry = self._entries[asset_id]
        entry.lock.release()
        self._leave(asset_id, entry)

    def held(self) -> int:
        with self._guard:
            return len(self._entries)

    def _leave(self, asset_id: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[asset_id]


def is_lock_timeout(exc: OperationalError) -> bool:
    message = str(exc.orig).lower()
    return "locked" in message or "busy" in message


class UnitOfWork:
    """Commit-or-rollback session per asset, one unit per asset at a time."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        lock_timeout: float,
        locks: AssetLocks | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.lock_timeout = lock_timeout
        self.locks = locks or AssetLocks()

    @contextmanager
    def for_asset(self, asset_id: str) -> Iterator[Session]:
        if not self.locks.acquire(asset_id, self.lock_timeout):
            logger.warning("asset_id=%s lock_timeout=%s", asset_id, self.lock_timeout)
            raise LendingTimeoutError(asset_id, self.lock_timeout)
        try:
            db = self.session_factory()
            try:
                yield db
                db.commit()
            except OperationalError as exc:
                db.rollback()
                if is_lock_timeout(exc):
                    logger.warning("asset_id=%s database lock timeout: %s", asset_id, exc.orig)
                    raise LendingTimeoutError(asset_id, self.lock_timeout) from exc
                raise
            except BaseException:
                db.rollback()
                raise
            finally:
                db.close()
        finally:
            self.locks.release(asset_id)

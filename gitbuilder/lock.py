"""Per-repository locks that keep git pushes to one repository from overlapping."""

from __future__ import annotations

import contextlib
import threading
from typing import Callable, TypeVar

T = TypeVar("T")


class RepositoryLockError(Exception):
    """Raised when a repository lock cannot be taken or released."""


class AlreadyLockedError(RepositoryLockError):
    """Raised by :func:`wrap_in_lock` when the repository is already locked."""

    def __init__(self) -> None:
        super().__init__("already locked")


class InMemoryRepositoryLock:
    """A set of repository locks kept in process memory."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._mutex = threading.Lock()
        self._locked: set[str] = set()

    def lock(self, repo_name: str) -> None:
        """Take the lock for ``repo_name``; raise if it is already held."""
        with self._mutex:
            if repo_name in self._locked:
                raise RepositoryLockError(f'repository "{repo_name}" already locked')
            self._locked.add(repo_name)

    def unlock(self, repo_name: str) -> None:
        """Release the lock for ``repo_name``; raise if it is not held."""
        with self._mutex:
            if repo_name not in self._locked:
                raise RepositoryLockError(f'repository "{repo_name}" not found')
            self._locked.discard(repo_name)


def wrap_in_lock(lock: InMemoryRepositoryLock, repo_name: str, fn: Callable[[], T]) -> T:
    """Run ``fn`` while holding the lock for ``repo_name``.

    Raises :class:`AlreadyLockedError` if the lock is held, and
    :class:`TimeoutError` if ``fn`` runs longer than the lock's timeout.
    """
    try:
        lock.lock(repo_name)
    except RepositoryLockError:
        raise AlreadyLockedError() from None

    try:
        done = threading.Event()
        outcome: dict[str, object] = {}

        def target() -> None:
            try:
                outcome["value"] = fn()
            except BaseException as exc:  # handed back to the caller below
                outcome["error"] = exc
            finally:
                done.set()

        threading.Thread(target=target, daemon=True).start()
        if not done.wait(lock.timeout):
            raise TimeoutError(f"{repo_name} lock exceeded timeout")
        if "error" in outcome:
            raise outcome["error"]  # type: ignore[misc]
        return outcome["value"]  # type: ignore[return-value]
    finally:
        with contextlib.suppress(RepositoryLockError):
            lock.unlock(repo_name)
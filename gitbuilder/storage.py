"""Object storage helpers and in-memory stand-ins for storage drivers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol


class PathNotFoundError(Exception):
    """Raised by a storage driver when no object exists at a path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Path not found: {path}")
        self.path = path


class ObjectStatter(Protocol):
    def stat(self, path: str) -> Any: ...


class ObjectGetter(Protocol):
    def get_content(self, path: str) -> bytes: ...


@dataclass
class FakeObjectStatter:
    """A statter that records each path asked for and answers with ``fn``."""

    fn: Callable[[str], Any]
    calls: list[str] = field(default_factory=list)

    def stat(self, path: str) -> Any:
        self.calls.append(path)
        return self.fn(path)


@dataclass
class FakeObjectGetter:
    """A getter that records each path asked for and answers with ``fn``."""

    fn: Callable[[str], bytes]
    calls: list[str] = field(default_factory=list)

    def get_content(self, path: str) -> bytes:
        self.calls.append(path)
        return self.fn(path)


def object_exists(statter: ObjectStatter, key: str) -> bool:
    """Return whether ``key`` exists; errors other than a missing path propagate."""
    try:
        statter.stat(key)
    except PathNotFoundError:
        return False
    return True


def _found(statter: ObjectStatter, key: str) -> bool:
    try:
        return object_exists(statter, key)
    except Exception:
        return False


def wait_for_object(statter: ObjectStatter, key: str, tick: float, timeout: float) -> None:
    """Wait until ``key`` exists, checking now, every ``tick`` seconds and at ``timeout``.

    Raises TimeoutError if the object is still missing when the timeout is reached.
    """
    if _found(statter, key):
        return
    deadline = time.monotonic() + timeout
    while time.monotonic() + tick < deadline:
        time.sleep(tick)
        if _found(statter, key):
            return
    time.sleep(max(0.0, deadline - time.monotonic()))
    if _found(statter, key):
        return
    raise TimeoutError(f"Object {key} didn't exist after {timeout}s")
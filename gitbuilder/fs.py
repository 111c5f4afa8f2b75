"""File system access, real or held in memory."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field


class FakeFileNotFound(FileNotFoundError):
    """Raised by :class:`FakeFS` when a file is not in its in-memory store."""

    def __init__(self, filename: str) -> None:
        super().__init__(f"Fake file {filename} not found")
        self.filename = filename

    def __str__(self) -> str:
        return f"Fake file {self.filename} not found"


class RealFS:
    """Works on the local file system."""

    def read_file(self, name: str) -> bytes:
        """Return the whole contents of the file ``name``."""
        with open(name, "rb") as handle:
            return handle.read()

    def remove_all(self, name: str) -> None:
        """Remove ``name`` and everything under it; a missing path is not an error."""
        if os.path.isdir(name) and not os.path.islink(name):
            shutil.rmtree(name)
        elif os.path.lexists(name):
            os.remove(name)


@dataclass
class FakeFS:
    """A file system whose files live in a dictionary."""

    files: dict[str, bytes] = field(default_factory=dict)

    def read_file(self, name: str) -> bytes:
        """Return the stored contents of ``name``."""
        try:
            return self.files[name]
        except KeyError:
            raise FakeFileNotFound(name) from None

    def remove_all(self, name: str) -> None:
        """Forget ``name``; raises when it was never stored."""
        try:
            del self.files[name]
        except KeyError:
            raise FakeFileNotFound(name) from None
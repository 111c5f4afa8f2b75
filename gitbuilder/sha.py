"""Validated git commit SHAs."""

from __future__ import annotations

import re
from dataclasses import dataclass

_SHORT_SHA_LEN = 8
_SHA_RE = re.compile(r"[0-9a-f]{40}")


class InvalidGitSha(ValueError):
    """Raised when a string is not a full, lower-case hex git SHA."""

    def __init__(self, sha: str) -> None:
        super().__init__(f"git sha {sha} was invalid")
        self.sha = sha


@dataclass(frozen=True)
class Sha:
    """A full git SHA together with its eight-character short form."""

    full: str

    @property
    def short(self) -> str:
        """The first eight characters of the SHA."""
        return self.full[:_SHORT_SHA_LEN]


def new_sha(raw_sha: str) -> Sha:
    """Return a :class:`Sha` for ``raw_sha`` or raise :class:`InvalidGitSha`."""
    if not _SHA_RE.fullmatch(raw_sha):
        raise InvalidGitSha(raw_sha)
    return Sha(raw_sha)
"""Helpers for the git SSH server: key fingerprints, exec payloads and git wire lines."""

from __future__ import annotations

import hashlib
import struct
from typing import IO, Any, Protocol

MULTIPLE_PUSH = "Another git push is ongoing"

_EXEC_ESCAPES = str.maketrans({"$": None, "`": "'"})


class RepoNameError(ValueError):
    """Raised when a repository name in a git command is not acceptable."""


class _Writer(Protocol):
    def write(self, data: bytes) -> Any: ...


def fingerprint(key_blob: bytes) -> str:
    """The colon-separated MD5 fingerprint of a public key in wire format."""
    return ":".join(f"{byte:02x}" for byte in hashlib.md5(key_blob).digest())


def parse_ssh_string(payload: bytes) -> str:
    """Decode the SSH string (32-bit big-endian length, then bytes) at the start of ``payload``.

    Bytes after the string are ignored. Raises ValueError when the payload is too short.
    """
    if len(payload) < 4:
        raise ValueError("ssh: short read")
    (length,) = struct.unpack_from(">I", payload)
    value = payload[4 : 4 + length]
    if len(value) < length:
        raise ValueError("ssh: short read")
    return value.decode("utf-8", errors="surrogateescape")


def clean_exec(payload: bytes) -> str:
    """The command of an exec request, with '$' dropped and '`' turned into a quote."""
    try:
        command = parse_ssh_string(payload)
    except ValueError:
        command = ""
    return command.translate(_EXEC_ESCAPES)


def clean_repo_name(name: str) -> str:
    """The bare repository name from a git command argument.

    Quotes, a trailing ``.git`` and a leading ``/`` are removed. Raises
    :class:`RepoNameError` for an empty name or one containing ``..``.
    """
    if not name:
        raise RepoNameError("empty repo name")
    if ".." in name:
        raise RepoNameError("cannot change directory in file name")
    name = name.replace("'", "")
    name = name.removesuffix(".git")
    return name.removeprefix("/")


def git_pkt_line(writer: _Writer | IO[bytes], text: str) -> None:
    """Write ``text`` as one git pkt-line: four hex digits of length, then the data."""
    data = text.encode("utf-8")
    writer.write(f"{len(data) + 4:04x}".encode("ascii") + data)


def ssh_connection(remote: tuple[Any, ...], local: tuple[Any, ...]) -> str:
    """The SSH_CONNECTION value for socket addresses ``remote`` and ``local``."""
    return f"{remote[0]} {remote[1]} {local[0]} {local[1]}"
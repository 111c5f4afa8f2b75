"""Receiving pushes into bare git repositories."""

from __future__ import annotations

import io
import logging
import os
import subprocess
import threading
from typing import IO, Protocol

logger = logging.getLogger(__name__)

_HOOK_HEAD = """#!/bin/bash
set -eo pipefail
strip_remote_prefix() {
    stdbuf -i0 -o0 -e0 sed "s/^/"$'\\e[1G'"/"
}

"""

_HOOK_TAIL = """SSH_CONNECTION="$SSH_CONNECTION" \\
SSH_ORIGINAL_COMMAND="$SSH_ORIGINAL_COMMAND" \\
REPOSITORY="$RECEIVE_REPO" \\
USERNAME="$RECEIVE_USER" \\
FINGERPRINT="$RECEIVE_FINGERPRINT" \\
POD_NAMESPACE="$POD_NAMESPACE" \\
boot git-receive | strip_remote_prefix
"""

_CHUNK = 32 * 1024
_create_lock = threading.Lock()


class ReceiveError(Exception):
    """Raised when a push cannot be received."""


class Channel(Protocol):
    stderr: IO[bytes]

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> object: ...


def render_pre_receive_hook(git_home: str) -> str:
    """The text of the pre-receive hook script for ``git_home``."""
    return f"{_HOOK_HEAD}GIT_HOME={git_home} \\\n{_HOOK_TAIL}"


def create_pre_receive_hook(git_home: str, repo_path: str) -> None:
    """Write the executable pre-receive hook to ``repo_path/hooks/pre-receive``."""
    write_path = os.path.join(repo_path, "hooks", "pre-receive")
    try:
        handle = open(write_path, "w", encoding="utf-8")
    except OSError as exc:
        raise ReceiveError(f"Cannot create pre-receive hook file at {write_path} ({exc})") from exc
    with handle:
        try:
            handle.write(render_pre_receive_hook(git_home))
        except OSError as exc:
            raise ReceiveError(f"Cannot write pre-receive hook to {write_path} ({exc})") from exc
    try:
        os.chmod(write_path, 0o755)
    except OSError as exc:
        raise ReceiveError(f"Cannot change pre-receive hook script permissions ({exc})") from exc


def create_repo(repo_path: str) -> bool:
    """Create a bare repository at ``repo_path`` unless one is there.

    Returns True when a repository was created and False when the directory
    already existed.
    """
    with _create_lock:
        if os.path.isdir(repo_path):
            logger.debug("Directory %s already exists.", repo_path)
            return False
        if os.path.lexists(repo_path):
            raise ReceiveError("Expected directory, found file")

        logger.debug("Creating new directory at %s", repo_path)
        try:
            os.makedirs(repo_path, 0o755, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create repository: %s", exc)
            raise
        result = subprocess.run(
            ["git", "init", "--bare"],
            cwd=repo_path,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        if result.returncode != 0:
            logger.info("git init output: %s", result.stdout.decode(errors="replace"))
            raise ReceiveError(f"exit status {result.returncode}")
        return True


def _pump(source: IO[bytes], *sinks: IO[bytes] | Channel) -> None:
    while True:
        chunk = source.read1(_CHUNK)  # type: ignore[attr-defined]
        if not chunk:
            return
        for sink in sinks:
            sink.write(chunk)


def receive(
    repo: str,
    operation: str,
    git_home: str,
    channel: Channel,
    fingerprint: str,
    username: str,
    conndata: str,
    receivetype: str,
) -> None:
    """Run ``operation`` (git-receive-pack) for ``repo`` with the channel as its stdio.

    With ``receivetype`` "mock" only "OK" is written to the channel.
    Raises :class:`ReceiveError` when the push fails or anything is written to stderr.
    """
    logger.info(
        "receiving git repo name: %s, operation: %s, fingerprint: %s, user: %s",
        repo, operation, fingerprint, username,
    )
    if receivetype == "mock":
        channel.write(b"OK")
        return

    repo_path = os.path.join(git_home, repo)
    logger.info("creating repo directory %s", repo_path)
    try:
        create_repo(repo_path)
    except (ReceiveError, OSError) as exc:
        raise ReceiveError(f"Did not create new repo ({exc})") from exc

    logger.info("writing pre-receive hook under %s", repo_path)
    try:
        create_pre_receive_hook(git_home, repo_path)
    except ReceiveError as exc:
        raise ReceiveError(f"Did not write pre-receive hook ({exc})") from exc

    command = f"{operation} '{repo}'"
    args = ["git-shell", "-c", command]
    logger.info(" ".join(args))

    env = {
        "RECEIVE_USER": username,
        "RECEIVE_REPO": repo,
        "RECEIVE_FINGERPRINT": fingerprint,
        "SSH_ORIGINAL_COMMAND": command,
        "SSH_CONNECTION": conndata,
    }
    # Values already in the process environment take precedence.
    env.update(os.environ)
    logger.debug("Working Dir: %s", git_home)
    logger.debug("Environment: %s", ",".join(f"{k}={v}" for k, v in env.items()))

    errbuf = io.BytesIO()
    try:
        proc = subprocess.Popen(
            args,
            cwd=git_home,
            env=env,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        raise ReceiveError(
            f"Failed to start git pre-receive hook: {exc} ({errbuf.getvalue()!r})"
        ) from exc

    assert proc.stdin and proc.stdout and proc.stderr
    pumps = [
        threading.Thread(target=_pump, args=(proc.stdout, channel), daemon=True),
        threading.Thread(target=_pump, args=(proc.stderr, channel.stderr, errbuf), daemon=True),
    ]
    for pump in pumps:
        pump.start()

    try:
        while chunk := channel.read(_CHUNK):
            proc.stdin.write(chunk)
        proc.stdin.close()
    except OSError as exc:
        proc.kill()
        proc.wait()
        for pump in pumps:
            pump.join()
        raise ReceiveError(
            f"Failed to write git objects into the git pre-receive hook ({exc})"
        ) from exc

    print("Waiting for git-receive to run.")
    print("Waiting for deploy.")
    returncode = proc.wait()
    for pump in pumps:
        pump.join()
    errors = errbuf.getvalue().decode(errors="replace")
    if returncode != 0:
        raise ReceiveError(
            f"Failed to run git pre-receive hook: {errors} (exit status {returncode})"
        )
    if errors:
        logger.error("Unreported error: %s", errors)
        raise ReceiveError(errors)
    logger.info("Deploy complete.")
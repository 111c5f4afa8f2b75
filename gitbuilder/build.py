"""Helpers for the build step of the git-receive hook."""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import IO, Any

import yaml

from gitbuilder.build_type import BuildType
from gitbuilder.storage import ObjectGetter

logger = logging.getLogger(__name__)

_HTML_ESCAPES = (
    ("<", "\\u003c"),
    (">", "\\u003e"),
    ("&", "\\u0026"),
    ("\u2028", "\\u2028"),
    ("\u2029", "\\u2029"),
)


@dataclass
class Command:
    """A program to run, with its arguments and working directory."""

    args: list[str]
    dir: str = ""
    stdout: IO[Any] | None = None
    stderr: IO[Any] | None = None
    _extra: dict[str, Any] = field(default_factory=dict, repr=False)

    def __str__(self) -> str:
        return " ".join(self.args)


def repo_cmd(repo_dir: str, first: str, *args: str) -> Command:
    """A command ``first args...`` that runs inside ``repo_dir``."""
    return Command([first, *args], dir=repo_dir)


def run(cmd: Command) -> None:
    """Log the command at debug level, run it, and raise if it fails."""
    text = str(cmd)
    if cmd.dir:
        logger.debug("running [%s] in directory %s", text, cmd.dir)
    else:
        logger.debug("running [%s]", text)
    subprocess.run(
        cmd.args,
        cwd=cmd.dir or None,
        stdout=cmd.stdout,
        stderr=cmd.stderr,
        check=True,
    )


def build_builder_pod_node_selector(config: str) -> dict[str, str]:
    """Parse ``key:value,key:value`` into a node selector mapping."""
    selector: dict[str, str] = {}
    if not config:
        return selector
    for item in config.split(","):
        parts = item.split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid BuilderPodNodeSelector value format: {config}")
        selector[parts[0].strip()] = parts[1].strip()
    return selector


def pretty_print_json(data: Any) -> str:
    """Render ``data`` as JSON indented by two spaces, ending in a newline."""
    text = json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False)
    for char, escape in _HTML_ESCAPES:
        text = text.replace(char, escape)
    return text + "\n"


def _scalar_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        raise ValueError(f"cannot unmarshal {type(value).__name__} into string")
    return str(value)


def _parse_procfile(raw: bytes) -> dict[str, str]:
    loaded = yaml.safe_load(raw)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"cannot unmarshal {type(loaded).__name__} into a process map")
    return {_scalar_text(key): _scalar_text(value) for key, value in loaded.items()}


def get_proc_file(
    getter: ObjectGetter, dir_name: str, procfile_key: str, build_type: BuildType
) -> dict[str, str]:
    """Return the process types of the application.

    The Procfile in ``dir_name`` is used when present. Otherwise a buildpack build
    reads the Procfile the buildpack stored under ``procfile_key``; other builds
    have no process types.
    """
    local = os.path.join(dir_name, "Procfile")
    if os.path.exists(local):
        try:
            with open(local, "rb") as handle:
                raw = handle.read()
        except OSError as exc:
            raise RuntimeError(f"error in reading {dir_name}/Procfile ({exc})") from exc
        try:
            return _parse_procfile(raw)
        except (yaml.YAMLError, ValueError) as exc:
            raise ValueError(f"procfile {dir_name}/ProcFile is malformed ({exc})") from exc

    if build_type is not BuildType.PROCFILE:
        return {}

    logger.debug("Procfile not present. Getting it from the buildpack")
    try:
        raw = getter.get_content(procfile_key)
    except Exception as exc:
        raise RuntimeError(f"error in reading {procfile_key} ({exc})") from exc
    try:
        return _parse_procfile(raw)
    except (yaml.YAMLError, ValueError) as exc:
        raise ValueError(f"procfile {procfile_key} is malformed ({exc})") from exc


def read_line(line: str) -> tuple[str, str, str]:
    """Split a pre-receive line into old revision, new revision and ref name."""
    parts = line.split(" ")
    if len(parts) != 3:
        raise ValueError(f"malformed line [{line}]")
    return parts[0], parts[1], parts[2]
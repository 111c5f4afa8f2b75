"""Configuration of the git-receive hook, read from environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Mapping

BUILDER_POD_TICK_MSEC = 100
OBJECT_STORAGE_TICK_MSEC = 500


@dataclass
class ReceiveConfig:
    """Settings for one run of the git-receive hook."""

    controller_host: str = ""
    controller_port: str = ""
    registry_host: str = ""
    registry_port: str = ""
    registry_proxy_port: str = "5555"
    registry_location: str = "on-cluster"
    registry_secret_prefix: str = "private-registry"

    git_home: str = ""
    ssh_connection: str = ""
    ssh_original_command: str = ""
    repository: str = ""
    username: str = ""
    fingerprint: str = ""
    pod_namespace: str = ""
    storage_region: str = "us-east-1"
    debug: bool = False
    builder_pod_tick_duration_msec: int = 100
    builder_pod_wait_duration_msec: int = 900_000
    object_storage_tick_duration_msec: int = 500
    object_storage_wait_duration_msec: int = 300_000
    session_idle_interval_msec: int = 10_000
    slug_builder_image: str = ""
    docker_builder_image: str = ""
    slug_builder_image_pull_policy: str = "Always"
    docker_builder_image_pull_policy: str = "Always"
    storage_type: str = "minio"
    builder_pod_node_selector: str = ""

    @property
    def app(self) -> str:
        """The repository name with its last '.' and everything after it removed."""
        head, dot, _ = self.repository.rpartition(".")
        return head if dot else self.repository

    @property
    def builder_pod_tick_duration(self) -> timedelta:
        """Interval between checks for the end of a builder pod."""
        return timedelta(milliseconds=self.builder_pod_tick_duration_msec)

    @property
    def builder_pod_wait_duration(self) -> timedelta:
        """Longest time to wait for a builder pod to finish."""
        return timedelta(milliseconds=self.builder_pod_wait_duration_msec)

    @property
    def object_storage_tick_duration(self) -> timedelta:
        """Interval between checks on an object storage operation."""
        return timedelta(milliseconds=self.object_storage_tick_duration_msec)

    @property
    def object_storage_wait_duration(self) -> timedelta:
        """Longest time to wait for an object storage operation."""
        return timedelta(milliseconds=self.object_storage_wait_duration_msec)

    @property
    def session_idle_interval(self) -> timedelta:
        """Interval at which progress is reported while waiting."""
        return timedelta(milliseconds=self.session_idle_interval_msec)

    def check_durations(self) -> None:
        """Reset tick intervals that are too small or not below their wait limits."""
        if self.builder_pod_tick_duration_msec >= self.builder_pod_wait_duration_msec:
            self.builder_pod_tick_duration_msec = BUILDER_POD_TICK_MSEC
        if self.builder_pod_tick_duration_msec < BUILDER_POD_TICK_MSEC:
            self.builder_pod_tick_duration_msec = BUILDER_POD_TICK_MSEC

        if self.object_storage_tick_duration_msec >= self.object_storage_wait_duration_msec:
            self.object_storage_tick_duration_msec = OBJECT_STORAGE_TICK_MSEC
        if self.object_storage_tick_duration_msec < OBJECT_STORAGE_TICK_MSEC:
            self.object_storage_tick_duration_msec = OBJECT_STORAGE_TICK_MSEC


_INT_RE = re.compile(r"[+-]?[0-9]+")
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_int(raw: str) -> int:
    if not _INT_RE.fullmatch(raw):
        raise ValueError(raw)
    return int(raw)


def _parse_bool(raw: str) -> bool:
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(raw)


# field name, variable name, parser, type name, required
_FIELDS: tuple[tuple[str, str, Callable[[str], object], str, bool], ...] = (
    ("controller_host", "DEIS_CONTROLLER_SERVICE_HOST", str, "string", True),
    ("controller_port", "DEIS_CONTROLLER_SERVICE_PORT", str, "string", True),
    ("registry_host", "DEIS_REGISTRY_SERVICE_HOST", str, "string", True),
    ("registry_port", "DEIS_REGISTRY_SERVICE_PORT", str, "string", True),
    ("registry_proxy_port", "DEIS_REGISTRY_PROXY_PORT", str, "string", False),
    ("registry_location", "DEIS_REGISTRY_LOCATION", str, "string", False),
    ("registry_secret_prefix", "DEIS_REGISTRY_SECRET_PREFIX", str, "string", False),
    ("git_home", "GIT_HOME", str, "string", True),
    ("ssh_connection", "SSH_CONNECTION", str, "string", True),
    ("ssh_original_command", "SSH_ORIGINAL_COMMAND", str, "string", True),
    ("repository", "REPOSITORY", str, "string", True),
    ("username", "USERNAME", str, "string", True),
    ("fingerprint", "FINGERPRINT", str, "string", True),
    ("pod_namespace", "POD_NAMESPACE", str, "string", True),
    ("storage_region", "STORAGE_REGION", str, "string", False),
    ("debug", "DEIS_DEBUG", _parse_bool, "bool", False),
    ("builder_pod_tick_duration_msec", "BUILDER_POD_TICK_DURATION", _parse_int, "int", False),
    ("builder_pod_wait_duration_msec", "BUILDER_POD_WAIT_DURATION", _parse_int, "int", False),
    ("object_storage_tick_duration_msec", "OBJECT_STORAGE_TICK_DURATION", _parse_int, "int", False),
    ("object_storage_wait_duration_msec", "OBJECT_STORAGE_WAIT_DURATION", _parse_int, "int", False),
    ("session_idle_interval_msec", "SESSION_IDLE_INTERVAL", _parse_int, "int", False),
    ("slug_builder_image", "SLUGBUILDER_IMAGE_NAME", str, "string", True),
    ("docker_builder_image", "DOCKERBUILDER_IMAGE_NAME", str, "string", True),
    ("slug_builder_image_pull_policy", "SLUG_BUILDER_IMAGE_PULL_POLICY", str, "string", False),
    ("docker_builder_image_pull_policy", "DOCKER_BUILDER_IMAGE_PULL_POLICY", str, "string", False),
    ("storage_type", "BUILDER_STORAGE", str, "string", False),
    ("builder_pod_node_selector", "BUILDER_POD_NODE_SELECTOR", str, "string", False),
)


def load_receive_config(environ: Mapping[str, str] | None = None) -> ReceiveConfig:
    """Build a :class:`ReceiveConfig` from ``environ`` (the process environment by default).

    Raises ValueError when a required variable is missing or a value does not parse.
    """
    if environ is None:
        environ = os.environ
    values: dict[str, object] = {}
    for field_name, var, parse, type_name, required in _FIELDS:
        if var not in environ:
            if required:
                raise ValueError(f"required key {var} missing value")
            continue
        raw = environ[var]
        try:
            values[field_name] = parse(raw)
        except ValueError:
            raise ValueError(f"assigning {var}: converting '{raw}' to type {type_name}") from None
    return ReceiveConfig(**values)  # type: ignore[arg-type]
"""Configuration of the SSH server, read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping


@dataclass
class ServerConfig:
    """Settings for the SSH server and the processes that run beside it."""

    controller_host: str
    controller_port: str
    ssh_host_ip: str = "0.0.0.0"
    ssh_host_port: int = 2223
    health_srv_port: int = 8092
    health_srv_test_storage_region: str = "us-east-1"
    cleaner_poll_sleep_duration_sec: int = 5
    storage_type: str = "minio"
    slug_builder_image_pull_policy: str = "Always"
    docker_builder_image_pull_policy: str = "Always"
    lock_timeout: int = 10

    @property
    def cleaner_poll_sleep_duration(self) -> timedelta:
        """How long the cleaner sleeps between passes."""
        return timedelta(seconds=self.cleaner_poll_sleep_duration_sec)

    @property
    def git_lock_timeout(self) -> timedelta:
        """How long a push may hold its repository lock (the setting is in minutes)."""
        return timedelta(minutes=self.lock_timeout)


# field name, variable name, parser, required
_FIELDS = (
    ("controller_host", "DEIS_CONTROLLER_SERVICE_HOST", str, True),
    ("controller_port", "DEIS_CONTROLLER_SERVICE_PORT", str, True),
    ("ssh_host_ip", "SSH_HOST_IP", str, True),
    ("ssh_host_port", "SSH_HOST_PORT", int, True),
    ("health_srv_port", "HEALTH_SERVER_PORT", int, False),
    ("health_srv_test_storage_region", "STORAGE_REGION", str, False),
    ("cleaner_poll_sleep_duration_sec", "CLEANER_POLL_SLEEP_DURATION_SEC", int, False),
    ("storage_type", "BUILDER_STORAGE", str, False),
    ("slug_builder_image_pull_policy", "SLUG_BUILDER_IMAGE_PULL_POLICY", str, False),
    ("docker_builder_image_pull_policy", "DOCKER_BUILDER_IMAGE_PULL_POLICY", str, False),
    ("lock_timeout", "GIT_LOCK_TIMEOUT", int, False),
)

_DEFAULTS = {
    "ssh_host_ip": ServerConfig.ssh_host_ip,
    "ssh_host_port": ServerConfig.ssh_host_port,
}


def load_server_config(environ: Mapping[str, str] | None = None) -> ServerConfig:
    """Build a :class:`ServerConfig` from ``environ`` (the process environment by default).

    Raises ValueError when a required variable is missing or a number does not parse.
    """
    if environ is None:
        environ = os.environ
    values: dict[str, object] = {}
    for field_name, var, parse, required in _FIELDS:
        if var not in environ:
            if required and field_name not in _DEFAULTS:
                raise ValueError(f"required key {var} missing value")
            continue
        raw = environ[var]
        try:
            values[field_name] = parse(raw)
        except ValueError:
            raise ValueError(f"assigning {var}: converting '{raw}' to type {parse.__name__}") from None
    return ServerConfig(**values)  # type: ignore[arg-type]
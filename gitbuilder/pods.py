"""Builder pod specifications, waiting on pods, and build environment secrets."""

from __future__ import annotations

import contextlib
import json
import sys
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Iterator, Mapping, Protocol

SLUG_BUILDER_NAME = "deis-slugbuilder"
DOCKER_BUILDER_NAME = "deis-dockerbuilder"

TAR_PATH = "TAR_PATH"
PUT_PATH = "PUT_PATH"
CACHE_PATH = "CACHE_PATH"
DEBUG_KEY = "DEIS_DEBUG"
SOURCE_VERSION = "SOURCE_VERSION"
OBJECT_STORE = "objectstorage-keyfile"
DOCKER_SOCKET_NAME = "docker-socket"
DOCKER_SOCKET_PATH = "/var/run/docker.sock"
BUILDER_STORAGE = "BUILDER_STORAGE"
OBJECT_STORE_PATH = "/var/run/secrets/deis/objectstore/creds"
ENV_ROOT = "/tmp/env"

POD_RUNNING = "Running"
POD_SUCCEEDED = "Succeeded"
POD_FAILED = "Failed"

Pod = dict[str, Any]


class AlreadyExistsError(Exception):
    """Raised by a secrets client when the object to create already exists."""

    def __init__(self, resource: str, name: str) -> None:
        super().__init__(f'{resource} "{name}" already exists')
        self.resource = resource
        self.name = name


class SecretsClient(Protocol):
    def create(self, secret: dict[str, Any]) -> Any: ...

    def update(self, secret: dict[str, Any]) -> Any: ...


class PodLister(Protocol):
    def list(self, label_selector: Mapping[str, str]) -> list[Pod]: ...


@dataclass
class FakeSecret:
    """A secrets client whose calls are answered by the given functions."""

    fn_get: Callable[[str], Any] | None = None
    fn_create: Callable[[dict[str, Any]], Any] | None = None
    fn_update: Callable[[dict[str, Any]], Any] | None = None
    deleted: list[str] = field(default_factory=list)

    @staticmethod
    def _require(fn: Callable[..., Any] | None, name: str) -> Callable[..., Any]:
        if fn is None:
            raise RuntimeError(f"FakeSecret has no {name} function")
        return fn

    def get(self, name: str) -> Any:
        return self._require(self.fn_get, "get")(name)

    def create(self, secret: dict[str, Any]) -> Any:
        return self._require(self.fn_create, "create")(secret)

    def update(self, secret: dict[str, Any]) -> Any:
        return self._require(self.fn_update, "update")(secret)

    def delete(self, name: str) -> None:
        """Record the deletion; it always succeeds."""
        self.deleted.append(name)


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def _compact_json(data: Any) -> str:
    text = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for char, escape in (
        ("<", "\\u003c"),
        (">", "\\u003e"),
        ("&", "\\u0026"),
        ("\u2028", "\\u2028"),
        ("\u2029", "\\u2029"),
    ):
        text = text.replace(char, escape)
    return text


def _seconds(value: float | timedelta) -> float:
    return value.total_seconds() if isinstance(value, timedelta) else float(value)


def _secret_volume(volume_name: str, secret_name: str) -> dict[str, Any]:
    source = {"secretName": secret_name}
    return {"name": volume_name, "secret": source}


def docker_builder_pod_name(app_name: str, short_sha: str) -> str:
    """A unique docker builder pod name that stays within 63 characters."""
    uid = str(uuid.uuid4())[:8]
    return f"dockerbuild-{app_name[:33]}-{short_sha}-{uid}"


def slug_builder_pod_name(app_name: str, short_sha: str) -> str:
    """A unique slug builder pod name that stays within 63 characters."""
    uid = str(uuid.uuid4())[:8]
    return f"slugbuild-{app_name[:35]}-{short_sha}-{uid}"


def add_env_to_pod(pod: Pod, key: str, value: str) -> None:
    """Append an environment variable to the pod's first container."""
    containers = pod["spec"]["containers"]
    if containers:
        containers[0]["env"].append({"name": key, "value": value})


def build_pod(
    debug: bool,
    name: str,
    namespace: str,
    pull_policy: str,
    node_selector: Mapping[str, str] | None,
    env: Mapping[str, Any] | None,
) -> Pod:
    """The pod spec common to both builders, with the object store credentials mounted."""
    container: dict[str, Any] = {
        "name": "",
        "image": "",
        "imagePullPolicy": pull_policy,
        "env": [{"name": k, "value": _format_value(v)} for k, v in (env or {}).items()],
        "volumeMounts": [
            {"name": OBJECT_STORE, "mountPath": OBJECT_STORE_PATH, "readOnly": True},
        ],
    }
    pod: Pod = {
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {"heritage": name},
        },
        "spec": {
            "restartPolicy": "Never",
            "containers": [container],
            "volumes": [_secret_volume(OBJECT_STORE, OBJECT_STORE)],
        },
    }
    if node_selector:
        pod["spec"]["nodeSelector"] = dict(node_selector)
    if debug:
        add_env_to_pod(pod, DEBUG_KEY, "1")
    return pod


def docker_builder_pod(
    debug: bool,
    name: str,
    namespace: str,
    env: Mapping[str, Any] | None,
    tar_key: str,
    git_short_hash: str,
    image_name: str,
    storage_type: str,
    image: str,
    registry_host: str,
    registry_port: str,
    registry_env: Mapping[str, str] | None,
    pull_policy: str,
    node_selector: Mapping[str, str] | None,
) -> Pod:
    """The pod spec that builds an application from its Dockerfile."""
    env = env or {}
    pod = build_pod(debug, name, namespace, pull_policy, node_selector, env)

    # Build args are passed as a JSON object of the application's config.
    if "DEIS_DOCKER_BUILD_ARGS_ENABLED" in env:
        add_env_to_pod(pod, "DOCKER_BUILD_ARGS", _compact_json(dict(env)))

    container = pod["spec"]["containers"][0]
    container["name"] = DOCKER_BUILDER_NAME
    container["image"] = image

    add_env_to_pod(pod, TAR_PATH, tar_key)
    add_env_to_pod(pod, SOURCE_VERSION, git_short_hash)
    add_env_to_pod(pod, "IMG_NAME", image_name)
    add_env_to_pod(pod, BUILDER_STORAGE, storage_type)
    add_env_to_pod(pod, "DEIS_REGISTRY_SERVICE_HOST", registry_host)
    add_env_to_pod(pod, "DEIS_REGISTRY_SERVICE_PORT", registry_port)
    for key, value in (registry_env or {}).items():
        add_env_to_pod(pod, key, value)

    container["volumeMounts"].append({"name": DOCKER_SOCKET_NAME, "mountPath": DOCKER_SOCKET_PATH})
    pod["spec"]["volumes"].append(
        {"name": DOCKER_SOCKET_NAME, "hostPath": {"path": DOCKER_SOCKET_PATH}}
    )
    return pod


def slugbuilder_pod(
    debug: bool,
    name: str,
    namespace: str,
    env_secret_name: str,
    tar_key: str,
    put_key: str,
    cache_key: str,
    git_short_hash: str,
    buildpack_url: str,
    buildpack_debug: str,
    storage_type: str,
    image: str,
    pull_policy: str,
    node_selector: Mapping[str, str] | None,
) -> Pod:
    """The pod spec that builds an application slug with buildpacks."""
    pod = build_pod(debug, name, namespace, pull_policy, node_selector, None)

    pod["spec"]["volumes"].append(_secret_volume(env_secret_name, env_secret_name))
    container = pod["spec"]["containers"][0]
    container["volumeMounts"].append(
        {"name": env_secret_name, "mountPath": ENV_ROOT, "readOnly": True}
    )
    container["name"] = SLUG_BUILDER_NAME
    container["image"] = image

    if cache_key:
        add_env_to_pod(pod, CACHE_PATH, cache_key)
    add_env_to_pod(pod, TAR_PATH, tar_key)
    add_env_to_pod(pod, PUT_PATH, put_key)
    add_env_to_pod(pod, SOURCE_VERSION, git_short_hash)
    add_env_to_pod(pod, BUILDER_STORAGE, storage_type)
    if buildpack_url:
        add_env_to_pod(pod, "BUILDPACK_URL", buildpack_url)
    if buildpack_debug:
        add_env_to_pod(pod, "DEIS_BUILDPACK_DEBUG", buildpack_debug)
    return pod


def _check_pod(lister: PodLister, pod_name: str, condition: Callable[[Pod], bool]) -> bool:
    try:
        pods = lister.list({"heritage": pod_name})
    except Exception:
        return False
    if not pods:
        return False
    return condition(pods[0])


def wait_for_pod_condition(
    lister: PodLister,
    namespace: str,
    pod_name: str,
    condition: Callable[[Pod], bool],
    interval: float | timedelta,
    timeout: float | timedelta,
) -> None:
    """Poll for the pod labelled ``heritage=pod_name`` until ``condition`` holds.

    Checks at once and then every ``interval``; raises TimeoutError after ``timeout``.
    Exceptions raised by ``condition`` propagate.
    """
    interval_s = _seconds(interval)
    deadline = time.monotonic() + _seconds(timeout)
    while True:
        if _check_pod(lister, pod_name, condition):
            return
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("timed out waiting for the condition")
        time.sleep(min(interval_s, remaining))


def _phase(pod: Pod) -> str:
    return pod.get("status", {}).get("phase", "")


def wait_for_pod(
    lister: PodLister,
    namespace: str,
    pod_name: str,
    ticker: float | timedelta,
    interval: float | timedelta,
    timeout: float | timedelta,
) -> None:
    """Wait for the pod to be running, succeeded or failed, printing progress every ``ticker``.

    Raises RuntimeError if the pod went into the failed phase.
    """

    def started(pod: Pod) -> bool:
        phase = _phase(pod)
        if phase == POD_FAILED:
            status = pod.get("status", {})
            raise RuntimeError(
                "Giving up; pod went into failed status: \n"
                f"[{status.get('reason', '')}]:{status.get('message', '')}"
            )
        return phase in (POD_RUNNING, POD_SUCCEEDED)

    with progress("...", ticker):
        wait_for_pod_condition(lister, namespace, pod_name, started, interval, timeout)


def wait_for_pod_end(
    lister: PodLister,
    namespace: str,
    pod_name: str,
    interval: float | timedelta,
    timeout: float | timedelta,
) -> None:
    """Wait for the pod to reach the succeeded or failed phase."""
    wait_for_pod_condition(
        lister,
        namespace,
        pod_name,
        lambda pod: _phase(pod) in (POD_SUCCEEDED, POD_FAILED),
        interval,
        timeout,
    )


@contextlib.contextmanager
def progress(msg: str, interval: float | timedelta) -> Iterator[None]:
    """Print ``msg`` every ``interval`` for as long as the block runs."""
    period = _seconds(interval)
    stop = threading.Event()

    def tick() -> None:
        while not stop.wait(period):
            print(msg, file=sys.stdout, flush=True)

    worker = threading.Thread(target=tick, daemon=True)
    worker.start()
    try:
        yield
    finally:
        stop.set()
        worker.join()


def create_app_env_config_secret(
    secrets_client: SecretsClient, secret_name: str, env: Mapping[str, Any] | None
) -> None:
    """Create the secret holding the application's build environment, or update it if it exists."""
    manifest = {
        "metadata": {"name": secret_name},
        "type": "Opaque",
        "data": {k: _format_value(v).encode() for k, v in (env or {}).items()},
    }
    try:
        secrets_client.create(manifest)
    except AlreadyExistsError:
        secrets_client.update(manifest)
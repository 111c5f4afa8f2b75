"""Builder key and object storage credentials read from mounted secrets."""

from __future__ import annotations

import os
from typing import Any, Protocol

STORAGE_CRED_LOCATION = "/var/run/secrets/deis/objectstore/creds/"
BUILDER_KEY_LOCATION = "/var/run/secrets/api/auth/builder-key"
MINIO_HOST_ENV_VAR = "DEIS_MINIO_SERVICE_HOST"
MINIO_PORT_ENV_VAR = "DEIS_MINIO_SERVICE_PORT"
GCS_KEY = "key.json"


class Env(Protocol):
    def get(self, name: str) -> str: ...


def get_builder_key(path: str = BUILDER_KEY_LOCATION) -> str:
    """Return the key used to talk to the controller, without surrounding newlines."""
    try:
        with open(path, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        raise OSError(f"couldn't get builder key from {path} ({exc})") from exc
    return raw.decode("utf-8", errors="surrogateescape").strip("\n")


def get_storage_params(env: Env, cred_dir: str = STORAGE_CRED_LOCATION) -> dict[str, Any]:
    """Return the parameters for connecting to object storage.

    Every file in ``cred_dir`` becomes a parameter named after it; a GCS
    service account file is passed by path instead. For minio storage the
    endpoint, region and bucket are fixed.
    """
    params: dict[str, Any] = {}
    with os.scandir(cred_dir) as entries:
        files = sorted(entries, key=lambda entry: entry.name)
    for entry in files:
        if entry.is_dir(follow_symlinks=False) or entry.name == "..data":
            continue
        path = os.path.join(cred_dir, entry.name)
        with open(path, "rb") as handle:
            data = handle.read()
        if entry.name == GCS_KEY:
            params["keyfile"] = path
        else:
            params[entry.name] = data.decode("utf-8", errors="surrogateescape")

    params["bucket"] = params.get("builder-bucket")
    params["container"] = params.get("builder-container")
    if env.get("BUILDER_STORAGE") == "minio":
        host = env.get(MINIO_HOST_ENV_VAR)
        port = env.get(MINIO_PORT_ENV_VAR)
        params["regionendpoint"] = f"http://{host}:{port}"
        params["secure"] = False
        params["region"] = "us-east-1"
        params["bucket"] = "git"
    return params
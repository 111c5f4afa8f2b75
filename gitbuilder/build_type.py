"""Deciding whether an application is built from a Dockerfile or a Procfile."""

from __future__ import annotations

import os
from enum import Enum
from typing import Any, Mapping


class BuildType(str, Enum):
    """How an application's source is turned into a runnable image."""

    PROCFILE = "procfile"
    DOCKERFILE = "dockerfile"

    def __str__(self) -> str:
        return self.value


def get_build_type(dir_name: str, config_values: Mapping[str, Any] | None) -> BuildType:
    """Pick the build type for the source checked out in ``dir_name``.

    A Procfile alone means a buildpack build. When both a Dockerfile and a
    Procfile are present, the application's ``HEPHY_BUILDER`` setting chooses.
    Everything else is a Dockerfile build.
    """
    has_dockerfile = os.path.exists(os.path.join(dir_name, "Dockerfile"))
    has_procfile = os.path.exists(os.path.join(dir_name, "Procfile"))

    if has_dockerfile and has_procfile:
        chosen = (config_values or {}).get("HEPHY_BUILDER")
        if isinstance(chosen, str):
            try:
                return BuildType(chosen)
            except ValueError:
                pass
    elif has_procfile:
        return BuildType.PROCFILE
    return BuildType.DOCKERFILE
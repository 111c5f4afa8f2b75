"""Removal of local repositories and stored objects for applications that were deleted.

Applications are tracked as namespaces; a ``<app>.git`` directory in the git home
whose application has no namespace any more is removed together with its cache
and slug objects.
"""

from __future__ import annotations

import logging
import os
import re
import time
from datetime import timedelta
from typing import Any, Callable, Iterable, Protocol

from gitbuilder.slug_info import CACHE_KEY_PATTERN, GIT_KEY_PATTERN

logger = logging.getLogger(__name__)

DOT_GIT_SUFFIX = ".git"


class NamespaceLister(Protocol):
    def list(self) -> Iterable[str]: ...


class FileSystem(Protocol):
    def remove_all(self, name: str) -> None: ...


class StorageDriver(Protocol):
    def stat(self, path: str) -> Any: ...

    def delete(self, path: str) -> None: ...

    def list(self, path: str) -> list[str]: ...


def local_dirs(git_home: str, keep: Callable[[str], bool]) -> list[str]:
    """Names of the directories directly under ``git_home`` for which ``keep`` is true.

    ``keep`` receives the bare directory name. The names come back sorted.
    """
    with os.scandir(git_home) as entries:
        names = sorted(
            entry.name
            for entry in entries
            if entry.name and entry.name != "." and entry.is_dir(follow_symlinks=False)
        )
    return [name for name in names if keep(name)]


def get_diff(namespaces: Iterable[str], dirs: Iterable[str]) -> list[str]:
    """Lower-cased names from ``dirs`` that match no namespace, ignoring case."""
    known = {name.lower() for name in namespaces}
    return [name.lower() for name in dirs if name.lower() not in known]


def strip_suffixes(strs: Iterable[str], suffix: str) -> list[str]:
    """Cut every string at the last occurrence of ``suffix``."""
    stripped = []
    for text in strs:
        idx = text.rfind(suffix)
        stripped.append(text[:idx] if idx >= 0 else text)
    return stripped


def dir_has_git_suffix(name: str) -> bool:
    """Whether ``name`` ends in ``.git``."""
    return name.endswith(DOT_GIT_SUFFIX)


def delete_from_object_store(app: str, storage_driver: StorageDriver) -> None:
    """Delete the build cache and every slug stored for ``app``."""
    cache_key = CACHE_KEY_PATTERN.format(app)
    try:
        storage_driver.stat(cache_key)
    except Exception:
        pass
    else:
        logger.info("Cleaner deleting cache %s for app %s", cache_key, app)
        storage_driver.delete(cache_key)

    objects = storage_driver.list("home")
    # Listed paths carry a leading slash.
    git_regex = re.compile("^/" + GIT_KEY_PATTERN.format(app, ".{8}") + "$")
    for obj in objects:
        if git_regex.search(obj):
            logger.info("Cleaner deleting slug %s for app %s", obj, app)
            storage_driver.delete(obj)


def clean_once(
    git_home: str,
    namespace_lister: NamespaceLister,
    fs: FileSystem,
    storage_driver: StorageDriver,
) -> list[str]:
    """Run one cleaning pass and return the applications it cleaned up.

    Errors while listing namespaces or directories propagate; errors while
    removing one application's files are logged and the pass goes on.
    """
    namespaces = list(namespace_lister.list())
    git_dirs = strip_suffixes(local_dirs(git_home, dir_has_git_suffix), DOT_GIT_SUFFIX)
    apps_to_delete = get_diff(namespaces, git_dirs)

    for app in apps_to_delete:
        dir_to_delete = os.path.join(git_home, app + DOT_GIT_SUFFIX)
        try:
            fs.remove_all(dir_to_delete)
        except Exception as exc:
            logger.error(
                "Cleaner error removing local files for deleted app %s (%s)", dir_to_delete, exc
            )
        try:
            delete_from_object_store(app, storage_driver)
        except Exception as exc:
            logger.error(
                "Cleaner error removing object store files for deleted app %s (%s)", app, exc
            )
    return apps_to_delete


def run(
    git_home: str,
    namespace_lister: NamespaceLister,
    fs: FileSystem,
    poll_sleep: float | timedelta,
    storage_driver: StorageDriver,
) -> None:
    """Clean up deleted applications forever, pausing ``poll_sleep`` between passes."""
    pause = poll_sleep.total_seconds() if isinstance(poll_sleep, timedelta) else float(poll_sleep)
    while True:
        try:
            clean_once(git_home, namespace_lister, fs, storage_driver)
        except Exception as exc:
            logger.error("Cleaner error (%s)", exc)
        time.sleep(pause)
"""Object storage keys used by the slug builder."""

from __future__ import annotations

from dataclasses import dataclass

SLUG_TGZ_NAME = "slug.tgz"
CACHE_KEY_PATTERN = "home/{}/cache"
GIT_KEY_PATTERN = "home/{}:git-{}"


@dataclass(frozen=True)
class SlugBuilderInfo:
    """The storage locations a slug builder reads from and writes to for one build."""

    app_name: str
    short_sha: str
    disable_caching: bool = False

    @property
    def _base_path(self) -> str:
        return GIT_KEY_PATTERN.format(self.app_name, self.short_sha)

    @property
    def push_key(self) -> str:
        """Folder the built slug is stored in."""
        return f"{self._base_path}/push"

    @property
    def tar_key(self) -> str:
        """Folder the source tarball is downloaded from."""
        return f"{self._base_path}/tar"

    @property
    def cache_key(self) -> str:
        """Per-application cache location, kept between deploys."""
        return CACHE_KEY_PATTERN.format(self.app_name)

    @property
    def absolute_slug_object_key(self) -> str:
        """The push key followed by the slug file name."""
        return f"{self.push_key}/{SLUG_TGZ_NAME}"

    @property
    def absolute_procfile_key(self) -> str:
        """The push key followed by the Procfile name."""
        return f"{self.push_key}/Procfile"
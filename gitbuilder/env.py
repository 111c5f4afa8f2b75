"""Access to environment variables, real or held in memory."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


class RealEnv:
    """Reads variables from the process environment on every lookup."""

    def get(self, name: str) -> str:
        """Return the value of ``name``, or an empty string when it is unset."""
        return os.environ.get(name, "")


@dataclass
class FakeEnv:
    """An environment backed by a plain dictionary."""

    envs: dict[str, str] = field(default_factory=dict)

    def get(self, name: str) -> str:
        """Return the value of ``name``, or an empty string when it is unset."""
        return self.envs.get(name, "")
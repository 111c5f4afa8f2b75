"""Container image pull policies."""

from __future__ import annotations

from enum import Enum


class PullPolicy(str, Enum):
    """The image pull policies a builder pod may use."""

    ALWAYS = "Always"
    IF_NOT_PRESENT = "IfNotPresent"
    NEVER = "Never"

    def __str__(self) -> str:
        return self.value


class InvalidPullPolicy(ValueError):
    """Raised when a string names no known pull policy."""

    def __init__(self, value: str) -> None:
        super().__init__(f"{value} is an invalid pull policy")
        self.value = value


def pull_policy_from_string(value: str) -> PullPolicy:
    """Return the :class:`PullPolicy` named exactly by ``value``."""
    try:
        return PullPolicy(value)
    except ValueError:
        raise InvalidPullPolicy(value) from None
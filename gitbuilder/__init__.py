"""Parts of a git-push build service: push locks, repositories and hooks, builder pod specs, cleanup and health checks."""

__version__ = "0.1.0"
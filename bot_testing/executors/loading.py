"""Loading of executors from entry points."""

from importlib.metadata import entry_points
from typing import Any

from bot_testing.executors.manifest import ExecutorManifest

ENTRY_POINT_GROUP = "bot_testing.executors"


class ExecutorNotFoundError(Exception):
    """Raised when no usable executor is registered under a key."""


def available_executors() -> list[str]:
    """Keys of every registered executor, sorted."""
    return sorted({entry.name for entry in entry_points(group=ENTRY_POINT_GROUP)})


def load_executor_manifest(key: str) -> ExecutorManifest[Any]:
    """Load an executor manifest by key.

    Args:
        key: The executor key as registered in pyproject.toml (e.g., "directline")

    Returns:
        The executor manifest instance

    Raises:
        ExecutorNotFoundError: If no executor is registered under the key, or
            the entry point does not resolve to a manifest

    """
    for entry in entry_points(group=ENTRY_POINT_GROUP, name=key):
        manifest = entry.load()
        if not isinstance(manifest, ExecutorManifest):
            raise ExecutorNotFoundError(
                f"Entry point '{key}' ({entry.value}) is not an executor manifest"
            )
        return manifest

    raise ExecutorNotFoundError(
        f"Executor '{key}' not found. "
        f"Available executors: {', '.join(available_executors()) or 'none'}"
    )

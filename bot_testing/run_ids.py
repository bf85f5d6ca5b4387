"""Allocation of run identifiers."""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from bot_testing.store import ResultsStore

log = logging.getLogger(__name__)


def new_run_id() -> str:
    """Generate a random run ID."""
    return uuid.uuid4().hex


@dataclass(frozen=True, kw_only=True)
class RunIdAllocator:
    """Issues run IDs that are unique among active runs.

    An ID is reserved in the store as part of allocation, so it is pending
    (and pollable) as soon as ``allocate`` returns.
    """

    store: ResultsStore
    id_factory: Callable[[], str] = new_run_id
    max_attempts: int = 16

    def allocate(self) -> str:
        """Reserve and return a fresh run ID.

        Raises:
            RuntimeError: If no free ID was found within ``max_attempts``

        """
        for _ in range(self.max_attempts):
            run_id = self.id_factory()
            if self.store.mark_active(run_id):
                return run_id
            log.warning("Run ID %s is already active, drawing another", run_id)

        raise RuntimeError(
            f"Could not allocate a free run ID in {self.max_attempts} attempts"
        )

"""Deferred deletion of finished runs."""

import asyncio
import logging
from dataclasses import dataclass, field

from bot_testing.store import ResultsStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class RetentionReaper:
    """Deletes run results a fixed time after the run finished.

    Each scheduled deletion fires once. If the run is gone by then, because a
    client consumed an error result, the deletion does nothing.
    """

    store: ResultsStore
    retention: float
    _handles: dict[str, asyncio.TimerHandle] = field(
        default_factory=dict, init=False, repr=False
    )

    @property
    def pending(self) -> int:
        """Number of deletions not yet fired."""
        return len(self._handles)

    def schedule(self, run_id: str, delay: float | None = None) -> asyncio.TimerHandle:
        """Delete the run after ``delay`` seconds (default: the retention).

        Must be called from the event loop thread. Scheduling a run twice
        replaces the earlier deletion.
        """
        if (previous := self._handles.pop(run_id, None)) is not None:
            previous.cancel()

        loop = asyncio.get_running_loop()
        handle = loop.call_later(
            self.retention if delay is None else delay, self._reap, run_id
        )
        self._handles[run_id] = handle
        return handle

    def cancel_all(self) -> None:
        """Drop every pending deletion."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def _reap(self, run_id: str) -> None:
        self._handles.pop(run_id, None)
        if self.store.delete(run_id):
            log.info("Deleted suite results for runId %s", run_id)
        else:
            log.debug("Suite results for runId %s were already deleted", run_id)

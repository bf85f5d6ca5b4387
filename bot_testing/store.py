"""Concurrency-safe store of run states and results."""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum

from bot_testing.models.result import TERMINAL_VERDICTS, RunRecord

log = logging.getLogger(__name__)


class RunStateError(RuntimeError):
    """Raised when the store is used in a way the run lifecycle forbids."""


class RunState(Enum):
    """What a poller can learn about a run ID."""

    UNKNOWN = "unknown"
    PENDING = "pending"
    FINISHED = "finished"


@dataclass(frozen=True, kw_only=True)
class RunSnapshot:
    """State of a run at the moment it was looked up."""

    state: RunState
    record: RunRecord | None = None


@dataclass(frozen=True, kw_only=True)
class ResultsStore:
    """Maps run IDs to their state.

    A run ID present with no record is pending; present with a record is
    finished; absent is unknown, whether it was never issued or already
    deleted. Every operation takes the same lock, so the store can be shared
    between the event loop and worker threads.
    """

    _runs: dict[str, RunRecord | None] = field(
        default_factory=dict, init=False, repr=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    def mark_active(self, run_id: str) -> bool:
        """Register a run ID as pending.

        Returns:
            False if the ID is already active, in which case nothing changes

        """
        with self._lock:
            if run_id in self._runs:
                return False
            self._runs[run_id] = None
            return True

    def is_active(self, run_id: str) -> bool:
        """Check whether a run ID was marked active and not yet deleted."""
        with self._lock:
            return run_id in self._runs

    def write_result(self, record: RunRecord) -> None:
        """Store the terminal record of a run.

        Raises:
            RunStateError: If the run is not active, already has a record, or
                the record carries a non-terminal verdict

        """
        if record.verdict not in TERMINAL_VERDICTS:
            raise RunStateError(
                f"Cannot store non-terminal verdict '{record.verdict}' "
                f"for run {record.run_id}"
            )
        with self._lock:
            if record.run_id not in self._runs:
                raise RunStateError(f"Run {record.run_id} is not active")
            if self._runs[record.run_id] is not None:
                raise RunStateError(f"Run {record.run_id} already has a result")
            self._runs[record.run_id] = record

    def read_result(self, run_id: str) -> RunRecord | None:
        """Return the record of a finished run.

        None does not distinguish pending from unknown; use ``lookup`` or
        ``is_active`` for that.
        """
        with self._lock:
            return self._runs.get(run_id)

    def lookup(self, run_id: str) -> RunSnapshot:
        """Read the state and record of a run in one step."""
        with self._lock:
            if run_id not in self._runs:
                return RunSnapshot(state=RunState.UNKNOWN)
            record = self._runs[run_id]

        if record is None:
            return RunSnapshot(state=RunState.PENDING)
        return RunSnapshot(state=RunState.FINISHED, record=record)

    def delete(self, run_id: str) -> bool:
        """Forget a run. Deleting an unknown run is a no-op.

        Returns:
            True if the run was active

        """
        with self._lock:
            removed = run_id in self._runs
            self._runs.pop(run_id, None)

        if removed:
            log.debug("Removed run %s from results store", run_id)
        return removed

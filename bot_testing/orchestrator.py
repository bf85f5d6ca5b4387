"""Suite orchestrator driving a run from dispatch to its terminal record."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from bot_testing.executors.base import ExecutorFault, TestExecutor
from bot_testing.models.definition import SuiteDefinition, TestDefinition
from bot_testing.models.result import RunRecord, TestOutcome, aggregate_verdict
from bot_testing.reaper import RetentionReaper
from bot_testing.store import ResultsStore
from bot_testing.transcripts import TranscriptLoader

log = logging.getLogger(__name__)

SUITE_ERROR_MESSAGE = "Error while running test suite"


@dataclass(frozen=True, kw_only=True)
class SuiteOrchestrator:
    """Runs suites in the background and records their verdicts.

    Each run ends with exactly one record written to the store, after which
    the run is handed to the reaper.
    """

    executor: TestExecutor
    store: ResultsStore
    reaper: RetentionReaper
    loader: TranscriptLoader
    _tasks: set[asyncio.Task[RunRecord]] = field(
        default_factory=set, init=False, repr=False
    )

    @property
    def running(self) -> int:
        """Number of suites still executing."""
        return len(self._tasks)

    def launch(self, run_id: str, suite: SuiteDefinition) -> asyncio.Task[RunRecord]:
        """Start a suite run without waiting for it."""
        task = asyncio.create_task(
            self.run_suite(run_id, suite), name=f"suite-{run_id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def run_suite(self, run_id: str, suite: SuiteDefinition) -> RunRecord:
        """Run every test of the suite and record the verdict.

        Args:
            run_id: Active run ID allocated for this suite
            suite: Suite to execute

        Returns:
            The record written to the store

        """
        log.info(
            "Started suite %r with runId %s (%d test(s))",
            suite.name,
            run_id,
            len(suite.tests),
        )

        try:
            outcomes = await self._run_tests(suite.tests)
            record = RunRecord(
                run_id=run_id,
                verdict=aggregate_verdict(outcomes),
                results=tuple(outcomes),
            )
        except Exception as e:
            log.error(
                "Error occurred during suite run with runId %s: %s",
                run_id,
                e,
                exc_info=e,
            )
            record = RunRecord(
                run_id=run_id,
                verdict="error",
                error_message=f"{SUITE_ERROR_MESSAGE}: {e}",
            )

        self.store.write_result(record)
        self.reaper.schedule(run_id)
        log.info("Finished suite run with runId %s: verdict=%s", run_id, record.verdict)
        return record

    async def close(self) -> None:
        """Cancel suites still running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _run_tests(
        self, tests: Sequence[TestDefinition]
    ) -> Sequence[TestOutcome]:
        resolved = await self.loader.resolve_all(tests)

        log.info("Dispatching %d test(s)...", len(resolved))
        results = await asyncio.gather(
            *(self.executor.run(test) for test in resolved), return_exceptions=True
        )

        return self._process_results(resolved, results)

    def _process_results(
        self,
        tests: Sequence[TestDefinition],
        results: Sequence[TestOutcome | BaseException],
    ) -> Sequence[TestOutcome]:
        """Pair results with their tests, turning test errors into outcomes."""
        outcomes: list[TestOutcome] = []

        for test, result in zip(tests, results, strict=True):
            if isinstance(result, TestOutcome):
                log.info(
                    "Test completed: test=%r status=%s duration=%.1fs",
                    test.name,
                    result.status,
                    result.duration,
                )
                outcomes.append(result)
            elif isinstance(result, ExecutorFault):
                raise result
            elif isinstance(result, Exception):
                log.error(
                    "Test %r failed to execute: %s",
                    test.name,
                    result,
                    exc_info=result,
                )
                outcomes.append(
                    TestOutcome(
                        test_name=test.name, status="error", message=str(result)
                    )
                )
            else:
                raise result

        return outcomes

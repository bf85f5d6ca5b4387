"""Abstract base class for test executors."""

import asyncio
import dataclasses
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from bot_testing.models.definition import TestDefinition
from bot_testing.models.result import TestOutcome

log = logging.getLogger(__name__)


class ExecutorFault(Exception):
    """Raised when an executor cannot run tests at all.

    Unlike other exceptions raised while executing a test, a fault is not
    recorded against the test: it aborts the whole suite.
    """


@dataclass(frozen=True, kw_only=True)
class TestExecutor(ABC):
    """Runs a single test against a bot."""

    __test__ = False

    @abstractmethod
    async def execute(self, test: TestDefinition) -> TestOutcome:
        """Run the test and report whether the bot behaved as recorded.

        Args:
            test: Test definition with an inline transcript

        Returns:
            Outcome with status "pass" or "fail"

        Raises:
            ExecutorFault: If the executor is unusable for any test

        """

    async def run(self, test: TestDefinition) -> TestOutcome:
        """Execute a test within its timeout and time it.

        A timeout is reported as a failing outcome, any other exception as an
        erroring one. Only ``ExecutorFault`` propagates.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()

        try:
            async with asyncio.timeout(test.timeout):
                outcome = await self.execute(test)
        except ExecutorFault:
            raise
        except TimeoutError:
            log.info("Test %r timed out after %.1fs", test.name, test.timeout)
            outcome = TestOutcome(
                test_name=test.name,
                status="fail",
                message=f"Test did not complete within {test.timeout} seconds",
            )
        except Exception as e:
            log.error("Test %r raised an error: %s", test.name, e, exc_info=e)
            outcome = TestOutcome(test_name=test.name, status="error", message=str(e))

        return dataclasses.replace(outcome, duration=loop.time() - started)

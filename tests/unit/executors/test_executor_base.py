"""Tests for TestExecutor base class."""

import asyncio
from dataclasses import dataclass

import pytest

from bot_testing.executors.base import ExecutorFault, TestExecutor
from bot_testing.models.definition import TestDefinition
from bot_testing.models.result import TestOutcome
from bot_testing.testing.executors import FakeExecutor
from bot_testing.testing.factories import make_test


@dataclass(frozen=True, kw_only=True)
class SlowExecutor(TestExecutor):
    """Executor that takes a fixed time to pass."""

    delay: float

    async def execute(self, test: TestDefinition) -> TestOutcome:
        """Sleep, then pass."""
        await asyncio.sleep(self.delay)
        return TestOutcome(test_name=test.name, status="pass")


class TestRun:
    """Tests for the run method."""

    async def test_returns_outcome_with_duration(self) -> None:
        """Returns the executor's outcome, timed."""
        executor = SlowExecutor(delay=0.02)

        outcome = await executor.run(make_test("timed"))

        assert outcome.status == "pass"
        assert outcome.test_name == "timed"
        assert outcome.duration >= 0.02

    async def test_timeout_is_a_failure(self) -> None:
        """Exceeding the test timeout yields a failing outcome."""
        executor = SlowExecutor(delay=1.0)

        outcome = await executor.run(make_test("slow", timeout=0.05))

        assert outcome.status == "fail"
        assert outcome.message == "Test did not complete within 0.05 seconds"

    async def test_exception_is_an_error_outcome(self) -> None:
        """Ordinary exceptions become erroring outcomes."""
        executor = FakeExecutor(outcomes={"broken": RuntimeError("bot crashed")})

        outcome = await executor.run(make_test("broken"))

        assert outcome.status == "error"
        assert outcome.message == "bot crashed"

    async def test_fault_propagates(self) -> None:
        """ExecutorFault is not folded into the outcome."""
        executor = FakeExecutor(outcomes={"doomed": ExecutorFault("bad credentials")})

        with pytest.raises(ExecutorFault, match="bad credentials"):
            await executor.run(make_test("doomed"))

    async def test_scripted_failure(self) -> None:
        """Failing outcomes pass through unchanged apart from duration."""
        executor = FakeExecutor(outcomes={"wrong": "fail"})

        outcome = await executor.run(make_test("wrong"))

        assert outcome.status == "fail"
        assert outcome.message == "scripted fail"
        assert executor.executed == ["wrong"]

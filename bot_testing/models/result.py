"""Models for test outcomes and run records."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

TestStatus: TypeAlias = Literal["pass", "fail", "error"]
Verdict: TypeAlias = Literal["pending", "success", "failure", "error"]

TERMINAL_VERDICTS: frozenset[str] = frozenset({"success", "failure", "error"})


@dataclass(frozen=True, kw_only=True)
class TestOutcome:
    """Result of a single test execution."""

    __test__ = False

    test_name: str
    status: TestStatus
    duration: float = 0.0
    message: str | None = None
    expected: Any = None
    actual: Any = None

    @property
    def passed(self) -> bool:
        """Whether the test passed."""
        return self.status == "pass"

    def to_payload(self) -> dict[str, Any]:
        """Format for JSON responses."""
        return {
            "testName": self.test_name,
            "status": self.status,
            "duration": self.duration,
            "message": self.message,
            "expected": self.expected,
            "actual": self.actual,
        }


@dataclass(frozen=True, kw_only=True)
class RunRecord:
    """Terminal state of a suite run.

    ``results`` follows the order of tests in the suite. Under verdict
    ``error`` it is usually empty and ``error_message`` explains why.
    """

    run_id: str
    verdict: Verdict
    results: Sequence[TestOutcome] = ()
    error_message: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Format for JSON responses."""
        return {
            "results": [outcome.to_payload() for outcome in self.results],
            "errorMessage": self.error_message,
            "verdict": self.verdict,
        }


def aggregate_verdict(outcomes: Iterable[TestOutcome]) -> Verdict:
    """Fold test outcomes into a suite verdict.

    The result depends only on the multiset of outcomes, never on the order
    in which tests completed.
    """
    return "success" if all(outcome.passed for outcome in outcomes) else "failure"


def error_payload(message: str) -> dict[str, Any]:
    """Body returned when there is no record to report."""
    return {"results": [], "errorMessage": message, "verdict": "error"}

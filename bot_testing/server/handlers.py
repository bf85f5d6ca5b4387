"""Request handlers for running tests and polling suite results."""

import json
import logging
from collections.abc import Collection
from typing import Any

from aiohttp import web

from bot_testing.executors.base import ExecutorFault
from bot_testing.models.definition import parse_suite, parse_test
from bot_testing.models.result import TestOutcome, error_payload
from bot_testing.server.keys import (
    ALLOCATOR,
    EXECUTOR,
    LOADER,
    ORCHESTRATOR,
    STORE,
)
from bot_testing.store import RunState
from bot_testing.transcripts import TranscriptError

log = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 10

TEST_STATUS_TO_HTTP = {
    "pass": 200,
    "fail": 417,
    "error": 500,
}

TEST_STATUS_TO_VERDICT = {
    "pass": "success",
    "fail": "failure",
    "error": "error",
}

routes = web.RouteTableDef()


def results_location(request: web.Request, run_id: str) -> str:
    """Absolute URL where the results of a run can be polled."""
    return str(request.url.with_path(f"/getResults/{run_id}"))


def single_test_payload(outcome: TestOutcome) -> dict[str, Any]:
    """Format a single test outcome the way suite results are formatted."""
    return {
        "results": [outcome.to_payload()],
        "errorMessage": None if outcome.passed else outcome.message,
        "verdict": TEST_STATUS_TO_VERDICT[outcome.status],
    }


async def read_definition(
    request: web.Request, *, json_fields: Collection[str] = ()
) -> Any:
    """Read a definition from the JSON body (POST) or the query string.

    Query values named in ``json_fields`` hold JSON documents and are decoded.

    Raises:
        ValueError: If the body or a JSON query value cannot be decoded
        LookupError: If the body declares an unknown charset

    """
    if request.method == "POST":
        try:
            return await request.json()
        except web.HTTPUnsupportedMediaType as e:
            # aiohttp reports an unknown body charset this way.
            raise LookupError(f"Unknown charset {request.charset!r}") from e

    payload: dict[str, Any] = dict(request.query)
    for name in json_fields:
        if name in payload:
            payload[name] = json.loads(payload[name])
    return payload


@routes.get("/test")
@routes.post("/test")
async def handle_run_test(request: web.Request) -> web.Response:
    """Run one test and answer with its outcome."""
    log.info("Processing a test %s request", request.method)

    try:
        payload = await read_definition(request)
        test = await request.app[LOADER].resolve(parse_test(payload))
    except (ValueError, LookupError, TranscriptError) as e:
        log.info("Rejected test request: %s", e)
        return web.json_response(error_payload(str(e)), status=400)

    try:
        outcome = await request.app[EXECUTOR].run(test)
    except ExecutorFault as e:
        log.error("Executor fault while running test %r: %s", test.name, e, exc_info=e)
        outcome = TestOutcome(test_name=test.name, status="error", message=str(e))

    return web.json_response(
        single_test_payload(outcome), status=TEST_STATUS_TO_HTTP[outcome.status]
    )


@routes.get("/suite")
@routes.post("/suite")
async def handle_run_suite(request: web.Request) -> web.Response:
    """Start a suite run and point the caller at its results.

    GET takes the suite ``name`` and a JSON-encoded ``tests`` list from the
    query string.
    """
    log.info("Processing a suite %s request", request.method)
    store = request.app[STORE]
    run_id = request.app[ALLOCATOR].allocate()

    try:
        payload = await read_definition(request, json_fields=("tests",))
        suite = parse_suite(payload)
    except (ValueError, LookupError) as e:
        store.delete(run_id)
        log.info("Could not get tests data from request for runId %s: %s", run_id, e)
        return web.json_response(
            error_payload("Could not get tests data from request"), status=400
        )
    except BaseException:
        store.delete(run_id)
        raise

    request.app[ORCHESTRATOR].launch(run_id, suite)
    return web.json_response(
        "Tests are running.",
        status=202,
        headers={"Location": results_location(request, run_id)},
    )


@routes.get("/getResults/{run_id}")
async def handle_get_results(request: web.Request) -> web.Response:
    """Report the state of a suite run."""
    run_id = request.match_info["run_id"]
    store = request.app[STORE]
    snapshot = store.lookup(run_id)

    if snapshot.state is RunState.UNKNOWN:
        return web.json_response(error_payload("RunId does not exist."), status=404)

    if snapshot.state is RunState.PENDING or snapshot.record is None:
        return web.json_response(
            "Tests are still running.",
            status=202,
            headers={
                "Location": results_location(request, run_id),
                "Retry-After": str(RETRY_AFTER_SECONDS),
            },
        )

    record = snapshot.record
    if record.verdict == "error":
        # The caller now knows about the error; nothing is left to poll for.
        store.delete(run_id)
        log.info("Deleted suite results for runId %s after reporting its error", run_id)
        return web.json_response(record.to_payload(), status=500)

    return web.json_response(record.to_payload(), status=200)


@routes.get("/health")
async def handle_health(request: web.Request) -> web.Response:
    """Liveness probe."""
    return web.json_response(
        {"status": "ok", "activeRuns": len(request.app[STORE])}, status=200
    )

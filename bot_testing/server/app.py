"""Application factory wiring the run lifecycle components together."""

import logging

from aiohttp import web

from bot_testing.config import ServiceConfig
from bot_testing.executors.base import TestExecutor
from bot_testing.orchestrator import SuiteOrchestrator
from bot_testing.reaper import RetentionReaper
from bot_testing.run_ids import RunIdAllocator
from bot_testing.server.auth import token_auth_middleware
from bot_testing.server.handlers import routes
from bot_testing.server.keys import (
    ALLOCATOR,
    EXECUTOR,
    LOADER,
    ORCHESTRATOR,
    REAPER,
    STORE,
)
from bot_testing.store import ResultsStore
from bot_testing.transcripts import TranscriptLoader

log = logging.getLogger(__name__)


def build_app(
    config: ServiceConfig,
    *,
    executor: TestExecutor,
    loader: TranscriptLoader,
    store: ResultsStore | None = None,
) -> web.Application:
    """Create the HTTP application.

    The executor and loader are owned by the caller and must stay open for
    the lifetime of the application.
    """
    middlewares = []
    if config.auth_token is not None:
        middlewares.append(token_auth_middleware(config.auth_token.get_secret_value()))

    app = web.Application(middlewares=middlewares)

    store = store if store is not None else ResultsStore()
    reaper = RetentionReaper(store=store, retention=config.retention_seconds)

    app[STORE] = store
    app[REAPER] = reaper
    app[ALLOCATOR] = RunIdAllocator(store=store)
    app[EXECUTOR] = executor
    app[LOADER] = loader
    app[ORCHESTRATOR] = SuiteOrchestrator(
        executor=executor,
        store=store,
        reaper=reaper,
        loader=loader,
    )

    app.add_routes(routes)
    app.on_cleanup.append(_shutdown)
    return app


async def _shutdown(app: web.Application) -> None:
    orchestrator = app[ORCHESTRATOR]
    if orchestrator.running:
        log.info("Cancelling %d running suite(s)", orchestrator.running)
    await orchestrator.close()
    app[REAPER].cancel_all()

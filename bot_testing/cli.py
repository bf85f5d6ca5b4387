"""CLI entry point for the bot functional testing service."""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping, Sequence

import aiohttp
from aiohttp import web
from pydantic import ValidationError

from bot_testing.config import ServiceConfig
from bot_testing.executors.loading import ExecutorNotFoundError, load_executor_manifest
from bot_testing.server.app import build_app
from bot_testing.transcripts import TranscriptLoader

SERVICE_NAME = "BotFunctionalTestingService"

log = logging.getLogger("bot_testing")


def build_parser(environ: Mapping[str, str] = os.environ) -> argparse.ArgumentParser:
    """Create the argument parser, taking defaults from the environment."""
    parser = argparse.ArgumentParser(description="Run functional tests against bots")
    parser.add_argument(
        "--host",
        default=environ.get("HOST", "0.0.0.0"),
        help="Interface to listen on",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=environ.get("PORT", "3000"),
        help="Port to listen on (env: PORT)",
    )
    parser.add_argument(
        "--retention-seconds",
        type=float,
        default=environ.get("RESULTS_RETENTION_SECONDS", "600"),
        help="Seconds suite results stay available (env: RESULTS_RETENTION_SECONDS)",
    )
    parser.add_argument(
        "--auth-token",
        default=environ.get("REQUIRED_AUTH_TOKEN"),
        help="Token callers must present (env: REQUIRED_AUTH_TOKEN)",
    )
    parser.add_argument(
        "--executor",
        default=environ.get("EXECUTOR", "directline"),
        help="Executor key (directline)",
    )
    parser.add_argument(
        "--executor-config",
        default=environ.get("EXECUTOR_CONFIG", "{}"),
        help="JSON configuration for the executor",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServiceConfig:
    """Build the service configuration from parsed arguments."""
    return ServiceConfig(
        host=args.host,
        port=args.port,
        retention_seconds=args.retention_seconds,
        auth_token=args.auth_token or None,
        executor=args.executor,
    )


async def serve(config: ServiceConfig, executor_config_json: str) -> None:
    """Run the HTTP service until cancelled."""
    log.info("Loading executor: %s", config.executor)
    manifest = load_executor_manifest(config.executor)
    executor_config = manifest.config_cls.model_validate_json(executor_config_json)

    async with (
        manifest.executor_factory(executor_config) as executor,
        aiohttp.ClientSession() as session,
    ):
        app = build_app(
            config, executor=executor, loader=TranscriptLoader(session=session)
        )
        runner = web.AppRunner(app)
        await runner.setup()
        try:
            site = web.TCPSite(runner, config.host, config.port)
            await site.start()
            log.info(
                "%s listening at http://%s:%d", SERVICE_NAME, config.host, config.port
            )
            await asyncio.Event().wait()
        finally:
            await runner.cleanup()


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = config_from_args(args)
        asyncio.run(serve(config, args.executor_config))
    except (ValidationError, ExecutorNotFoundError) as e:
        log.error("Invalid configuration: %s", e)
        sys.exit(2)
    except KeyboardInterrupt:
        log.info("%s stopped", SERVICE_NAME)


if __name__ == "__main__":  # pragma: no cover
    main()

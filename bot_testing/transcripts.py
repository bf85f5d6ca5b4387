"""Resolution of transcripts referenced by URL."""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import aiohttp
from pydantic import TypeAdapter, ValidationError

from bot_testing.models.definition import Activity, TestDefinition

log = logging.getLogger(__name__)

_TRANSCRIPT_ADAPTER = TypeAdapter(list[Activity])


class TranscriptError(Exception):
    """Raised when a transcript cannot be fetched or parsed."""


@dataclass(frozen=True, kw_only=True)
class TranscriptLoader:
    """Turns test definitions into definitions with inline transcripts."""

    session: aiohttp.ClientSession = field(repr=False)

    async def resolve(self, test: TestDefinition) -> TestDefinition:
        """Return the test with its transcript loaded.

        Raises:
            TranscriptError: If the transcript URL cannot be fetched or does
                not hold a list of activities

        """
        if test.transcript is not None or test.transcript_url is None:
            return test

        log.info(
            "Fetching transcript for test %r from %s", test.name, test.transcript_url
        )
        try:
            async with self.session.get(test.transcript_url) as response:
                if response.status != 200:
                    raise TranscriptError(
                        f"Failed to fetch transcript for test '{test.name}': "
                        f"{response.status}"
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, ValueError) as e:
            raise TranscriptError(
                f"Failed to fetch transcript for test '{test.name}': {e}"
            ) from e

        try:
            transcript = _TRANSCRIPT_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise TranscriptError(
                f"Transcript for test '{test.name}' is not a list of activities"
            ) from e

        return test.model_copy(update={"transcript": transcript})

    async def resolve_all(
        self, tests: Sequence[TestDefinition]
    ) -> Sequence[TestDefinition]:
        """Resolve all tests concurrently.

        The first transcript error cancels the fetches still in flight and is
        raised on its own.
        """
        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(self.resolve(test)) for test in tests]
        except ExceptionGroup as e:
            raise e.exceptions[0] from None

        return [task.result() for task in tasks]

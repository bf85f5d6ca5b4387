"""Direct Line executor implementation."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from bot_testing.executors.base import ExecutorFault, TestExecutor
from bot_testing.executors.directline.config import DirectLineConfig
from bot_testing.executors.directline.models import (
    ActivitySet,
    Conversation,
    ResourceResponse,
)
from bot_testing.models.definition import Activity, TestDefinition
from bot_testing.models.result import TestOutcome

log = logging.getLogger(__name__)

CONVERSATIONS_PATH = "/v3/directline/conversations"


class DirectLineError(RuntimeError):
    """Raised when the Direct Line API returns an unexpected response."""


class DirectLineAuthError(DirectLineError, ExecutorFault):
    """Raised when Direct Line rejects the configured secret."""


@dataclass(kw_only=True)
class ConversationState:
    """Progress through one Direct Line conversation."""

    conversation_id: str
    watermark: str | None = None
    inbox: list[Activity] = field(default_factory=list)


def compare_activities(expected: Activity, actual: Activity) -> str | None:
    """Describe how a bot reply differs from the recorded one.

    Returns:
        None when the reply matches, otherwise a failure message

    """
    if expected.type != actual.type:
        return f"Expected activity of type '{expected.type}' but got '{actual.type}'"

    if expected.text is not None and _normalize(expected.text) != _normalize(
        actual.text
    ):
        return f"Expected bot reply {expected.text!r} but got {actual.text!r}"

    if expected.attachments is not None and list(expected.attachments) != list(
        actual.attachments or ()
    ):
        return "Bot reply attachments do not match the transcript"

    return None


def _normalize(text: str | None) -> str:
    return " ".join((text or "").split())


@dataclass(frozen=True, kw_only=True)
class DirectLineExecutor(TestExecutor):
    """Replays transcripts against a bot through the Direct Line 3.0 API."""

    config: DirectLineConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: DirectLineConfig
    ) -> AsyncGenerator["DirectLineExecutor", None]:
        """Create executor with managed session lifecycle."""
        headers = {"Authorization": f"Bearer {config.secret.get_secret_value()}"}
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
        ) as session:
            yield cls(config=config, session=session)

    async def execute(self, test: TestDefinition) -> TestOutcome:
        """Replay the user side of the transcript and check every bot reply."""
        conversation = await self.start_conversation()
        state = ConversationState(conversation_id=conversation.conversation_id)
        log.info(
            "Started conversation %s for test %r",
            conversation.conversation_id,
            test.name,
        )

        for turn in test.turns():
            if turn.user is not None:
                await self.send_activity(state.conversation_id, turn.user)

            replies = await self.collect_replies(state, len(turn.replies))
            for expected, actual in zip(turn.replies, replies, strict=True):
                if (mismatch := compare_activities(expected, actual)) is not None:
                    log.info("Test %r failed: %s", test.name, mismatch)
                    return TestOutcome(
                        test_name=test.name,
                        status="fail",
                        message=mismatch,
                        expected=expected.to_payload(),
                        actual=actual.to_payload(),
                    )

        return TestOutcome(test_name=test.name, status="pass")

    async def start_conversation(self) -> Conversation:
        """Open a new conversation with the bot."""
        async with self.session.post(CONVERSATIONS_PATH) as response:
            await self._check_response(response, "start conversation")
            data = await response.json()
        return Conversation.model_validate(data)

    async def send_activity(self, conversation_id: str, activity: Activity) -> str:
        """Post a user activity and return its ID."""
        payload: dict[str, Any] = {
            **activity.to_payload(),
            "from": {"id": self.config.user_id, "role": "user"},
        }
        url = f"{CONVERSATIONS_PATH}/{conversation_id}/activities"

        async with self.session.post(url, json=payload) as response:
            await self._check_response(response, "send activity")
            data = await response.json()
        return ResourceResponse.model_validate(data).id

    async def get_activities(
        self, conversation_id: str, watermark: str | None = None
    ) -> ActivitySet:
        """Fetch activities newer than the watermark."""
        url = f"{CONVERSATIONS_PATH}/{conversation_id}/activities"
        params = {"watermark": watermark} if watermark else None

        async with self.session.get(url, params=params) as response:
            await self._check_response(response, "get activities")
            data = await response.json()
        return ActivitySet.model_validate(data)

    async def collect_replies(
        self, state: ConversationState, count: int
    ) -> Sequence[Activity]:
        """Poll until ``count`` bot messages are available.

        Replies beyond ``count`` stay in the inbox for the next turn. The
        caller's timeout bounds how long this waits.
        """
        while len(state.inbox) < count:
            activity_set = await self.get_activities(
                state.conversation_id, state.watermark
            )
            state.watermark = activity_set.watermark or state.watermark
            state.inbox.extend(
                activity
                for activity in activity_set.activities
                if activity.is_message and activity.from_.id != self.config.user_id
            )
            if len(state.inbox) < count:
                await asyncio.sleep(self.config.poll_interval)

        replies = state.inbox[:count]
        del state.inbox[:count]
        return replies

    async def _check_response(
        self, response: aiohttp.ClientResponse, action: str
    ) -> None:
        if response.status in (401, 403):
            raise DirectLineAuthError(
                f"Direct Line rejected the secret while trying to {action}: "
                f"{response.status}"
            )
        if response.status >= 300:
            text = await response.text()
            raise DirectLineError(f"Failed to {action}: {response.status} {text}")

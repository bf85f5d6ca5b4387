"""Integration tests for the Direct Line executor."""

import re
from collections.abc import AsyncGenerator

import pytest
from aioresponses import aioresponses as aioresponses_cls
from pydantic import SecretStr
from yarl import URL

from bot_testing.executors.base import ExecutorFault
from bot_testing.executors.directline import DirectLineConfig, DirectLineExecutor
from bot_testing.executors.directline.executor import DirectLineAuthError
from bot_testing.models.definition import TestDefinition
from bot_testing.testing.directline.payloads import (
    activity_set,
    bot_message,
    conversation,
    resource_response,
    typing_indicator,
    user_echo,
)
from bot_testing.testing.factories import bot_says, make_test, user_says

API_BASE_URL = "http://directline.test"
CONVERSATIONS_URL = f"{API_BASE_URL}/v3/directline/conversations"
ACTIVITIES_URL = f"{CONVERSATIONS_URL}/conv-1/activities"
ACTIVITIES_PATTERN = re.compile(
    r"^http://directline\.test/v3/directline/conversations/conv-1/activities(\?.*)?$"
)


@pytest.fixture
def config() -> DirectLineConfig:
    """Create test configuration."""
    return DirectLineConfig(
        secret=SecretStr("dl-secret"),
        api_base_url=API_BASE_URL,
        poll_interval=0.01,
    )


@pytest.fixture
async def executor(
    config: DirectLineConfig, aioresponses: aioresponses_cls
) -> AsyncGenerator[DirectLineExecutor, None]:
    """Create executor with managed session."""
    async with DirectLineExecutor.from_config(config) as impl:
        yield impl


def mock_conversation(aioresponses: aioresponses_cls, sends: int = 1) -> None:
    """Mock starting the conversation and posting ``sends`` user activities."""
    aioresponses.post(CONVERSATIONS_URL, status=201, payload=conversation())
    for i in range(sends):
        aioresponses.post(
            ACTIVITIES_URL, status=200, payload=resource_response(f"conv-1|{i:07d}")
        )


class TestExecute:
    """Tests for execute."""

    async def test_passes_when_replies_match(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """Sends the user message and passes when the bot answers as recorded."""
        mock_conversation(aioresponses)
        aioresponses.get(
            ACTIVITIES_PATTERN,
            payload=activity_set([user_echo("hi"), bot_message("hello")]),
        )

        outcome = await executor.execute(make_test("greeting", ("hi", "hello")))

        assert outcome.status == "pass"
        assert outcome.test_name == "greeting"
        call = aioresponses.requests[("POST", URL(ACTIVITIES_URL))][0]
        assert call.kwargs["json"] == {
            "type": "message",
            "from": {"id": "bot-functional-testing", "role": "user"},
            "text": "hi",
        }

    async def test_polls_until_reply_arrives(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """Keeps polling with the latest watermark until the reply shows up."""
        mock_conversation(aioresponses)
        aioresponses.get(
            ACTIVITIES_PATTERN,
            payload=activity_set([user_echo("hi"), typing_indicator()], watermark="1"),
        )
        aioresponses.get(
            ACTIVITIES_PATTERN,
            payload=activity_set([bot_message("hello")], watermark="2"),
        )

        outcome = await executor.execute(make_test("greeting", ("hi", "hello")))

        assert outcome.status == "pass"
        assert ("GET", URL(f"{ACTIVITIES_URL}?watermark=1")) in aioresponses.requests

    async def test_fails_on_mismatched_reply(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """Reports the expected and actual activity when the reply differs."""
        mock_conversation(aioresponses)
        aioresponses.get(
            ACTIVITIES_PATTERN, payload=activity_set([bot_message("good evening")])
        )

        outcome = await executor.execute(make_test("greeting", ("hi", "hello")))

        assert outcome.status == "fail"
        assert outcome.message == "Expected bot reply 'hello' but got 'good evening'"
        assert outcome.expected == {
            "type": "message",
            "from": {"role": "bot"},
            "text": "hello",
        }
        assert outcome.actual["text"] == "good evening"

    async def test_waits_for_greeting_before_first_message(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """Collects unprompted replies before sending anything."""
        mock_conversation(aioresponses)
        aioresponses.get(
            ACTIVITIES_PATTERN, payload=activity_set([bot_message("welcome")])
        )
        aioresponses.get(
            ACTIVITIES_PATTERN,
            payload=activity_set([user_echo("hi"), bot_message("hello")], "2"),
        )
        test = TestDefinition(
            name="greeting",
            transcript=[bot_says("welcome"), user_says("hi"), bot_says("hello")],
        )

        outcome = await executor.execute(test)

        assert outcome.status == "pass"
        assert len(aioresponses.requests[("POST", URL(ACTIVITIES_URL))]) == 1

    async def test_extra_replies_carry_to_next_turn(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """Replies received early are matched against the following turn."""
        mock_conversation(aioresponses, sends=2)
        aioresponses.get(
            ACTIVITIES_PATTERN,
            payload=activity_set([bot_message("hello"), bot_message("goodbye")]),
        )

        outcome = await executor.execute(
            make_test("two turns", ("hi", "hello"), ("bye", "goodbye"))
        )

        assert outcome.status == "pass"
        get_calls = [key for key in aioresponses.requests if key[0] == "GET"]
        assert len(get_calls) == 1

    async def test_fails_on_mismatched_attachments(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """Compares attachments when the transcript records them."""
        card = {"contentType": "application/vnd.microsoft.card.hero", "content": {}}
        mock_conversation(aioresponses)
        aioresponses.get(
            ACTIVITIES_PATTERN,
            payload=activity_set([bot_message("menu", attachments=[])]),
        )
        test = TestDefinition.model_validate(
            {
                "name": "card",
                "transcript": [
                    {"type": "message", "from": {"role": "user"}, "text": "menu"},
                    {
                        "type": "message",
                        "from": {"role": "bot"},
                        "text": "menu",
                        "attachments": [card],
                    },
                ],
            }
        )

        outcome = await executor.execute(test)

        assert outcome.status == "fail"
        assert outcome.message == "Bot reply attachments do not match the transcript"

    async def test_rejected_secret_is_a_fault(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """A 403 when starting the conversation aborts with an executor fault."""
        aioresponses.post(CONVERSATIONS_URL, status=403, body="Forbidden")

        with pytest.raises(DirectLineAuthError, match="rejected the secret") as exc:
            await executor.run(make_test("greeting"))

        assert isinstance(exc.value, ExecutorFault)

    async def test_server_error_is_an_error_outcome(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """Unexpected API errors are recorded against the test."""
        aioresponses.post(CONVERSATIONS_URL, status=201, payload=conversation())
        aioresponses.post(ACTIVITIES_URL, status=502, body="Bad Gateway")

        outcome = await executor.run(make_test("greeting"))

        assert outcome.status == "error"
        assert outcome.message == "Failed to send activity: 502 Bad Gateway"

    async def test_silent_bot_times_out(
        self, executor: DirectLineExecutor, aioresponses: aioresponses_cls
    ) -> None:
        """A bot that never answers fails once the test timeout elapses."""
        mock_conversation(aioresponses)
        aioresponses.get(ACTIVITIES_PATTERN, payload=activity_set([]), repeat=True)

        outcome = await executor.run(make_test("greeting", timeout=0.1))

        assert outcome.status == "fail"
        assert "did not complete within 0.1 seconds" in (outcome.message or "")


async def test_from_config_sends_secret(
    config: DirectLineConfig, aioresponses: aioresponses_cls
) -> None:
    """Authenticates every request with the configured secret."""
    aioresponses.post(CONVERSATIONS_URL, status=201, payload=conversation("conv-9"))

    async with DirectLineExecutor.from_config(config) as executor:
        result = await executor.start_conversation()

    assert result.conversation_id == "conv-9"
    assert executor.session.headers["Authorization"] == "Bearer dl-secret"

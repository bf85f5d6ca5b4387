"""Models for test and suite definitions submitted by callers."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import Field, ValidationError, model_validator

from bot_testing.models.base import Model


class DefinitionError(ValueError):
    """Raised when a submitted test or suite definition is malformed."""


class ChannelAccount(Model):
    """Sender of an activity."""

    id: str | None = None
    name: str | None = None
    role: Literal["user", "bot"] | None = None


class Activity(Model):
    """A single Bot Framework activity, as recorded in a transcript."""

    type: str = "message"
    from_: ChannelAccount = Field(default_factory=ChannelAccount, alias="from")
    text: str | None = None
    attachments: Sequence[Mapping[str, Any]] | None = None

    @property
    def is_message(self) -> bool:
        """Whether this activity carries conversation content."""
        return self.type == "message"

    def to_payload(self) -> dict[str, Any]:
        """Serialize for diagnostics and outbound requests."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


@dataclass(frozen=True, kw_only=True)
class Turn:
    """One user message and the bot replies expected after it.

    A turn without a user message holds replies the bot sends unprompted when
    the conversation starts (greetings).
    """

    user: Activity | None
    replies: Sequence[Activity]


class TestDefinition(Model):
    """A single conversation test."""

    __test__ = False

    name: str = Field(..., min_length=1, description="Human-readable test name")
    transcript: Sequence[Activity] | None = Field(
        default=None, description="Recorded conversation to replay"
    )
    transcript_url: str | None = Field(
        default=None, description="Location of a transcript to fetch"
    )
    timeout: float = Field(
        default=20.0, gt=0, description="Seconds allowed for the whole conversation"
    )

    @model_validator(mode="after")
    def _require_single_source(self) -> "TestDefinition":
        if (self.transcript is None) == (self.transcript_url is None):
            raise ValueError(
                "exactly one of 'transcript' or 'transcriptUrl' is required"
            )
        return self

    def turns(self) -> Sequence[Turn]:
        """Split the transcript into turns.

        Only message activities take part; typing indicators and conversation
        updates recorded in transcripts are skipped.
        """
        turns: list[Turn] = []
        user: Activity | None = None
        replies: list[Activity] = []

        for activity in self.transcript or ():
            if not activity.is_message:
                continue
            if activity.from_.role == "user":
                if user is not None or replies:
                    turns.append(Turn(user=user, replies=replies))
                user, replies = activity, []
            else:
                replies.append(activity)

        if user is not None or replies:
            turns.append(Turn(user=user, replies=replies))
        return turns


class SuiteDefinition(Model):
    """A named collection of tests executed together as one run."""

    name: str = Field(default="suite", description="Suite name")
    tests: Sequence[TestDefinition] = Field(
        ..., min_length=1, description="Tests in execution order"
    )


def parse_test(payload: Any) -> TestDefinition:
    """Validate a single test payload."""
    try:
        return TestDefinition.model_validate(payload)
    except ValidationError as e:
        raise DefinitionError(f"Invalid test definition: {e}") from e


def parse_suite(payload: Any) -> SuiteDefinition:
    """Validate a suite payload."""
    try:
        return SuiteDefinition.model_validate(payload)
    except ValidationError as e:
        raise DefinitionError(f"Invalid suite definition: {e}") from e

"""Pydantic models for Direct Line 3.0 API responses."""

from collections.abc import Sequence

from bot_testing.models.base import Model
from bot_testing.models.definition import Activity


class Conversation(Model):
    """Response from the start conversation API."""

    conversation_id: str
    token: str | None = None
    expires_in: int | None = None


class ResourceResponse(Model):
    """Response from the post activity API."""

    id: str


class ActivitySet(Model):
    """Response from the get activities API."""

    activities: Sequence[Activity]
    watermark: str | None = None

"""Wire schemas for the chat endpoint and the chat client."""

import datetime
import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant", "system"]


def new_message_id() -> str:
    """Return a collision-free message identifier."""  # noqa: DOC201
    return uuid.uuid4().hex


def utc_now() -> datetime.datetime:
    """Return the current UTC time."""  # noqa: DOC201
    return datetime.datetime.now(tz=datetime.UTC)


class Message(BaseModel):
    """One entry of a chat session log."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_message_id)
    role: Role
    content: str
    created_at: datetime.datetime = Field(default_factory=utc_now, alias="createdAt")

    def to_wire(self) -> dict:
        """Serialize with camelCase keys as sent over HTTP."""  # noqa: DOC201
        return self.model_dump(mode="json", by_alias=True)


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    messages: list[Message] = Field(min_length=1)
    user: str | None = None

    @property
    def latest_content(self) -> str:
        return self.messages[-1].content


class ErrorResponse(BaseModel):
    """Non-stream error body."""

    error: str
    details: str | None = None

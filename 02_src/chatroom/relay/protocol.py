"""Realtime frame and payload models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import PayloadError
from ..models import Participant


class InboundFrame(BaseModel):
    """Client -> relay frame."""

    event: str = Field(min_length=1)
    data: Any = None


class JoinPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    userId: str = Field(min_length=1)
    userName: str = Field(min_length=1)
    userAvatar: str | None = None

    def to_participant(self) -> Participant:
        return Participant(id=self.userId, name=self.userName, avatar=self.userAvatar)


class MessagePayload(BaseModel):
    """Only the identifiers are checked; the relay forwards the original object."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    userId: str = Field(min_length=1)


class TypingPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    userId: str = Field(min_length=1)
    userName: str | None = None


def parse_frame(raw: Any) -> InboundFrame:
    """Validate an inbound frame envelope."""
    try:
        return InboundFrame.model_validate(raw)
    except ValidationError as e:
        raise PayloadError(f"Malformed frame: {e.error_count()} error(s)") from e


def validate_payload(model: type[BaseModel], data: Any) -> BaseModel:
    """Validate a payload, raising PayloadError on missing identifiers."""
    if not isinstance(data, dict):
        raise PayloadError("Payload must be an object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        missing = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise PayloadError(f"Missing or invalid fields: {', '.join(missing)}") from e

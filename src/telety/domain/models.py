"""Core domain models for the telety system.

These models represent the data flowing between the prompt, the execution
bridge and the remote channel: recorded history entries, logical
submissions, typed channel messages and the payloads exchanged with the
telety.io HTTP API.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from telety.constants import REG


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ExecutionOutcome(str, enum.Enum):
    """Result of a spawned command, used only for prompt decoration."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ConnectionState(str, enum.Enum):
    """Lifecycle of the push-channel connection."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class MessageType(str, enum.Enum):
    """Message types carried on the push channel."""

    # channel scoping (outbound)
    CHFOCUS = "channel:focus"
    CHBLUR = "channel:blur"
    # content events (inbound)
    MSG = "message"
    MSGDEL = "message:delete"
    # unparsable frame, delivered as text
    RAW = "raw"


class WebhookType(str, enum.Enum):
    MESSAGE = "message"
    COMMENT = "comment"


# ---------------------------------------------------------------------------
# Prompt Models
# ---------------------------------------------------------------------------


class HistoryEntry(BaseModel):
    """One logical submission recorded in the history store.

    ``input`` is fixed at creation. ``id`` arrives later, once the channel
    webhook acknowledges the input, and may be assigned only once.
    """

    model_config = ConfigDict(validate_assignment=True)

    input: str = Field(description="Normalized single-line form of the submission")
    id: str | None = Field(default=None, description="Remote message id, once acknowledged")

    def acknowledge(self, message_id: str) -> None:
        """Attach the remote message id to this entry."""
        if self.id is not None and self.id != message_id:
            raise ValueError(f"History entry already acknowledged as {self.id}")
        self.id = message_id


@dataclass(frozen=True)
class Submission:
    """The physical lines of one logical prompt submission.

    Both derived forms come from the same chunk sequence: ``raw`` keeps the
    continuation markers and line breaks for the transcript, ``command``
    strips them and joins the chunks into a single executable line.
    """

    chunks: tuple[str, ...]

    @classmethod
    def from_chunks(cls, chunks: list[str] | tuple[str, ...]) -> Submission:
        return cls(tuple(chunks))

    @property
    def raw(self) -> str:
        return "\n".join(self.chunks)

    @property
    def command(self) -> str:
        return " ".join(REG.LF.sub("", chunk).rstrip() for chunk in self.chunks)

    def __bool__(self) -> bool:
        return bool(self.chunks)


# ---------------------------------------------------------------------------
# Channel Messages (discriminated union)
# ---------------------------------------------------------------------------


class MessageRef(BaseModel):
    """Payload of content events: the id of the referenced message."""

    message: str


class ChannelFocus(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["channel:focus"] = "channel:focus"
    data: str = Field(default="", description="Channel id to focus")


class ChannelBlur(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["channel:blur"] = "channel:blur"
    data: str = Field(default="", description="Channel id to leave")


class MessageCreated(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["message"] = "message"
    data: MessageRef


class MessageDeleted(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["message:delete"] = "message:delete"
    data: MessageRef


class RawFrame(BaseModel):
    """A frame that could not be decoded as a ``{type, data}`` message."""

    model_config = ConfigDict(frozen=True)

    type: Literal["raw"] = "raw"
    data: str


ChannelMessage = Annotated[
    Union[ChannelFocus, ChannelBlur, MessageCreated, MessageDeleted, RawFrame],
    Field(discriminator="type"),
]

channel_message_adapter: TypeAdapter[Any] = TypeAdapter(ChannelMessage)


# ---------------------------------------------------------------------------
# HTTP API Models
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """A message stored in a telety channel."""

    id: str
    input: str
    meta: str | None = None
    created: str | None = None


class WebhookResponse(BaseModel):
    id: str
    channel: str


class AuthResult(BaseModel):
    """Bearer token and API endpoint obtained from the token exchange."""

    token: str
    endpoint: str


def message_id_hash(message: Message) -> str:
    """Short display tag for a message: the last four digits of a 32-bit
    string hash of its id (``"0"`` when the id is empty)."""
    value = 0
    if not message.id:
        return str(value)
    for char in message.id:
        value = ((value << 5) - value + ord(char)) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return str(value)[-4:]

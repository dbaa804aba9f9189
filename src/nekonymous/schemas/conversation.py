# src/nekonymous/schemas/conversation.py
"""Conversation-related Pydantic schemas.

``MessageContent`` is a closed union over the message kinds the relay can
forward. Each variant carries the Telegram file reference for its kind and,
where Telegram allows one, a caption.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class TextContent(BaseModel):
    """Plain text message."""

    message_type: Literal["text"] = "text"
    message_text: str


class PhotoContent(BaseModel):
    """Photo referenced by its Telegram file id."""

    message_type: Literal["photo"] = "photo"
    photo_id: str
    caption: str | None = None


class VideoContent(BaseModel):
    """Video referenced by its Telegram file id."""

    message_type: Literal["video"] = "video"
    video_id: str
    caption: str | None = None


class AnimationContent(BaseModel):
    """GIF or silent video referenced by its Telegram file id."""

    message_type: Literal["animation"] = "animation"
    animation_id: str
    caption: str | None = None


class DocumentContent(BaseModel):
    """Generic file referenced by its Telegram file id."""

    message_type: Literal["document"] = "document"
    document_id: str
    caption: str | None = None


class StickerContent(BaseModel):
    """Sticker referenced by its Telegram file id."""

    message_type: Literal["sticker"] = "sticker"
    sticker_id: str


class VoiceContent(BaseModel):
    """Voice note referenced by its Telegram file id."""

    message_type: Literal["voice"] = "voice"
    voice_id: str
    caption: str | None = None


class VideoNoteContent(BaseModel):
    """Round video message referenced by its Telegram file id."""

    message_type: Literal["video_note"] = "video_note"
    video_note_id: str


class AudioContent(BaseModel):
    """Audio track referenced by its Telegram file id."""

    message_type: Literal["audio"] = "audio"
    audio_id: str
    caption: str | None = None


MessageContent = Annotated[
    Union[
        TextContent,
        PhotoContent,
        VideoContent,
        AnimationContent,
        DocumentContent,
        StickerContent,
        VoiceContent,
        VideoNoteContent,
        AudioContent,
    ],
    Field(discriminator="message_type"),
]

MESSAGE_CONTENT_ADAPTER: TypeAdapter[MessageContent] = TypeAdapter(MessageContent)


class Connection(BaseModel):
    """Routing metadata kept after a payload has been consumed."""

    sender: int = Field(..., alias="from", description="Platform id of the author")
    recipient: int = Field(..., alias="to", description="Platform id of the addressee")
    parent_message_id: int | None = Field(
        None, description="Message id of the original message in the sender's chat"
    )
    reply_to_message_id: int | None = Field(
        None, description="Message id in the recipient's chat this message answers"
    )

    model_config = ConfigDict(populate_by_name=True)


class ConversationRecord(BaseModel):
    """Plaintext form of a sealed conversation.

    A payload of ``None`` means the record was already consumed.
    """

    connection: Connection
    payload: MessageContent | None = None

    @field_validator("payload", mode="before")
    @classmethod
    def drop_unrecognized_payload(cls, value: Any) -> Any:
        """Read anything without a known ``message_type`` as consumed."""
        if value is None or isinstance(value, BaseModel):
            return value
        try:
            return MESSAGE_CONTENT_ADAPTER.validate_python(value)
        except ValidationError:
            return None

    @property
    def consumed(self) -> bool:
        """Return True when the payload has been cleared."""
        return self.payload is None

    def to_json(self) -> str:
        """Serialize with wire field names (``from``/``to``)."""
        return self.model_dump_json(by_alias=True)

    def cleared(self) -> ConversationRecord:
        """Return a copy with the payload removed and the connection intact."""
        return ConversationRecord(connection=self.connection, payload=None)


class CurrentConversation(BaseModel):
    """Pending outbound target of a user in the ``AwaitingOutbound`` state."""

    to: int
    reply_to_message_id: int | None = None

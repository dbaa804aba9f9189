# src/nekonymous/schemas/telegram.py
"""Subset of the Telegram Bot API update objects the webhook consumes."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _TelegramObject(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TelegramUser(_TelegramObject):
    """Sender of a message or callback query."""

    id: int
    is_bot: bool = False
    first_name: str = ""
    username: str | None = None
    language_code: str | None = None


class TelegramChat(_TelegramObject):
    """Chat a message belongs to."""

    id: int
    type: str = "private"


class FileRef(_TelegramObject):
    """Any Bot API object identified by ``file_id``."""

    file_id: str


class TelegramMessage(_TelegramObject):
    """Incoming message; only one of the media fields is expected to be set."""

    message_id: int
    sender: TelegramUser | None = Field(None, alias="from")
    chat: TelegramChat
    date: int = 0
    text: str | None = None
    caption: str | None = None
    photo: list[FileRef] | None = None
    video: FileRef | None = None
    animation: FileRef | None = None
    document: FileRef | None = None
    sticker: FileRef | None = None
    voice: FileRef | None = None
    video_note: FileRef | None = None
    audio: FileRef | None = None


class CallbackQuery(_TelegramObject):
    """Inline-button press."""

    id: str
    sender: TelegramUser = Field(..., alias="from")
    message: TelegramMessage | None = None
    data: str | None = None


class Update(_TelegramObject):
    """Webhook payload."""

    update_id: int
    message: TelegramMessage | None = None
    callback_query: CallbackQuery | None = None

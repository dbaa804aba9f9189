"""Mapping between inbound Telegram messages and :data:`MessageContent`."""

from __future__ import annotations

from nekonymous.schemas.conversation import (
    AnimationContent,
    AudioContent,
    DocumentContent,
    MessageContent,
    PhotoContent,
    StickerContent,
    TextContent,
    VideoContent,
    VideoNoteContent,
    VoiceContent,
)
from nekonymous.schemas.telegram import TelegramMessage


def content_from_message(message: TelegramMessage) -> MessageContent | None:
    """Return the content variant carried by ``message``, or None if unsupported."""
    caption = message.caption
    if message.text is not None:
        return TextContent(message_text=message.text)
    if message.photo:
        # Telegram lists every resolution; the last entry is the largest.
        return PhotoContent(photo_id=message.photo[-1].file_id, caption=caption)
    if message.video is not None:
        return VideoContent(video_id=message.video.file_id, caption=caption)
    if message.animation is not None:
        return AnimationContent(animation_id=message.animation.file_id, caption=caption)
    if message.document is not None:
        return DocumentContent(document_id=message.document.file_id, caption=caption)
    if message.sticker is not None:
        return StickerContent(sticker_id=message.sticker.file_id)
    if message.voice is not None:
        return VoiceContent(voice_id=message.voice.file_id, caption=caption)
    if message.video_note is not None:
        return VideoNoteContent(video_note_id=message.video_note.file_id)
    if message.audio is not None:
        return AudioContent(audio_id=message.audio.file_id, caption=caption)
    return None

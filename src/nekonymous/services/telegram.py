"""Outbound Telegram Bot API client.

The conversation service only decides what to send and to whom; this module
turns those decisions into Bot API calls over an ``httpx.AsyncClient``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Final, Protocol

import httpx

from nekonymous.core.errors import TelegramError
from nekonymous.core.settings import settings
from nekonymous.schemas.conversation import MessageContent
from nekonymous.utils.text import escape_markdown_v2

# Configure logger for this module
logger = logging.getLogger(__name__)

# message_type -> (Bot API method, request field, content attribute, accepts caption)
MEDIA_METHODS: Final[dict[str, tuple[str, str, str, bool]]] = {
    "text": ("sendMessage", "text", "message_text", False),
    "photo": ("sendPhoto", "photo", "photo_id", True),
    "video": ("sendVideo", "video", "video_id", True),
    "animation": ("sendAnimation", "animation", "animation_id", True),
    "document": ("sendDocument", "document", "document_id", True),
    "sticker": ("sendSticker", "sticker", "sticker_id", False),
    "voice": ("sendVoice", "voice", "voice_id", True),
    "video_note": ("sendVideoNote", "video_note", "video_note_id", False),
    "audio": ("sendAudio", "audio", "audio_id", True),
}


@dataclass(frozen=True)
class ReplyOptions:
    """Threading and inline controls attached to an outbound message."""

    reply_to_message_id: int | None = None
    reply_markup: dict[str, Any] | None = None

    def as_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.reply_to_message_id is not None:
            params["reply_parameters"] = {
                "message_id": self.reply_to_message_id,
                "allow_sending_without_reply": True,
            }
        if self.reply_markup is not None:
            params["reply_markup"] = self.reply_markup
        return params


class Notifier(Protocol):
    """Send capability the conversation service depends on."""

    async def send_text(
        self, chat_id: int, text: str, options: ReplyOptions | None = None
    ) -> int | None: ...

    async def send_content(
        self, chat_id: int, content: MessageContent, options: ReplyOptions | None = None
    ) -> int | None: ...

    async def edit_reply_controls(
        self, chat_id: int, message_id: int, reply_markup: dict[str, Any]
    ) -> None: ...

    async def answer_callback(self, callback_query_id: str, text: str | None = None) -> None: ...


class TelegramClient:
    """HTTP client wrapper for the Telegram Bot API."""

    def __init__(
        self,
        api_url: str | None = None,
        *,
        timeout_seconds: float | None = None,
        max_retries: int = 1,
    ) -> None:
        self.api_url = api_url or settings.telegram_api_url
        self.timeout_seconds = timeout_seconds or settings.telegram_http_timeout_seconds
        self.max_retries = max_retries
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.api_url,
                    timeout=httpx.Timeout(self.timeout_seconds),
                )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, payload: dict[str, Any]) -> Any:
        """Invoke a Bot API method and return its ``result`` field.

        Network errors are retried ``max_retries`` times with a short backoff.

        Raises:
            TelegramError: If the request fails or Telegram answers ``ok: false``
        """
        client = await self._ensure_client()
        attempt = 0
        while True:
            try:
                response = await client.post(method, json=payload)
                break
            except httpx.HTTPError as exc:
                if attempt >= self.max_retries:
                    raise TelegramError(f"Telegram request {method} failed: {exc}") from exc
                attempt += 1
                logger.warning("Telegram %s failed (%s); retrying", method, type(exc).__name__)
                await asyncio.sleep(0.5 * attempt)

        try:
            body = response.json()
        except ValueError as exc:
            raise TelegramError(f"Telegram {method} returned a non-JSON body") from exc
        if not body.get("ok"):
            raise TelegramError(
                f"Telegram {method} rejected ({response.status_code}): {body.get('description')}"
            )
        return body.get("result")

    async def send_text(
        self, chat_id: int, text: str, options: ReplyOptions | None = None
    ) -> int | None:
        """Send a plain text message and return its message id."""
        payload = {"chat_id": chat_id, "text": text, **(options or ReplyOptions()).as_params()}
        result = await self.call("sendMessage", payload)
        return result.get("message_id") if isinstance(result, dict) else None

    async def send_content(
        self, chat_id: int, content: MessageContent, options: ReplyOptions | None = None
    ) -> int | None:
        """Send any supported content kind and return the new message id.

        Relayed text goes out as a MarkdownV2 spoiler; captions are escaped.
        """
        try:
            method, field_name, attribute, accepts_caption = MEDIA_METHODS[content.message_type]
        except KeyError as exc:  # pragma: no cover - union is closed
            raise TelegramError(f"Unsupported content kind {content.message_type!r}") from exc

        payload: dict[str, Any] = {
            "chat_id": chat_id,
            field_name: getattr(content, attribute),
            **(options or ReplyOptions()).as_params(),
        }
        if content.message_type == "text":
            payload[field_name] = f"||{escape_markdown_v2(payload[field_name])}||"
            payload["parse_mode"] = "MarkdownV2"
        caption = getattr(content, "caption", None)
        if accepts_caption and caption:
            payload["caption"] = escape_markdown_v2(caption)
            payload["parse_mode"] = "MarkdownV2"

        result = await self.call(method, payload)
        return result.get("message_id") if isinstance(result, dict) else None

    async def edit_reply_controls(
        self, chat_id: int, message_id: int, reply_markup: dict[str, Any]
    ) -> None:
        """Replace the inline keyboard of an existing message."""
        await self.call(
            "editMessageReplyMarkup",
            {"chat_id": chat_id, "message_id": message_id, "reply_markup": reply_markup},
        )

    async def answer_callback(self, callback_query_id: str, text: str | None = None) -> None:
        """Acknowledge an inline-button press so the client stops spinning."""
        payload: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        await self.call("answerCallbackQuery", payload)


_telegram_client: TelegramClient | None = None


def get_telegram_client() -> TelegramClient:
    """Return the process-wide Telegram client."""
    global _telegram_client
    if _telegram_client is None:
        _telegram_client = TelegramClient()
    return _telegram_client

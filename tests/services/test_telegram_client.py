"""Tests for the outbound Bot API client."""

import json

import httpx
import pytest

from nekonymous.core.errors import TelegramError
from nekonymous.schemas.conversation import PhotoContent, TextContent
from nekonymous.services.telegram import ReplyOptions, TelegramClient

API_URL = "https://telegram.test/bot123:abc/"


def _client(handler) -> TelegramClient:
    client = TelegramClient(API_URL, timeout_seconds=1)
    client._client = httpx.AsyncClient(base_url=API_URL, transport=httpx.MockTransport(handler))
    return client


@pytest.mark.asyncio
async def test_send_text_threads_and_attaches_markup() -> None:
    seen: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 77}})

    client = _client(handler)
    message_id = await client.send_text(
        5, "hi", ReplyOptions(reply_to_message_id=9, reply_markup={"force_reply": True})
    )
    await client.close()

    assert message_id == 77
    path, payload = seen[0]
    assert path.endswith("/sendMessage")
    assert payload["reply_parameters"]["message_id"] == 9
    assert payload["reply_markup"] == {"force_reply": True}


@pytest.mark.asyncio
async def test_send_content_picks_method_and_escapes_caption() -> None:
    seen: list[tuple[str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

    client = _client(handler)
    await client.send_content(5, PhotoContent(photo_id="p1", caption="a.b"))
    await client.send_content(5, TextContent(message_text="plain"))
    await client.close()

    assert seen[0][0].endswith("/sendPhoto")
    assert seen[0][1]["photo"] == "p1"
    assert seen[0][1]["caption"] == "a\\.b"
    assert seen[0][1]["parse_mode"] == "MarkdownV2"
    assert seen[1][0].endswith("/sendMessage")
    assert seen[1][1]["text"] == "||plain||"
    assert seen[1][1]["parse_mode"] == "MarkdownV2"
    assert "reply_parameters" not in seen[1][1]


@pytest.mark.asyncio
async def test_rejected_call_raises_telegram_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"ok": False, "description": "bot was blocked"})

    client = _client(handler)
    with pytest.raises(TelegramError):
        await client.answer_callback("cb-1")
    await client.close()


@pytest.mark.asyncio
async def test_network_errors_are_retried() -> None:
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"ok": True, "result": True})

    client = _client(handler)
    await client.edit_reply_controls(5, 6, {"inline_keyboard": []})
    await client.close()
    assert attempts["count"] == 2


@pytest.mark.asyncio
async def test_relayed_text_is_an_escaped_spoiler() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True, "result": {"message_id": 1}})

    client = _client(handler)
    await client.send_content(5, TextContent(message_text="hi! a|b (x_y)"))
    await client.send_text(5, "notice.")
    await client.close()

    assert seen[0]["text"] == "||hi\\! a\\|b \\(x\\_y\\)||"
    assert seen[0]["parse_mode"] == "MarkdownV2"
    assert seen[1]["text"] == "notice."
    assert "parse_mode" not in seen[1]

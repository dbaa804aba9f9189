"""Telegram webhook endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from nekonymous.api.v1.dependencies import (
    ConversationServiceDep,
    NotifierDep,
    verify_webhook_secret,
)
from nekonymous.core.errors import TelegramError
from nekonymous.core.settings import settings
from nekonymous.schemas.telegram import CallbackQuery, TelegramMessage, Update
from nekonymous.services.content import content_from_message
from nekonymous.services.conversation import ConversationService, MessageRef
from nekonymous.services.keyboards import (
    ACTION_BLOCK,
    ACTION_REPLY,
    ACTION_UNBLOCK,
    MENU_ABOUT,
    MENU_GET_LINK,
    parse_callback_data,
    resolve_menu_command,
)
from nekonymous.services.messages import Outcome
from nekonymous.services.telegram import Notifier

# Configure logger for this module
logger = logging.getLogger(__name__)

router = APIRouter(tags=["bot"])

COMMAND_START = "/start"
COMMAND_INBOX = "/inbox"
COMMAND_DELETE_ACCOUNT = "/deleteAccount"


def _parse_command(text: str | None) -> tuple[str | None, str]:
    """Split ``/command@bot argument`` into the bare command and its argument."""
    if not text or not text.startswith("/"):
        return None, ""
    command, _, argument = text.partition(" ")
    return command.split("@", 1)[0], argument.strip()


async def _dispatch_message(message: TelegramMessage, service: ConversationService) -> Outcome | None:
    sender = message.sender
    if sender is None or sender.is_bot or message.chat.type != "private":
        return None
    service.locale = sender.language_code or settings.default_locale
    name = sender.first_name

    text = message.text
    command, argument = _parse_command(text)
    # An awaited outbound message takes everything except /start.
    if command != COMMAND_START and service.has_pending_conversation(sender.id):
        return await service.handle_incoming_message(
            sender.id, content_from_message(message), message.message_id, name
        )

    if command is not None:
        if command == COMMAND_START:
            if argument:
                return await service.handle_start_by_link(sender.id, argument, name)
            return await service.handle_start(sender.id, name)
        if command == COMMAND_INBOX:
            return await service.handle_inbox(sender.id)
        if command == COMMAND_DELETE_ACCOUNT:
            return await service.handle_delete_account(sender.id)

    menu_command = resolve_menu_command(text)
    if menu_command == MENU_GET_LINK:
        return await service.handle_get_link(sender.id, name)
    if menu_command == MENU_ABOUT:
        return await service.handle_about(sender.id)

    return await service.handle_incoming_message(
        sender.id, content_from_message(message), message.message_id, name
    )


async def _dispatch_callback(
    query: CallbackQuery, service: ConversationService, notifier: Notifier
) -> Outcome | None:
    outcome: Outcome | None = None
    parsed = parse_callback_data(query.data)
    if parsed is not None:
        action, ticket = parsed
        source = (
            MessageRef(chat_id=query.message.chat.id, message_id=query.message.message_id)
            if query.message is not None
            else None
        )
        handlers = {
            ACTION_REPLY: service.handle_reply_action,
            ACTION_BLOCK: service.handle_block_action,
            ACTION_UNBLOCK: service.handle_unblock_action,
        }
        outcome = await handlers[action](ticket, query.sender.id, source)
    else:
        logger.debug("Ignoring callback query with unknown data")

    try:
        await notifier.answer_callback(query.id)
    except TelegramError as exc:
        logger.warning("Could not answer callback query: %s", exc)
    return outcome


@router.post("/bot", dependencies=[Depends(verify_webhook_secret)])
async def receive_update(
    update: Update,
    service: ConversationServiceDep,
    notifier: NotifierDep,
) -> dict[str, bool]:
    """Accept one Telegram update and route it to the conversation service.

    Args:
        update: Parsed webhook payload
        service: Conversation service bound to this request
        notifier: Outbound notifier used to acknowledge button presses

    Returns:
        ``{"ok": True}`` once the update has been handled
    """
    if update.callback_query is not None:
        outcome = await _dispatch_callback(update.callback_query, service, notifier)
    elif update.message is not None:
        outcome = await _dispatch_message(update.message, service)
    else:
        outcome = None
    logger.info(
        "Handled update %s: %s",
        update.update_id,
        outcome.value if outcome is not None else "ignored",
    )
    return {"ok": True}

# src/nekonymous/services/conversation.py
"""Conversation state machine.

Each user is either idle or awaiting an outbound message (their
``current_conversation`` pointer is set). Links and reply buttons move a user
into the awaiting state; the next inbound message is sealed under a fresh
ticket, stored under the ticket's conversation ID and queued in the
recipient's inbox, which returns the user to idle.

Every public ``handle_*`` coroutine returns an :class:`Outcome` and never
raises. Rejections are reported to the acting user with a fixed notice that
does not reveal which internal step failed.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import Final

from nekonymous.core.errors import (
    ConversationError,
    NekonymousError,
    NoConversationFound,
    RateLimited,
    RecordNotFound,
    SelfMessageDisallowed,
    SenderBlocked,
    StoreUnavailable,
    TelegramError,
)
from nekonymous.core.settings import settings
from nekonymous.repositories.conversations import ConversationStore
from nekonymous.repositories.users import UserRepository
from nekonymous.schemas.conversation import (
    Connection,
    ConversationRecord,
    CurrentConversation,
    MessageContent,
)
from nekonymous.services import messages
from nekonymous.services.block_list import BlockListPolicy
from nekonymous.services.inbox import InboxMessage, InboxService
from nekonymous.services.keyboards import build_menu, build_reply_controls
from nekonymous.services.messages import Outcome
from nekonymous.services.rate_limit import RateLimiter
from nekonymous.services.stats import StatsService
from nekonymous.services.telegram import Notifier, ReplyOptions
from nekonymous.services.tickets import Ticket, TicketManager

logger = logging.getLogger(__name__)

_ERROR_OUTCOMES: Final[dict[type[ConversationError], Outcome]] = {
    NoConversationFound: Outcome.NO_CONVERSATION_FOUND,
    SelfMessageDisallowed: Outcome.SELF_MESSAGE_DISALLOWED,
    SenderBlocked: Outcome.SENDER_BLOCKED,
    RateLimited: Outcome.RATE_LIMITED,
}

_FORCE_REPLY: Final[dict[str, bool]] = {"force_reply": True}


@dataclass(frozen=True)
class MessageRef:
    """A message already shown in some chat, e.g. the one carrying a button."""

    chat_id: int
    message_id: int


class ConversationService:
    """Drive start, capture, reply, block and unblock transitions."""

    def __init__(
        self,
        *,
        users: UserRepository,
        conversations: ConversationStore,
        tickets: TicketManager,
        inbox: InboxService,
        notifier: Notifier,
        stats: StatsService,
        block_list: BlockListPolicy | None = None,
        rate_limiter: RateLimiter | None = None,
        locale: str | None = None,
    ) -> None:
        self.users = users
        self.conversations = conversations
        self.tickets = tickets
        self.inbox = inbox
        self.notifier = notifier
        self.stats = stats
        self.block_list = block_list or BlockListPolicy()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.locale = locale or settings.default_locale

    # --- Boundary helpers -----------------------------------------------------------
    def _menu(self) -> ReplyOptions:
        return ReplyOptions(reply_markup=build_menu(self.locale).to_markup())

    async def _notify(self, chat_id: int, text: str, options: ReplyOptions | None = None) -> None:
        """Send a notice; delivery problems are logged and swallowed."""
        try:
            await self.notifier.send_text(chat_id, text, options)
        except TelegramError as exc:
            logger.warning("Could not notify chat: %s", exc)

    async def _guarded(self, acting_user_id: int, operation: Awaitable[Outcome]) -> Outcome:
        """Await a transition and map any failure to a user-safe outcome."""
        try:
            outcome = await operation
        except ConversationError as exc:
            outcome = _ERROR_OUTCOMES.get(type(exc), Outcome.GENERIC_ERROR)
        except RecordNotFound:
            outcome = Outcome.NO_USER_FOUND
        except NekonymousError as exc:
            logger.warning("Transition failed: %s", type(exc).__name__)
            outcome = Outcome.GENERIC_ERROR
        except Exception:
            logger.exception("Unexpected error while handling a conversation event")
            outcome = Outcome.GENERIC_ERROR

        if outcome is not Outcome.DELIVERED:
            options = self._menu() if outcome is Outcome.GENERIC_ERROR else None
            await self._notify(acting_user_id, messages.outcome_text(outcome), options)
        return outcome

    # --- Accounts -------------------------------------------------------------------
    async def handle_start(self, acting_user_id: int, display_name: str = "") -> Outcome:
        """Register on first contact and send the user their share link.

        A pending outbound message is cancelled, and the user is reminded of
        anything still waiting in their inbox.
        """

        async def _start() -> Outcome:
            user, created = self.users.get_or_create(acting_user_id, display_name)
            if created:
                self.stats.increment("newUser")
            elif user.current_conversation is not None:
                user.current_conversation = None
                self.users.save(user)
            text = messages.WELCOME_MESSAGE.format(
                app_name=settings.app_name, link=settings.share_link(user.uuid)
            )
            await self._notify(acting_user_id, text, self._menu())

            waiting = self.inbox.count(acting_user_id)
            if waiting:
                await self._notify(
                    acting_user_id, messages.NEW_INBOX_MESSAGE.format(count=waiting)
                )
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _start())

    def has_pending_conversation(self, acting_user_id: int) -> bool:
        """Return True while the user's next message belongs to a pending conversation.

        A store failure reads as False; the command handler that runs instead
        reports it through its own outcome.
        """
        try:
            user = self.users.get(acting_user_id)
        except NekonymousError as exc:
            logger.warning("Could not load pending conversation: %s", type(exc).__name__)
            return False
        return user is not None and user.current_conversation is not None

    async def handle_get_link(self, acting_user_id: int, display_name: str = "") -> Outcome:
        """Resend the user's share link."""

        async def _get_link() -> Outcome:
            user, _ = self.users.get_or_create(acting_user_id, display_name)
            text = messages.USER_LINK_MESSAGE.format(link=settings.share_link(user.uuid))
            await self._notify(acting_user_id, text, self._menu())
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _get_link())

    async def handle_about(self, acting_user_id: int) -> Outcome:
        """Explain how the relay protects its users."""
        await self._notify(
            acting_user_id,
            messages.ABOUT_MESSAGE.format(app_name=settings.app_name),
            self._menu(),
        )
        return Outcome.DELIVERED

    async def handle_delete_account(self, acting_user_id: int) -> Outcome:
        """Remove the user record, its link mapping and any queued tickets."""

        async def _delete() -> Outcome:
            user = self.users.get(acting_user_id)
            if user is None:
                raise RecordNotFound("No account to delete")
            self.users.delete(user)
            self.inbox.clear(acting_user_id)
            self.stats.increment("deletedUsers")
            await self._notify(acting_user_id, messages.ACCOUNT_DELETED_MESSAGE)
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _delete())

    # --- StartByLink ----------------------------------------------------------------
    async def handle_start_by_link(
        self, acting_user_id: int, public_ref: str, display_name: str = ""
    ) -> Outcome:
        """Point the user at the owner of ``public_ref``."""

        async def _start_by_link() -> Outcome:
            current, created = self.users.get_or_create(acting_user_id, display_name)
            if created:
                self.stats.increment("newUser")

            target = self.users.get_by_uuid(public_ref)
            if target is None:
                raise RecordNotFound("Link does not resolve to an account")
            if target.user_id == acting_user_id:
                raise SelfMessageDisallowed("Link belongs to the acting user")
            if self.block_list.is_blocked(target, acting_user_id):
                raise SenderBlocked("Link owner blocked the acting user")

            current.current_conversation = CurrentConversation(to=target.user_id)
            self.users.save(current)

            text = messages.START_CONVERSATION_MESSAGE.format(
                name=target.display_name or "this user"
            )
            await self._notify(acting_user_id, text)
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _start_by_link())

    # --- CaptureOutbound ------------------------------------------------------------
    async def handle_incoming_message(
        self,
        sender_id: int,
        content: MessageContent | None,
        thread_ref: int | None = None,
        display_name: str = "",
    ) -> Outcome:
        """Seal and queue the pending outbound message of ``sender_id``.

        Args:
            sender_id: Telegram id of the author
            content: Parsed message content, None when the kind is unsupported
            thread_ref: Id of the inbound message in the author's chat
            display_name: Author's first name, used if the account is new
        """

        async def _capture() -> Outcome:
            user, _ = self.users.get_or_create(sender_id, display_name)
            pointer = user.current_conversation
            if pointer is None:
                return Outcome.NO_PENDING_CONVERSATION
            if content is None:
                return Outcome.UNSUPPORTED_CONTENT
            if self.rate_limiter.is_user_limited(user):
                raise RateLimited("Sender is inside the cooldown window")

            recipient = self.users.get(pointer.to)
            if recipient is None or self.block_list.is_blocked(recipient, sender_id):
                user.current_conversation = None
                self.users.save(user)
                if recipient is None:
                    raise RecordNotFound("Recipient account no longer exists")
                raise SenderBlocked("Recipient blocked the sender")

            ticket = self.tickets.mint_ticket()
            record = ConversationRecord(
                connection=Connection(
                    sender=sender_id,
                    recipient=recipient.user_id,
                    parent_message_id=thread_ref,
                    reply_to_message_id=pointer.reply_to_message_id,
                ),
                payload=content,
            )
            self.conversations.save(ticket, record)

            user.current_conversation = None
            self.rate_limiter.touch(user)
            self.users.save(user)

            waiting = self.inbox.append(recipient.user_id, ticket)
            self.stats.increment(
                "newReply" if pointer.reply_to_message_id is not None else "newConversation"
            )

            await self._notify(
                recipient.user_id, messages.NEW_INBOX_MESSAGE.format(count=waiting)
            )
            await self._notify(
                sender_id,
                messages.MESSAGE_SENT_MESSAGE,
                ReplyOptions(reply_to_message_id=thread_ref),
            )
            return Outcome.DELIVERED

        return await self._guarded(sender_id, _capture())

    # --- Inbox ----------------------------------------------------------------------
    async def handle_inbox(self, acting_user_id: int) -> Outcome:
        """Deliver every queued message and tell each sender it was seen."""

        async def _inbox() -> Outcome:
            pending = deque(self.inbox.drain(acting_user_id))
            if not pending:
                await self._notify(acting_user_id, messages.EMPTY_INBOX_MESSAGE, self._menu())
                return Outcome.DELIVERED

            try:
                owner = self.users.get(acting_user_id)
                while pending:
                    entry = pending[0]
                    try:
                        record = self.conversations.open(entry.ticket)
                    except NoConversationFound:
                        logger.debug("Skipping inbox entry that no longer opens")
                        pending.popleft()
                        continue

                    connection = record.connection
                    controls = build_reply_controls(
                        entry.ticket, self.block_list.is_blocked(owner, connection.sender)
                    )
                    try:
                        await self.notifier.send_content(
                            acting_user_id,
                            record.payload,
                            ReplyOptions(
                                reply_to_message_id=connection.reply_to_message_id,
                                reply_markup=controls,
                            ),
                        )
                    except TelegramError as exc:
                        logger.warning("Inbox delivery failed, requeueing: %s", exc)
                        self.inbox.append(acting_user_id, entry.ticket, entry.timestamp)
                        pending.popleft()
                        continue

                    pending.popleft()
                    await self._notify(
                        connection.sender,
                        messages.MESSAGE_SEEN_MESSAGE,
                        ReplyOptions(reply_to_message_id=connection.parent_message_id),
                    )
            finally:
                if pending:
                    self._requeue(acting_user_id, pending)
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _inbox())

    def _requeue(self, acting_user_id: int, entries: Iterable[InboxMessage]) -> None:
        """Put undelivered entries back, keeping their original timestamps."""
        remaining = list(entries)
        try:
            for entry in remaining:
                self.inbox.append(acting_user_id, entry.ticket, entry.timestamp)
        except StoreUnavailable:
            logger.error("Could not requeue %s undelivered inbox entries", len(remaining))

    # --- Reply / Block / Unblock ----------------------------------------------------
    async def handle_reply_action(
        self, ticket: Ticket, acting_user_id: int, source: MessageRef | None = None
    ) -> Outcome:
        """Arm a reply to the sender of the conversation behind ``ticket``."""

        async def _reply() -> Outcome:
            record = self.conversations.open(ticket)
            sender_id = record.connection.sender
            if sender_id == acting_user_id:
                raise SelfMessageDisallowed("Reply target is the acting user")

            actor, _ = self.users.get_or_create(acting_user_id)
            if self.rate_limiter.is_user_limited(actor):
                raise RateLimited("Replier is inside the cooldown window")

            sender = self.users.get(sender_id)
            if sender is None:
                raise NoConversationFound("Sender account no longer exists")
            if self.block_list.is_blocked(sender, acting_user_id):
                raise SenderBlocked("Sender blocked the replier")

            actor.current_conversation = CurrentConversation(
                to=sender_id,
                reply_to_message_id=record.connection.parent_message_id,
            )
            self.users.save(actor)
            self.conversations.consume(ticket, record)

            await self._notify(
                acting_user_id,
                messages.REPLY_PROMPT_MESSAGE,
                ReplyOptions(
                    reply_to_message_id=source.message_id if source else None,
                    reply_markup=_FORCE_REPLY,
                ),
            )
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _reply())

    async def _refresh_controls(
        self, ticket: Ticket, source: MessageRef | None, is_blocked: bool
    ) -> None:
        if source is None:
            return
        try:
            await self.notifier.edit_reply_controls(
                source.chat_id, source.message_id, build_reply_controls(ticket, is_blocked)
            )
        except TelegramError as exc:
            logger.warning("Could not refresh inline controls: %s", exc)

    async def handle_block_action(
        self, ticket: Ticket, acting_user_id: int, source: MessageRef | None = None
    ) -> Outcome:
        """Block the sender of the conversation behind ``ticket``."""

        async def _block() -> Outcome:
            record = self.conversations.open_connection(ticket)
            sender_id = record.connection.sender
            if sender_id == acting_user_id:
                raise SelfMessageDisallowed("Cannot block oneself")

            actor, _ = self.users.get_or_create(acting_user_id)
            if self.block_list.block(actor, sender_id):
                self.users.save(actor)
                self.stats.increment("blockedUsers")
            self.conversations.consume(ticket, record)

            await self._refresh_controls(ticket, source, is_blocked=True)
            await self._notify(
                acting_user_id,
                messages.USER_BLOCKED_MESSAGE,
                ReplyOptions(reply_to_message_id=source.message_id if source else None),
            )
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _block())

    async def handle_unblock_action(
        self, ticket: Ticket, acting_user_id: int, source: MessageRef | None = None
    ) -> Outcome:
        """Lift a block on the sender of the conversation behind ``ticket``."""

        async def _unblock() -> Outcome:
            record = self.conversations.open_connection(ticket)
            sender_id = record.connection.sender

            actor = self.users.get(acting_user_id)
            if actor is None or not self.block_list.unblock(actor, sender_id):
                return Outcome.ALREADY_UNBLOCKED
            self.users.save(actor)
            self.stats.increment("unblockedUsers")
            self.conversations.consume(ticket, record)

            await self._refresh_controls(ticket, source, is_blocked=False)
            await self._notify(
                acting_user_id,
                messages.USER_UNBLOCKED_MESSAGE,
                ReplyOptions(reply_to_message_id=source.message_id if source else None),
            )
            return Outcome.DELIVERED

        return await self._guarded(acting_user_id, _unblock())

"""User-facing message texts.

Texts never mention which internal step failed; a missing record, a bad
ticket and an undecryptable payload all read the same.
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class Outcome(str, Enum):
    """Result of a conversation transition as seen by the acting user."""

    DELIVERED = "delivered"
    NO_CONVERSATION_FOUND = "no_conversation_found"
    SELF_MESSAGE_DISALLOWED = "self_message_disallowed"
    SENDER_BLOCKED = "sender_blocked"
    RATE_LIMITED = "rate_limited"
    ALREADY_UNBLOCKED = "already_unblocked"
    GENERIC_ERROR = "generic_error"
    NO_USER_FOUND = "no_user_found"
    NO_PENDING_CONVERSATION = "no_pending_conversation"
    UNSUPPORTED_CONTENT = "unsupported_content"


WELCOME_MESSAGE: Final[str] = (
    "Hi! Welcome to {app_name}.\n"
    "Your anonymous link:\n{link}\n"
    "Share it and wait for anonymous messages!"
)
USER_LINK_MESSAGE: Final[str] = (
    "Your anonymous link:\n{link}\n"
    "Share it with others to receive anonymous messages."
)
START_CONVERSATION_MESSAGE: Final[str] = (
    "You are sending an anonymous message to {name}.\n"
    "Write your message and send it."
)
REPLY_PROMPT_MESSAGE: Final[str] = (
    "Write your reply:\nIt will be delivered straight to the sender."
)
MESSAGE_SENT_MESSAGE: Final[str] = "Your message was sent! Wait for a reply."
NEW_INBOX_MESSAGE: Final[str] = "You have {count} new anonymous message(s)\n/inbox"
EMPTY_INBOX_MESSAGE: Final[str] = "You have no unread messages."
MESSAGE_SEEN_MESSAGE: Final[str] = "Your message was seen!"
USER_BLOCKED_MESSAGE: Final[str] = "This user is blocked and can no longer message you."
USER_UNBLOCKED_MESSAGE: Final[str] = "This user is unblocked and can message you again."
ACCOUNT_DELETED_MESSAGE: Final[str] = "Your account and link have been deleted."
ABOUT_MESSAGE: Final[str] = (
    "{app_name} relays anonymous messages.\n\n"
    "Every message is sealed with AES-GCM under a one-time ticket. The ticket is "
    "only ever handed to the recipient as part of the reply buttons, and the stored "
    "conversation can only be located and decrypted by someone holding it.\n"
    "Message content is erased once it has been answered, blocked or unblocked.\n"
    "Send /deleteAccount at any time to remove your account."
)

OUTCOME_MESSAGES: Final[dict[Outcome, str]] = {
    Outcome.NO_CONVERSATION_FOUND: (
        "No conversation was found for this message.\nThe link may be invalid or expired."
    ),
    Outcome.SELF_MESSAGE_DISALLOWED: "You cannot send a message to yourself.",
    Outcome.SENDER_BLOCKED: "You have been blocked and cannot contact this user.",
    Outcome.RATE_LIMITED: "Slow down a little :)",
    Outcome.ALREADY_UNBLOCKED: "Nothing to do here.",
    Outcome.GENERIC_ERROR: "Something went wrong!\nPlease try again or use the menu.",
    Outcome.NO_USER_FOUND: "This account does not exist!\nPlease check the link.",
    Outcome.NO_PENDING_CONVERSATION: (
        "Something seems off!\nOpen someone's link or press Reply to send a message."
    ),
    Outcome.UNSUPPORTED_CONTENT: (
        "This message type is not supported!\n"
        "Please send text, photo, video, animation, document, sticker, voice, video note or audio."
    ),
}


def outcome_text(outcome: Outcome) -> str:
    """Return the notice shown for a rejected transition."""
    return OUTCOME_MESSAGES.get(outcome, OUTCOME_MESSAGES[Outcome.GENERIC_ERROR])

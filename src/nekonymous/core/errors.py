"""Exception hierarchy shared by the ticket, storage and conversation layers."""

from __future__ import annotations


class NekonymousError(RuntimeError):
    """Base exception for all relay failures.

    Messages attached to these exceptions are meant for logs only and are
    never forwarded to Telegram users.
    """


class TicketError(NekonymousError):
    """Base class for failures while deriving or using a ticket."""


class InvalidSecretLength(TicketError):
    """Raised when a secret is not a valid secp256k1 scalar."""


class AuthenticationFailure(TicketError):
    """Raised when a sealed payload fails AES-GCM tag verification."""


class MalformedBlob(TicketError):
    """Raised when a sealed payload does not have the ``nonce:ciphertext`` shape."""


class ConversationError(NekonymousError):
    """Base class for rejected conversation transitions."""


class NoConversationFound(ConversationError):
    """Raised when a ticket does not resolve to a live conversation record."""


class SelfMessageDisallowed(ConversationError):
    """Raised when a user tries to message or act on their own conversation."""


class SenderBlocked(ConversationError):
    """Raised when the counterpart has blocked the acting user."""


class RateLimited(ConversationError):
    """Raised when the acting user is still inside the message cooldown."""


class RecordNotFound(NekonymousError):
    """Raised when a user or account record is missing."""


class StoreUnavailable(NekonymousError):
    """Raised when the backing store keeps failing after a retry."""


class TelegramError(NekonymousError):
    """Raised when the Bot API rejects or fails an outbound call."""

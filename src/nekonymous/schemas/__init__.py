# src/nekonymous/schemas/__init__.py
"""
Pydantic schemas for stored records and Telegram updates.

These schemas define the structure of persisted data and webhook payloads.
"""

from .conversation import Connection, ConversationRecord, CurrentConversation, MessageContent
from .telegram import CallbackQuery, TelegramMessage, Update
from .user import UserProfile

__all__ = [
    "Connection", "ConversationRecord", "CurrentConversation", "MessageContent",
    "CallbackQuery", "TelegramMessage", "Update",
    "UserProfile",
]

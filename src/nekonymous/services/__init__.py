# src/nekonymous/services/__init__.py
"""Business logic services for the Nekonymous relay."""

from .block_list import BlockListPolicy
from .inbox import InboxService
from .rate_limit import RateLimiter
from .stats import StatsService
from .telegram import Notifier, TelegramClient
from .tickets import Ticket, TicketManager

__all__ = [
    "BlockListPolicy",
    "InboxService",
    "Notifier",
    "RateLimiter",
    "StatsService",
    "TelegramClient",
    "Ticket",
    "TicketManager",
]

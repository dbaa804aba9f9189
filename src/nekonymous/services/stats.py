"""Daily usage counters."""

from __future__ import annotations

import logging
from datetime import date
from typing import Final

from nekonymous.core.errors import StoreUnavailable
from nekonymous.db.time import utcnow
from nekonymous.repositories.kv_store import KeyValueStore, KVModel

logger = logging.getLogger(__name__)

STAT_NAMES: Final[tuple[str, ...]] = (
    "newUser",
    "newConversation",
    "newReply",
    "blockedUsers",
    "unblockedUsers",
    "deletedUsers",
)


class StatsService:
    """Counters stored as ``stats:<name>:<YYYY-MM-DD>``."""

    def __init__(self, store: KeyValueStore) -> None:
        self.counters: KVModel[int] = KVModel("stats", store, int)

    @staticmethod
    def _day(day: date | None) -> str:
        return (day or utcnow().date()).isoformat()

    def increment(self, name: str, amount: int = 1, day: date | None = None) -> None:
        """Add ``amount`` to today's counter.

        Counters are best effort: a store outage is logged, not raised.
        """
        key = f"{name}:{self._day(day)}"
        try:
            current = self.counters.get(key) or 0
            self.counters.save(key, current + amount)
        except StoreUnavailable:
            logger.warning("Could not record stat %s", name)

    def daily(self, day: date | None = None) -> dict[str, int]:
        """Return every counter for ``day`` (today by default)."""
        suffix = self._day(day)
        return {name: self.counters.get(f"{name}:{suffix}") or 0 for name in STAT_NAMES}

"""Per-user inbox of pending tickets.

Recipients are not sent message content directly. Each captured message
appends ``(timestamp, ticket)`` to the recipient's inbox and ``/inbox`` drains
it. Append and drain are both atomic, so two concurrent drains by the same
user never hand out the same ticket twice.
"""

from __future__ import annotations

import json
import logging
import time
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from threading import Lock
from typing import Any, Final, TypeVar

import redis

from nekonymous.core.errors import StoreUnavailable
from nekonymous.core.settings import settings
from nekonymous.services.tickets import Ticket

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS: Final[tuple[type[Exception], ...]] = (
    redis.ConnectionError,
    redis.TimeoutError,
)


@dataclass(frozen=True)
class InboxMessage:
    """Queued notification that a sealed conversation is waiting."""

    timestamp: float
    ticket: Ticket

    def to_json(self) -> str:
        return json.dumps({"timestamp": self.timestamp, "ticketId": self.ticket.value})

    @classmethod
    def from_json(cls, raw: str | bytes) -> InboxMessage:
        data = json.loads(raw)
        return cls(timestamp=float(data["timestamp"]), ticket=Ticket(data["ticketId"]))


class InboxService:
    """Append/drain queue, backed by Redis when configured."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        retry_backoff_seconds: float | None = None,
    ) -> None:
        self._redis = client
        self._backoff = (
            settings.store_retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )

    @staticmethod
    def _key(user_id: int) -> str:
        return f"inbox:{user_id}"

    def _run(self, operation: Callable[[], T]) -> T:
        """Retry once after a blocking backoff, then raise StoreUnavailable."""
        try:
            return operation()
        except _TRANSIENT_ERRORS as exc:
            logger.warning("Inbox operation failed (%s); retrying once", type(exc).__name__)
        time.sleep(self._backoff)
        try:
            return operation()
        except _TRANSIENT_ERRORS as exc:
            raise StoreUnavailable("Inbox store did not recover after retry") from exc

    def append(self, user_id: int, ticket: Ticket, timestamp: float | None = None) -> int:
        """Queue a ticket for ``user_id`` and return the new inbox size."""
        message = InboxMessage(
            timestamp=time.time() if timestamp is None else timestamp, ticket=ticket
        )
        key = self._key(user_id)
        if self._redis is not None:
            return int(self._run(lambda: self._redis.rpush(key, message.to_json())))

        with _CACHE_LOCK:
            _INBOX_CACHE[key].append(message.to_json())
            return len(_INBOX_CACHE[key])

    def count(self, user_id: int) -> int:
        """Return how many tickets are waiting."""
        key = self._key(user_id)
        if self._redis is not None:
            return int(self._run(lambda: self._redis.llen(key)))

        with _CACHE_LOCK:
            return len(_INBOX_CACHE.get(key, []))

    def drain(self, user_id: int) -> list[InboxMessage]:
        """Atomically read and clear the inbox, oldest first."""
        key = self._key(user_id)
        if self._redis is not None:

            def _drain() -> list[Any]:
                pipe = self._redis.pipeline(transaction=True)
                pipe.lrange(key, 0, -1)
                pipe.delete(key)
                items, _ = pipe.execute()
                return items

            raw_items = self._run(_drain)
        else:
            with _CACHE_LOCK:
                raw_items = _INBOX_CACHE.pop(key, [])

        messages: list[InboxMessage] = []
        for raw in raw_items:
            try:
                messages.append(InboxMessage.from_json(raw))
            except (ValueError, KeyError, TypeError):
                logger.warning("Dropping malformed inbox entry for a user")
        return messages

    def clear(self, user_id: int) -> None:
        """Drop every queued ticket for ``user_id``."""
        key = self._key(user_id)
        if self._redis is not None:
            self._run(lambda: self._redis.delete(key))
            return
        with _CACHE_LOCK:
            _INBOX_CACHE.pop(key, None)


_INBOX_CACHE: dict[str, list[str]] = defaultdict(list)
_CACHE_LOCK = Lock()
_redis_client: Any | None = None


def get_inbox_service() -> InboxService:
    """Return an inbox service bound to the configured Redis, if any."""
    global _redis_client
    if settings.redis_url and _redis_client is None:
        _redis_client = redis.from_url(settings.redis_url)  # type: ignore[no-untyped-call]
    return InboxService(_redis_client)

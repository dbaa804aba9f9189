"""Per-user message cooldown."""

from __future__ import annotations

import time

from nekonymous.core.settings import settings
from nekonymous.schemas.user import UserProfile


class RateLimiter:
    """Cooldown keyed on the ``last_message`` timestamp stored with each user."""

    def __init__(self, cooldown_seconds: float | None = None) -> None:
        self.cooldown_seconds = (
            settings.rate_limit_seconds if cooldown_seconds is None else cooldown_seconds
        )

    def is_limited(self, last_message: float | None, now: float | None = None) -> bool:
        """Return True while ``now`` is still inside the cooldown window."""
        if last_message is None or self.cooldown_seconds <= 0:
            return False
        current = time.time() if now is None else now
        return current - last_message < self.cooldown_seconds

    def is_user_limited(self, user: UserProfile | None, now: float | None = None) -> bool:
        return user is not None and self.is_limited(user.last_message, now)

    @staticmethod
    def touch(user: UserProfile, now: float | None = None) -> None:
        """Record that ``user`` just sent a message."""
        user.last_message = time.time() if now is None else now

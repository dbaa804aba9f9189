"""System and transparency endpoints for the Nekonymous API."""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from nekonymous.api.v1.dependencies import StoreDep
from nekonymous.core.settings import settings
from nekonymous.db.time import utcnow
from nekonymous.repositories.users import UserRepository
from nekonymous.services.stats import StatsService
from nekonymous.utils.text import to_persian_digits

router = APIRouter(tags=["system", "transparency"])


def get_stats_service(store: StoreDep) -> StatsService:
    """Get StatsService dependency for dependency injection."""
    return StatsService(store)


StatsServiceDep = Annotated[StatsService, Depends(get_stats_service)]


def get_user_repository(store: StoreDep) -> UserRepository:
    """Get UserRepository dependency for dependency injection."""
    return UserRepository(store)


UserRepositoryDep = Annotated[UserRepository, Depends(get_user_repository)]


@router.get("/stats")
async def get_daily_stats(
    stats: StatsServiceDep,
    users: UserRepositoryDep,
    day: Annotated[date | None, Query(description="UTC day, defaults to today")] = None,
    locale: Annotated[str | None, Query(description="'fa' renders Persian digits")] = None,
) -> dict[str, object]:
    """Return aggregated usage counters without revealing identities.

    Args:
        stats: Statistics service
        users: Account repository, used for the registered-user total
        day: Day to report
        locale: Output locale for the counter values

    Returns:
        Dictionary with the bot name, the reported day, the account total
        and every counter
    """
    counters = stats.daily(day)
    total: int | str = users.count()
    values: dict[str, int | str] = dict(counters)
    if locale == "fa":
        values = {name: to_persian_digits(value) for name, value in counters.items()}
        total = to_persian_digits(total)
    return {
        "bot": settings.bot_name,
        "day": (day or utcnow().date()).isoformat(),
        "users": total,
        "counters": values,
    }

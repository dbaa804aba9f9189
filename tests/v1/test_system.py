"""Tests for system and transparency endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from nekonymous.repositories.kv_store import KeyValueStore
from nekonymous.repositories.users import UserRepository
from nekonymous.services.stats import STAT_NAMES, StatsService


def test_daily_stats_lists_every_counter(client: TestClient, store: KeyValueStore) -> None:
    StatsService(store).increment("newUser", 2)

    r = client.get("/api/v1/stats")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert set(data["counters"]) == set(STAT_NAMES)
    assert data["counters"]["newUser"] == 2
    assert data["counters"]["blockedUsers"] == 0


def test_daily_stats_in_persian_digits(client: TestClient, store: KeyValueStore) -> None:
    StatsService(store).increment("newConversation", 12)

    r = client.get("/api/v1/stats", params={"locale": "fa"})
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["counters"]["newConversation"] == "۱۲"


def test_stats_for_another_day_are_empty(client: TestClient, store: KeyValueStore) -> None:
    StatsService(store).increment("newUser")

    r = client.get("/api/v1/stats", params={"day": "2001-01-01"})
    assert r.json()["day"] == "2001-01-01"
    assert r.json()["counters"]["newUser"] == 0


def test_stats_report_registered_accounts(client: TestClient, users: UserRepository) -> None:
    for user_id in (901, 902, 903):
        users.get_or_create(user_id, "Counted")
    users.delete(users.get(903))

    r = client.get("/api/v1/stats")
    assert r.status_code == status.HTTP_200_OK
    assert r.json()["users"] == 2
    assert client.get("/api/v1/stats", params={"locale": "fa"}).json()["users"] == "۲"

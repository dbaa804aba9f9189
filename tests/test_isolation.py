"""Committed writes must not leak from one test into the next."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from nekonymous.models import KVEntry
from nekonymous.repositories.kv_store import KeyValueStore
from nekonymous.repositories.users import UserRepository


def test_committed_write_is_visible_within_the_test(
    store: KeyValueStore, users: UserRepository
) -> None:
    store.put("isolation:marker", "set")
    users.get_or_create(31337, "Leaky")
    assert store.get("isolation:marker") == "set"


def test_committed_write_is_gone_in_the_next_test(
    store: KeyValueStore, users: UserRepository, db_session: Session
) -> None:
    assert store.get("isolation:marker") is None
    assert users.get(31337) is None
    assert db_session.execute(select(func.count()).select_from(KVEntry)).scalar_one() == 0

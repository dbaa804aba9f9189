"""Data access helpers for the namespaced key-value store."""
from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Generic, TypeVar

from pydantic import TypeAdapter
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from nekonymous.core.errors import StoreUnavailable
from nekonymous.core.settings import settings
from nekonymous.db.time import expires_after, utcnow
from nekonymous.models.kv_entry import KVEntry

__all__ = ["KeyValueStore", "KVModel"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class KeyValueStore:
    """get/put/delete/list-by-prefix with optional TTL over a SQL table."""

    def __init__(self, session: Session, *, retry_backoff_seconds: float | None = None) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session
        self._backoff = (
            settings.store_retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )

    def _run(self, operation: Callable[[], T]) -> T:
        """Run a store operation, retrying once on an operational failure.

        The backoff is a blocking ``time.sleep``, like the SQL call it guards;
        async callers stall their event loop for at most one backoff.
        """
        try:
            return operation()
        except OperationalError as exc:
            logger.warning("Store operation failed (%s); retrying once", type(exc).__name__)
            self.session.rollback()
        time.sleep(self._backoff)
        try:
            return operation()
        except OperationalError as exc:
            self.session.rollback()
            raise StoreUnavailable("Key-value store did not recover after retry") from exc

    @staticmethod
    def _live():
        return or_(KVEntry.expires_at.is_(None), KVEntry.expires_at > utcnow())

    def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent or expired."""

        def _get() -> str | None:
            return self.session.execute(
                select(KVEntry.value).where(KVEntry.key == key, self._live())
            ).scalar_one_or_none()

        return self._run(_get)

    def put(self, key: str, value: str, expires_in: int | None = None) -> None:
        """Store a value, replacing any previous one (last writer wins)."""

        def _put() -> None:
            self.session.merge(KVEntry(key=key, value=value, expires_at=expires_after(expires_in)))
            self.session.commit()

        self._run(_put)

    def delete(self, key: str) -> None:
        """Remove a key if present."""

        def _delete() -> None:
            self.session.execute(delete(KVEntry).where(KVEntry.key == key))
            self.session.commit()

        self._run(_delete)

    def list_keys(self, prefix: str) -> list[str]:
        """Return live keys starting with ``prefix``."""

        def _list() -> list[str]:
            rows = self.session.execute(
                select(KVEntry.key)
                .where(KVEntry.key.startswith(prefix, autoescape=True), self._live())
                .order_by(KVEntry.key)
            )
            return list(rows.scalars())

        return self._run(_list)

    def count(self, prefix: str) -> int:
        """Return the number of live keys starting with ``prefix``."""

        def _count() -> int:
            return self.session.execute(
                select(func.count())
                .select_from(KVEntry)
                .where(KVEntry.key.startswith(prefix, autoescape=True), self._live())
            ).scalar_one()

        return self._run(_count)

    def purge_expired(self) -> int:
        """Delete rows whose TTL has passed and return how many were removed."""

        def _purge() -> int:
            result = self.session.execute(
                delete(KVEntry).where(
                    KVEntry.expires_at.is_not(None),
                    KVEntry.expires_at <= utcnow(),
                )
            )
            self.session.commit()
            return result.rowcount or 0

        return self._run(_purge)


class KVModel(Generic[T]):
    """Typed view over one namespace of a :class:`KeyValueStore`.

    Values are serialized to JSON with a pydantic ``TypeAdapter`` so plain
    strings, numbers and pydantic models share the same code path.
    """

    def __init__(self, namespace: str, store: KeyValueStore, value_type: type[T]) -> None:
        self.namespace = namespace
        self.store = store
        self._adapter: TypeAdapter[T] = TypeAdapter(value_type)

    def _key(self, record_id: str | int) -> str:
        return f"{self.namespace}:{record_id}"

    def save(self, record_id: str | int, data: T, expires_in: int | None = None) -> None:
        """Save or replace a record, optionally expiring after ``expires_in`` seconds."""
        self.store.put(
            self._key(record_id),
            self._adapter.dump_json(data).decode(),
            expires_in=expires_in,
        )

    def get(self, record_id: str | int) -> T | None:
        """Return the record for ``record_id`` or None."""
        raw = self.store.get(self._key(record_id))
        if raw is None:
            return None
        return self._adapter.validate_json(raw)

    def delete(self, record_id: str | int) -> None:
        """Delete the record for ``record_id``."""
        self.store.delete(self._key(record_id))

    def count(self, extra: str | None = None) -> int:
        """Count records in the namespace, optionally under a sub-prefix."""
        prefix = f"{self.namespace}:{extra}:" if extra else f"{self.namespace}:"
        return self.store.count(prefix)

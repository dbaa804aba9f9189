# src/nekonymous/models/kv_entry.py
"""SQLAlchemy model backing the namespaced key-value store."""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from nekonymous.db.session import Base
from nekonymous.db.time import utcnow


class KVEntry(Base):
    """Opaque value stored under ``namespace:id``.

    Values are JSON text or sealed conversation blobs; the store never
    interprets them. Rows past ``expires_at`` are treated as absent.
    """

    __tablename__ = "kv_entry"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

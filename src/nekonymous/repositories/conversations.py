"""Sealed conversation records keyed by ticket-derived conversation IDs."""
from __future__ import annotations

import logging

from pydantic import ValidationError

from nekonymous.core.errors import NoConversationFound, TicketError
from nekonymous.core.settings import settings
from nekonymous.repositories.kv_store import KeyValueStore, KVModel
from nekonymous.schemas.conversation import ConversationRecord
from nekonymous.services.tickets import Ticket, TicketManager

__all__ = ["ConversationStore"]

logger = logging.getLogger(__name__)


class ConversationStore:
    """Persist and recover conversation records through their tickets.

    Records are stored only in sealed form under ``conversation_id(ticket)``,
    so no reverse index from users to conversations exists.
    """

    def __init__(
        self,
        store: KeyValueStore,
        tickets: TicketManager,
        *,
        ttl_seconds: int | None = None,
    ) -> None:
        self.records: KVModel[str] = KVModel("conversation", store, str)
        self.tickets = tickets
        self.ttl_seconds = settings.conversation_ttl_seconds if ttl_seconds is None else ttl_seconds

    def save(self, ticket: Ticket, record: ConversationRecord) -> str:
        """Seal ``record`` under ``ticket`` and return the conversation ID used as key."""
        conversation_id = self.tickets.conversation_id(ticket)
        blob = self.tickets.seal(ticket, record.to_json())
        self.records.save(conversation_id, blob, expires_in=self.ttl_seconds or None)
        return conversation_id

    def open_connection(self, ticket: Ticket) -> ConversationRecord:
        """Return the record for ``ticket`` even if its payload was consumed.

        Every failure (bad ticket, missing key, tampered blob, unreadable
        JSON) raises the same :class:`NoConversationFound`.
        """
        try:
            conversation_id = self.tickets.conversation_id(ticket)
            blob = self.records.get(conversation_id)
            if blob is None:
                raise NoConversationFound("No record stored for this ticket")
            return ConversationRecord.model_validate_json(self.tickets.open(ticket, blob))
        except (TicketError, ValidationError, UnicodeDecodeError) as exc:
            logger.debug("Conversation lookup failed: %s", type(exc).__name__)
            raise NoConversationFound("Conversation could not be opened") from exc

    def open(self, ticket: Ticket) -> ConversationRecord:
        """Return the record for ``ticket`` only if its payload is still present."""
        record = self.open_connection(ticket)
        if record.consumed:
            raise NoConversationFound("Conversation payload already consumed")
        return record

    def consume(self, ticket: Ticket, record: ConversationRecord) -> None:
        """Clear the payload in place, keeping the connection metadata."""
        if record.consumed:
            return
        self.save(ticket, record.cleared())

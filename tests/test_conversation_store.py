"""Tests for sealed conversation records and their read-once lifecycle."""

import pytest

from nekonymous.core.errors import NoConversationFound
from nekonymous.repositories.conversations import ConversationStore
from nekonymous.repositories.kv_store import KeyValueStore
from nekonymous.schemas.conversation import Connection, ConversationRecord, TextContent
from nekonymous.services.tickets import Ticket, TicketManager


def _record(text: str = "hi") -> ConversationRecord:
    return ConversationRecord(
        connection=Connection(sender=1, recipient=2, parent_message_id=10, reply_to_message_id=None),
        payload=TextContent(message_text=text),
    )


def test_saved_record_is_stored_sealed(
    conversations: ConversationStore, store: KeyValueStore, ticket_manager: TicketManager
) -> None:
    ticket = ticket_manager.mint_ticket()
    conversation_id = conversations.save(ticket, _record("very private"))

    raw = store.get(f"conversation:{conversation_id}")
    assert raw is not None
    assert "very private" not in raw
    assert ticket.value not in raw
    assert conversations.open(ticket) == _record("very private")


def test_wire_format_uses_from_and_to(ticket_manager: TicketManager) -> None:
    data = _record().to_json()
    assert '"from":1' in data and '"to":2' in data


def test_open_after_consume_reports_not_found(
    conversations: ConversationStore, ticket_manager: TicketManager
) -> None:
    """Save, open, consume, then open again yields NoConversationFound."""
    ticket = ticket_manager.mint_ticket()
    conversations.save(ticket, _record())

    record = conversations.open(ticket)
    conversations.consume(ticket, record)

    with pytest.raises(NoConversationFound):
        conversations.open(ticket)
    remaining = conversations.open_connection(ticket)
    assert remaining.consumed
    assert remaining.connection == record.connection


@pytest.mark.parametrize("stored_payload", ["{}", "null", '{"message_type": "poll"}'])
def test_unrecognized_payload_reads_as_consumed(
    conversations: ConversationStore,
    store: KeyValueStore,
    ticket_manager: TicketManager,
    stored_payload: str,
) -> None:
    ticket = ticket_manager.mint_ticket()
    conversation_id = ticket_manager.conversation_id(ticket)
    plaintext = f'{{"connection": {{"from": 1, "to": 2}}, "payload": {stored_payload}}}'
    store.put(f"conversation:{conversation_id}", f'"{ticket_manager.seal(ticket, plaintext)}"')

    assert conversations.open_connection(ticket).consumed
    with pytest.raises(NoConversationFound):
        conversations.open(ticket)


def test_every_lookup_failure_looks_the_same(
    conversations: ConversationStore, store: KeyValueStore, ticket_manager: TicketManager
) -> None:
    """Missing, undecryptable, malformed and bad-ticket cases share one error."""
    missing = ticket_manager.mint_ticket()
    with pytest.raises(NoConversationFound):
        conversations.open(missing)

    with pytest.raises(NoConversationFound):
        conversations.open(Ticket("%%%"))

    ticket = ticket_manager.mint_ticket()
    conversation_id = conversations.save(ticket, _record())
    store.put(f"conversation:{conversation_id}", '"AAAA:AAAA"')
    with pytest.raises(NoConversationFound):
        conversations.open(ticket)

    other = ticket_manager.mint_ticket()
    foreign_blob = ticket_manager.seal(other, _record().to_json())
    store.put(f"conversation:{conversation_id}", f'"{foreign_blob}"')
    with pytest.raises(NoConversationFound):
        conversations.open(ticket)

    store.put(f"conversation:{conversation_id}", f'"{ticket_manager.seal(ticket, "not json")}"')
    with pytest.raises(NoConversationFound):
        conversations.open(ticket)


def test_records_expire(store: KeyValueStore, ticket_manager: TicketManager) -> None:
    short_lived = ConversationStore(store, ticket_manager, ttl_seconds=-1)
    ticket = ticket_manager.mint_ticket()
    short_lived.save(ticket, _record())
    with pytest.raises(NoConversationFound):
        short_lived.open(ticket)

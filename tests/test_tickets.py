"""Tests for ticket minting and the seal/open workflow."""

import pytest

from nekonymous.core.errors import AuthenticationFailure, InvalidSecretLength
from nekonymous.services.tickets import Ticket, TicketManager

TELEGRAM_CALLBACK_LIMIT = 64


def test_minted_tickets_are_unique_and_fit_callback_data(ticket_manager: TicketManager) -> None:
    tickets = {ticket_manager.mint_ticket() for _ in range(32)}
    assert len(tickets) == 32
    for ticket in tickets:
        assert len(f"unblock_{ticket.value}".encode()) <= TELEGRAM_CALLBACK_LIMIT


def test_ticket_value_is_masked_in_text_forms(ticket_manager: TicketManager) -> None:
    ticket = ticket_manager.mint_ticket()
    assert ticket.value not in repr(ticket)
    assert ticket.value not in str(ticket)


def test_conversation_id_is_stable(ticket_manager: TicketManager) -> None:
    ticket = ticket_manager.mint_ticket()
    assert ticket_manager.conversation_id(ticket) == ticket_manager.conversation_id(
        Ticket(ticket.value)
    )
    assert ticket_manager.conversation_id(ticket) != ticket_manager.conversation_id(
        ticket_manager.mint_ticket()
    )


def test_seal_and_open(ticket_manager: TicketManager) -> None:
    ticket = ticket_manager.mint_ticket()
    blob = ticket_manager.seal(ticket, '{"hello": "world"}')
    assert "world" not in blob
    assert ticket_manager.open(ticket, blob) == '{"hello": "world"}'


def test_open_with_another_ticket_fails(ticket_manager: TicketManager) -> None:
    blob = ticket_manager.seal(ticket_manager.mint_ticket(), "payload")
    with pytest.raises(AuthenticationFailure):
        ticket_manager.open(ticket_manager.mint_ticket(), blob)


def test_garbage_ticket_is_rejected(ticket_manager: TicketManager) -> None:
    with pytest.raises(InvalidSecretLength):
        ticket_manager.conversation_id(Ticket("not base64 at all!"))

"""Ticket minting and the seal/open workflow built on :mod:`nekonymous.services.crypto`."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from nekonymous.core.errors import InvalidSecretLength
from nekonymous.core.settings import settings
from nekonymous.services import crypto
from nekonymous.utils.codec import decode_b64, encode_b64

__all__ = ["Ticket", "TicketManager", "get_ticket_manager"]

_MAX_MINT_ATTEMPTS = 8


@dataclass(frozen=True)
class Ticket:
    """Bearer capability naming and unlocking one conversation.

    The value is kept out of ``repr()`` so tickets do not end up in logs by
    accident. Use :attr:`value` when the text has to leave the process, for
    example inside inline-button callback data.
    """

    value: str = field(repr=False)

    def __str__(self) -> str:
        return "Ticket(***)"

    def secret(self) -> bytes:
        """Return the raw secret bytes.

        Raises:
            InvalidSecretLength: If the text is not valid base64
        """
        try:
            return decode_b64(self.value)
        except ValueError as err:
            raise InvalidSecretLength("Ticket is not valid base64") from err


class TicketManager:
    """Mint tickets and apply one secret-combination scheme consistently."""

    def __init__(self, app_key: str | None = None) -> None:
        self._app_key = app_key

    def mint_ticket(self) -> Ticket:
        """Generate a fresh random ticket that yields a valid identity."""
        for _ in range(_MAX_MINT_ATTEMPTS):
            candidate = secrets.token_bytes(crypto.SECRET_LENGTH_BYTES)
            try:
                crypto.normalize_secret(candidate, self._app_key)
            except InvalidSecretLength:
                continue
            return Ticket(encode_b64(candidate))
        raise InvalidSecretLength("Could not mint a valid ticket")  # pragma: no cover

    def conversation_id(self, ticket: Ticket) -> str:
        """Return the storage key derived from a ticket."""
        return encode_b64(crypto.derive_public_id(ticket.secret(), self._app_key))

    def seal(self, ticket: Ticket, payload: str) -> str:
        """Encrypt a text payload under a ticket."""
        return crypto.seal_payload(ticket.secret(), payload.encode("utf-8"), self._app_key)

    def open(self, ticket: Ticket, blob: str) -> str:
        """Decrypt a blob sealed under the same ticket."""
        return crypto.open_payload(ticket.secret(), blob, self._app_key).decode("utf-8")


def get_ticket_manager() -> TicketManager:
    """Return a ticket manager bound to the configured application secret."""
    return TicketManager(settings.app_secure_key)

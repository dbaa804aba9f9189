"""Shared API dependencies for webhook authentication and service wiring."""

import hmac
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from nekonymous.core.settings import settings
from nekonymous.db.session import get_db
from nekonymous.repositories.conversations import ConversationStore
from nekonymous.repositories.kv_store import KeyValueStore
from nekonymous.repositories.users import UserRepository
from nekonymous.services.conversation import ConversationService
from nekonymous.services.inbox import InboxService, get_inbox_service
from nekonymous.services.stats import StatsService
from nekonymous.services.telegram import Notifier, get_telegram_client
from nekonymous.services.tickets import get_ticket_manager

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def verify_webhook_secret(
    x_telegram_bot_api_secret_token: Annotated[str | None, Header()] = None,
) -> None:
    """Reject updates that do not carry the configured webhook secret.

    Raises:
        HTTPException: If a secret is configured and the header does not match
    """
    expected = settings.telegram_webhook_secret
    if not expected:
        return
    provided = x_telegram_bot_api_secret_token or ""
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )


def get_notifier() -> Notifier:
    """Get the outbound notifier for dependency injection."""
    return get_telegram_client()


def get_inbox() -> InboxService:
    """Get the inbox service for dependency injection."""
    return get_inbox_service()


def get_store(db: SessionDep) -> KeyValueStore:
    """Wrap the request session in a key-value store."""
    return KeyValueStore(db)


NotifierDep = Annotated[Notifier, Depends(get_notifier)]
InboxDep = Annotated[InboxService, Depends(get_inbox)]
StoreDep = Annotated[KeyValueStore, Depends(get_store)]


def get_conversation_service(
    store: StoreDep,
    notifier: NotifierDep,
    inbox: InboxDep,
) -> ConversationService:
    """Assemble a conversation service bound to the request session.

    Args:
        store: Key-value store for the current request
        notifier: Outbound Telegram notifier
        inbox: Inbox queue service

    Returns:
        ConversationService ready to handle one update
    """
    tickets = get_ticket_manager()
    return ConversationService(
        users=UserRepository(store),
        conversations=ConversationStore(store, tickets),
        tickets=tickets,
        inbox=inbox,
        notifier=notifier,
        stats=StatsService(store),
    )


ConversationServiceDep = Annotated[ConversationService, Depends(get_conversation_service)]

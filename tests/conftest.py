# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

os.environ.setdefault("APP_SECURE_KEY", "test-app-secure-key")
os.environ.setdefault("SECRET_TELEGRAM_API_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORE_RETRY_BACKOFF_SECONDS", "0")
os.environ.pop("REDIS_URL", None)
os.environ.pop("TELEGRAM_WEBHOOK_SECRET", None)

from nekonymous.api.v1.dependencies import get_notifier
from nekonymous.db.session import Base
from nekonymous.db.session import get_db as app_get_session
from nekonymous.main import app as fastapi_app
from nekonymous.repositories.conversations import ConversationStore
from nekonymous.repositories.kv_store import KeyValueStore
from nekonymous.repositories.users import UserRepository
from nekonymous.schemas.conversation import MessageContent
from nekonymous.schemas.user import UserProfile
from nekonymous.services import inbox as inbox_module
from nekonymous.services.conversation import ConversationService
from nekonymous.services.inbox import InboxService
from nekonymous.services.rate_limit import RateLimiter
from nekonymous.services.stats import StatsService
from nekonymous.services.telegram import ReplyOptions
from nekonymous.services.tickets import TicketManager

TEST_DB_URL = "sqlite://"
TEST_APP_KEY = "test-app-secure-key"

_TELEGRAM_IDS = count(1000)


class FakeNotifier:
    """Records every outbound call instead of talking to Telegram."""

    def __init__(self) -> None:
        self.texts: list[tuple[int, str, ReplyOptions | None]] = []
        self.contents: list[tuple[int, MessageContent, ReplyOptions | None]] = []
        self.edits: list[tuple[int, int, dict[str, Any]]] = []
        self.answers: list[tuple[str, str | None]] = []
        self._message_ids = count(1)

    async def send_text(
        self, chat_id: int, text: str, options: ReplyOptions | None = None
    ) -> int | None:
        self.texts.append((chat_id, text, options))
        return next(self._message_ids)

    async def send_content(
        self, chat_id: int, content: MessageContent, options: ReplyOptions | None = None
    ) -> int | None:
        self.contents.append((chat_id, content, options))
        return next(self._message_ids)

    async def edit_reply_controls(
        self, chat_id: int, message_id: int, reply_markup: dict[str, Any]
    ) -> None:
        self.edits.append((chat_id, message_id, reply_markup))

    async def answer_callback(self, callback_query_id: str, text: str | None = None) -> None:
        self.answers.append((callback_query_id, text))

    def texts_for(self, chat_id: int) -> list[str]:
        return [text for target, text, _ in self.texts if target == chat_id]

    def contents_for(self, chat_id: int) -> list[tuple[MessageContent, ReplyOptions | None]]:
        return [(content, options) for target, content, options in self.contents if target == chat_id]


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own, which breaks SAVEPOINT rollback.
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )
    try:
        yield session
    finally:
        session.close()
        if transaction.is_active:
            transaction.rollback()
        connection.close()

        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(autouse=True)
def clear_inbox_cache() -> Iterator[None]:
    inbox_module._INBOX_CACHE.clear()
    yield
    inbox_module._INBOX_CACHE.clear()


@pytest.fixture()
def store(db_session: Session) -> KeyValueStore:
    return KeyValueStore(db_session, retry_backoff_seconds=0)


@pytest.fixture()
def ticket_manager() -> TicketManager:
    return TicketManager(TEST_APP_KEY)


@pytest.fixture()
def users(store: KeyValueStore) -> UserRepository:
    return UserRepository(store)


@pytest.fixture()
def conversations(store: KeyValueStore, ticket_manager: TicketManager) -> ConversationStore:
    return ConversationStore(store, ticket_manager)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def make_service(
    store: KeyValueStore,
    users: UserRepository,
    conversations: ConversationStore,
    ticket_manager: TicketManager,
    notifier: FakeNotifier,
) -> Callable[..., ConversationService]:
    """Build a conversation service; the cooldown is off unless requested."""

    def _make(cooldown_seconds: float = 0.0) -> ConversationService:
        return ConversationService(
            users=users,
            conversations=conversations,
            tickets=ticket_manager,
            inbox=InboxService(),
            notifier=notifier,
            stats=StatsService(store),
            rate_limiter=RateLimiter(cooldown_seconds),
            locale="en",
        )

    return _make


@pytest.fixture()
def service(make_service: Callable[..., ConversationService]) -> ConversationService:
    return make_service()


@pytest.fixture()
def make_user(users: UserRepository) -> Callable[..., UserProfile]:
    """Create a persisted user with a fresh Telegram id."""

    def _make(display_name: str = "Test User") -> UserProfile:
        user, _ = users.get_or_create(next(_TELEGRAM_IDS), display_name)
        return user

    return _make


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI, db_session: Session, notifier: FakeNotifier
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client

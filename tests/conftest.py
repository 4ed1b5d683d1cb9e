from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-parlor")
os.environ.setdefault("CHAT_STREAM_POLL_INTERVAL_SECONDS", "0.01")

from parlor.core.security import create_access_token
from parlor.core.settings import Settings
from parlor.db.session import Base
from parlor.db.session import get_db as app_get_session
from parlor.main import app as fastapi_app
from parlor.models import ChatMessage, ChatRoom, User
from parlor.services.identity import Caller

TEST_DB_URL = "sqlite://"

_TEST_SETTINGS_INSTANCE = Settings()


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; emit it so SAVEPOINTs nest correctly.
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
    # Service commits and rollbacks act on savepoints inside the outer transaction.
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Provide a Settings instance aligned with runtime configuration."""
    return _TEST_SETTINGS_INSTANCE


def _make_user(db_session: Session, email: str, username: str, **extra) -> User:
    user = User(email=email, username=username, **extra)
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def alice(db_session: Session) -> User:
    """Create the primary test user."""
    return _make_user(
        db_session,
        "alice@example.com",
        "alice",
        profile_picture_url="https://cdn.example.com/alice.png",
    )


@pytest.fixture()
def bob(db_session: Session) -> User:
    """Create a second regular user."""
    return _make_user(db_session, "bob@example.com", "bob")


@pytest.fixture()
def moderator(db_session: Session) -> User:
    """Create a user holding the moderator role."""
    return _make_user(db_session, "mod@example.com", "modkate", user_role="moderator")


@pytest.fixture()
def alice_caller(alice: User) -> Caller:
    return Caller(email=alice.email, username=alice.username)


@pytest.fixture()
def bob_caller(bob: User) -> Caller:
    return Caller(email=bob.email, username=bob.username)


def _headers_for(user: User) -> dict[str, str]:
    token = create_access_token(user.email, user.username)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Return a helper building bearer headers for any user."""
    return _headers_for


@pytest.fixture()
def alice_headers(alice: User) -> dict[str, str]:
    return _headers_for(alice)


@pytest.fixture()
def bob_headers(bob: User) -> dict[str, str]:
    return _headers_for(bob)


@pytest.fixture()
def room(db_session: Session) -> ChatRoom:
    """Create an active room."""
    room = ChatRoom(name="General", description="General discussion", is_active=True)
    db_session.add(room)
    db_session.flush()
    db_session.refresh(room)
    return room


@pytest.fixture()
def inactive_room(db_session: Session) -> ChatRoom:
    """Create a deactivated room."""
    room = ChatRoom(name="Archive", is_active=False)
    db_session.add(room)
    db_session.flush()
    db_session.refresh(room)
    return room


@pytest.fixture()
def post_messages(db_session: Session, room: ChatRoom) -> Callable[..., list[ChatMessage]]:
    """Return a helper that appends ``count`` messages from a user to the room."""

    def _post(user: User, count: int, prefix: str = "message") -> list[ChatMessage]:
        messages = [
            ChatMessage(
                room_id=room.id,
                user_email=user.email,
                username=user.username,
                message_text=f"{prefix} {index}",
            )
            for index in range(count)
        ]
        db_session.add_all(messages)
        db_session.flush()
        return messages

    return _post

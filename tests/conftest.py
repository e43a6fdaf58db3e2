# tests/conftest.py

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from taskapi.auth import TokenAuthenticator, hash_password
from taskapi.config import Settings, get_settings
from taskapi.database import create_tables, get_db
from taskapi.emails import get_mailer
from taskapi.main import app
from taskapi.models import Task, User

from .fakes import FakeMailer

TEST_SECRET = "test-secret"


@pytest.fixture()
def settings() -> Settings:
    """Fixture settings; nothing is read from the real environment."""
    return Settings(
        database_url="sqlite://",
        secret_key=TEST_SECRET,
        access_token_expire_minutes=60,
    )


@pytest.fixture()
def authenticator(settings: Settings) -> TokenAuthenticator:
    return TokenAuthenticator(
        secret_key=settings.secret_key,
        algorithm=settings.jwt_algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )


@pytest.fixture()
def engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
        class_=Session,
    )


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def client(session_factory, settings, mailer):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def seeded(session_factory, authenticator) -> SimpleNamespace:
    """
    Two users with one session token each; user one owns "First Task"
    (incomplete) and "Second Task" (completed), user two owns "Third Task".
    """
    base = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    session = session_factory()
    try:
        user_one = User(name="Mike", email="mike@example.com", password=hash_password("56what!!"))
        user_two = User(name="Vlad", email="vlad@example.com", password=hash_password("myPass1309!!"))
        session.add(user_one)
        session.add(user_two)
        token_one = authenticator.issue_token(user_one)
        token_two = authenticator.issue_token(user_two)

        task_one = Task(
            description="First Task",
            completed=False,
            owner_id=user_one.id,
            created_at=base,
            updated_at=base,
        )
        task_two = Task(
            description="Second Task",
            completed=True,
            owner_id=user_one.id,
            created_at=base + timedelta(seconds=1),
            updated_at=base + timedelta(seconds=1),
        )
        task_three = Task(
            description="Third Task",
            completed=True,
            owner_id=user_two.id,
            created_at=base + timedelta(seconds=2),
            updated_at=base + timedelta(seconds=2),
        )
        session.add_all([task_one, task_two, task_three])
        session.commit()

        return SimpleNamespace(
            user_one_id=user_one.id,
            user_one_email=user_one.email,
            user_one_password="56what!!",
            user_one_token=token_one,
            user_two_id=user_two.id,
            user_two_token=token_two,
            task_one_id=task_one.id,
            task_two_id=task_two.id,
            task_three_id=task_three.id,
        )
    finally:
        session.close()

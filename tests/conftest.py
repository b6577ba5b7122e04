"""Pytest fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from trust_engine.core.config import settings
from trust_engine.core.security import create_access_token
from trust_engine.db.base import Base
from trust_engine.db.session import get_db
from trust_engine.main import app
from trust_engine.models import Appeal, BlockedWord, Flag, Listing, ModerationAction, User  # noqa: F401 - register for create_all
from trust_engine.services.collaborators import ListingRecord, UserRecord
from trust_engine.services.directory import InMemoryListingDirectory, InMemoryUserDirectory
from trust_engine.services.engine import build_engine
from trust_engine.storage.memory import InMemoryModerationStore

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[int, str, dict]] = []

    def notify(self, user_id, event, details) -> None:
        self.sent.append((user_id, event, details))

    def events(self, user_id: int | None = None) -> list[str]:
        return [event for uid, event, _ in self.sent if user_id is None or uid == user_id]


class RecordingCache:
    def __init__(self) -> None:
        self.users: list[int] = []
        self.listings: list[str] = []

    def invalidate_user(self, user_id) -> None:
        self.users.append(user_id)

    def invalidate_listing(self, listing_id) -> None:
        self.listings.append(listing_id)


ADMIN_ID = 1
REPORTER_ID = 2
OWNER_ID = 3
OTHER_ID = 4


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def cache():
    return RecordingCache()


@pytest.fixture
def users():
    return InMemoryUserDirectory(
        [
            UserRecord(id=ADMIN_ID, is_admin=True),
            UserRecord(id=REPORTER_ID),
            UserRecord(id=OWNER_ID),
            UserRecord(id=OTHER_ID),
        ]
    )


@pytest.fixture
def listings():
    return InMemoryListingDirectory(
        [
            ListingRecord(
                id="L1",
                user_id=OWNER_ID,
                title="Vintage desk lamp",
                description="Brass lamp, works fine. Pickup only.",
                price_usd=35.0,
                category="home",
            ),
            ListingRecord(
                id="L2",
                user_id=OWNER_ID,
                title="Road bike",
                description="Aluminium frame, new tyres.",
                price_usd=220.0,
                category="sports",
            ),
        ]
    )


@pytest.fixture
def config():
    return settings.model_copy(update={"appeal_deadline_days": 7})


@pytest.fixture
def moderation(users, listings, cache, notifier, config, clock):
    """Moderation engine over the in-memory store."""
    store = InMemoryModerationStore()
    users.bind(store)
    listings.bind(store)
    return build_engine(
        store,
        users,
        listings,
        cache=cache,
        notifier=notifier,
        config=config,
        clock=clock,
    )


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(setup_db):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        with engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture
def client(db_session):
    """Test client with overridden DB."""
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_header(user_id: int) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}

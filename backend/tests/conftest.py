"""
Pytest configuration and fixtures for Ledgerline tests.
"""

import os

# Settings are read at import time, so the test environment goes first
os.environ.setdefault("SECRET_KEY", "test_secret_key_for_testing_only")
os.environ.setdefault("COOKIE_SECURE", "false")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("SITE_URL", "https://blog.example.com")

import pytest
from typing import Generator, List, Optional
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core.database import Base, get_db
from app.core.auth import create_access_token, hash_password
from app.core.rate_limit import limiter
from app.models.user import User
from app.models.category import Category
from app.models.post import Post
from app.models.comment import Comment
from app.models.topic import Topic
from app.models.generation_schedule import GenerationSchedule
from app.services.content_generator import GeneratedPost, get_content_generator

CRON_SECRET = os.environ["CRON_SECRET"]

# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


class FakeContentGenerator:
    """Stands in for the OpenAI-backed generator."""

    def __init__(self, succeed: bool = True, configured: bool = True):
        self.succeed = succeed
        self.configured = configured
        self.calls = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def generate_post(
        self,
        prompt_template: str,
        category_name: str,
        related_assets: Optional[List[str]] = None,
    ) -> Optional[GeneratedPost]:
        self.calls.append((prompt_template, category_name, related_assets))
        if not (self.succeed and self.configured):
            return None
        return GeneratedPost(
            title="Bitcoin Outlook For The Week Ahead",
            slug="bitcoin-outlook-for-the-week-ahead",
            excerpt="What to watch in the crypto market this week.",
            content="Bitcoin " * 450,
            cover_image="https://images.example.com/cover.jpg",
            reading_time=3,
            tags=["bitcoin", "markets"],
            related_assets=list(related_assets or []),
            published_at=datetime.utcnow(),
        )


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def content_generator() -> FakeContentGenerator:
    return FakeContentGenerator()


@pytest.fixture(scope="function")
def test_app(db_session, content_generator):
    """Create a FastAPI test app without lifespan events."""
    from fastapi import FastAPI
    from app.main import include_routers

    # Create app without lifespan to avoid event loop issues
    test_app = FastAPI(title="Ledgerline - Test", version="1.0.0")
    test_app.state.limiter = limiter
    include_routers(test_app)

    # Override database dependency
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_content_generator] = lambda: content_generator

    return test_app


@pytest.fixture(scope="function")
def client(test_app) -> TestClient:
    """Anonymous test client."""
    return TestClient(test_app, raise_server_exceptions=False)


def _make_user(db_session, username, email, password="password123", is_admin=False):
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        is_admin=is_admin,
        is_active=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_user(db_session) -> User:
    """Create a regular reader account."""
    return _make_user(db_session, "reader", "reader@example.com")


@pytest.fixture(scope="function")
def admin_user(db_session) -> User:
    """Create an admin account."""
    return _make_user(db_session, "admin", "admin@example.com", is_admin=True)


@pytest.fixture(scope="function")
def auth_headers(test_user) -> dict:
    """Bearer header for the regular user."""
    access_token = create_access_token(data={"sub": test_user.id})
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture(scope="function")
def authenticated_client(test_app, test_user) -> TestClient:
    """Client logged in as the regular user via cookie."""
    client = TestClient(test_app, raise_server_exceptions=False)
    client.cookies.set("auth_token", create_access_token(data={"sub": test_user.id}))
    return client


@pytest.fixture(scope="function")
def admin_client(test_app, admin_user) -> TestClient:
    """Client logged in as the admin via cookie."""
    client = TestClient(test_app, raise_server_exceptions=False)
    client.cookies.set("auth_token", create_access_token(data={"sub": admin_user.id}))
    return client


@pytest.fixture(scope="function")
def cron_headers() -> dict:
    return {"X-Cron-Secret": CRON_SECRET}


@pytest.fixture(scope="function")
def test_category(db_session) -> Category:
    """Create a test category."""
    category = Category(
        name="Crypto",
        slug="crypto",
        description="Cryptocurrency news and analysis",
        icon="currency_bitcoin",
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture(scope="function")
def test_post(db_session, admin_user, test_category) -> Post:
    """Create a published post."""
    post = Post(
        title="Understanding Bitcoin Halving",
        slug="understanding-bitcoin-halving",
        excerpt="Why the halving matters for miners and investors.",
        content="The Bitcoin halving cuts the block reward in half.",
        cover_image="https://images.example.com/halving.jpg",
        published_at=datetime.utcnow() - timedelta(days=1),
        reading_time=4,
        author_id=admin_user.id,
        category_id=test_category.id,
        tags=["bitcoin"],
        related_assets=["BTC"],
    )
    db_session.add(post)
    db_session.commit()
    db_session.refresh(post)
    return post


@pytest.fixture(scope="function")
def comment_thread(db_session, test_post) -> dict:
    """A top-level comment with two approved replies and one pending comment."""
    root = Comment(
        post_id=test_post.id,
        content="Great overview",
        author_name="Alice",
        author_email="alice@example.com",
        is_approved=True,
        created_at=datetime.utcnow() - timedelta(minutes=30),
    )
    db_session.add(root)
    db_session.commit()

    replies = []
    for offset, name in ((20, "Bob"), (10, "Carol")):
        reply = Comment(
            post_id=test_post.id,
            parent_id=root.id,
            content=f"Reply from {name}",
            author_name=name,
            author_email=f"{name.lower()}@example.com",
            is_approved=True,
            created_at=datetime.utcnow() - timedelta(minutes=offset),
        )
        db_session.add(reply)
        replies.append(reply)

    pending = Comment(
        post_id=test_post.id,
        content="Awaiting moderation",
        author_name="Dave",
        author_email="dave@example.com",
        is_approved=False,
    )
    db_session.add(pending)
    db_session.commit()

    return {
        "root_id": root.id,
        "reply_ids": [reply.id for reply in replies],
        "pending_id": pending.id,
    }


@pytest.fixture(scope="function")
def test_topic(db_session, test_category) -> Topic:
    topic = Topic(
        title="Ethereum staking explained",
        description="How staking rewards work after the merge",
        category_id=test_category.id,
        email="guest@example.com",
        status="pending",
    )
    db_session.add(topic)
    db_session.commit()
    db_session.refresh(topic)
    return topic


@pytest.fixture(scope="function")
def make_schedule(db_session, test_category, admin_user):
    """Factory inserting schedules directly, bypassing the future-date check."""

    def _make(
        scheduled_for: datetime,
        status: str = "pending",
        topic: Optional[Topic] = None,
        category_id: Optional[int] = None,
        author_id: Optional[int] = -1,
        title: str = "BTC Outlook",
    ) -> GenerationSchedule:
        schedule = GenerationSchedule(
            topic_id=topic.id if topic else None,
            title=title,
            description="Where bitcoin is heading",
            category_id=category_id or test_category.id,
            author_id=admin_user.id if author_id == -1 else author_id,
            related_assets=["BTC"],
            scheduled_for=scheduled_for,
            status=status,
        )
        db_session.add(schedule)
        db_session.commit()
        db_session.refresh(schedule)
        return schedule

    return _make

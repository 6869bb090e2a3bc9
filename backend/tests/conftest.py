"""
Centralized Test Configuration.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import itertools
from typing import Dict, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.dependencies import get_payment_provider
from backend.app.core.exceptions import PaymentProviderError
from backend.app.core.jwt import create_access_token
from backend.app.domain.payments.provider import CheckoutSession, LineItem
from backend.app.models.enums import UserRole
from backend.app.models.parcel import Parcel
from backend.app.models.user import User
import backend.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, key):
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}
        self.ttls = {}


class FakePaymentProvider:
    """In-memory stand-in for the checkout provider."""

    def __init__(self):
        self.sessions: Dict[str, CheckoutSession] = {}
        self.created = []
        self.retrieve_calls = 0
        self.unavailable = False
        self._ids = itertools.count(1)

    def add_session(
        self,
        session_id: str,
        parcel_id,
        payment_status: str = "paid",
        payment_intent_id: Optional[str] = None,
        amount_total: Optional[int] = 1500,
        customer_email: Optional[str] = "sender@test.com",
        parcel_name: str = "Documents"
    ) -> CheckoutSession:
        session = CheckoutSession(
            id=session_id,
            payment_status=payment_status,
            payment_intent_id=payment_intent_id,
            amount_total=amount_total,
            currency="usd",
            customer_email=customer_email,
            metadata={"parcel_id": str(parcel_id), "parcel_name": parcel_name},
        )
        self.sessions[session_id] = session
        return session

    async def create_session(self, line_item: LineItem, success_url, cancel_url, metadata, customer_email):
        if self.unavailable:
            raise PaymentProviderError("Payment provider temporarily unavailable")
        session_id = f"cs_test_{next(self._ids)}"
        session = CheckoutSession(
            id=session_id,
            url=f"https://checkout.test/{session_id}",
            payment_status="unpaid",
            amount_total=line_item.unit_amount,
            currency=line_item.currency,
            customer_email=customer_email,
            metadata=dict(metadata),
        )
        self.sessions[session_id] = session
        self.created.append({
            "line_item": line_item,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "customer_email": customer_email,
        })
        return session

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        self.retrieve_calls += 1
        if self.unavailable:
            raise PaymentProviderError("Payment provider temporarily unavailable")
        if session_id not in self.sessions:
            raise PaymentProviderError("No such checkout session", details={"session_id": session_id})
        return self.sessions[session_id]


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(redis_client_session):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    # Restore and clear
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def payment_provider():
    provider = FakePaymentProvider()
    app.dependency_overrides[get_payment_provider] = lambda: provider
    yield provider
    app.dependency_overrides.pop(get_payment_provider, None)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory():
    """Fresh sessions for reading back state written through the API."""
    return TestingSessionLocal


def auth_headers(email: str, **claims) -> Dict[str, str]:
    token = create_access_token(data={"sub": f"uid-{email}", "email": email, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def create_user(db_session):
    async def _create(email: str, role: UserRole = UserRole.USER) -> User:
        user = User(email=email, role=role, display_name=email.split("@")[0])
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user
    return _create


@pytest.fixture
def create_parcel(db_session):
    async def _create(sender_email: str = "sender@test.com", cost: float = 15.0, name: str = "Documents") -> Parcel:
        parcel = Parcel(sender_email=sender_email, name=name, cost=cost, parcel_type="document")
        db_session.add(parcel)
        await db_session.commit()
        await db_session.refresh(parcel)
        return parcel
    return _create


@pytest.fixture
async def admin_headers(create_user):
    await create_user("admin@test.com", UserRole.ADMIN)
    return auth_headers("admin@test.com")

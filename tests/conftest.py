"""
Test configuration and fixtures for the BuildEx marketplace API.
Provides database fixtures, fake collaborators, test data factories and an API client.
"""

import os

# Settings are read at import time; point them at an in-memory database first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import hashlib
import hmac
import json
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional, Tuple

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from buildex.database import Base, get_db
from buildex.main import app
from buildex.models.property import AvailabilityStatus, ListingStatus, Property, PropertyPurpose
from buildex.models.user import User, UserRole
from buildex.repositories.enquiry import EnquiryRepository
from buildex.repositories.payment import PaymentRepository
from buildex.repositories.property import PropertyRepository
from buildex.repositories.rent_request import RentRequestRepository
from buildex.repositories.rent_subscription import RentSubscriptionRepository
from buildex.repositories.user import UserRepository
from buildex.services.auth import AuthService
from buildex.services.enquiry import EnquiryService
from buildex.services.gateway import RazorpayGateway
from buildex.services.otp import MemoryOtpStore, OtpService
from buildex.services.payment import PaymentService
from buildex.services.property import PropertyService
from buildex.services.rent_request import RentRequestService
from buildex.utils.auth import create_access_token
from buildex.utils.dependencies import (
    get_clock,
    get_notification_dispatcher,
    get_otp_store,
    get_payment_gateway
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

GATEWAY_KEY_ID = "rzp_test_key"
GATEWAY_SECRET = "rzp_test_secret"
DEFAULT_PASSWORD = "testpassword123"


def sign(order_id: str, payment_id: str, secret: str = GATEWAY_SECRET) -> str:
    """Signature the gateway attaches to a success callback."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class FrozenClock:
    """Clock pinned to a fixed instant until moved with advance() or set()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeDispatcher:
    """Notification dispatcher that records messages instead of sending them."""

    def __init__(self):
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []
        self.failing_templates = set()
        self.raising_templates = set()
        self.raise_on_send = False

    async def send(self, recipient: str, template_name: str, data: Dict[str, Any]) -> bool:
        if self.raise_on_send or template_name in self.raising_templates:
            raise RuntimeError("SMTP connection reset")
        if template_name in self.failing_templates:
            return False
        self.sent.append((recipient, template_name, data))
        return True

    def templates(self) -> List[str]:
        return [template for _, template, _ in self.sent]

    def last(self, template_name: str) -> Optional[Dict[str, Any]]:
        for _, template, data in reversed(self.sent):
            if template == template_name:
                return data
        return None


class GatewayRecorder:
    """Mock transport handler standing in for the gateway's order API."""

    def __init__(self):
        self.orders: List[Dict[str, Any]] = []
        self.fail_with: Optional[Tuple[int, Dict[str, Any]]] = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with is not None:
            status_code, body = self.fail_with
            return httpx.Response(status_code, json=body)

        payload = json.loads(request.content)
        order = {
            "id": f"order_{uuid.uuid4().hex[:14]}",
            "entity": "order",
            "amount": payload["amount"],
            "currency": payload["currency"],
            "receipt": payload["receipt"],
            "notes": payload.get("notes", {}),
            "status": "created",
        }
        self.orders.append({"request": request, "payload": payload, "order": order})
        return httpx.Response(200, json=order)


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc))


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def gateway_recorder() -> GatewayRecorder:
    return GatewayRecorder()


@pytest.fixture
def gateway(gateway_recorder: GatewayRecorder) -> RazorpayGateway:
    """Configured gateway client talking to the mock transport."""
    return RazorpayGateway(
        GATEWAY_KEY_ID,
        GATEWAY_SECRET,
        api_url="https://gateway.test/v1",
        transport=httpx.MockTransport(gateway_recorder)
    )


@pytest.fixture
def otp_store(clock: FrozenClock) -> MemoryOtpStore:
    return MemoryOtpStore(clock=clock)


# Repository fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


@pytest.fixture
def payment_repository(db_session: AsyncSession) -> PaymentRepository:
    return PaymentRepository(db_session)


@pytest.fixture
def subscription_repository(db_session: AsyncSession) -> RentSubscriptionRepository:
    return RentSubscriptionRepository(db_session)


@pytest.fixture
def enquiry_repository(db_session: AsyncSession) -> EnquiryRepository:
    return EnquiryRepository(db_session)


@pytest.fixture
def rent_request_repository(db_session: AsyncSession) -> RentRequestRepository:
    return RentRequestRepository(db_session)


# Service fixtures
@pytest.fixture
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
def property_service(db_session: AsyncSession) -> PropertyService:
    return PropertyService(db_session)


@pytest.fixture
def payment_service(
    db_session: AsyncSession,
    gateway: RazorpayGateway,
    dispatcher: FakeDispatcher,
    clock: FrozenClock
) -> PaymentService:
    return PaymentService(db_session, gateway=gateway, dispatcher=dispatcher, clock=clock)


@pytest.fixture
def otp_service(db_session: AsyncSession, otp_store: MemoryOtpStore, dispatcher: FakeDispatcher) -> OtpService:
    return OtpService(db_session, store=otp_store, dispatcher=dispatcher, ttl_seconds=600)


@pytest.fixture
def enquiry_service(db_session: AsyncSession, dispatcher: FakeDispatcher) -> EnquiryService:
    return EnquiryService(db_session, dispatcher)


@pytest.fixture
def rent_request_service(
    db_session: AsyncSession,
    dispatcher: FakeDispatcher,
    clock: FrozenClock
) -> RentRequestService:
    return RentRequestService(db_session, dispatcher, clock=clock)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    def create_user_data(
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        full_name: str = "Test User",
        role: UserRole = UserRole.USER,
        is_active: bool = True,
        phone: str = "9876543210"
    ) -> dict:
        return {
            "email": email or f"user{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "full_name": full_name,
            "phone": phone,
            "role": role,
            "is_active": is_active
        }

    @staticmethod
    async def create_user(user_repo: UserRepository, **kwargs) -> User:
        """Create a test user in the database."""
        return await user_repo.create_user(UserFactory.create_user_data(**kwargs))


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(
        builder_id: int,
        title: str = "Sunrise Residency 2BHK",
        property_type: str = "Apartment",
        purpose: PropertyPurpose = PropertyPurpose.BUY,
        price: Optional[str] = "5,00,000",
        rent_amount: Optional[str] = None,
        city: str = "Pune",
        locality: str = "Baner",
        images: str = '{"https://cdn.example.com/a.jpg","https://cdn.example.com/b.jpg"}',
        availability_status: AvailabilityStatus = AvailabilityStatus.AVAILABLE,
        status: ListingStatus = ListingStatus.APPROVED
    ) -> dict:
        return {
            "builder_id": builder_id,
            "title": title,
            "property_type": property_type,
            "purpose": purpose,
            "price": price,
            "rent_amount": rent_amount,
            "city": city,
            "locality": locality,
            "bedrooms": 2,
            "bathrooms": 2,
            "area_sqft": "1150",
            "images": images,
            "availability_status": availability_status,
            "status": status
        }

    @staticmethod
    async def create_property(property_repo: PropertyRepository, builder: User, **kwargs) -> Property:
        """Create a test property in the database."""
        return await property_repo.create(PropertyFactory.create_property_data(builder.id, **kwargs))


# Common data fixtures
@pytest.fixture
async def test_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="tenant@example.com", full_name="Asha Rao"
    )


@pytest.fixture
async def test_builder(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="builder@example.com", full_name="Skyline Builders", role=UserRole.BUILDER
    )


@pytest.fixture
async def test_admin(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="admin@example.com", full_name="Admin", role=UserRole.ADMIN
    )


@pytest.fixture
async def test_inactive_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(
        user_repository, email="inactive@example.com", is_active=False
    )


@pytest.fixture
async def sale_property(property_repository: PropertyRepository, test_builder: User) -> Property:
    return await PropertyFactory.create_property(property_repository, test_builder)


@pytest.fixture
async def rental_property(property_repository: PropertyRepository, test_builder: User) -> Property:
    return await PropertyFactory.create_property(
        property_repository,
        test_builder,
        title="Lakeview 1BHK",
        purpose=PropertyPurpose.RENT,
        price=None,
        rent_amount="15000"
    )


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    gateway: RazorpayGateway,
    dispatcher: FakeDispatcher,
    clock: FrozenClock,
    otp_store: MemoryOtpStore
) -> AsyncGenerator[AsyncClient, None]:
    """API client with the database and external collaborators overridden."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_otp_store] = lambda: otp_store

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()

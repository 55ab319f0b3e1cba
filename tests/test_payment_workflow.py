"""
Tests for the checkout, completion, failure and expiry workflow of PaymentService.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from buildex.database import Base
from buildex.models.payment import PaymentStatus, PaymentType
from buildex.models.property import AvailabilityStatus, Property, PropertyPurpose
from buildex.models.rent_subscription import SubscriptionStatus
from buildex.models.user import User, UserRole
from buildex.repositories.payment import PaymentRepository
from buildex.repositories.property import PropertyRepository
from buildex.repositories.rent_subscription import RentSubscriptionRepository
from buildex.repositories.user import UserRepository
from buildex.services.gateway import RazorpayGateway
from buildex.services.payment import PaymentService, CheckoutSession
from buildex.utils.result import Ok, Err, ErrorKind
from tests.conftest import GATEWAY_KEY_ID, FrozenClock, PropertyFactory, UserFactory, sign


async def start_checkout(service: PaymentService, user: User, prop: Property, payment_type, amount=None) -> CheckoutSession:
    result = await service.initiate_checkout(user, prop.id, payment_type, amount)
    assert isinstance(result, Ok), result
    return result.value


async def settle(service: PaymentService, order_id: str, payment_id: str = "pay_abc"):
    return await service.complete_payment(order_id, payment_id, sign(order_id, payment_id))


class TestInitiateCheckout:
    """Test checkout preconditions and the pending payment record."""

    @pytest.mark.asyncio
    async def test_purchase_checkout_creates_pending_payment(
        self,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        gateway_recorder,
        test_user: User,
        test_builder: User,
        sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)

        assert session.key_id == GATEWAY_KEY_ID
        assert session.amount == 50000000
        assert session.currency == "INR"
        assert session.name == "BuildEx"
        assert session.description == "Purchase of Sunrise Residency 2BHK"
        assert session.prefill == {"name": "Asha Rao", "email": "tenant@example.com", "contact": "9876543210"}
        assert session.notes["payment_id"] == session.payment_id

        # The order id comes from the gateway, not from the caller
        assert len(gateway_recorder.orders) == 1
        assert session.order_id == gateway_recorder.orders[0]["order"]["id"]
        assert gateway_recorder.orders[0]["payload"]["amount"] == 50000000
        assert gateway_recorder.orders[0]["payload"]["receipt"].startswith("order_")

        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.id == session.payment_id
        assert payment.status == PaymentStatus.PENDING
        assert payment.payment_type == PaymentType.PURCHASE
        assert payment.amount == Decimal("500000")
        assert payment.user_id == test_user.id
        assert payment.builder_id == test_builder.id
        assert payment.gateway_payment_id is None

    @pytest.mark.asyncio
    async def test_rent_checkout_uses_rent_amount(
        self, payment_service: PaymentService, test_user: User, rental_property: Property
    ):
        session = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)

        assert session.amount == 1500000
        assert session.description == "Rent Payment for Lakeview 1BHK"
        assert session.notes["payment_type"] == "RENT"

    @pytest.mark.asyncio
    async def test_buy_is_accepted_as_purchase(
        self, payment_service: PaymentService, payment_repository: PaymentRepository,
        test_user: User, sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, "BUY")

        payment = await payment_repository.get_by_id(session.payment_id)
        assert payment.payment_type == PaymentType.PURCHASE

    @pytest.mark.asyncio
    async def test_displayed_amount_matching_listing_is_accepted(
        self, payment_service: PaymentService, test_user: User, sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE, "₹5,00,000")
        assert session.amount == 50000000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["1", "₹12,500.50", Decimal("500000.01")])
    async def test_amount_other_than_listing_price_is_rejected(
        self, payment_service: PaymentService, payment_repository: PaymentRepository,
        gateway_recorder, test_user: User, sale_property: Property, amount
    ):
        result = await payment_service.initiate_checkout(test_user, sale_property.id, PaymentType.PURCHASE, amount)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.INVALID_AMOUNT
        assert result.message == "Amount does not match the listing"
        assert gateway_recorder.orders == []
        assert await payment_repository.count() == 0

    @pytest.mark.asyncio
    async def test_rent_amount_cannot_be_lowered(
        self, payment_service: PaymentService, test_user: User, rental_property: Property
    ):
        result = await payment_service.initiate_checkout(test_user, rental_property.id, PaymentType.RENT, 100)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_anonymous_checkout_requires_login(
        self, payment_service: PaymentService, payment_repository: PaymentRepository,
        gateway_recorder, sale_property: Property
    ):
        result = await payment_service.initiate_checkout(None, sale_property.id, PaymentType.PURCHASE)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.AUTH_REQUIRED
        assert result.message == "Please log in to continue with payment"
        assert gateway_recorder.orders == []
        assert await payment_repository.count() == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["abc", "0", "-", "-500", "₹-5,00,000", Decimal("-5"), 0])
    async def test_invalid_amount(
        self, payment_service: PaymentService, payment_repository: PaymentRepository,
        test_user: User, sale_property: Property, amount
    ):
        result = await payment_service.initiate_checkout(test_user, sale_property.id, PaymentType.PURCHASE, amount)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.INVALID_AMOUNT
        assert result.message == "Invalid payment amount"
        assert await payment_repository.count() == 0

    @pytest.mark.asyncio
    async def test_listing_without_price_is_invalid_amount(
        self, payment_service: PaymentService, test_user: User, rental_property: Property
    ):
        """A rental listing has no sale price to charge."""
        result = await payment_service.initiate_checkout(test_user, rental_property.id, PaymentType.PURCHASE)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.INVALID_AMOUNT

    @pytest.mark.asyncio
    async def test_unknown_property(self, payment_service: PaymentService, test_user: User):
        result = await payment_service.initiate_checkout(test_user, 9999, PaymentType.PURCHASE)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_unknown_payment_type(
        self, payment_service: PaymentService, test_user: User, sale_property: Property
    ):
        result = await payment_service.initiate_checkout(test_user, sale_property.id, "LEASE")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_unconfigured_gateway(
        self, db_session: AsyncSession, dispatcher, clock, payment_repository: PaymentRepository,
        test_user: User, sale_property: Property
    ):
        service = PaymentService(db_session, gateway=RazorpayGateway(None, None), dispatcher=dispatcher, clock=clock)

        result = await service.initiate_checkout(test_user, sale_property.id, PaymentType.PURCHASE)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.GATEWAY_UNAVAILABLE
        assert result.message == "Payment gateway not configured. Please contact admin."
        assert await payment_repository.count() == 0

    @pytest.mark.asyncio
    async def test_gateway_rejection_records_nothing(
        self, payment_service: PaymentService, payment_repository: PaymentRepository,
        gateway_recorder, test_user: User, sale_property: Property
    ):
        gateway_recorder.fail_with = (400, {"error": {"description": "Authentication failed"}})

        result = await payment_service.initiate_checkout(test_user, sale_property.id, PaymentType.PURCHASE)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.GATEWAY_FAILURE
        assert result.message == "Authentication failed"
        assert await payment_repository.count() == 0

    @pytest.mark.asyncio
    async def test_store_failure_is_returned_not_raised(
        self, payment_service: PaymentService, test_user: User, sale_property: Property, monkeypatch
    ):
        async def broken_create(obj_in, commit=True):
            raise RuntimeError("disk I/O error")

        monkeypatch.setattr(payment_service.payment_repo, "create", broken_create)

        result = await payment_service.initiate_checkout(test_user, sale_property.id, PaymentType.PURCHASE)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.STORE_WRITE
        assert result.message == "Could not save your payment. Please try again."


class TestCompletePayment:
    """Test settlement of successful gateway callbacks."""

    @pytest.mark.asyncio
    async def test_purchase_completion_marks_property_sold(
        self,
        db_session: AsyncSession,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        subscription_repository: RentSubscriptionRepository,
        dispatcher,
        test_user: User,
        test_builder: User,
        sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)

        result = await settle(payment_service, session.order_id, "pay_abc")

        assert isinstance(result, Ok)
        outcome = result.value
        assert outcome.already_processed is False
        assert outcome.subscription is None
        assert outcome.payment.status == PaymentStatus.COMPLETED
        assert outcome.payment.gateway_payment_id == "pay_abc"
        assert outcome.payment.payment_date is not None

        await db_session.refresh(sale_property)
        assert sale_property.availability_status == AvailabilityStatus.SOLD
        assert await subscription_repository.count() == 0

        # One message to the buyer, one to the owner
        assert [(to, template) for to, template, _ in dispatcher.sent] == [
            ("tenant@example.com", "payment_confirmation_user"),
            ("builder@example.com", "payment_notification_owner"),
        ]
        user_mail = dispatcher.last("payment_confirmation_user")
        assert user_mail["user_name"] == "Asha Rao"
        assert user_mail["property_name"] == "Sunrise Residency 2BHK"
        assert user_mail["amount"] == Decimal("500000")
        assert user_mail["payment_type"] == "Property Purchase"
        assert user_mail["transaction_id"] == "pay_abc"
        owner_mail = dispatcher.last("payment_notification_owner")
        assert owner_mail["builder_name"] == "Skyline Builders"
        assert owner_mail["user_name"] == "Asha Rao"

    @pytest.mark.asyncio
    async def test_rent_completion_creates_subscription(
        self,
        db_session: AsyncSession,
        payment_service: PaymentService,
        dispatcher,
        test_user: User,
        test_builder: User,
        rental_property: Property
    ):
        session = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)

        result = await settle(payment_service, session.order_id)

        assert isinstance(result, Ok)
        subscription = result.value.subscription
        assert subscription is not None
        assert subscription.user_id == test_user.id
        assert subscription.property_id == rental_property.id
        assert subscription.builder_id == test_builder.id
        assert subscription.monthly_rent == Decimal("15000")
        assert subscription.start_date == date(2024, 1, 15)
        assert subscription.last_payment_date == date(2024, 1, 15)
        assert subscription.next_payment_due == date(2024, 2, 15)
        assert subscription.last_payment_id == session.payment_id
        assert subscription.is_active is True
        assert subscription.status == SubscriptionStatus.ACTIVE

        await db_session.refresh(rental_property)
        assert rental_property.availability_status == AvailabilityStatus.RENTED
        assert dispatcher.last("payment_confirmation_user")["payment_type"] == "Rent Payment"

    @pytest.mark.asyncio
    async def test_rent_renewal_rolls_due_date_from_new_payment(
        self,
        payment_service: PaymentService,
        subscription_repository: RentSubscriptionRepository,
        clock,
        test_user: User,
        rental_property: Property
    ):
        first = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)
        await settle(payment_service, first.order_id, "pay_jan")

        clock.set(datetime(2024, 2, 10, 9, 0, tzinfo=timezone.utc))
        second = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)
        result = await settle(payment_service, second.order_id, "pay_feb")

        assert isinstance(result, Ok)
        subscription = result.value.subscription
        assert subscription.next_payment_due == date(2024, 3, 10)
        assert subscription.last_payment_date == date(2024, 2, 10)
        assert subscription.last_payment_id == second.payment_id
        assert subscription.start_date == date(2024, 1, 15)
        assert await subscription_repository.count() == 1

    @pytest.mark.asyncio
    async def test_due_date_clamps_to_month_end(
        self, payment_service: PaymentService, clock, test_user: User, rental_property: Property
    ):
        clock.set(datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc))
        session = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)

        result = await settle(payment_service, session.order_id)

        assert result.value.subscription.next_payment_due == date(2024, 2, 29)

    @pytest.mark.asyncio
    async def test_redelivery_is_a_no_op(
        self,
        payment_service: PaymentService,
        dispatcher,
        test_user: User,
        sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        await settle(payment_service, session.order_id, "pay_abc")
        sent_before = list(dispatcher.sent)

        result = await settle(payment_service, session.order_id, "pay_other")

        assert isinstance(result, Ok)
        assert result.value.already_processed is True
        assert result.value.payment.gateway_payment_id == "pay_abc"
        assert dispatcher.sent == sent_before

    @pytest.mark.asyncio
    async def test_rent_redelivery_returns_existing_subscription(
        self,
        payment_service: PaymentService,
        subscription_repository: RentSubscriptionRepository,
        test_user: User,
        rental_property: Property
    ):
        session = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)
        await settle(payment_service, session.order_id)

        result = await settle(payment_service, session.order_id)

        assert result.value.already_processed is True
        assert result.value.subscription.next_payment_due == date(2024, 2, 15)
        assert await subscription_repository.count() == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("signature", ["deadbeef", None, ""])
    async def test_bad_signature_leaves_payment_pending(
        self,
        db_session: AsyncSession,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        dispatcher,
        test_user: User,
        sale_property: Property,
        signature
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)

        result = await payment_service.complete_payment(session.order_id, "pay_abc", signature)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.INVALID_SIGNATURE
        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.status == PaymentStatus.PENDING
        assert payment.gateway_payment_id is None
        await db_session.refresh(sale_property)
        assert sale_property.availability_status == AvailabilityStatus.AVAILABLE
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_missing_ids(self, payment_service: PaymentService):
        result = await payment_service.complete_payment("", "pay_abc", "sig")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_unknown_order(self, payment_service: PaymentService):
        result = await settle(payment_service, "order_unknown")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_failed_payment_cannot_complete(
        self,
        db_session: AsyncSession,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        test_user: User,
        sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        await payment_service.fail_payment(session.order_id, "Card declined by bank")

        result = await settle(payment_service, session.order_id)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.CONFLICT
        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.status == PaymentStatus.FAILED
        await db_session.refresh(sale_property)
        assert sale_property.availability_status == AvailabilityStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_cannot_verify(
        self, db_session: AsyncSession, dispatcher, clock
    ):
        service = PaymentService(db_session, gateway=RazorpayGateway(None, None), dispatcher=dispatcher, clock=clock)

        result = await settle(service, "order_abc")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.GATEWAY_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_store_failure_rolls_back_every_write(
        self,
        db_session: AsyncSession,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        subscription_repository: RentSubscriptionRepository,
        dispatcher,
        test_user: User,
        rental_property: Property,
        monkeypatch
    ):
        session = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)

        async def broken_upsert(**kwargs):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(payment_service.subscription_repo, "upsert_for_payment", broken_upsert)

        result = await settle(payment_service, session.order_id)

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.STORE_WRITE
        assert result.message == "Could not save your payment. Please try again."

        # Payment update and property update were in the same transaction
        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.status == PaymentStatus.PENDING
        assert payment.gateway_payment_id is None
        await db_session.refresh(rental_property)
        assert rental_property.availability_status == AvailabilityStatus.AVAILABLE
        assert await subscription_repository.count() == 0
        assert dispatcher.sent == []

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_payment_completed(
        self,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        dispatcher,
        test_user: User,
        sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        dispatcher.raise_on_send = True

        result = await settle(payment_service, session.order_id)

        assert isinstance(result, Ok)
        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.status == PaymentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_owner_is_notified_when_buyer_email_fails(
        self, payment_service: PaymentService, dispatcher, test_user: User, sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        dispatcher.raising_templates.add("payment_confirmation_user")

        result = await settle(payment_service, session.order_id)

        assert isinstance(result, Ok)
        assert [(to, template) for to, template, _ in dispatcher.sent] == [
            ("builder@example.com", "payment_notification_owner"),
        ]

    @pytest.mark.asyncio
    async def test_purchase_by_user_7_of_property_42_owned_by_3(
        self,
        db_session: AsyncSession,
        payment_service: PaymentService,
        user_repository: UserRepository,
        property_repository: PropertyRepository,
        payment_repository: PaymentRepository,
        dispatcher
    ):
        owner = await user_repository.create_user({
            **UserFactory.create_user_data(email="owner3@example.com", role=UserRole.BUILDER), "id": 3
        })
        buyer = await user_repository.create_user({
            **UserFactory.create_user_data(email="buyer7@example.com"), "id": 7
        })
        listing = await property_repository.create({
            **PropertyFactory.create_property_data(owner.id, price="500000"), "id": 42
        })
        emails_by_user_id = {owner.email: owner.id, buyer.email: buyer.id}

        session = await start_checkout(payment_service, buyer, listing, PaymentType.PURCHASE)
        result = await settle(payment_service, session.order_id, "pay_abc")

        assert isinstance(result, Ok)
        payment = await payment_repository.get_by_order_id(session.order_id)
        assert (payment.user_id, payment.property_id, payment.builder_id) == (7, 42, 3)
        assert payment.amount == Decimal("500000")
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.gateway_payment_id == "pay_abc"

        refreshed = await property_repository.get_by_id(42)
        await db_session.refresh(refreshed)
        assert refreshed.availability_status == AvailabilityStatus.SOLD

        assert [(emails_by_user_id[to], template) for to, template, _ in dispatcher.sent] == [
            (7, "payment_confirmation_user"),
            (3, "payment_notification_owner"),
        ]


class TestConcurrentRentRenewal:
    """Two rent completions for one tenant and property racing on separate sessions."""

    @pytest.fixture
    async def file_engine(self, tmp_path):
        # StaticPool shares one connection; a file database gives each session its own
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rent.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield engine
        await engine.dispose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("later_first", [True, False])
    async def test_one_active_row_due_from_later_payment(
        self, file_engine, gateway: RazorpayGateway, dispatcher, later_first
    ):
        session_factory = async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)

        async with session_factory() as setup:
            tenant = await UserFactory.create_user(UserRepository(setup), email="tenant@example.com")
            owner = await UserFactory.create_user(
                UserRepository(setup), email="builder@example.com", role=UserRole.BUILDER
            )
            flat = await PropertyFactory.create_property(
                PropertyRepository(setup), owner, purpose=PropertyPurpose.RENT, price=None, rent_amount="15000"
            )
            payment_ids = {}
            for order_id in ("order_jan", "order_feb"):
                payment = await PaymentRepository(setup).create({
                    "user_id": tenant.id,
                    "property_id": flat.id,
                    "builder_id": owner.id,
                    "payment_type": PaymentType.RENT,
                    "amount": Decimal("15000"),
                    "gateway_order_id": order_id,
                    "status": PaymentStatus.PENDING,
                })
                payment_ids[order_id] = payment.id

        async with session_factory() as jan_db, session_factory() as feb_db:
            jan = PaymentService(
                jan_db, gateway=gateway, dispatcher=dispatcher,
                clock=FrozenClock(datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc))
            )
            feb = PaymentService(
                feb_db, gateway=gateway, dispatcher=dispatcher,
                clock=FrozenClock(datetime(2024, 2, 10, 10, 0, tzinfo=timezone.utc))
            )
            completions = [settle(feb, "order_feb", "pay_feb"), settle(jan, "order_jan", "pay_jan")]
            if not later_first:
                completions.reverse()

            results = await asyncio.gather(*completions)

        assert all(isinstance(result, Ok) for result in results), results

        async with session_factory() as check:
            subscriptions = await RentSubscriptionRepository(check).list_for_user(tenant.id)

        assert len(subscriptions) == 1
        subscription = subscriptions[0]
        assert subscription.is_active is True
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.next_payment_due == date(2024, 3, 10)
        assert subscription.last_payment_id == payment_ids["order_feb"]


class TestFailPayment:
    """Test failures reported by the checkout widget."""

    @pytest.mark.asyncio
    async def test_pending_payment_becomes_failed(
        self,
        db_session: AsyncSession,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        subscription_repository: RentSubscriptionRepository,
        test_user: User,
        rental_property: Property
    ):
        session = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)

        error = await payment_service.fail_payment(session.order_id, "Card declined by bank")

        assert error.kind == ErrorKind.GATEWAY_FAILURE
        assert error.message == "Card declined by bank"
        assert error.details == {"payment_id": session.payment_id}

        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Card declined by bank"
        assert payment.gateway_payment_id is None
        await db_session.refresh(rental_property)
        assert rental_property.availability_status == AvailabilityStatus.AVAILABLE
        assert await subscription_repository.count() == 0

    @pytest.mark.asyncio
    async def test_default_description(
        self, payment_service: PaymentService, test_user: User, sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)

        error = await payment_service.fail_payment(session.order_id)

        assert error.message == "Payment failed"

    @pytest.mark.asyncio
    async def test_repeated_failure_keeps_first_reason(
        self,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        test_user: User,
        sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        await payment_service.fail_payment(session.order_id, "Card declined by bank")

        error = await payment_service.fail_payment(session.order_id, "Timeout")

        assert error.kind == ErrorKind.GATEWAY_FAILURE
        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.failure_reason == "Card declined by bank"

    @pytest.mark.asyncio
    async def test_completed_payment_cannot_fail(
        self,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        test_user: User,
        sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        await settle(payment_service, session.order_id)

        error = await payment_service.fail_payment(session.order_id, "Late failure")

        assert error.kind == ErrorKind.CONFLICT
        payment = await payment_repository.get_by_order_id(session.order_id)
        assert payment.status == PaymentStatus.COMPLETED
        assert payment.gateway_payment_id == "pay_abc"

    @pytest.mark.asyncio
    async def test_unknown_order(self, payment_service: PaymentService):
        error = await payment_service.fail_payment("order_unknown", "Declined")
        assert error.kind == ErrorKind.NOT_FOUND


class TestAbandonAndExpire:
    """Test dismissed checkouts and the expiry sweep."""

    @pytest.mark.asyncio
    async def test_abandon_leaves_payment_pending(
        self, payment_service: PaymentService, test_user: User, sale_property: Property
    ):
        session = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)

        result = await payment_service.abandon_checkout(session.order_id)

        assert isinstance(result, Ok)
        assert result.value.status == PaymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_abandon_unknown_order(self, payment_service: PaymentService):
        result = await payment_service.abandon_checkout("order_unknown")

        assert isinstance(result, Err)
        assert result.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_expire_only_stale_pending_payments(
        self,
        payment_service: PaymentService,
        payment_repository: PaymentRepository,
        clock,
        test_user: User,
        property_repository: PropertyRepository,
        test_builder: User,
        sale_property: Property
    ):
        second_property = await PropertyFactory.create_property(property_repository, test_builder, title="Palm Villa")
        stale = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        settled = await start_checkout(payment_service, test_user, second_property, PaymentType.PURCHASE)
        await settle(payment_service, settled.order_id)

        clock.advance(minutes=30)
        recent = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)

        clock.advance(minutes=31)
        result = await payment_service.expire_abandoned_payments()

        assert isinstance(result, Ok)
        assert result.value == 1

        expired = await payment_repository.get_by_order_id(stale.order_id)
        assert expired.status == PaymentStatus.FAILED
        assert expired.failure_reason == "expired"
        assert (await payment_repository.get_by_order_id(recent.order_id)).status == PaymentStatus.PENDING
        assert (await payment_repository.get_by_order_id(settled.order_id)).status == PaymentStatus.COMPLETED

        # A late success callback for an expired payment is refused
        late = await settle(payment_service, stale.order_id)
        assert late.kind == ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_expire_with_explicit_threshold(
        self, payment_service: PaymentService, clock, test_user: User, sale_property: Property
    ):
        await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)
        clock.advance(minutes=6)

        assert (await payment_service.expire_abandoned_payments(older_than_minutes=10)).value == 0
        assert (await payment_service.expire_abandoned_payments(older_than_minutes=5)).value == 1


class TestPaymentHistory:
    """Test the read models behind the history endpoints."""

    @pytest.mark.asyncio
    async def test_user_and_builder_histories(
        self,
        payment_service: PaymentService,
        clock,
        test_user: User,
        test_builder: User,
        test_admin: User,
        sale_property: Property,
        rental_property: Property
    ):
        first = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)
        clock.advance(minutes=5)
        second = await start_checkout(payment_service, test_user, sale_property, PaymentType.PURCHASE)

        user_payments = (await payment_service.list_user_payments(test_user.id)).value
        assert [p.id for p in user_payments] == [second.payment_id, first.payment_id]

        builder_payments = (await payment_service.list_builder_payments(test_builder.id)).value
        assert {p.id for p in builder_payments} == {first.payment_id, second.payment_id}

        assert (await payment_service.list_user_payments(test_admin.id)).value == []

    @pytest.mark.asyncio
    async def test_subscriptions_active_first(
        self,
        payment_service: PaymentService,
        subscription_repository: RentSubscriptionRepository,
        property_repository: PropertyRepository,
        test_user: User,
        test_builder: User,
        rental_property: Property
    ):
        other = await PropertyFactory.create_property(
            property_repository, test_builder, title="Hill Studio",
            purpose=PropertyPurpose.RENT, price=None, rent_amount="9000"
        )
        first = await start_checkout(payment_service, test_user, rental_property, PaymentType.RENT)
        await settle(payment_service, first.order_id, "pay_1")
        second = await start_checkout(payment_service, test_user, other, PaymentType.RENT)
        await settle(payment_service, second.order_id, "pay_2")

        sub = await subscription_repository.get_for_user_property(test_user.id, rental_property.id)
        await subscription_repository.update(sub.id, {"is_active": False, "status": SubscriptionStatus.INACTIVE})

        subscriptions = (await payment_service.list_user_subscriptions(test_user.id)).value
        assert [s.property_id for s in subscriptions] == [other.id, rental_property.id]
        assert [s.is_active for s in subscriptions] == [True, False]

    @pytest.mark.asyncio
    async def test_read_failure_is_returned_not_raised(
        self, payment_service: PaymentService, test_user: User, monkeypatch
    ):
        async def broken_query(*args, **kwargs):
            raise RuntimeError("connection reset by peer")

        monkeypatch.setattr(payment_service.payment_repo, "list_for_user", broken_query)
        monkeypatch.setattr(payment_service.payment_repo, "list_for_builder", broken_query)
        monkeypatch.setattr(payment_service.subscription_repo, "list_for_user", broken_query)
        monkeypatch.setattr(payment_service.payment_repo, "get_by_order_id", broken_query)

        for result in (
            await payment_service.list_user_payments(test_user.id),
            await payment_service.list_builder_payments(test_user.id),
            await payment_service.list_user_subscriptions(test_user.id),
            await payment_service.abandon_checkout("order_abc"),
        ):
            assert isinstance(result, Err)
            assert result.kind == ErrorKind.STORE_WRITE
            assert result.message == "Could not load your payments. Please try again."

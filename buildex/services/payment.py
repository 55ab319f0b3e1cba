"""
Payment service implementing the purchase and rent checkout workflow.

A checkout creates a gateway order and a PENDING payment. The gateway
callback then either completes the payment (flipping the property's
availability and, for rent, renewing the tenant's subscription in the same
transaction) or fails it. Every public method returns Ok or Err.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from buildex.models.payment import Payment, PaymentType, PaymentStatus
from buildex.models.property import Property, AvailabilityStatus
from buildex.models.rent_subscription import RentSubscription
from buildex.models.user import User
from buildex.repositories.payment import PaymentRepository
from buildex.repositories.property import PropertyRepository
from buildex.repositories.rent_subscription import RentSubscriptionRepository
from buildex.repositories.user import UserRepository
from buildex.services.gateway import RazorpayGateway, GatewayError
from buildex.services.notification import NotificationDispatcher
from buildex.utils.clock import Clock, utc_now
from buildex.utils.money import resolve_amount, to_minor_units
from buildex.utils.result import Ok, Err, ErrorKind, Result
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import Any, Awaitable, Dict, List, Optional, Union
import logging
import secrets

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

STORE_WRITE_MESSAGE = "Could not save your payment. Please try again."


@dataclass
class CheckoutSession:
    """Everything the client-side checkout widget needs to open."""
    payment_id: int
    key_id: str
    amount: int
    currency: str
    name: str
    description: str
    order_id: str
    prefill: Dict[str, str]
    notes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "key": self.key_id,
            "amount": self.amount,
            "currency": self.currency,
            "name": self.name,
            "description": self.description,
            "order_id": self.order_id,
            "prefill": self.prefill,
            "notes": self.notes,
        }


@dataclass
class PaymentOutcome:
    """Result of settling a payment."""
    payment: Payment
    already_processed: bool = False
    subscription: Optional[RentSubscription] = None


class PaymentService:
    """
    Service layer for payments: checkout, settlement and history.
    """

    def __init__(
        self,
        db: AsyncSession,
        gateway: RazorpayGateway,
        dispatcher: NotificationDispatcher,
        clock: Clock = utc_now,
        currency: str = "INR",
        company_name: str = "BuildEx",
        pending_ttl_minutes: int = 60
    ):
        self.db = db
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.clock = clock
        self.currency = currency
        self.company_name = company_name
        self.pending_ttl_minutes = pending_ttl_minutes

        self.payment_repo = PaymentRepository(db)
        self.property_repo = PropertyRepository(db)
        self.subscription_repo = RentSubscriptionRepository(db)
        self.user_repo = UserRepository(db)

    async def initiate_checkout(
        self,
        current_user: Optional[User],
        property_id: int,
        payment_type: Union[PaymentType, str],
        amount: Any = None
    ) -> Result[CheckoutSession]:
        """
        Start a checkout for a property.

        Args:
            current_user: Logged-in user, or None
            property_id: Property being bought or rented
            payment_type: PURCHASE (or legacy BUY) or RENT
            amount: Amount the client displayed; must equal the property's price or rent

        Returns:
            Ok with the checkout session, or Err
        """
        if current_user is None:
            return Err(ErrorKind.AUTH_REQUIRED, "Please log in to continue with payment")

        try:
            payment_type = PaymentType(payment_type)
        except ValueError:
            return Err(ErrorKind.VALIDATION, f"Unknown payment type: {payment_type}")

        property_obj = await self.property_repo.get_by_id(property_id)
        if property_obj is None:
            return Err(ErrorKind.NOT_FOUND, f"Property not found with ID: {property_id}")

        listed = property_obj.rent_amount if payment_type == PaymentType.RENT else property_obj.price
        resolved = resolve_amount(listed if amount is None else amount)
        if resolved is None:
            return Err(ErrorKind.INVALID_AMOUNT, "Invalid payment amount")
        # The charge always comes from the listing
        if amount is not None and resolved != resolve_amount(listed):
            logger.warning(
                f"Checkout amount {resolved} for property {property_obj.id} does not match listing amount {listed}"
            )
            return Err(ErrorKind.INVALID_AMOUNT, "Amount does not match the listing")

        if not self.gateway.is_configured:
            return Err(ErrorKind.GATEWAY_UNAVAILABLE, "Payment gateway not configured. Please contact admin.")

        now = self.clock()
        receipt = f"order_{int(now.timestamp() * 1000)}_{secrets.token_hex(5)}"
        amount_minor = to_minor_units(resolved)
        notes = {
            "property_id": property_obj.id,
            "payment_type": payment_type.value,
            "user_id": current_user.id,
            "receipt": receipt,
        }

        try:
            order = await self.gateway.create_order(amount_minor, self.currency, receipt, notes)
        except GatewayError as e:
            return Err(ErrorKind.GATEWAY_FAILURE, str(e))

        description = self._describe(payment_type, property_obj)
        try:
            payment = await self.payment_repo.create({
                "user_id": current_user.id,
                "property_id": property_obj.id,
                "builder_id": property_obj.builder_id,
                "payment_type": payment_type,
                "amount": resolved,
                "currency": self.currency,
                "gateway_order_id": order["id"],
                "status": PaymentStatus.PENDING,
                "description": description,
                "created_at": now,
            })
        except Exception as e:
            logger.error(f"Failed to record pending payment for order {order['id']}: {e}")
            return Err(ErrorKind.STORE_WRITE, STORE_WRITE_MESSAGE)

        logger.info(
            f"Checkout opened: payment {payment.id}, order {payment.gateway_order_id}, "
            f"{payment_type.value} {resolved} for property {property_obj.id}"
        )
        return Ok(CheckoutSession(
            payment_id=payment.id,
            key_id=self.gateway.key_id,
            amount=amount_minor,
            currency=self.currency,
            name=self.company_name,
            description=description,
            order_id=payment.gateway_order_id,
            prefill={
                "name": current_user.full_name or current_user.username or "",
                "email": current_user.email,
                "contact": current_user.phone or "",
            },
            notes={**notes, "payment_id": payment.id},
        ))

    async def complete_payment(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: Optional[str]
    ) -> Result[PaymentOutcome]:
        """
        Settle a payment the gateway reports as successful.

        Re-delivery of an already completed order returns the stored outcome
        with already_processed=True and has no side effects.

        Args:
            gateway_order_id: Order id from the checkout
            gateway_payment_id: Payment id issued by the gateway
            signature: Callback signature to verify

        Returns:
            Ok with the outcome, or Err
        """
        if not self.gateway.is_configured:
            return Err(ErrorKind.GATEWAY_UNAVAILABLE, "Payment gateway not configured. Please contact admin.")

        if not gateway_order_id or not gateway_payment_id:
            return Err(ErrorKind.VALIDATION, "Order id and payment id are required")

        if not self.gateway.verify_payment_signature(gateway_order_id, gateway_payment_id, signature):
            logger.warning(f"Signature mismatch for order {gateway_order_id}")
            return Err(ErrorKind.INVALID_SIGNATURE, "Payment signature verification failed")

        try:
            payment = await self.payment_repo.get_by_order_id(gateway_order_id, for_update=True)
            if payment is None:
                await self.db.rollback()
                return Err(ErrorKind.NOT_FOUND, f"No payment for order {gateway_order_id}")

            if payment.status == PaymentStatus.COMPLETED:
                logger.info(f"Order {gateway_order_id} already completed; ignoring re-delivery")
                subscription = None
                if payment.payment_type == PaymentType.RENT:
                    subscription = await self.subscription_repo.get_for_user_property(
                        payment.user_id, payment.property_id
                    )
                await self.db.commit()
                return Ok(PaymentOutcome(payment, already_processed=True, subscription=subscription))

            if payment.status == PaymentStatus.FAILED:
                await self.db.rollback()
                return Err(ErrorKind.CONFLICT, f"Payment for order {gateway_order_id} has already failed")

            paid_at = self.clock()
            await self.payment_repo.mark_completed(payment, gateway_payment_id, signature, paid_at)

            subscription = None
            if payment.payment_type == PaymentType.PURCHASE:
                await self.property_repo.set_availability(payment.property_id, AvailabilityStatus.SOLD)
            else:
                await self.property_repo.set_availability(payment.property_id, AvailabilityStatus.RENTED)
                paid_on = paid_at.date()
                subscription = await self.subscription_repo.upsert_for_payment(
                    user_id=payment.user_id,
                    property_id=payment.property_id,
                    builder_id=payment.builder_id,
                    monthly_rent=payment.amount,
                    payment_id=payment.id,
                    paid_on=paid_on,
                    next_due=paid_on + relativedelta(months=1),
                )

            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to complete payment for order {gateway_order_id}: {e}")
            return Err(ErrorKind.STORE_WRITE, STORE_WRITE_MESSAGE)

        logger.info(f"Payment {payment.id} completed ({payment.payment_type.value})")
        await self._notify_completion(payment)
        return Ok(PaymentOutcome(payment, subscription=subscription))

    async def fail_payment(self, gateway_order_id: str, error_description: Optional[str] = None) -> Err:
        """
        Record a failure reported by the gateway.

        Always returns an Err so the caller's error path runs: GATEWAY_FAILURE
        carrying the description once the payment is FAILED, otherwise
        NOT_FOUND, CONFLICT or STORE_WRITE_ERROR.
        """
        description = error_description or "Payment failed"

        try:
            payment = await self.payment_repo.get_by_order_id(gateway_order_id, for_update=True)
            if payment is None:
                await self.db.rollback()
                return Err(ErrorKind.NOT_FOUND, f"No payment for order {gateway_order_id}")

            payment_id = payment.id
            if payment.status == PaymentStatus.COMPLETED:
                await self.db.rollback()
                return Err(ErrorKind.CONFLICT, f"Payment for order {gateway_order_id} is already completed")

            if payment.status == PaymentStatus.PENDING:
                await self.payment_repo.mark_failed(payment, description)
                await self.db.commit()
            else:
                await self.db.rollback()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to record payment failure for order {gateway_order_id}: {e}")
            return Err(ErrorKind.STORE_WRITE, STORE_WRITE_MESSAGE)

        return Err(ErrorKind.GATEWAY_FAILURE, description, details={"payment_id": payment_id})

    async def abandon_checkout(self, gateway_order_id: str) -> Result[Payment]:
        """
        Acknowledge a checkout the user dismissed.

        Nothing is written; the payment stays PENDING until it is completed,
        failed, or expired by expire_abandoned_payments.
        """
        result = await self._read(
            f"payment for order {gateway_order_id}", self.payment_repo.get_by_order_id(gateway_order_id)
        )
        if isinstance(result, Err):
            return result
        payment = result.value
        if payment is None:
            return Err(ErrorKind.NOT_FOUND, f"No payment for order {gateway_order_id}")

        logger.info(f"Checkout for order {gateway_order_id} dismissed by user {payment.user_id}")
        return Ok(payment)

    async def expire_abandoned_payments(self, older_than_minutes: Optional[int] = None) -> Result[int]:
        """
        Fail PENDING payments that were never settled.

        Args:
            older_than_minutes: Age threshold; defaults to the configured TTL

        Returns:
            Ok with the number of payments expired
        """
        minutes = self.pending_ttl_minutes if older_than_minutes is None else older_than_minutes
        cutoff = self.clock() - timedelta(minutes=minutes)

        try:
            stale = await self.payment_repo.list_stale_pending(cutoff)
            for payment in stale:
                await self.payment_repo.mark_failed(payment, "expired")
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to expire pending payments: {e}")
            return Err(ErrorKind.STORE_WRITE, STORE_WRITE_MESSAGE)

        if stale:
            logger.info(f"Expired {len(stale)} pending payments older than {minutes} minutes")
        return Ok(len(stale))

    async def list_user_payments(self, user_id: int) -> Result[List[Payment]]:
        return await self._read(
            f"payments of user {user_id}", self.payment_repo.list_for_user(user_id)
        )

    async def list_builder_payments(self, builder_id: int) -> Result[List[Payment]]:
        return await self._read(
            f"payments received by builder {builder_id}", self.payment_repo.list_for_builder(builder_id)
        )

    async def list_user_subscriptions(self, user_id: int) -> Result[List[RentSubscription]]:
        return await self._read(
            f"rent subscriptions of user {user_id}", self.subscription_repo.list_for_user(user_id)
        )

    @staticmethod
    async def _read(what: str, query: Awaitable[Any]) -> Result[Any]:
        try:
            return Ok(await query)
        except Exception as e:
            logger.error(f"Failed to load {what}: {e}")
            return Err(ErrorKind.STORE_WRITE, "Could not load your payments. Please try again.")

    @staticmethod
    def _describe(payment_type: PaymentType, property_obj: Property) -> str:
        if payment_type == PaymentType.RENT:
            return f"Rent Payment for {property_obj.title}"
        return f"Purchase of {property_obj.title}"

    async def _notify_completion(self, payment: Payment) -> None:
        """Email the payer and the property owner. Failures are only logged."""
        try:
            user = await self.user_repo.get_by_id(payment.user_id)
            builder = await self.user_repo.get_by_id(payment.builder_id)
            property_obj = await self.property_repo.get_by_id(payment.property_id)
        except Exception as e:
            logger.error(f"Could not load notification data for payment {payment.id}: {e}")
            return

        if not user or not builder or not property_obj:
            logger.error(f"Missing data for payment {payment.id} notifications")
            return

        amount = Decimal(payment.amount)
        paid_on = payment.payment_date.date().isoformat() if payment.payment_date else None
        label = payment.payment_type.label

        messages = [
            (user.email, "payment_confirmation_user", {
                "user_name": user.display_name,
                "property_name": property_obj.title,
                "amount": amount,
                "payment_type": label,
                "transaction_id": payment.gateway_payment_id,
                "date": paid_on,
            }),
            (builder.email, "payment_notification_owner", {
                "builder_name": builder.display_name,
                "property_name": property_obj.title,
                "user_name": user.display_name,
                "amount": amount,
                "payment_type": label,
                "date": paid_on,
            }),
        ]
        # Each recipient is attempted independently
        for recipient, template_name, data in messages:
            try:
                await self.dispatcher.send(recipient, template_name, data)
            except Exception as e:
                logger.error(f"Error sending {template_name} for payment {payment.id} to {recipient}: {e}")

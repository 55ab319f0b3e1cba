"""
Rent subscription repository.
Writes use a native insert-or-update keyed on (user_id, property_id).
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, desc
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from buildex.repositories.base import BaseRepository
from buildex.models.rent_subscription import RentSubscription, SubscriptionStatus
from decimal import Decimal
from datetime import date
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class RentSubscriptionRepository(BaseRepository[RentSubscription]):
    """Repository for monthly rent subscriptions."""

    def __init__(self, db: AsyncSession):
        super().__init__(RentSubscription, db)

    def _insert(self):
        dialect_name = self.db.get_bind().dialect.name
        insert_fn = _INSERTS.get(dialect_name)
        if insert_fn is None:
            raise RuntimeError(f"Upsert is not supported for dialect {dialect_name}")
        return insert_fn(RentSubscription)

    async def upsert_for_payment(
        self,
        user_id: int,
        property_id: int,
        builder_id: int,
        monthly_rent: Decimal,
        payment_id: int,
        paid_on: date,
        next_due: date
    ) -> RentSubscription:
        """
        Create or renew the subscription for a rent payment.

        A new row starts on paid_on. An existing row keeps its start_date and
        is moved forward to next_due and reactivated, unless it already records a
        later payment. Only flushes; the caller owns the transaction.

        Args:
            user_id: Tenant ID
            property_id: Rented property ID
            builder_id: Owner of the property
            monthly_rent: Amount paid for this cycle
            payment_id: ID of the completed payment
            paid_on: Date of the payment
            next_due: Due date of the next payment

        Returns:
            The stored subscription
        """
        stmt = self._insert().values(
            user_id=user_id,
            property_id=property_id,
            builder_id=builder_id,
            monthly_rent=monthly_rent,
            start_date=paid_on,
            next_payment_due=next_due,
            last_payment_id=payment_id,
            last_payment_date=paid_on,
            is_active=True,
            status=SubscriptionStatus.ACTIVE,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "property_id"],
            set_={
                "next_payment_due": stmt.excluded.next_payment_due,
                "last_payment_id": stmt.excluded.last_payment_id,
                "last_payment_date": stmt.excluded.last_payment_date,
                "monthly_rent": stmt.excluded.monthly_rent,
                "is_active": stmt.excluded.is_active,
                "status": stmt.excluded.status,
                "updated_at": func.now(),
            },
            # A payment dated before the stored one never moves the cycle back
            where=or_(
                RentSubscription.last_payment_date.is_(None),
                RentSubscription.last_payment_date <= stmt.excluded.last_payment_date
            ),
        )
        await self.db.execute(stmt)
        await self.db.flush()

        subscription = await self.get_for_user_property(user_id, property_id)
        logger.info(
            f"Rent subscription for user {user_id} on property {property_id} "
            f"next due {subscription.next_payment_due}"
        )
        return subscription

    async def get_for_user_property(self, user_id: int, property_id: int) -> Optional[RentSubscription]:
        query = (
            select(RentSubscription)
            .where(
                and_(
                    RentSubscription.user_id == user_id,
                    RentSubscription.property_id == property_id
                )
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> List[RentSubscription]:
        """Subscriptions of a tenant, active first, then by next due date."""
        query = (
            select(RentSubscription)
            .where(RentSubscription.user_id == user_id)
            .order_by(desc(RentSubscription.is_active), RentSubscription.next_payment_due)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

"""
Payment repository for the checkout and settlement workflow.
State transitions only flush; PaymentService commits them as one transaction.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, desc
from buildex.repositories.base import BaseRepository
from buildex.models.payment import Payment, PaymentStatus
from typing import Optional, List
from datetime import datetime
import logging

logger = logging.getLogger(__name__)


class PaymentRepository(BaseRepository[Payment]):
    """
    Repository for payment records keyed by the gateway order id.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Payment, db)

    async def get_by_order_id(self, gateway_order_id: str, for_update: bool = False) -> Optional[Payment]:
        """
        Get a payment by its gateway order id.

        Args:
            gateway_order_id: Order id issued by the gateway
            for_update: Lock the row for the rest of the transaction

        Returns:
            Payment if found, None otherwise
        """
        query = select(Payment).where(Payment.gateway_order_id == gateway_order_id)
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def mark_completed(
        self,
        payment: Payment,
        gateway_payment_id: str,
        signature: Optional[str],
        paid_at: datetime
    ) -> Payment:
        """
        Move a PENDING payment to COMPLETED.

        Args:
            payment: Payment to update
            gateway_payment_id: Payment id issued by the gateway
            signature: Verified gateway signature
            paid_at: Completion timestamp

        Returns:
            The updated payment (flushed, not committed)
        """
        payment.status = PaymentStatus.COMPLETED
        payment.gateway_payment_id = gateway_payment_id
        payment.gateway_signature = signature
        payment.payment_date = paid_at
        payment.failure_reason = None
        await self.db.flush()

        logger.info(f"Payment {payment.id} completed with gateway payment {gateway_payment_id}")
        return payment

    async def mark_failed(self, payment: Payment, reason: Optional[str]) -> Payment:
        """
        Move a PENDING payment to FAILED.

        Args:
            payment: Payment to update
            reason: Failure description from the gateway, or "expired"

        Returns:
            The updated payment (flushed, not committed)
        """
        payment.status = PaymentStatus.FAILED
        payment.gateway_payment_id = None
        payment.failure_reason = reason
        await self.db.flush()

        logger.info(f"Payment {payment.id} failed: {reason}")
        return payment

    async def list_stale_pending(self, cutoff: datetime) -> List[Payment]:
        """Get PENDING payments created before the cutoff."""
        query = (
            select(Payment)
            .where(
                and_(
                    Payment.status == PaymentStatus.PENDING,
                    Payment.created_at < cutoff
                )
            )
            .order_by(Payment.created_at)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_for_user(self, user_id: int, skip: int = 0, limit: int = 100) -> List[Payment]:
        """Payment history of a buyer or tenant, newest first."""
        return await self.get_multi(skip=skip, limit=limit, filters={"user_id": user_id})

    async def list_for_builder(self, builder_id: int, skip: int = 0, limit: int = 100) -> List[Payment]:
        """Payments received for a builder's listings, newest first."""
        query = (
            select(Payment)
            .where(Payment.builder_id == builder_id)
            .order_by(desc(Payment.created_at), desc(Payment.id))
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

"""
Rent subscription model.
One row per (tenant, property) pair tracking the monthly rent cycle.
"""

from sqlalchemy import Integer, Numeric, Date, Boolean, Enum as SQLEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from buildex.database import Base
from decimal import Decimal
from datetime import date
import enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from buildex.models.property import Property


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class RentSubscription(Base):
    """
    Monthly rent tracking for a tenant and a property.
    next_payment_due is always one calendar month after last_payment_date.
    """

    __tablename__ = "rent_subscriptions"
    __table_args__ = (
        UniqueConstraint("user_id", "property_id", name="uq_rent_subscriptions_user_property"),
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False
    )

    builder_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    monthly_rent: Mapped[Decimal] = mapped_column(Numeric(precision=12, scale=2), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    next_payment_due: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    last_payment_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("payments.id", ondelete="SET NULL"),
        nullable=True
    )

    last_payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    status: Mapped[SubscriptionStatus] = mapped_column(
        SQLEnum(SubscriptionStatus),
        nullable=False,
        default=SubscriptionStatus.ACTIVE
    )

    property_rel: Mapped["Property"] = relationship("Property", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<RentSubscription(user_id={self.user_id}, property_id={self.property_id}, "
            f"next_due={self.next_payment_due})>"
        )

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "user_id": self.user_id,
            "property_id": self.property_id,
            "builder_id": self.builder_id,
            "monthly_rent": str(self.monthly_rent),
            "start_date": self.start_date.isoformat(),
            "next_payment_due": self.next_payment_due.isoformat(),
            "last_payment_id": self.last_payment_id,
            "last_payment_date": self.last_payment_date.isoformat() if self.last_payment_date else None,
            "is_active": self.is_active,
            "status": self.status.value,
        }
        if self.property_rel:
            result["property_title"] = self.property_rel.title
            result["property_images"] = self.property_rel.images_list
        return result

"""
Payment model for purchase and rent transactions.
Rows are created PENDING at checkout and settle once to COMPLETED or FAILED.
"""

from sqlalchemy import String, Text, Integer, Numeric, DateTime, Enum as SQLEnum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from buildex.database import Base
from decimal import Decimal
from datetime import datetime
import enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from buildex.models.user import User
    from buildex.models.property import Property


class PaymentType(str, enum.Enum):
    """Kind of transaction being paid for."""
    PURCHASE = "PURCHASE"
    RENT = "RENT"

    @classmethod
    def _missing_(cls, value):
        # Legacy clients send BUY for purchases
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized == "BUY":
                return cls.PURCHASE
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def label(self) -> str:
        """Human readable label used in notifications."""
        return "Property Purchase" if self is PaymentType.PURCHASE else "Rent Payment"


class PaymentStatus(str, enum.Enum):
    """Lifecycle status of a payment."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Payment(Base):
    """
    Payment record linking a user, a property and its builder to a gateway order.
    """

    __tablename__ = "payments"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    property_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    builder_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    payment_type: Mapped[PaymentType] = mapped_column(
        SQLEnum(PaymentType),
        nullable=False
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Amount in major currency units"
    )

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")

    gateway_order_id: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        index=True,
        comment="Order id issued by the payment gateway"
    )

    gateway_payment_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        comment="Set only once the payment is COMPLETED"
    )

    gateway_signature: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True
    )

    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    payment_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    user: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="selectin")

    property_rel: Mapped["Property"] = relationship("Property", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, order={self.gateway_order_id}, "
            f"type={self.payment_type}, status={self.status})>"
        )

    def to_dict(self, include_property: bool = False) -> dict:
        """Convert payment to dictionary."""
        result = {
            "id": self.id,
            "user_id": self.user_id,
            "property_id": self.property_id,
            "builder_id": self.builder_id,
            "payment_type": self.payment_type.value,
            "amount": str(self.amount),
            "currency": self.currency,
            "gateway_order_id": self.gateway_order_id,
            "gateway_payment_id": self.gateway_payment_id,
            "status": self.status.value,
            "failure_reason": self.failure_reason,
            "description": self.description,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_property and self.property_rel:
            result["property_title"] = self.property_rel.title
            result["property_images"] = self.property_rel.images_list
        return result


payment_status_created_index = Index(
    "idx_payments_status_created",
    Payment.status,
    Payment.created_at,
)

"""
Rent request model.
A tenant asks to rent a listing from a move-in date; the builder approves or rejects.
"""

from sqlalchemy import Text, Integer, Date, Enum as SQLEnum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from buildex.database import Base
from buildex.models.enquiry import RequestStatus
from datetime import date
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from buildex.models.property import Property
    from buildex.models.user import User


class RentRequest(Base):
    """Request to rent a property, decided once by its builder."""

    __tablename__ = "rent_requests"

    property_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    builder_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    move_in_date: Mapped[date] = mapped_column(Date, nullable=False)

    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[RequestStatus] = mapped_column(
        SQLEnum(RequestStatus),
        nullable=False,
        default=RequestStatus.PENDING,
        index=True
    )

    property_rel: Mapped["Property"] = relationship("Property", lazy="selectin")

    tenant: Mapped["User"] = relationship("User", foreign_keys=[user_id], lazy="selectin")

    def __repr__(self) -> str:
        return f"<RentRequest(id={self.id}, property_id={self.property_id}, status={self.status})>"

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "property_id": self.property_id,
            "user_id": self.user_id,
            "builder_id": self.builder_id,
            "move_in_date": self.move_in_date.isoformat(),
            "message": self.message,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.property_rel:
            result["property_title"] = self.property_rel.title
        if self.tenant:
            result["tenant_name"] = self.tenant.display_name
        return result


builder_rent_requests_index = Index(
    "idx_rent_requests_builder_created",
    RentRequest.builder_id,
    RentRequest.created_at.desc(),
)

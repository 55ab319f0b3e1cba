"""
Enquiry model for buyer, tenant and site-visit messages sent to a builder.
"""

from sqlalchemy import String, Text, Integer, Enum as SQLEnum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from buildex.database import Base
import enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from buildex.models.property import Property


class RequestStatus(str, enum.Enum):
    """Builder decision on an enquiry or a rent request."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EnquiryType(str, enum.Enum):
    BUY = "buy"
    RENT = "rent"
    VISIT = "visit"


class Enquiry(Base):
    """
    Message about a listing, addressed to the listing's builder.
    Anonymous visitors may enquire; user_id is then empty.
    """

    __tablename__ = "enquiries"

    property_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    builder_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False
    )

    full_name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    enquiry_type: Mapped[EnquiryType] = mapped_column(
        SQLEnum(EnquiryType),
        nullable=False,
        default=EnquiryType.BUY
    )

    status: Mapped[RequestStatus] = mapped_column(
        SQLEnum(RequestStatus),
        nullable=False,
        default=RequestStatus.PENDING
    )

    property_rel: Mapped["Property"] = relationship("Property", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Enquiry(id={self.id}, property_id={self.property_id}, type={self.enquiry_type})>"

    def to_dict(self) -> dict:
        result = {
            "id": self.id,
            "property_id": self.property_id,
            "user_id": self.user_id,
            "builder_id": self.builder_id,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "message": self.message,
            "enquiry_type": self.enquiry_type.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if self.property_rel:
            result["property_title"] = self.property_rel.title
        return result


builder_enquiries_index = Index(
    "idx_enquiries_builder_created",
    Enquiry.builder_id,
    Enquiry.created_at.desc(),
)

"""
Property model for sale and rental listings.
Handles listing data, pricing, availability and the builder relationship.
"""

from sqlalchemy import String, Text, Integer, Enum as SQLEnum, Index, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from buildex.database import Base
from buildex.utils.image_list import normalize_images
import enum
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from buildex.models.user import User


class PropertyPurpose(str, enum.Enum):
    """What the listing is offered for."""
    BUY = "Buy"
    RENT = "Rent"


class AvailabilityStatus(str, enum.Enum):
    """Marketplace availability; set to SOLD or RENTED by a completed payment."""
    AVAILABLE = "AVAILABLE"
    SOLD = "SOLD"
    RENTED = "RENTED"
    BOOKED = "BOOKED"


class ListingStatus(str, enum.Enum):
    """Moderation status of a listing."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class Property(Base):
    """
    Property model for managing sale and rental listings.
    Price and rent are kept as entered (e.g. "45,00,000") and resolved to
    numbers when a payment is initiated.
    """

    __tablename__ = "properties"

    builder_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the builder who owns this listing"
    )

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
        comment="Property listing title"
    )

    property_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="Apartment, Villa, Plot, ..."
    )

    purpose: Mapped[PropertyPurpose] = mapped_column(
        SQLEnum(PropertyPurpose),
        nullable=False,
        index=True,
        comment="Buy or Rent"
    )

    price: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    rent_amount: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    area_sqft: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)

    locality: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    bedrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    bathrooms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Brace-literal encoded list; read through the images_list property
    images: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Encoded image references (URLs or data URIs)"
    )

    availability_status: Mapped[AvailabilityStatus] = mapped_column(
        SQLEnum(AvailabilityStatus),
        nullable=False,
        default=AvailabilityStatus.AVAILABLE,
        index=True
    )

    status: Mapped[ListingStatus] = mapped_column(
        SQLEnum(ListingStatus),
        nullable=False,
        default=ListingStatus.PENDING,
        index=True,
        comment="Moderation status"
    )

    builder: Mapped["User"] = relationship(
        "User",
        back_populates="properties",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, title={self.title[:30]}, purpose={self.purpose})>"

    @property
    def images_list(self):
        """Images normalized into an ordered list."""
        return normalize_images(self.images)

    @property
    def is_available(self) -> bool:
        return self.availability_status == AvailabilityStatus.AVAILABLE

    def to_dict(self, include_builder: bool = False) -> dict:
        """
        Convert property to dictionary.

        Args:
            include_builder: Whether to include builder information

        Returns:
            Dictionary representation of property
        """
        result = {
            "id": self.id,
            "builder_id": self.builder_id,
            "title": self.title,
            "property_type": self.property_type,
            "purpose": self.purpose.value,
            "price": self.price,
            "rent_amount": self.rent_amount,
            "area_sqft": self.area_sqft,
            "city": self.city,
            "locality": self.locality,
            "description": self.description,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "images": self.images_list,
            "availability_status": self.availability_status.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

        if include_builder and self.builder:
            result["builder"] = self.builder.to_dict()

        return result


# Composite index for the listing search filters
search_index = Index(
    "idx_properties_search",
    Property.city,
    Property.purpose,
    Property.availability_status,
)

# Composite index for a builder's listings
builder_created_index = Index(
    "idx_properties_builder_created",
    Property.builder_id,
    Property.created_at.desc(),
)

"""Tour model: the catalogue discovery reads from and scans write to."""

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, Text, ForeignKey, Boolean, Numeric, Float, Integer, Index, UniqueConstraint
from sqlalchemy import JSON as JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourscout.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from tourscout.models.operator import Operator


TOUR_STATUSES = ("draft", "published", "archived")


class Tour(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A bookable tour.

    Only ``published`` tours are eligible for discovery. Tours created by a
    website scan start as ``draft`` and are keyed by (tenant, source URL, name)
    so that rescanning a site updates rows instead of duplicating them.
    """

    __tablename__ = "tours"
    __table_args__ = (
        UniqueConstraint("tenant_id", "source_url", "name", name="uq_tours_tenant_source_name"),
        Index("ix_tours_status_featured", "status", "featured"),
    )

    # References
    operator_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("operators.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, default="default", index=True)

    # Content
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    short_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Location
    destination: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    city: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    coordinates: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True, comment="{lat, lng}")

    # Pricing
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    price_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="per_person",
        comment="'per_person' or 'per_group'"
    )

    # Duration
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    duration_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="hours",
        comment="'minutes', 'hours' or 'days'"
    )

    # Details
    categories: Mapped[List[str]] = mapped_column(JSONB, nullable=False, default=list)
    highlights: Mapped[List[str]] = mapped_column(JSONB, nullable=False, default=list)
    included: Mapped[List[str]] = mapped_column(JSONB, nullable=False, default=list)
    excluded: Mapped[List[str]] = mapped_column(JSONB, nullable=False, default=list)
    images: Mapped[List[str]] = mapped_column(JSONB, nullable=False, default=list)
    languages: Mapped[List[str]] = mapped_column(JSONB, nullable=False, default=list)
    group_size: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True, comment="{min, max}")
    difficulty: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    cancellation_policy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    starting_point: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    ending_point: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)

    # Popularity
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    booking_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        index=True,
        comment="Status: 'draft', 'published', 'archived'"
    )

    # Provenance
    source_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    metadata_: Mapped[dict] = mapped_column(
        "metadata",
        JSONB,
        nullable=False,
        default=dict,
        comment="Scan provenance (source type, scanned_at, external id)"
    )

    # Relationships
    operator: Mapped[Optional["Operator"]] = relationship(back_populates="tours")

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, name='{self.name[:40]}', status='{self.status}')>"

"""Legacy content model.

Older tenants stored activities in a generic content table with list fields
serialized as JSON text. Discovery still reads it as a fallback source.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Text, Boolean, Numeric, Integer
from sqlalchemy.orm import Mapped, mapped_column

from tourscout.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Content(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Legacy content row (activity, accommodation, restaurant, ...)."""

    __tablename__ = "contents"

    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    city: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Duration in minutes")

    # JSON-encoded text columns
    images: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    highlights: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    included: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    excluded: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_: Mapped[Optional[str]] = mapped_column("metadata", Text, nullable=True)

    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, default="default", index=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Content(id={self.id}, type='{self.type}', name='{self.name[:40]}')>"

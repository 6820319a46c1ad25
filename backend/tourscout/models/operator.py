"""Tour operator model."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tourscout.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from tourscout.models.tour import Tour


class Operator(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A business publishing tours on the platform."""

    __tablename__ = "operators"

    business_name: Mapped[str] = mapped_column(String(200), nullable=False)
    logo: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    website_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, default="default", index=True)
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set once the operator passed verification"
    )

    # Relationships
    tours: Mapped[List["Tour"]] = relationship(back_populates="operator")

    @property
    def is_verified(self) -> bool:
        return self.verified_at is not None

    def __repr__(self) -> str:
        return f"<Operator(id={self.id}, business_name='{self.business_name}')>"

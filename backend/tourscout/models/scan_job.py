"""Website scan tracking."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import String, Integer, Numeric, DateTime, func
from sqlalchemy import JSON as JSONB
from sqlalchemy.orm import Mapped, mapped_column

from tourscout.models.base import Base, UUIDPrimaryKeyMixin


class ScanJob(UUIDPrimaryKeyMixin, Base):
    """Tracks one website scan.

    Each call to the scan endpoint creates a ScanJob to record status,
    page counts, timing and per-page errors.
    """

    __tablename__ = "scan_jobs"

    website_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    tenant_id: Mapped[str] = mapped_column(String(100), nullable=False, default="default", index=True)
    scan_depth: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    scraper_used: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Job status
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="running",
        index=True,
        comment="Status: 'running', 'completed', 'failed'"
    )

    # Metrics
    pages_scanned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pages_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    items_found: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Unique tours after dedupe")
    items_saved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deadline_reached: Mapped[bool] = mapped_column(default=False, nullable=False)

    # Error tracking
    errors: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(8, 2),
        nullable=True,
        comment="Total scan time in seconds"
    )

    def __repr__(self) -> str:
        return f"<ScanJob(id={self.id}, website_url='{self.website_url}', status='{self.status}')>"

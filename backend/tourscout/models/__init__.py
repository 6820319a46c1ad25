"""SQLAlchemy models for TourScout.

All models are imported here so metadata.create_all sees every table.
"""

from tourscout.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from tourscout.models.operator import Operator
from tourscout.models.tour import Tour, TOUR_STATUSES
from tourscout.models.content import Content
from tourscout.models.scan_job import ScanJob

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Operator",
    "Tour",
    "TOUR_STATUSES",
    "Content",
    "ScanJob",
]

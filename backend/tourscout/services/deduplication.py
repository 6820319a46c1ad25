"""In-memory deduplication of tours collected across scanned pages."""

from typing import Iterable, List

from tourscout.scrapers.base import ProcessedTour


def deduplicate_tours(tours: Iterable[ProcessedTour]) -> List[ProcessedTour]:
    """Keep the first tour for each (name, price) pair, preserving order.

    Tours with the same name but a different (or unknown) price are
    distinct. Decimal prices compare by value, so 45 and 45.00 collide.
    """
    seen = set()
    unique: List[ProcessedTour] = []
    for tour in tours:
        key = (tour.name, tour.price)
        if key in seen:
            continue
        seen.add(key)
        unique.append(tour)
    return unique

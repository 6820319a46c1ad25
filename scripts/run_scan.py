"""Manual website scan runner for testing and debugging scrapers.

Runs the same scan as POST /api/v1/content/scan without the API server and
prints the tours found plus the scan summary.

Usage:
    python scripts/run_scan.py --url https://example-tours.com
    python scripts/run_scan.py --url https://www.getyourguide.com/lisbon-l42/ --depth 1
    python scripts/run_scan.py --url https://example-tours.com --tenant acme --limit 5
"""

import asyncio
import argparse
import sys
import os
from decimal import Decimal
from typing import Optional

# Add backend to path so we can import tourscout modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from tourscout.config import settings
from tourscout.db.session import async_session_factory, engine
from tourscout.models import Base
from tourscout.scrapers.factory import ScraperFactory
from tourscout.services.scan_service import ContentScanService


async def run_scan(url: str, depth: int = 10, tenant: str = "default", limit: int = 10):
    """Scan a website and display the results.

    Args:
        url: Website to scan
        depth: Maximum number of pages to fetch
        tenant: Tenant id; anything other than "default" persists the tours
        limit: Maximum number of tours to display
    """
    print(f"\n{'='*70}")
    print(f"  Scanning {url}")
    print(f"{'='*70}")
    print(f"  Depth: {depth}")
    print(f"  Tenant: {tenant}")
    print(f"{'='*70}\n")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = ScraperFactory.from_settings(settings)

    try:
        async with async_session_factory() as session:
            service = ContentScanService(session, factory)
            result = await service.scan_website(url, tenant_id=tenant, scan_depth=depth)

        tours = result["tours"]
        summary = result["summary"]

        if not tours:
            print("No tours found.\n")
        else:
            print(f"Top {min(limit, len(tours))} of {len(tours)} tours\n")

        for i, tour in enumerate(tours[:limit], 1):
            print(f"[{i}] {tour.name}")
            print(f"    Destination: {tour.destination}")
            print(f"    Duration: {tour.duration}")
            print(f"    Price: {_format_price(tour.price, tour.currency)}")
            print(f"    URL: {tour.metadata.source_url[:80]}")
            print()

        print(f"{'='*70}")
        print(f"  Summary")
        print(f"{'='*70}")
        print(f"  Total Found: {summary['total_found']}")
        print(f"  Destinations: {', '.join(summary['destinations']) or '-'}")
        price_range = summary["price_range"]
        if price_range:
            print(f"  Price Range: {price_range['min']} - {price_range['max']}")
        print(f"  Scraper: {summary['scraper_used']}")
        print(f"  Scan ID: {summary['scan_id']}")
        print(f"{'='*70}\n")
    finally:
        await engine.dispose()


def _format_price(price: Optional[Decimal], currency: str) -> str:
    """Format price with currency code, or "unknown" when not found."""
    if price is None:
        return "unknown"
    return f"{price:,.2f} {currency}"


def main():
    """Parse arguments and run the scan."""
    parser = argparse.ArgumentParser(
        description="Scan a tour website without the API server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_scan.py --url https://example-tours.com
  python scripts/run_scan.py --url https://example-tours.com --depth 3
        """,
    )

    parser.add_argument("--url", required=True, help="Website URL to scan")
    parser.add_argument(
        "--depth",
        type=int,
        default=10,
        choices=range(1, 51),
        metavar="N",
        help="Maximum pages to fetch, 1-50 (default: 10)",
    )
    parser.add_argument("--tenant", default="default", help="Tenant id (default: 'default', not persisted)")
    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of tours to display (default: 10)",
    )

    args = parser.parse_args()

    asyncio.run(run_scan(args.url, args.depth, args.tenant, args.limit))


if __name__ == "__main__":
    main()

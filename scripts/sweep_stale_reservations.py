#!/usr/bin/env python3
"""
Stale Reservation Sweep

Releases listings stuck in RESERVED without a checkout session (a checkout
that crashed between reserving and attaching its Stripe session). Meant to
run from cron every few minutes.

Usage:
    python scripts/sweep_stale_reservations.py
    python scripts/sweep_stale_reservations.py --grace-minutes 30 --dry-run
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.time import utc_now
from repositories.client import build_record_store
from repositories.listing_repository import ListingRepository
from services.reservation_sweep import is_stale, release_stale_reservations
from services.settings import Settings

logger = logging.getLogger("sweep_stale_reservations")


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Release listings reserved without a checkout session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Release reservations older than RESERVATION_GRACE_MINUTES (default 15)
  python sweep_stale_reservations.py

  # Use a 30 minute grace period
  python sweep_stale_reservations.py --grace-minutes 30

  # Show what would be released without changing anything
  python sweep_stale_reservations.py --dry-run
        """
    )

    parser.add_argument(
        "--grace-minutes",
        "-g",
        type=int,
        help="Minimum reservation age in minutes (default: RESERVATION_GRACE_MINUTES)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List stale reservations without releasing them"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_env()
        grace_minutes = args.grace_minutes or settings.reservation_grace_minutes
        listings = ListingRepository(build_record_store(settings))

        logger.info("Sweeping reservations older than %d minutes", grace_minutes)

        if args.dry_run:
            cutoff = utc_now() - timedelta(minutes=grace_minutes)
            stale = [l for l in listings.list_reserved_without_session() if is_stale(l, cutoff)]
            for listing in stale:
                logger.info("Would release listing %s (reserved_at=%s)", listing.listing_id, listing.reserved_at)
            logger.info("Dry run: %d stale reservation(s)", len(stale))
            return 0

        report = release_stale_reservations(listings, grace_minutes)

        print()
        print("=" * 60)
        print("SWEEP SUMMARY")
        print("=" * 60)
        print(f"Reserved without session: {report.examined}")
        print(f"Released:                 {len(report.released)}")
        print(f"Skipped (changed):        {len(report.skipped)}")
        print("=" * 60)

        return 0

    except KeyboardInterrupt:
        print("\n\nSweep interrupted by user")
        return 130

    except Exception:
        logger.exception("Sweep failed")
        return 1


if __name__ == "__main__":
    sys.exit(main())

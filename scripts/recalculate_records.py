#!/usr/bin/env python3
"""
Rebuild personal best and season best flags from stored results.

Use after bulk imports, manual database edits or a change of wind settings,
when stored flags can no longer be trusted. Every partition of an athlete is
rebuilt in one transaction.

Usage:
    # Rebuild one athlete
    python scripts/recalculate_records.py --athlete-id 12

    # Rebuild every athlete that has results
    python scripts/recalculate_records.py --all

    # Show which partitions would be rebuilt
    python scripts/recalculate_records.py --all --dry-run

Environment variables:
    DATABASE_URL or POSTGRES_HOST, POSTGRES_PORT, POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from recordkeeper.database import close_db
from recordkeeper.repositories.base import StoreError
from recordkeeper.services.results import ResultService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


async def rebuild(service: ResultService, athlete_ids: List[int], dry_run: bool) -> int:
    """Rebuild (or list) the partitions of each athlete.

    Returns:
        Number of partitions rebuilt or, in dry-run mode, found
    """
    total = 0
    for athlete_id in athlete_ids:
        if dry_run:
            keys = await service.partitions_of(athlete_id)
            for key in keys:
                logger.info(f"[DRY RUN] Would rebuild athlete {athlete_id} {key.describe()}")
            total += len(keys)
            continue

        for summary in await service.recalculate_athlete(athlete_id):
            logger.info(
                f"Athlete {athlete_id} {summary.partition.describe()}: "
                f"pb={summary.personal_best_id} sb={summary.season_best_ids}"
            )
            total += 1
    return total


async def run(args: argparse.Namespace) -> int:
    service = ResultService()
    try:
        athlete_ids = await service.athlete_ids() if args.all else [args.athlete_id]
        total = await rebuild(service, athlete_ids, args.dry_run)
    finally:
        await close_db()

    action = "Found" if args.dry_run else "Rebuilt"
    logger.info(f"{action} {total} partition(s) for {len(athlete_ids)} athlete(s)")
    return total


def main():
    parser = argparse.ArgumentParser(
        description="Rebuild PB/SB flags of stored results",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--athlete-id",
        type=int,
        help="Rebuild the partitions of one athlete",
    )
    target.add_argument(
        "--all",
        action="store_true",
        help="Rebuild every athlete that has results",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List partitions without writing",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        asyncio.run(run(args))
    except StoreError as e:
        logger.error(f"Rebuild failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Periodic maintenance job: recomputes boost scores and sweeps expired offers.

Boost scores are refreshed on this schedule only, so a listing's score is at
most ``Boost.RECOMPUTE_INTERVAL_MINUTES`` stale.
"""

import argparse
import time
from datetime import datetime
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from marketplace.logger import logger
from marketplace.config.config import settings
from marketplace.counters.counter_model import BoostResult
from marketplace.counters.counter_synchronizer import CounterSynchronizer
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.offer.offer_manager import OfferManager

console = Console()


def run_once(db_manager: Optional[DatabaseManager] = None, as_of: Optional[datetime] = None) -> List[BoostResult]:
    db_manager = db_manager or get_database_manager()
    expired = OfferManager(db_manager).expire_offers(now=as_of)
    results = CounterSynchronizer(db_manager).recompute_all_boosts(as_of=as_of)
    logger.info(f"[BOOST_JOB] Run complete: {len(results)} boost(s) recomputed, {expired} offer(s) expired")
    return results


def print_results(results: List[BoostResult], top: int):
    table = Table(title="Boost scores")
    table.add_column("Property")
    table.add_column("Score", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Favorites", justify="right")
    table.add_column("Offers", justify="right")
    table.add_column("Tours", justify="right")
    for result in sorted(results, key=lambda r: r.boost_score, reverse=True)[:top]:
        table.add_row(
            result.property_id,
            f"{result.boost_score:.3f}",
            str(result.inputs.views_count),
            str(result.inputs.favorites_count),
            str(result.inputs.recent_offers),
            str(result.inputs.recent_bookings),
        )
    console.print(table)


def main():
    parser = argparse.ArgumentParser(description="Recompute listing boost scores and expire stale offers")
    parser.add_argument("--loop", action="store_true", help="Keep running on the configured interval")
    parser.add_argument(
        "--interval-minutes", type=float, default=settings.Boost.RECOMPUTE_INTERVAL_MINUTES,
        help="Minutes between runs when looping",
    )
    parser.add_argument("--top", type=int, default=20, help="How many listings to print")
    args = parser.parse_args()

    while True:
        try:
            print_results(run_once(), args.top)
        except Exception as e:
            if not args.loop:
                raise
            logger.exception(f"[BOOST_JOB] Run failed, retrying next interval: {e}")
        if not args.loop:
            break
        time.sleep(args.interval_minutes * 60)


if __name__ == '__main__':
    main()

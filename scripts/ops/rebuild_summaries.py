#!/usr/bin/env python3
"""
Rebuild daily event summaries for one tenant from the raw events.

Summaries normally track events through background recomputation. Use this
after a dropped job, a restore, or a manual data fix. Safe to re-run.

Arguments:
  --tenant-id ID     Tenant to rebuild (required)
  --start-date DATE  First UTC day, YYYY-MM-DD (default: the 7 days ending at --end-date)
  --end-date DATE    Last UTC day, YYYY-MM-DD (default: today)
"""

import argparse
import logging
import os
import sys
from datetime import date, timedelta

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


def main():
    """Main entry point for summary rebuilds."""
    parser = argparse.ArgumentParser(description="Rebuild daily event summaries from raw events")
    parser.add_argument("--tenant-id", type=str, required=True, help="Tenant to rebuild")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        help=f"First UTC day, YYYY-MM-DD (default: {DEFAULT_WINDOW_DAYS - 1} days before the end date)",
    )
    parser.add_argument("--end-date", type=date.fromisoformat, help="Last UTC day, YYYY-MM-DD (default: today)")

    args = parser.parse_args()
    load_dotenv()

    from src.core.database.database_session import get_session_factory, reset_engine
    from src.core.utils.time_utils import utc_now
    from src.services.aggregation_service import AggregationEngine

    end_date = args.end_date or utc_now().date()
    start_date = args.start_date or end_date - timedelta(days=DEFAULT_WINDOW_DAYS - 1)

    logger.info(f"Rebuilding summaries for {args.tenant_id} from {start_date} to {end_date}")

    try:
        engine = AggregationEngine(get_session_factory())
        rebuilt = engine.rebuild(args.tenant_id, start_date, end_date)
    except Exception as e:
        logger.error(f"Summary rebuild failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        reset_engine()

    logger.info(f"Rebuild complete: {rebuilt} summaries written")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Create the Beacon Analytics schema in the configured database.

Usage:
  python scripts/setup/init_database.py
"""

import logging
import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))

from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    load_dotenv()

    from src.core.database.database import init_db
    from src.core.database.database_session import reset_engine

    try:
        created = init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        reset_engine()

    print(f"✅ Database ready ({len(created)} table(s) created)")


if __name__ == "__main__":
    main()

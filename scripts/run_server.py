#!/usr/bin/env python3
"""Run the Beacon Analytics API.

Reads settings from the environment, plus a .env file in the working directory
when one exists.
"""

import os
import sys

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv


def main():
    load_dotenv()

    from src.api.server import main as serve

    try:
        serve()
    except KeyboardInterrupt:
        print("\nServer stopped.")
        sys.exit(0)


if __name__ == "__main__":
    main()

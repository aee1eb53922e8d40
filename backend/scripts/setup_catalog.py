"""
One-time catalog setup.

Creates the demo products (HEETS, IQOS device) and their SKUs with the
payment provider so orders can be placed from the checkout.

Usage (from backend/):
    python scripts/setup_catalog.py
"""
import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services import setup_service  # noqa: E402

logger = logging.getLogger("setup_catalog")


async def main() -> str:
    return await setup_service.run()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    result = asyncio.run(main())
    logger.info(f"Setup finished: {result}")
    sys.exit(1 if result == "error" else 0)

# main.py
import asyncio
import logging
from quickbite.app import QuickBiteApp
from quickbite.config import setup_logging

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        app = QuickBiteApp()
        logger.info("Starting QuickBite order service...")
        await app.start()
    except Exception as e:
        logger.error(f"Error starting service: {e}", exc_info=True)
        raise

if __name__ == "__main__":
    asyncio.run(main())

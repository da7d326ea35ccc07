#!/usr/bin/env python3
"""
99 Names Telegram Bot
Main application entry point
"""

import logging

from names_bot.bot_handler import BotHandler
from names_bot.config import get_settings


def main():
    """Main application entry point"""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # httpx logs every polling request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Starting 99 Names Bot...")

    bot_handler = BotHandler(settings)

    try:
        bot_handler.run()
        logger.info("Bot stopped gracefully")
    except KeyboardInterrupt:
        logger.info("Shutdown requested, stopping bot...")
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        raise


if __name__ == "__main__":
    main()

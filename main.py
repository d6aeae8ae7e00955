"""
Work Tracker — Entry Point.

`python main.py` starts the daily reset engine. With TELEGRAM_BOT_TOKEN set
it runs behind the Telegram bot, whose JobQueue drives the reset checks;
otherwise it runs headless on its own scheduler until interrupted.
"""

import asyncio
import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from worktracker.adapters.sqlite_storage import SQLiteStorage
from worktracker.adapters.system_clock import SystemClock
from worktracker.config import reset_settings, settings
from worktracker.core.reset_scheduler import ResetScheduler
from worktracker.core.reset_service import DailyResetService

logger = logging.getLogger("worktracker")


def build_service() -> DailyResetService:
    return DailyResetService(
        storage=SQLiteStorage(db_path=settings.DATABASE_PATH),
        clock=SystemClock(settings.TIMEZONE),
        config=reset_settings(settings),
    )


async def run_headless(service: DailyResetService) -> None:
    scheduler = ResetScheduler(service, interval_seconds=settings.CHECK_INTERVAL_SECONDS)
    await scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()


def main() -> None:
    service = build_service()

    if settings.TELEGRAM_BOT_TOKEN:
        from worktracker.bot.telegram_bot import build_app

        logger.info("Starting Work Tracker with Telegram bot...")
        build_app(service).run_polling()
        return

    logger.info("Starting Work Tracker headless (no TELEGRAM_BOT_TOKEN)...")
    try:
        asyncio.run(run_headless(service))
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()

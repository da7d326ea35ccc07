"""
Periodic reminder scheduler for sending study notifications
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from zoneinfo import ZoneInfo

from ...utils import parse_timezone

logger = logging.getLogger(__name__)


def is_reminder_hour(hour: int, start_hour: int, end_hour: int, interval_hours: int) -> bool:
    """Whether reminders go out at ``hour``.

    Slots start at ``start_hour`` and repeat every ``interval_hours`` up to
    and including ``end_hour``.
    """
    if interval_hours <= 0 or hour < start_hour or hour > end_hour:
        return False
    return (hour - start_hour) % interval_hours == 0


def is_reminder_due(
    now: datetime,
    timezone: str,
    start_hour: int,
    end_hour: int,
    interval_hours: int,
) -> bool:
    """Whether ``now`` is a reminder slot in the user's local time"""
    local_now = now.astimezone(parse_timezone(timezone) or dt_timezone.utc)
    return is_reminder_hour(local_now.hour, start_hour, end_hour, interval_hours)


class ReminderScheduler:
    """Wakes up at the top of every hour and hands the tick time to the callback.

    Whether a user is due is decided per user by the callback, since every
    user has their own window, interval and timezone.
    """

    def __init__(
        self,
        send_reminders_callback: Callable[[datetime], Awaitable[None]],
        timezone: str = "UTC",
    ):
        self.send_reminders_callback = send_reminders_callback
        self.timezone = ZoneInfo(timezone)
        self.is_running = False
        self.task = None
        logger.info(f"Reminder scheduler configured: hourly ticks in {timezone}")

    async def start(self):
        """Start the reminder scheduler"""
        if self.is_running:
            logger.warning("Reminder scheduler is already running")
            return

        self.is_running = True
        self.task = asyncio.create_task(self._schedule_loop())
        logger.info("Reminder scheduler started")

    async def stop(self):
        """Stop the reminder scheduler"""
        if not self.is_running:
            return

        self.is_running = False
        if self.task:
            self.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.task
        logger.info("Reminder scheduler stopped")

    async def _schedule_loop(self):
        """Main scheduling loop"""
        while self.is_running:
            try:
                next_tick = self._get_next_tick()
                sleep_duration = (next_tick - datetime.now(self.timezone)).total_seconds()
                if sleep_duration > 0:
                    logger.debug(f"Next reminder check at {next_tick} ({sleep_duration:.0f}s)")
                    await asyncio.sleep(sleep_duration)

                if self.is_running:
                    await self.tick(next_tick)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in reminder scheduler: {e}")
                # Sleep for a minute before retrying
                await asyncio.sleep(60)

    def _get_next_tick(self) -> datetime:
        """Top of the next hour"""
        now = datetime.now(self.timezone)
        return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)

    async def tick(self, now: datetime):
        """Run one reminder round for the hour starting at ``now``"""
        logger.info(f"Reminder tick at {now.strftime('%Y-%m-%d %H:%M %Z')}")
        try:
            await self.send_reminders_callback(now)
        except Exception as e:
            logger.error(f"Error sending reminders: {e}", exc_info=True)

"""
Daily Reset Task - Zeroes every account's daily usage once per day.

The task wakes up every check interval and claims the reset for the most
recent daily boundary. The claimed date is persisted, so overlapping ticks,
restarts or several bot processes reset at most once per day.
"""

import asyncio
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from structlog import get_logger

from photobot.observability.metrics import metrics
from photobot.services.ledger import LedgerStore

logger = get_logger(__name__)


def due_reset_date(now: datetime, zone: ZoneInfo, boundary: time) -> date:
    """
    Local date of the most recent daily boundary at or before now.

    Before the boundary time the last reset due is yesterday's.
    """
    local_now = now.astimezone(zone)
    if local_now.time() >= boundary:
        return local_now.date()
    return local_now.date() - timedelta(days=1)


class DailyResetTask:
    """
    Background loop that performs the daily usage reset.

    Usage:
        task = DailyResetTask(ledger, ZoneInfo("UTC"))
        task.start()
        ...
        await task.stop()
    """

    def __init__(
        self,
        ledger: LedgerStore,
        zone: ZoneInfo,
        hour: int = 0,
        minute: int = 0,
        interval_seconds: int = 60,
    ) -> None:
        self.ledger = ledger
        self.zone = zone
        self.boundary = time(hour=hour, minute=minute)
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    async def check(self, now: datetime | None = None) -> bool:
        """Run the reset if the current day's reset has not happened. Returns True if it ran."""
        now = now or datetime.now(UTC)
        run_on = due_reset_date(now, self.zone, self.boundary)
        performed = await self.ledger.claim_daily_reset(run_on)
        if performed:
            metrics.daily_resets_total.inc()
        else:
            logger.debug("daily_reset_already_done", run_on=run_on.isoformat())
        return performed

    async def run_forever(self) -> None:
        """Check on a fixed interval until cancelled."""
        logger.info(
            "daily_reset_task_started",
            check_interval_seconds=self.interval_seconds,
            boundary=self.boundary.isoformat(),
            timezone=str(self.zone),
        )

        while True:
            try:
                await self.check()
            except Exception as e:
                metrics.record_error(type(e).__name__, "daily_reset")
                logger.error("daily_reset_check_failed", error=str(e), exc_info=True)

            await asyncio.sleep(self.interval_seconds)

    def start(self) -> "asyncio.Task[None]":
        """Schedule run_forever on the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="daily-reset")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("daily_reset_task_stopped")

# doughmain/core/sync.py
"""
Nightly transaction sync.

run_scheduled_sync walks every user under `users/` and re-ingests the last
`lookback_days` of transactions for each of their linked items. A failure
for one user is logged and the loop moves on; nothing is retried.

SyncScheduler fires it on a cron schedule from inside the app lifespan.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from croniter import croniter

from doughmain.core import collections
from doughmain.core.documents import DocumentStore
from doughmain.core.etl.ingest import ingest_for_user
from doughmain.core.plaid_client import PlaidAggregator

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 30


def sync_window(today: date, lookback_days: int) -> tuple[str, str]:
    start = today - timedelta(days=lookback_days)
    return start.isoformat(), today.isoformat()


async def run_scheduled_sync(
    store: DocumentStore,
    aggregator: PlaidAggregator,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    logger.info("Starting scheduled transaction sync...")

    today = today or datetime.now(timezone.utc).date()
    start_date, end_date = sync_window(today, lookback_days)

    users = await store.collection(collections.COLLECTION_USERS).list_documents()
    synced = 0
    failed = []

    for user in users:
        logger.info("Syncing transactions for user: %s", user.id)
        try:
            await ingest_for_user(store, aggregator, user.id, start_date, end_date)
            synced += 1
        except Exception:
            logger.exception("Error syncing transactions for user %s", user.id)
            failed.append(user.id)

    logger.info(
        "Scheduled transaction sync completed: %d synced, %d failed",
        synced,
        len(failed),
    )
    return {"users": len(users), "synced": synced, "failed": failed}


class SyncScheduler:
    """Runs `job` every time the cron expression fires until stopped."""

    def __init__(
        self,
        schedule: str,
        job: Callable[[], Awaitable[Any]],
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if not croniter.is_valid(schedule):
            raise ValueError(f"Invalid sync schedule: {schedule!r}")
        self.schedule = schedule
        self._job = job
        self._now = now
        self._task: Optional[asyncio.Task] = None

    def next_run(self, after: Optional[datetime] = None) -> datetime:
        anchor = after or self._now()
        return croniter(self.schedule, anchor).get_next(datetime)

    def seconds_until(self, fire_at: datetime) -> float:
        return max(0.0, (fire_at - self._now()).total_seconds())

    def seconds_until_next_run(self) -> float:
        return self.seconds_until(self.next_run())

    async def _run_forever(self) -> None:
        fire_at = self.next_run()
        while True:
            await asyncio.sleep(self.seconds_until(fire_at))
            try:
                await self._job()
            except Exception:
                logger.exception("Scheduled sync run failed")
            # sleep can wake just short of fire_at; never serve it twice
            fire_at = self.next_run(max(fire_at, self._now()))

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run_forever())
            logger.info("Sync scheduler started (%s)", self.schedule)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Sync scheduler stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

"""
Pipeline Scheduling Module.

Runs the analytics pipeline on a fixed hourly grid: with an interval of two
hours the pipeline starts at 00:00, 02:00, 04:00 and so on (UTC). A failed
run is logged and the next run is scheduled as usual.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

from config import logger
from analyzers.pipeline import AnalyticsPipeline


def next_run_time(now: datetime, interval_hours: int) -> datetime:
    """
    Get the next scheduled start strictly after ``now``.

    Args:
        now (datetime): Reference time, naive values are treated as UTC
        interval_hours (int): Hours between runs, a divisor of 24 keeps the grid daily

    Returns:
        datetime: Next full hour whose hour of day is a multiple of the interval
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    candidate = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    while candidate.hour % interval_hours:
        candidate += timedelta(hours=1)
    return candidate


class PipelineScheduler:
    """Runs an analytics pipeline every few hours, forever."""

    def __init__(self, pipeline: AnalyticsPipeline, interval_hours: int = 2):
        self.pipeline = pipeline
        self.interval_hours = interval_hours

    async def run_once(self) -> bool:
        """Run the pipeline, logging instead of raising on failure."""
        try:
            return await self.pipeline.run()
        except Exception as e:
            logger.error({"message": "Scheduled pipeline run failed", "error": str(e)})
            return False

    async def run_forever(
        self, run_immediately: bool = False, max_runs: Optional[int] = None
    ) -> None:
        """
        Run the pipeline on schedule.

        Args:
            run_immediately (bool): Start with a run before waiting for the grid
            max_runs (Optional[int]): Stop after this many runs, None runs forever
        """
        runs = 0
        if run_immediately:
            await self.run_once()
            runs += 1

        while max_runs is None or runs < max_runs:
            now = datetime.now(timezone.utc)
            scheduled = next_run_time(now, self.interval_hours)
            logger.info(
                {
                    "message": "Next pipeline run scheduled",
                    "scheduled_at": scheduled.isoformat(),
                }
            )
            await asyncio.sleep((scheduled - now).total_seconds())
            await self.run_once()
            runs += 1

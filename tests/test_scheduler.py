"""
Pipeline Scheduler Test Suite.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

import scheduler as scheduler_module
from scheduler import PipelineScheduler, next_run_time


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "now, interval, expected",
    [
        (utc(2024, 1, 1, 1, 30), 2, utc(2024, 1, 1, 2)),
        (utc(2024, 1, 1, 2, 0), 2, utc(2024, 1, 1, 4)),
        (utc(2024, 1, 1, 23, 10), 2, utc(2024, 1, 2, 0)),
        (utc(2024, 1, 1, 10, 0, 1), 3, utc(2024, 1, 1, 12)),
        (datetime(2024, 1, 1, 5, 59), 1, utc(2024, 1, 1, 6)),
    ],
)
def test_next_run_time(now, interval, expected):
    """Test the next slot on the hourly grid."""
    assert next_run_time(now, interval) == expected


@pytest.fixture
def mock_pipeline():
    """Mock pipeline with a successful run."""
    pipeline = Mock()
    pipeline.run = AsyncMock(return_value=True)
    return pipeline


@pytest.mark.asyncio
async def test_run_forever_runs_on_schedule(monkeypatch, mock_pipeline):
    """Test an immediate run followed by a scheduled one."""
    sleep = AsyncMock()
    monkeypatch.setattr(scheduler_module.asyncio, "sleep", sleep)

    await PipelineScheduler(mock_pipeline, 2).run_forever(run_immediately=True, max_runs=2)

    assert mock_pipeline.run.await_count == 2
    sleep.assert_awaited_once()
    assert 0 < sleep.await_args.args[0] <= 2 * 3600


@pytest.mark.asyncio
async def test_failed_run_does_not_stop_scheduler(mock_pipeline):
    """Test that run failures are logged and reported as False."""
    mock_pipeline.run = AsyncMock(side_effect=Exception("boom"))

    assert await PipelineScheduler(mock_pipeline).run_once() is False

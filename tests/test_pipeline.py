"""
Analytics Pipeline Test Suite.

This module contains tests for the AnalyticsPipeline class, covering:
- Pull request and contributor import across repositories
- Error handling per repository and per step
- Snapshot and chart population from the stored PRs
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from analyzers.pipeline import AnalyticsPipeline
from analyzers.plugins.label_classifier import SpecLabelClassifier
from miners.models import ContributorStatsData, ContributorWeekData, RepositoryData, SpecType
from storage.document_store import DocumentStore


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    """Document store in a temporary directory."""
    return DocumentStore(str(tmp_path))


@pytest.fixture
def mock_miner():
    """Mock repository miner returning no data."""
    miner = Mock()
    miner.mine_pull_requests = AsyncMock(
        side_effect=lambda spec_type: RepositoryData(
            spec_type=spec_type, repository_name=spec_type.repository, pull_requests=[]
        )
    )
    miner.mine_contributors = AsyncMock(return_value=[])
    return miner


def make_pipeline(store, miner, spec_types=("EIP", "ERC")):
    return AnalyticsPipeline(
        store,
        miner,
        SpecLabelClassifier(),
        list(spec_types),
        repository_delay_seconds=0,
        top_contributors_limit=5,
    )


@pytest.mark.asyncio
async def test_import_pull_requests_classifies_and_stores(store, mock_miner, worked_example):
    """Test that mined PRs are stored with their labels."""
    mock_miner.mine_pull_requests = AsyncMock(
        return_value=RepositoryData(
            spec_type="EIP", repository_name="EIPs", pull_requests=worked_example
        )
    )
    pipeline = make_pipeline(store, mock_miner, ["EIP"])

    results = await pipeline.import_pull_requests()

    assert results == {"EIP": 3}
    stored = store.load_pull_requests("EIP")
    assert [pr.custom_labels for pr in stored] == [
        ["EIP Update"],
        ["Update", "Typo Fix"],
        ["New", "New EIP"],
    ]
    mock_miner.mine_pull_requests.assert_awaited_once_with(SpecType.EIP)


@pytest.mark.asyncio
async def test_import_pull_requests_continues_after_failure(store, mock_miner, make_pr):
    """Test that a failing repository does not stop the others."""
    erc_data = RepositoryData(
        spec_type="ERC",
        repository_name="ERCs",
        pull_requests=[make_pr(spec_type="ERC", created_at=utc(2024, 1, 1))],
    )
    mock_miner.mine_pull_requests = AsyncMock(side_effect=[Exception("API Error"), erc_data])
    pipeline = make_pipeline(store, mock_miner)

    results = await pipeline.import_pull_requests()

    assert results == {"ERC": 1}
    assert mock_miner.mine_pull_requests.await_count == 2
    assert store.load_pull_requests("EIP") == []
    assert len(store.load_pull_requests("ERC")) == 1


@pytest.mark.asyncio
async def test_import_contributors(store, mock_miner):
    """Test that contributor records and repository stats are stored."""
    mock_miner.mine_contributors = AsyncMock(
        return_value=[
            ContributorStatsData(
                login="alice",
                id=1,
                total=3,
                weeks=[ContributorWeekData(week=utc(2024, 1, 7), commits=3)],
            )
        ]
    )
    pipeline = make_pipeline(store, mock_miner, ["RIP"])

    results = await pipeline.import_contributors()

    assert list(results) == ["RIPs"]
    assert [r.login for r in store.load_contributors("RIPs")] == ["alice"]
    assert store.load_repository_stats("RIPs")[0].total_commits == 3


@pytest.mark.asyncio
async def test_import_contributors_skips_empty_and_failed(mock_miner):
    """Test that repositories without data or with errors are skipped."""
    mock_store = Mock()
    mock_miner.mine_contributors = AsyncMock(side_effect=[[], Exception("API Error")])
    pipeline = make_pipeline(mock_store, mock_miner)

    results = await pipeline.import_contributors()

    assert results == {}
    mock_store.save_contributors.assert_not_called()
    mock_store.save_repository_stats.assert_not_called()


@pytest.mark.asyncio
async def test_snapshot_open_prs(store, mock_miner, worked_example):
    """Test that snapshots are rebuilt from the stored PRs."""
    store.save_pull_requests("EIP", worked_example)
    pipeline = make_pipeline(store, mock_miner)

    results = await pipeline.snapshot_open_prs(now=utc(2024, 2, 20))

    assert results == {"EIP": 2, "ERC": 0}
    assert [s.month for s in store.load_snapshots("EIP")] == ["2024-01", "2024-02"]


@pytest.mark.asyncio
async def test_populate_charts(store, mock_miner, worked_example, make_pr):
    """Test the per type and combined chart collections."""
    classifier = SpecLabelClassifier()
    store.save_pull_requests("EIP", classifier.categorize_all(worked_example))
    store.save_pull_requests(
        "ERC",
        classifier.categorize_all(
            [make_pr(spec_type="ERC", created_at=utc(2024, 1, 3), title="Update ERC-20: typo")]
        ),
    )
    pipeline = make_pipeline(store, mock_miner)

    results = await pipeline.populate_charts()

    assert results["eips_prs"] == 8
    eip_created = {
        b.month_year: b.count for b in store.load_chart("prs", "eips") if b.type == "Created"
    }
    all_created = {
        b.month_year: b.count for b in store.load_chart("prs", "all") if b.type == "Created"
    }
    assert eip_created == {"2024-01": 2, "2024-02": 1}
    assert all_created == {"2024-01": 3, "2024-02": 1}

    all_custom = {
        (b.month_year, b.type): b.count for b in store.load_chart("custom", "all")
    }
    assert all_custom[("2024-01", "Typo Fix")] == 2
    assert {b.category for b in store.load_chart("raw", "ercs")} <= {"ercs"}


@pytest.mark.asyncio
async def test_run_executes_all_steps(store, mock_miner):
    """Test a complete run without data."""
    pipeline = make_pipeline(store, mock_miner)

    assert await pipeline.run() is True
    assert mock_miner.mine_contributors.await_count == 2
    assert mock_miner.mine_pull_requests.await_count == 2
    assert store.load_chart("prs", "all") == []


@pytest.mark.asyncio
async def test_run_marks_failed_step(store, mock_miner):
    """Test that a failing step marks the run failed but later steps still run."""
    pipeline = make_pipeline(store, mock_miner)
    pipeline.snapshot_open_prs = AsyncMock(side_effect=Exception("disk full"))
    pipeline.populate_charts = AsyncMock(return_value={})

    assert await pipeline.run() is False
    pipeline.populate_charts.assert_awaited_once()


def test_invalid_spec_type_is_rejected(store, mock_miner):
    """Test that an unknown spec type fails at construction."""
    with pytest.raises(ValueError):
        make_pipeline(store, mock_miner, ["EIP", "BIP"])

"""
Query API Test Suite.

This module contains tests for the FastAPI query service backed by a
temporary document store, covering:
- Date filtered PR state and label charts
- Precomputed charts, summary and health endpoints
- Contributor listings, statistics and timelines
- Error responses for invalid input and unknown resources
"""

import inspect
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi.routing import APIRoute
from httpx import ASGITransport, AsyncClient

from analyzers.contributors import build_contributor_records, build_repository_stats
from analyzers.plugins.label_classifier import SpecLabelClassifier
from api.server import create_app
from miners.models import ContributorStatsData, ContributorWeekData
from storage.document_store import DocumentStore


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path, worked_example):
    """Store seeded with classified EIP PRs and EIP contributors."""
    store = DocumentStore(str(tmp_path))
    store.save_pull_requests("EIP", SpecLabelClassifier().categorize_all(worked_example))

    stats = [
        ContributorStatsData(
            login="alice",
            id=1,
            total=6,
            weeks=[
                ContributorWeekData(week=utc(2024, 1, 14), commits=4, additions=40),
                ContributorWeekData(week=utc(2024, 1, 7), commits=2, additions=20),
                ContributorWeekData(week=utc(2024, 1, 21), commits=0),
            ],
        ),
        ContributorStatsData(
            login="bob",
            id=2,
            total=1,
            weeks=[ContributorWeekData(week=utc(2024, 1, 21), commits=1)],
        ),
    ]
    records = build_contributor_records(stats, "EIPs", now=utc(2024, 2, 1))
    store.save_contributors("EIPs", records)
    store.save_repository_stats(build_repository_stats(records, "EIPs", now=utc(2024, 2, 1)))
    return store


@pytest_asyncio.fixture
async def client(store):
    """HTTP client bound to the application."""
    app = create_app(store)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


def as_table(buckets):
    return {(b["month_year"], b["type"]): b["count"] for b in buckets}


@pytest.mark.asyncio
async def test_graph1_hybrid(client):
    """Test the default hybrid state chart."""
    response = await client.get("/api/graph1/eip")

    assert response.status_code == 200
    body = response.json()
    assert body["spec_type"] == "EIP"
    assert body["mode"] == "hybrid"
    assert body["total_prs"] == 3
    assert body["date_range"] == {"start": "earliest", "end": "latest"}
    table = as_table(body["data"])
    assert table[("2024-02", "Open")] == 1
    assert table[("2024-01", "Open")] == 2


@pytest.mark.asyncio
async def test_graph1_event_mode_signed(client):
    """Test the event chart with negative outflows."""
    response = await client.get("/api/graph1/EIP", params={"mode": "event", "signed": "true"})

    table = as_table(response.json()["data"])
    assert table[("2024-02", "Merged")] == -1
    assert table[("2024-02", "Closed")] == -1
    assert table[("2024-02", "Open")] == 0


@pytest.mark.asyncio
async def test_graph1_date_filter(client):
    """Test that the creation date filter is applied before aggregation."""
    response = await client.get(
        "/api/graph1/EIP", params={"startDate": "2024-01-06", "endDate": "2024-01-20"}
    )

    body = response.json()
    assert body["total_prs"] == 1
    assert body["date_range"] == {"start": "2024-01-06", "end": "2024-01-20"}
    assert as_table(body["data"])[("2024-01", "Created")] == 1


@pytest.mark.asyncio
async def test_graph1_invalid_spec_type(client):
    """Test that unknown spec types are rejected with 400."""
    response = await client.get("/api/graph1/BIP")

    assert response.status_code == 400
    assert "Use EIP, ERC, or RIP" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"startDate": "not-a-date"},
        {"startDate": "now"},
        {"endDate": "today"},
        {"startDate": "   "},
        {"endDate": "2024-13-45"},
    ],
)
async def test_graph1_invalid_date(client, params):
    """Test that malformed dates and date keywords are rejected with 400."""
    response = await client.get("/api/graph1/EIP", params=params)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_graph2_custom_labels(client):
    """Test custom label counts grouped by month."""
    response = await client.get("/api/graph2/EIP")

    body = response.json()
    assert body["label_field"] == "custom"
    assert body["data"] == [
        {"month_year": "2024-01", "labels": {"EIP Update": 1, "Typo Fix": 1, "Update": 1}},
        {"month_year": "2024-02", "labels": {"New": 1, "New EIP": 1}},
    ]


@pytest.mark.asyncio
async def test_graph3_raw_and_refined_labels(client):
    """Test raw GitHub labels and their refined categories."""
    raw = (await client.get("/api/graph3/EIP")).json()
    refined = (await client.get("/api/graph3/EIP", params={"labels": "refined"})).json()

    assert raw["data"][0] == {"month_year": "2024-01", "labels": {"c-update": 1}}
    assert refined["label_field"] == "refined"
    assert refined["data"][0]["labels"] == {"Unlabeled": 1, "Update": 1}


@pytest.mark.asyncio
async def test_precomputed_charts(client, store):
    """Test reading and validating precomputed chart collections."""
    assert (await client.get("/api/charts/prs/all")).json()["count"] == 0
    assert (await client.get("/api/charts/pie/eips")).status_code == 400
    assert (await client.get("/api/charts/prs/bips")).status_code == 400


@pytest.mark.asyncio
async def test_spec_types_and_summary(client):
    """Test the utility endpoints."""
    spec_types = (await client.get("/api/spec-types")).json()
    summary = (await client.get("/api/summary")).json()

    assert spec_types["spec_types"] == ["EIP", "ERC", "RIP"]
    assert summary["EIP"]["total_prs"] == 3
    assert summary["EIP"]["open_prs"] == 1
    assert summary["ERC"]["total_prs"] == 0
    assert summary["ERC"]["earliest"] is None


@pytest.mark.asyncio
async def test_health(client):
    """Test the health check."""
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_list_contributors(client):
    """Test pagination and sorting of contributors."""
    response = await client.get(
        "/api/contributors", params={"repository": "eip", "limit": 1, "page": 2}
    )

    body = response.json()
    assert [c["login"] for c in body["data"]] == ["bob"]
    assert body["pagination"] == {"page": 2, "limit": 1, "total": 2, "pages": 2}

    ascending = await client.get("/api/contributors", params={"order": "asc"})
    assert [c["login"] for c in ascending.json()["data"]] == ["bob", "alice"]


@pytest.mark.asyncio
async def test_top_contributors(client):
    """Test the top contributors ranking."""
    body = (await client.get("/api/contributors/top", params={"limit": 1})).json()

    assert body["metric"] == "total_commits"
    assert [c["login"] for c in body["data"]] == ["alice"]


@pytest.mark.asyncio
async def test_contributor_summary_and_stats(client):
    """Test repository level contributor statistics."""
    summary = (await client.get("/api/contributors/summary")).json()
    stats = await client.get("/api/contributors/stats/EIPs")
    missing = await client.get("/api/contributors/stats/RIPs")

    assert summary["repositories"] == 1
    assert summary["total_commits"] == 7
    assert stats.status_code == 200
    assert stats.json()["total_contributors"] == 2
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_weekly_activity(client):
    """Test the most recent weeks of activity."""
    body = (await client.get("/api/contributors/activity/weekly", params={"weeks": 2})).json()

    assert body["repository"] == "EIPs"
    assert body["weeks_available"] == 2
    assert [w["total_commits"] for w in body["activity"]] == [4, 1]


@pytest.mark.asyncio
async def test_contributor_and_timeline(client):
    """Test a single contributor and their active weeks."""
    contributor = await client.get("/api/contributors/alice")
    timeline = (await client.get("/api/contributors/alice/timeline")).json()
    missing = await client.get("/api/contributors/nobody")

    assert contributor.json()["rank"] == 1
    assert timeline["total_active_weeks"] == 2
    assert [w["commits"] for w in timeline["timeline"]] == [2, 4]
    assert missing.status_code == 404


def test_store_backed_handlers_run_in_threadpool(store):
    """Test that handlers calling the blocking store are plain functions."""
    app = create_app(store)
    endpoints = [route.endpoint for route in app.routes if isinstance(route, APIRoute)]

    assert endpoints
    assert not [e.__name__ for e in endpoints if inspect.iscoroutinefunction(e)]

"""Contributor endpoints: rankings, repository statistics and activity."""

import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from analyzers.models import ContributorRecord, RepositoryStats
from api.dependencies import get_store, repository_filter
from api.schemas import (
    ContributorListResponse,
    ContributorSummaryResponse,
    ContributorTimelineResponse,
    Pagination,
    RepositoryStatsListResponse,
    RepositorySummary,
    TopContributorsResponse,
    WeeklyActivityResponse,
)
from storage.document_store import DocumentStore

router = APIRouter(prefix="/contributors")

SortField = Literal[
    "total_commits",
    "total_additions",
    "total_deletions",
    "rank",
    "contribution_percentage",
    "active_weeks_count",
    "contribution_streak",
    "login",
]


@router.get("", response_model=ContributorListResponse)
def list_contributors(
    repository: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    page: int = Query(1, ge=1),
    sort_by: SortField = "total_commits",
    order: Literal["asc", "desc"] = "desc",
    store: DocumentStore = Depends(get_store),
) -> ContributorListResponse:
    """Paginated contributors, optionally of one repository."""
    records = store.load_contributors(repository_filter(repository))
    records.sort(key=lambda r: getattr(r, sort_by), reverse=order == "desc")
    skip = (page - 1) * limit
    return ContributorListResponse(
        data=records[skip : skip + limit],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=len(records),
            pages=math.ceil(len(records) / limit),
        ),
    )


@router.get("/top", response_model=TopContributorsResponse)
def top_contributors(
    repository: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    metric: SortField = "total_commits",
    store: DocumentStore = Depends(get_store),
) -> TopContributorsResponse:
    records = store.load_contributors(repository_filter(repository))
    records.sort(key=lambda r: getattr(r, metric), reverse=True)
    top = records[:limit]
    return TopContributorsResponse(data=top, metric=metric, count=len(top))


@router.get("/summary", response_model=ContributorSummaryResponse)
def contributors_summary(
    store: DocumentStore = Depends(get_store),
) -> ContributorSummaryResponse:
    """Totals across every repository with stored statistics."""
    all_stats = store.load_repository_stats()
    return ContributorSummaryResponse(
        repositories=len(all_stats),
        total_contributors=sum(s.total_contributors for s in all_stats),
        total_commits=sum(s.total_commits for s in all_stats),
        total_additions=sum(s.total_additions for s in all_stats),
        total_deletions=sum(s.total_deletions for s in all_stats),
        by_repository=[
            RepositorySummary(
                name=s.repository,
                contributors=s.total_contributors,
                commits=s.total_commits,
                additions=s.total_additions,
                deletions=s.total_deletions,
                last_updated=s.last_updated,
            )
            for s in all_stats
        ],
        last_updated=max((s.last_updated for s in all_stats), default=None),
    )


@router.get("/stats", response_model=RepositoryStatsListResponse)
def list_repository_stats(
    repository: Optional[str] = None, store: DocumentStore = Depends(get_store)
) -> RepositoryStatsListResponse:
    stats = store.load_repository_stats(repository_filter(repository))
    return RepositoryStatsListResponse(data=stats, count=len(stats))


@router.get("/stats/{repo}", response_model=RepositoryStats)
def get_repository_stats(
    repo: str, store: DocumentStore = Depends(get_store)
) -> RepositoryStats:
    stats = store.load_repository_stats(repository_filter(repo))
    if not stats:
        raise HTTPException(
            status_code=404, detail=f"Repository statistics not found for {repo}"
        )
    return stats[0]


@router.get("/activity/weekly", response_model=WeeklyActivityResponse)
def weekly_activity(
    repository: Optional[str] = None,
    weeks: int = Query(52, ge=1),
    store: DocumentStore = Depends(get_store),
) -> WeeklyActivityResponse:
    """Most recent weeks of repository activity, in chronological order."""
    stats = store.load_repository_stats(repository_filter(repository))
    if not stats:
        raise HTTPException(status_code=404, detail="Weekly activity data not found")

    repository_stats = stats[0]
    recent = sorted(repository_stats.weekly_activity, key=lambda w: w.week)[-weeks:]
    return WeeklyActivityResponse(
        repository=repository_stats.repository,
        weeks_requested=weeks,
        weeks_available=len(recent),
        activity=recent,
    )


def _find_contributor(
    store: DocumentStore, username: str, repository: Optional[str]
) -> ContributorRecord:
    for record in store.load_contributors(repository_filter(repository)):
        if record.login == username:
            return record
    raise HTTPException(status_code=404, detail=f"Contributor {username} not found")


@router.get("/{username}", response_model=ContributorRecord)
def get_contributor(
    username: str,
    repository: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
) -> ContributorRecord:
    return _find_contributor(store, username, repository)


@router.get("/{username}/timeline", response_model=ContributorTimelineResponse)
def get_contributor_timeline(
    username: str,
    repository: Optional[str] = None,
    store: DocumentStore = Depends(get_store),
) -> ContributorTimelineResponse:
    """Weeks with at least one commit, oldest first."""
    record = _find_contributor(store, username, repository)
    timeline = sorted((w for w in record.weeks if w.commits > 0), key=lambda w: w.week)
    return ContributorTimelineResponse(
        login=record.login,
        repository=record.repository,
        timeline=timeline,
        total_active_weeks=len(timeline),
    )

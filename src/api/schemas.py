"""
Query API Response Models.

Pydantic models describing the JSON documents returned by the query API.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from analyzers.models import ContributorRecord, MonthlyBucket, RepositoryStats, WeeklyActivity
from miners.models import ContributorWeekData


class DateRange(BaseModel):
    """Applied creation date filter, "earliest"/"latest" when unbounded."""

    start: str
    end: str


class StateChartResponse(BaseModel):
    """GET /api/graph1/{spec_type} response."""

    spec_type: str
    mode: str
    data: List[MonthlyBucket]
    total_prs: int
    date_range: DateRange


class MonthLabels(BaseModel):
    """Label counts of one month."""

    month_year: str
    labels: Dict[str, int]


class LabelChartResponse(BaseModel):
    """GET /api/graph2/{spec_type} and /api/graph3/{spec_type} response."""

    spec_type: str
    label_field: str
    data: List[MonthLabels]
    total_prs: int
    date_range: DateRange


class ChartResponse(BaseModel):
    """GET /api/charts/{chart}/{category} response."""

    chart: str
    category: str
    data: List[MonthlyBucket]
    count: int


class SpecTypesResponse(BaseModel):
    spec_types: List[str]
    description: str


class SpecTypeSummary(BaseModel):
    """Stored data of one spec type."""

    total_prs: int
    open_prs: int
    snapshots: int
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None


class HealthResponse(BaseModel):
    """GET /api/health response."""

    status: str
    timestamp: str
    storage: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ContributorListResponse(BaseModel):
    data: List[ContributorRecord]
    pagination: Pagination


class TopContributorsResponse(BaseModel):
    data: List[ContributorRecord]
    metric: str
    count: int


class RepositorySummary(BaseModel):
    name: str
    contributors: int
    commits: int
    additions: int
    deletions: int
    last_updated: datetime


class ContributorSummaryResponse(BaseModel):
    """Totals across all repositories with contributor statistics."""

    repositories: int
    total_contributors: int
    total_commits: int
    total_additions: int
    total_deletions: int
    by_repository: List[RepositorySummary]
    last_updated: Optional[datetime] = None


class RepositoryStatsListResponse(BaseModel):
    data: List[RepositoryStats]
    count: int


class WeeklyActivityResponse(BaseModel):
    repository: str
    weeks_requested: int
    weeks_available: int
    activity: List[WeeklyActivity]


class ContributorTimelineResponse(BaseModel):
    login: str
    repository: str
    timeline: List[ContributorWeekData] = Field(default_factory=list)
    total_active_weeks: int

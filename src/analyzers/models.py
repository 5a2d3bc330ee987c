"""
Analysis Data Models.

Defines the derived models produced by the classifier and the aggregators:
classification results, monthly chart buckets, open PR snapshots and
contributor statistics. Uses Pydantic for validation and serialization.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from miners.models import ContributorWeekData, PullRequestRecord

UNLABELED = "Unlabeled"
MISC = "Misc"
ALL_CATEGORY = "all"


class BucketType(Enum):
    """
    Fixed vocabulary of PR state buckets, in chart order.

    Attributes:
        CREATED: PRs opened in the month
        MERGED: PRs merged in the month
        CLOSED: PRs closed without merge in the month
        OPEN: PRs open (per-month delta or cumulative, depending on the mode)
    """

    CREATED = "Created"
    MERGED = "Merged"
    CLOSED = "Closed"
    OPEN = "Open"


STATE_ORDER = [bucket.value for bucket in BucketType]


class LabelField(Enum):
    """Label set of a PR that a histogram is built from."""

    REFINED = "refined"
    CUSTOM = "custom"
    RAW = "raw"


class ClassificationResult(BaseModel):
    """Derived label categories of a single PR."""

    refined_labels: List[str]
    custom_labels: List[str]


class MonthlyBucket(BaseModel):
    """One (month, type) data point of a chart."""

    id: str
    category: str
    month_year: str
    type: str
    count: int


class OpenPRSnapshot(BaseModel):
    """PRs open at the end of a month."""

    spec_type: str
    month: str
    snapshot_date: str
    prs: List[PullRequestRecord]
    label_counts: Dict[str, int]


class ContributorRecord(BaseModel):
    """Contribution statistics of one contributor in one repository."""

    login: str
    id: int
    avatar_url: Optional[str] = None
    html_url: Optional[str] = None
    repository: str
    total_commits: int
    total_additions: int
    total_deletions: int
    weeks: List[ContributorWeekData]
    rank: int
    contribution_percentage: float
    contributor_type: str
    active_weeks_count: int
    max_commits_in_week: int
    avg_commits_per_week: float
    contribution_streak: int
    first_commit_date: Optional[datetime] = None
    last_commit_date: Optional[datetime] = None
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TopContributor(BaseModel):
    """Summary entry of the top contributors of a repository."""

    login: str
    commits: int
    additions: int
    deletions: int
    rank: int
    contribution_percentage: float


class WeeklyActivity(BaseModel):
    """Aggregated activity of a repository in one week."""

    week: datetime
    total_commits: int
    total_additions: int
    total_deletions: int
    active_contributors: int


class MonthlyTrend(BaseModel):
    """Aggregated activity of a repository in one month."""

    month: str
    commits: int
    additions: int
    deletions: int
    active_contributors: int
    net_change: int


class ContributorDistribution(BaseModel):
    """How commits are spread across the contributors of a repository."""

    core_contributors: int
    regular_contributors: int
    occasional_contributors: int
    one_time_contributors: int
    bus_factor: int


class RepositoryStats(BaseModel):
    """Contributor statistics of a repository."""

    repository: str
    total_contributors: int
    total_commits: int
    total_additions: int
    total_deletions: int
    top_contributors: List[TopContributor]
    weekly_activity: List[WeeklyActivity]
    monthly_trends: List[MonthlyTrend]
    contributor_distribution: ContributorDistribution
    summary_text: str
    last_updated: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

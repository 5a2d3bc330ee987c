"""
Contributor Analysis Module.

Turns the raw contributor statistics reported by GitHub into ranked
contributor records and repository level statistics:
- Per contributor totals, activity insights and contributor type
- Weekly and monthly repository activity
- Contributor distribution and bus factor
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import pandas as pd

from config import logger
from analyzers.models import (
    ContributorDistribution,
    ContributorRecord,
    MonthlyTrend,
    RepositoryStats,
    TopContributor,
    WeeklyActivity,
)
from miners.models import ContributorStatsData, ContributorWeekData


def determine_contributor_type(
    total_commits: int, contribution_percentage: float, active_weeks: int
) -> str:
    """
    Classify a contributor by share of commits and activity.

    Args:
        total_commits (int): Commits of the contributor
        contribution_percentage (float): Share of the repository commits, 0-100
        active_weeks (int): Weeks with at least one commit

    Returns:
        str: "core", "regular", "occasional" or "one-time"
    """
    if contribution_percentage > 10:
        return "core"
    if contribution_percentage > 1 and active_weeks > 4:
        return "regular"
    if total_commits > 1:
        return "occasional"
    return "one-time"


def longest_streak(weeks: Sequence[ContributorWeekData]) -> int:
    """Longest run of consecutive weeks with commits."""
    best = current = 0
    for week in sorted(weeks, key=lambda w: w.week):
        current = current + 1 if week.commits > 0 else 0
        best = max(best, current)
    return best


def build_contributor_records(
    stats: Sequence[ContributorStatsData],
    repository: str,
    now: Optional[datetime] = None,
) -> List[ContributorRecord]:
    """
    Build ranked contributor records for a repository.

    Args:
        stats (Sequence[ContributorStatsData]): Raw statistics per contributor
        repository (str): Repository name, e.g. "EIPs"
        now (Optional[datetime]): Update timestamp, defaults to the current UTC time

    Returns:
        List[ContributorRecord]: Records sorted by commits, rank 1 first
    """
    now = now or datetime.now(timezone.utc)
    repository_commits = sum(contributor.total for contributor in stats)

    records = []
    for contributor in stats:
        active = [week for week in contributor.weeks if week.commits > 0]
        percentage = (
            round(contributor.total / repository_commits * 100, 2)
            if repository_commits
            else 0.0
        )
        records.append(
            ContributorRecord(
                login=contributor.login,
                id=contributor.id,
                avatar_url=contributor.avatar_url,
                html_url=contributor.html_url,
                repository=repository,
                total_commits=contributor.total,
                total_additions=sum(week.additions for week in contributor.weeks),
                total_deletions=sum(week.deletions for week in contributor.weeks),
                weeks=contributor.weeks,
                rank=0,
                contribution_percentage=percentage,
                contributor_type=determine_contributor_type(
                    contributor.total, percentage, len(active)
                ),
                active_weeks_count=len(active),
                max_commits_in_week=max((w.commits for w in contributor.weeks), default=0),
                avg_commits_per_week=(
                    round(sum(w.commits for w in active) / len(active), 2) if active else 0.0
                ),
                contribution_streak=longest_streak(contributor.weeks),
                first_commit_date=min((w.week for w in active), default=None),
                last_commit_date=max((w.week for w in active), default=None),
                last_updated=now,
            )
        )

    records.sort(key=lambda record: record.total_commits, reverse=True)
    for rank, record in enumerate(records, start=1):
        record.rank = rank

    logger.info(
        {
            "message": "Contributors processed",
            "repository": repository,
            "contributors": len(records),
            "top": [f"{r.rank}. {r.login} ({r.total_commits})" for r in records[:10]],
        }
    )
    return records


def bus_factor(records: Sequence[ContributorRecord]) -> int:
    """Fewest contributors whose commits cover half of all commits."""
    commits = sorted((r.total_commits for r in records), reverse=True)
    half = sum(commits) / 2
    covered = 0
    for count, contributor_commits in enumerate(commits, start=1):
        covered += contributor_commits
        if covered >= half:
            return count
    return 0


def _weekly_frame(records: Sequence[ContributorRecord]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "login": record.login,
                "week": week.week,
                "commits": week.commits,
                "additions": week.additions,
                "deletions": week.deletions,
            }
            for record in records
            for week in record.weeks
        ],
        columns=["login", "week", "commits", "additions", "deletions"],
    )
    df["week"] = pd.to_datetime(df["week"], utc=True)
    return df


def build_repository_stats(
    records: Sequence[ContributorRecord],
    repository: str,
    top_limit: int = 10,
    now: Optional[datetime] = None,
) -> RepositoryStats:
    """
    Aggregate contributor records into repository statistics.

    Args:
        records (Sequence[ContributorRecord]): Ranked contributor records
        repository (str): Repository name
        top_limit (int): Number of top contributors to keep
        now (Optional[datetime]): Update timestamp, defaults to the current UTC time

    Returns:
        RepositoryStats: Repository statistics
    """
    now = now or datetime.now(timezone.utc)
    ranked = sorted(records, key=lambda r: r.rank)
    total_commits = sum(r.total_commits for r in ranked)
    total_additions = sum(r.total_additions for r in ranked)
    total_deletions = sum(r.total_deletions for r in ranked)

    df = _weekly_frame(ranked)
    active = df[df["commits"] > 0]

    weekly = df.groupby("week")[["commits", "additions", "deletions"]].sum()
    weekly["active_contributors"] = active.groupby("week")["login"].nunique()
    weekly = weekly.fillna(0).astype(int).sort_index()
    weekly_activity = [
        WeeklyActivity(
            week=week.to_pydatetime(),
            total_commits=int(row["commits"]),
            total_additions=int(row["additions"]),
            total_deletions=int(row["deletions"]),
            active_contributors=int(row["active_contributors"]),
        )
        for week, row in weekly.iterrows()
    ]

    df["month"] = df["week"].dt.strftime("%Y-%m")
    active = df[df["commits"] > 0]
    monthly = df.groupby("month")[["commits", "additions", "deletions"]].sum()
    monthly["active_contributors"] = active.groupby("month")["login"].nunique()
    monthly = monthly.fillna(0).astype(int).sort_index()
    monthly_trends = [
        MonthlyTrend(
            month=month,
            commits=int(row["commits"]),
            additions=int(row["additions"]),
            deletions=int(row["deletions"]),
            active_contributors=int(row["active_contributors"]),
            net_change=int(row["additions"] - row["deletions"]),
        )
        for month, row in monthly.iterrows()
    ]

    types: Dict[str, int] = {}
    for record in ranked:
        types[record.contributor_type] = types.get(record.contributor_type, 0) + 1
    distribution = ContributorDistribution(
        core_contributors=types.get("core", 0),
        regular_contributors=types.get("regular", 0),
        occasional_contributors=types.get("occasional", 0),
        one_time_contributors=types.get("one-time", 0),
        bus_factor=bus_factor(ranked),
    )

    summary_text = (
        f"Total: {len(ranked)} contributors have made {total_commits} commits "
        f"with {total_additions} additions and {total_deletions} deletions."
    )
    if ranked:
        summary_text += (
            f" Top contributor: {ranked[0].login} with {ranked[0].total_commits} commits."
        )

    return RepositoryStats(
        repository=repository,
        total_contributors=len(ranked),
        total_commits=total_commits,
        total_additions=total_additions,
        total_deletions=total_deletions,
        top_contributors=[
            TopContributor(
                login=r.login,
                commits=r.total_commits,
                additions=r.total_additions,
                deletions=r.total_deletions,
                rank=r.rank,
                contribution_percentage=r.contribution_percentage,
            )
            for r in ranked[:top_limit]
        ],
        weekly_activity=weekly_activity,
        monthly_trends=monthly_trends,
        contributor_distribution=distribution,
        summary_text=summary_text,
        last_updated=now,
    )

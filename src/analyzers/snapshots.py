"""
Open Pull Request Snapshot Module.

Rebuilds, for every month since the first PR of a repository, the list of
pull requests that were still open at the end of that month together with a
breakdown of their custom labels.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from config import logger
from analyzers.models import OpenPRSnapshot
from analyzers.monthly import month_key, month_window
from miners.models import PullRequestRecord, SpecType, as_utc


def _iter_months(first: str, last: str) -> List[str]:
    """All month keys from first to last, inclusive."""
    year, month = map(int, first.split("-"))
    months = []
    while f"{year:04d}-{month:02d}" <= last:
        months.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def is_open_at(pr: PullRequestRecord, instant: datetime) -> bool:
    """Whether the PR existed and was neither merged nor closed at the instant."""
    if pr.created_at is None or pr.created_at > instant:
        return False
    return pr.ended_at is None or pr.ended_at > instant


def build_open_snapshots(
    records: Sequence[PullRequestRecord],
    spec_type: SpecType,
    now: Optional[datetime] = None,
) -> List[OpenPRSnapshot]:
    """
    Build month end snapshots of open PRs.

    The snapshot instant is the last millisecond of the month (UTC), or ``now``
    for the current month. Months without open PRs produce no snapshot.

    Args:
        records (Sequence[PullRequestRecord]): Classified PRs of one spec type
        spec_type (SpecType): Spec type of the records
        now (Optional[datetime]): Reference time, defaults to the current UTC time

    Returns:
        List[OpenPRSnapshot]: Snapshots in chronological order
    """
    spec_type = SpecType.parse(spec_type)
    now = as_utc(now) if now else datetime.now(timezone.utc)
    dated = [pr for pr in records if pr.created_at is not None]
    if not dated:
        logger.warning(
            {"message": "No PRs available for snapshots", "spec_type": spec_type.value}
        )
        return []

    first_month = month_key(min(pr.created_at for pr in dated))
    current_month = month_key(now)

    snapshots = []
    for month in _iter_months(first_month, current_month):
        if month == current_month:
            instant = now
        else:
            instant = month_window(month)[1].to_pydatetime()

        open_prs = [pr for pr in dated if is_open_at(pr, instant)]
        if not open_prs:
            continue

        label_counts: Dict[str, int] = {}
        for pr in open_prs:
            for label in pr.custom_labels:
                label_counts[label] = label_counts.get(label, 0) + 1

        snapshots.append(
            OpenPRSnapshot(
                spec_type=spec_type.value,
                month=month,
                snapshot_date=instant.strftime("%Y-%m-%d"),
                prs=open_prs,
                label_counts=label_counts,
            )
        )

    logger.info(
        {
            "message": "Open PR snapshots built",
            "spec_type": spec_type.value,
            "months": len(_iter_months(first_month, current_month)),
            "snapshots": len(snapshots),
        }
    )
    return snapshots

"""
Monthly Aggregation Module.

Buckets pull requests of one specification type by calendar month and
computes chart series:

- event counts: Created/Merged/Closed per month, Open as a per-month delta
- hybrid counts: Created/Merged/Closed per month, Open cumulative at month end
- label histograms: per-month counts of refined, custom or raw labels
- combined counts: the "all" category summed across spec types

All month keys and windows are computed in UTC. Records without a creation
timestamp are skipped with a warning rather than failing the batch.
"""

from typing import Callable, Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from config import logger
from analyzers.models import (
    ALL_CATEGORY,
    STATE_ORDER,
    BucketType,
    LabelField,
    MonthlyBucket,
)
from miners.models import PullRequestRecord, SpecType, as_utc

MONTH_FORMAT = "%Y-%m"
DATE_COLUMNS = ["created_at", "merged_at", "closed_at"]

BucketRow = Tuple[str, str, int]


def month_key(value) -> str:
    """Format a timestamp as its UTC "YYYY-MM" month key."""
    return as_utc(value).strftime(MONTH_FORMAT)


def month_window(month: str) -> Tuple[pd.Timestamp, pd.Timestamp]:
    """
    Get the UTC window of a month.

    Args:
        month (str): Month key "YYYY-MM"

    Returns:
        Tuple[pd.Timestamp, pd.Timestamp]: First instant (00:00:00.000) and
            last instant (23:59:59.999 of the last day) of the month
    """
    start = pd.Timestamp(f"{month}-01", tz="UTC")
    end = start + pd.offsets.MonthBegin(1) - pd.Timedelta(milliseconds=1)
    return start, end


def _valid_records(
    records: Iterable[PullRequestRecord], spec_type: SpecType
) -> List[PullRequestRecord]:
    """Drop records that cannot be placed in a month."""
    valid = []
    for pr in records:
        if pr.created_at is None:
            logger.warning(
                {
                    "message": "Skipping PR without creation date",
                    "spec_type": spec_type.value,
                    "pr_number": pr.number,
                }
            )
            continue
        valid.append(pr)
    return valid


def _to_frame(records: List[PullRequestRecord]) -> pd.DataFrame:
    """Build a frame of UTC timestamps, one row per record."""
    df = pd.DataFrame(
        [
            {
                "number": pr.number,
                "created_at": pr.created_at,
                "merged_at": pr.merged_at,
                "closed_at": pr.closed_at,
            }
            for pr in records
        ],
        columns=["number"] + DATE_COLUMNS,
    )
    for column in DATE_COLUMNS:
        df[column] = pd.to_datetime(df[column], utc=True)
    return df


def _months(series: pd.Series) -> pd.Series:
    return series.dropna().dt.strftime(MONTH_FORMAT)


def _count_in(series: pd.Series, start: pd.Timestamp, stop: pd.Timestamp) -> int:
    """Count timestamps in [start, stop)."""
    return int(((series >= start) & (series < stop)).sum())


def _build_buckets(category: str, rows: List[BucketRow]) -> List[MonthlyBucket]:
    """
    Create bucket documents from already sorted rows.

    The synthetic id is a pure function of category, month, type and position,
    so it is unique within one run and stable across identical runs.
    """
    return [
        MonthlyBucket(
            id=f"{category}-{month}-{bucket_type.lower().replace(' ', '-')}-{index}",
            category=category,
            month_year=month,
            type=bucket_type,
            count=count,
        )
        for index, (month, bucket_type, count) in enumerate(rows)
    ]


def _state_sort(rows: List[BucketRow]) -> List[BucketRow]:
    """Month descending, then Created, Merged, Closed, Open."""
    rows = sorted(rows, key=lambda row: STATE_ORDER.index(row[1]))
    return sorted(rows, key=lambda row: row[0], reverse=True)


def _count_sort(rows: List[BucketRow]) -> List[BucketRow]:
    """Month descending, then count descending, then label ascending."""
    rows = sorted(rows, key=lambda row: (-row[2], row[1]))
    return sorted(rows, key=lambda row: row[0], reverse=True)


def aggregate_event_counts(
    records: Sequence[PullRequestRecord], spec_type: SpecType, signed: bool = False
) -> List[MonthlyBucket]:
    """
    Count PR state events per month.

    Open is derived per bucket as max(0, created - merged - closed); it is not
    cumulative across months.

    Args:
        records (Sequence[PullRequestRecord]): PRs of one spec type
        spec_type (SpecType): Spec type of the records
        signed (bool): Report Merged and Closed as negative counts

    Returns:
        List[MonthlyBucket]: Buckets sorted by month descending then state order
    """
    spec_type = SpecType.parse(spec_type)
    valid = _valid_records(records, spec_type)
    if not valid:
        return []

    df = _to_frame(valid)
    not_merged = df["merged_at"].isna()
    counts = (
        pd.DataFrame(
            {
                BucketType.CREATED.value: _months(df["created_at"]).value_counts(),
                BucketType.MERGED.value: _months(df["merged_at"]).value_counts(),
                BucketType.CLOSED.value: _months(
                    df.loc[not_merged, "closed_at"]
                ).value_counts(),
            }
        )
        .fillna(0)
        .astype(int)
    )
    counts[BucketType.OPEN.value] = (
        counts[BucketType.CREATED.value]
        - counts[BucketType.MERGED.value]
        - counts[BucketType.CLOSED.value]
    ).clip(lower=0)

    sign = -1 if signed else 1
    outflows = {BucketType.MERGED.value, BucketType.CLOSED.value}
    rows = [
        (month, bucket_type, int(row[bucket_type]) * (sign if bucket_type in outflows else 1))
        for month, row in counts.iterrows()
        for bucket_type in STATE_ORDER
    ]
    return _build_buckets(spec_type.category, _state_sort(rows))


def aggregate_hybrid(
    records: Sequence[PullRequestRecord], spec_type: SpecType
) -> List[MonthlyBucket]:
    """
    Count PR states per month with a cumulative Open series.

    Created, Merged and Closed count the PRs that reached that state inside the
    month window; a merged PR is never counted as Closed. Open counts the PRs
    created by the end of the month that were neither merged nor closed by then.

    Every month is evaluated against all records, O(months x records); each
    month is a handful of vectorized comparisons over the frame.

    Args:
        records (Sequence[PullRequestRecord]): PRs of one spec type
        spec_type (SpecType): Spec type of the records

    Returns:
        List[MonthlyBucket]: Buckets sorted by month descending then state order
    """
    spec_type = SpecType.parse(spec_type)
    valid = _valid_records(records, spec_type)
    if not valid:
        return []

    df = _to_frame(valid)
    created, merged, closed = df["created_at"], df["merged_at"], df["closed_at"]
    months = sorted(
        set(_months(created)) | set(_months(merged)) | set(_months(closed))
    )

    rows: List[BucketRow] = []
    for month in months:
        # Half-open window so sub-millisecond stamps stay in their calendar month
        start = month_window(month)[0]
        next_start = start + pd.offsets.MonthBegin(1)
        still_open = (
            (merged.isna() & closed.isna()) | (merged >= next_start) | (closed >= next_start)
        )
        rows.extend(
            [
                (month, BucketType.CREATED.value, _count_in(created, start, next_start)),
                (month, BucketType.MERGED.value, _count_in(merged, start, next_start)),
                (
                    month,
                    BucketType.CLOSED.value,
                    _count_in(closed[merged.isna()], start, next_start),
                ),
                (month, BucketType.OPEN.value, int(((created < next_start) & still_open).sum())),
            ]
        )

    return _build_buckets(spec_type.category, _state_sort(rows))


LABEL_GETTERS: Dict[LabelField, Callable[[PullRequestRecord], List[str]]] = {
    LabelField.REFINED: lambda pr: pr.refined_labels,
    LabelField.CUSTOM: lambda pr: pr.custom_labels,
    LabelField.RAW: lambda pr: pr.raw_labels,
}


def aggregate_label_counts(
    records: Sequence[PullRequestRecord], label_field: LabelField, spec_type: SpecType
) -> List[MonthlyBucket]:
    """
    Count labels per creation month.

    A PR carrying several labels increments each of them once. Labels without
    PRs in a month are omitted.

    Args:
        records (Sequence[PullRequestRecord]): PRs of one spec type
        label_field (LabelField): Refined, custom or raw labels
        spec_type (SpecType): Spec type of the records

    Returns:
        List[MonthlyBucket]: Buckets sorted by month descending then count descending
    """
    spec_type = SpecType.parse(spec_type)
    label_field = LabelField(label_field)
    get_labels = LABEL_GETTERS[label_field]

    pairs = [
        (month_key(pr.created_at), label)
        for pr in _valid_records(records, spec_type)
        for label in dict.fromkeys(get_labels(pr))
    ]
    if not pairs:
        return []

    counts = (
        pd.DataFrame(pairs, columns=["month_year", "type"])
        .groupby(["month_year", "type"])
        .size()
    )
    rows = [(month, label, int(count)) for (month, label), count in counts.items()]
    return _build_buckets(spec_type.category, _count_sort(rows))


def aggregate_combined(
    *sequences: Sequence[MonthlyBucket], by_count: bool = False
) -> List[MonthlyBucket]:
    """
    Sum per spec type buckets into the "all" category.

    Missing (month, type) keys count as zero, so the sum does not depend on the
    order of the input sequences.

    Args:
        *sequences (Sequence[MonthlyBucket]): Buckets of the EIP, ERC and RIP charts
        by_count (bool): Sort like a label histogram instead of by state order

    Returns:
        List[MonthlyBucket]: Combined buckets
    """
    totals: Dict[Tuple[str, str], int] = {}
    for sequence in sequences:
        for bucket in sequence:
            key = (bucket.month_year, bucket.type)
            totals[key] = totals.get(key, 0) + bucket.count

    rows = [(month, bucket_type, count) for (month, bucket_type), count in totals.items()]
    rows = _count_sort(rows) if by_count else _state_sort(rows)
    return _build_buckets(ALL_CATEGORY, rows)

"""PR chart endpoints: monthly state and label charts per spec type."""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from analyzers.models import LabelField, MonthlyBucket
from analyzers.monthly import aggregate_event_counts, aggregate_hybrid, aggregate_label_counts
from api.dependencies import get_store, parse_date
from api.schemas import (
    ChartResponse,
    DateRange,
    LabelChartResponse,
    MonthLabels,
    SpecTypeSummary,
    SpecTypesResponse,
    StateChartResponse,
)
from miners.models import PullRequestRecord, SpecType
from storage.document_store import DocumentStore

router = APIRouter()


def _load(
    store: DocumentStore,
    spec_type: SpecType,
    start_date: Optional[str],
    end_date: Optional[str],
) -> List[PullRequestRecord]:
    return store.load_pull_requests(
        spec_type,
        start=parse_date(start_date, "startDate"),
        end=parse_date(end_date, "endDate", end_of_day=True),
    )


def _date_range(start_date: Optional[str], end_date: Optional[str]) -> DateRange:
    return DateRange(start=start_date or "earliest", end=end_date or "latest")


def _group_by_month(buckets: List[MonthlyBucket]) -> List[MonthLabels]:
    months: Dict[str, Dict[str, int]] = {}
    for bucket in buckets:
        months.setdefault(bucket.month_year, {})[bucket.type] = bucket.count
    return [MonthLabels(month_year=month, labels=months[month]) for month in sorted(months)]


@router.get("/graph1/{spec_type}", response_model=StateChartResponse)
def get_state_chart(
    spec_type: str,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    mode: Literal["hybrid", "event"] = "hybrid",
    signed: bool = False,
    store: DocumentStore = Depends(get_store),
) -> StateChartResponse:
    """Created, Merged, Closed and Open PRs per month."""
    spec = SpecType.parse(spec_type)
    records = _load(store, spec, start_date, end_date)
    if mode == "event":
        data = aggregate_event_counts(records, spec, signed=signed)
    else:
        data = aggregate_hybrid(records, spec)
    return StateChartResponse(
        spec_type=spec.value,
        mode=mode,
        data=data,
        total_prs=len(records),
        date_range=_date_range(start_date, end_date),
    )


@router.get("/graph2/{spec_type}", response_model=LabelChartResponse)
def get_custom_label_chart(
    spec_type: str,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    store: DocumentStore = Depends(get_store),
) -> LabelChartResponse:
    """Custom label counts per month."""
    spec = SpecType.parse(spec_type)
    records = _load(store, spec, start_date, end_date)
    buckets = aggregate_label_counts(records, LabelField.CUSTOM, spec)
    return LabelChartResponse(
        spec_type=spec.value,
        label_field=LabelField.CUSTOM.value,
        data=_group_by_month(buckets),
        total_prs=len(records),
        date_range=_date_range(start_date, end_date),
    )


@router.get("/graph3/{spec_type}", response_model=LabelChartResponse)
def get_github_label_chart(
    spec_type: str,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    labels: Literal["raw", "refined"] = "raw",
    store: DocumentStore = Depends(get_store),
) -> LabelChartResponse:
    """Raw GitHub label counts, or their refined categories, per month."""
    spec = SpecType.parse(spec_type)
    records = _load(store, spec, start_date, end_date)
    label_field = LabelField(labels)
    buckets = aggregate_label_counts(records, label_field, spec)
    return LabelChartResponse(
        spec_type=spec.value,
        label_field=label_field.value,
        data=_group_by_month(buckets),
        total_prs=len(records),
        date_range=_date_range(start_date, end_date),
    )


@router.get("/charts/{chart}/{category}", response_model=ChartResponse)
def get_precomputed_chart(
    chart: str, category: str, store: DocumentStore = Depends(get_store)
) -> ChartResponse:
    """Chart buckets as written by the last pipeline run."""
    try:
        data = store.load_chart(chart, category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return ChartResponse(chart=chart, category=category, data=data, count=len(data))


@router.get("/spec-types", response_model=SpecTypesResponse)
def get_spec_types() -> SpecTypesResponse:
    return SpecTypesResponse(
        spec_types=[spec.value for spec in SpecType],
        description="Available specification types for all endpoints",
    )


@router.get("/summary", response_model=Dict[str, SpecTypeSummary])
def get_summary(store: DocumentStore = Depends(get_store)) -> Dict[str, SpecTypeSummary]:
    """Stored PR counts and creation date range per spec type."""
    summary = {}
    for spec in SpecType:
        records = store.load_pull_requests(spec)
        created: List[datetime] = [pr.created_at for pr in records if pr.created_at]
        summary[spec.value] = SpecTypeSummary(
            total_prs=len(records),
            open_prs=sum(1 for pr in records if pr.state == "open"),
            snapshots=len(store.load_snapshots(spec)),
            earliest=min(created) if created else None,
            latest=max(created) if created else None,
        )
    return summary

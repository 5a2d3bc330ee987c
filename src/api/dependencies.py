"""Shared request dependencies and parameter parsing of the query API."""

import re
from datetime import datetime
from typing import Optional

import pandas as pd
from fastapi import HTTPException, Request

from miners.models import InvalidSpecTypeError, SpecType
from storage.document_store import DocumentStore

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def parse_date(value: Optional[str], name: str, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a date query parameter as a UTC timestamp.

    A date without a time component used as an upper bound covers the whole
    day, up to 23:59:59.999.

    Raises:
        HTTPException: 400 if the value is not an ISO date
    """
    if not value:
        return None
    error = HTTPException(status_code=400, detail=f"Invalid {name} '{value}'")
    # pandas also accepts keywords such as "now" and "today"
    if not ISO_DATE.match(value.strip()):
        raise error
    try:
        ts = pd.Timestamp(value.strip())
    except ValueError:
        raise error from None
    if pd.isna(ts):
        raise error
    ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
    if end_of_day and len(value.strip()) == 10:
        ts = ts + pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)
    return ts.to_pydatetime()


def repository_filter(repository: Optional[str]) -> Optional[str]:
    """
    Normalize a repository query parameter.

    Accepts spec types ("eip") and repository names ("EIPs") in any case;
    "all" or an empty value means no filter.
    """
    if not repository or repository.lower() == "all":
        return None
    try:
        return SpecType.parse(repository.rstrip("sS")).repository
    except InvalidSpecTypeError:
        return repository

"""
Data Model and Settings Test Suite.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from config import Settings
from miners.models import InvalidSpecTypeError, PullRequestRecord, SpecType


@pytest.mark.parametrize("value", ["EIP", "eip", " Eip ", SpecType.EIP])
def test_spec_type_parse(value):
    """Test case-insensitive spec type parsing."""
    assert SpecType.parse(value) is SpecType.EIP


def test_spec_type_invalid():
    """Test the error raised for unknown spec types."""
    with pytest.raises(InvalidSpecTypeError, match="Use EIP, ERC, or RIP"):
        SpecType.parse("BIP")
    assert issubclass(InvalidSpecTypeError, ValueError)


def test_spec_type_repository_and_category():
    assert SpecType.ERC.repository == "ERCs"
    assert SpecType.RIP.category == "rips"


def test_pull_request_timestamps_are_utc():
    """Test naive and offset timestamps are normalized to UTC."""
    pr = PullRequestRecord(
        pr_id=1,
        number=1,
        spec_type="erc",
        created_at=datetime(2024, 1, 1, 12),
        closed_at=datetime(2024, 1, 2, 3, tzinfo=timezone(timedelta(hours=2))),
    )

    assert pr.spec_type is SpecType.ERC
    assert pr.created_at == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
    assert pr.closed_at.utcoffset() == timedelta(0)
    assert pr.closed_at.hour == 1


def test_pull_request_rejects_unknown_fields():
    """Test that records with unexpected fields are rejected."""
    with pytest.raises(ValidationError):
        PullRequestRecord(pr_id=1, number=1, spec_type="EIP", mergeable_state="clean")


def test_ended_at_prefers_earliest_end():
    """Test the end of a PR's open period."""
    merged = datetime(2024, 1, 3, tzinfo=timezone.utc)
    pr = PullRequestRecord(
        pr_id=1,
        number=1,
        spec_type="EIP",
        merged_at=merged,
        closed_at=merged + timedelta(seconds=1),
    )

    assert pr.ended_at == merged
    assert PullRequestRecord(pr_id=2, number=2, spec_type="EIP").ended_at is None


def test_settings_spec_types():
    """Test the configured spec type list."""
    settings = Settings(spec_type_names="eip, rip,")

    assert settings.spec_types == ["EIP", "RIP"]
    assert settings.schedule_interval_hours == 2

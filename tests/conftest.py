"""Shared fixtures for the test suite."""

from datetime import datetime, timezone
from itertools import count

import pytest

from miners.models import PullRequestRecord


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def make_pr():
    """Factory building PR records with sequential numbers."""
    numbers = count(1)

    def _make_pr(spec_type="EIP", created_at=None, merged_at=None, closed_at=None, **kwargs):
        number = kwargs.pop("number", next(numbers))
        if merged_at is not None and closed_at is None:
            closed_at = merged_at
        return PullRequestRecord(
            pr_id=1000 + number,
            number=number,
            spec_type=spec_type,
            state="closed" if closed_at else "open",
            created_at=created_at,
            merged_at=merged_at,
            closed_at=closed_at,
            **kwargs,
        )

    return _make_pr


@pytest.fixture
def worked_example(make_pr):
    """
    Three EIP PRs: one still open, one merged the month after it was
    created and one created and closed without merge in the same month.
    """
    return [
        make_pr(created_at=utc(2024, 1, 5), title="Update EIP-1: clarify"),
        make_pr(
            created_at=utc(2024, 1, 20),
            merged_at=utc(2024, 2, 1),
            title="Update EIP-2: fix typo",
            raw_labels=["c-update"],
        ),
        make_pr(
            created_at=utc(2024, 2, 10),
            closed_at=utc(2024, 2, 15),
            title="Add EIP: gas metering",
            raw_labels=["c-new"],
        ),
    ]

"""
Repository Mining Data Models.

Defines the data models produced by the repository miners and consumed by the
classifier and aggregators. Uses Pydantic for validation and serialization.

Records are explicit and versioned: unknown fields are rejected so that a
document with an unexpected shape never flows silently into the aggregations.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PR_SCHEMA_VERSION = 1


class InvalidSpecTypeError(ValueError):
    """Raised when a specification type is not one of EIP, ERC or RIP."""


class SpecType(str, Enum):
    """
    Specification repositories tracked by the application.

    Attributes:
        EIP: Ethereum Improvement Proposals (ethereum/EIPs)
        ERC: Ethereum Request for Comments (ethereum/ERCs)
        RIP: Rollup Improvement Proposals (ethereum/RIPs)
    """

    EIP = "EIP"
    ERC = "ERC"
    RIP = "RIP"

    @classmethod
    def parse(cls, value: str) -> "SpecType":
        """
        Parse a spec type case-insensitively.

        Args:
            value (str): Raw spec type, e.g. "eip" or "ERC"

        Returns:
            SpecType: Canonical upper-case spec type

        Raises:
            InvalidSpecTypeError: If the value is not a recognized spec type
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidSpecTypeError(
                f"Invalid spec type '{value}'. Use EIP, ERC, or RIP"
            ) from None

    @property
    def repository(self) -> str:
        """GitHub repository name holding this spec type, e.g. "EIPs"."""
        return f"{self.value}s"

    @property
    def category(self) -> str:
        """Chart category of this spec type, e.g. "eips"."""
        return f"{self.value.lower()}s"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to UTC, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PullRequestRecord(BaseModel):
    """Pull Request data mined from a specification repository."""

    model_config = ConfigDict(extra="forbid")

    schema_version: Literal[1] = PR_SCHEMA_VERSION
    pr_id: int
    number: int
    title: str = ""
    author: str = ""
    pr_url: Optional[str] = None
    raw_labels: List[str] = Field(default_factory=list)
    state: Literal["open", "closed"] = "open"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    spec_type: SpecType
    refined_labels: List[str] = Field(default_factory=list)
    custom_labels: List[str] = Field(default_factory=list)

    @field_validator("created_at", "updated_at", "closed_at", "merged_at")
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @field_validator("spec_type", mode="before")
    def parse_spec_type(cls, v):
        return SpecType.parse(v)

    @property
    def ended_at(self) -> Optional[datetime]:
        """Earliest of merge and close time, None while the PR is open."""
        ends = [ts for ts in (self.merged_at, self.closed_at) if ts is not None]
        return min(ends) if ends else None


class ContributorWeekData(BaseModel):
    """Weekly commit activity of a contributor."""

    week: datetime
    additions: int = 0
    deletions: int = 0
    commits: int = 0

    @field_validator("week")
    def normalize_timezone(cls, v: datetime) -> datetime:
        return as_utc(v)


class ContributorStatsData(BaseModel):
    """Raw contributor statistics as reported by GitHub."""

    login: str
    id: int
    avatar_url: Optional[str] = None
    html_url: Optional[str] = None
    total: int = 0
    weeks: List[ContributorWeekData] = Field(default_factory=list)


class RepositoryData(BaseModel):
    """Container for the pull requests mined from one repository."""

    spec_type: SpecType
    repository_name: str
    collection_date: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    pull_requests: List[PullRequestRecord]

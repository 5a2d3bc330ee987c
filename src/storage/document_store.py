"""
Document Storage Module.

This module handles the persistent storage and retrieval of pull requests,
chart buckets, open PR snapshots and contributor statistics. Every collection
is a JSON file holding a list of documents; pipeline writes replace a
collection wholesale.
"""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from config import logger
from analyzers.models import (
    ContributorRecord,
    MonthlyBucket,
    OpenPRSnapshot,
    RepositoryStats,
)
from miners.models import PullRequestRecord, SpecType, as_utc

ModelT = TypeVar("ModelT", bound=BaseModel)

CHART_SUFFIXES: Dict[str, str] = {
    "prs": "pr_charts",
    "custom": "custom_charts",
    "raw": "raw_charts",
}
CHART_CATEGORIES = ["eips", "ercs", "rips", "all"]
CONTRIBUTORS_COLLECTION = "contributors"
REPOSITORY_STATS_COLLECTION = "repository_stats"


def pr_collection(spec_type: SpecType) -> str:
    """Collection of the PR records of a spec type, e.g. "eip_prs"."""
    return f"{SpecType.parse(spec_type).value.lower()}_prs"


def snapshot_collection(spec_type: SpecType) -> str:
    """Collection of the open PR snapshots of a spec type."""
    return f"{SpecType.parse(spec_type).value.lower()}_open_pr_snapshots"


def chart_collection(chart: str, category: str) -> str:
    """
    Collection of a precomputed chart, e.g. "eips_pr_charts".

    Raises:
        ValueError: If the chart or category is unknown
    """
    if chart not in CHART_SUFFIXES:
        raise ValueError(f"Unknown chart '{chart}'. Use {', '.join(CHART_SUFFIXES)}")
    if category not in CHART_CATEGORIES:
        raise ValueError(
            f"Unknown category '{category}'. Use {', '.join(CHART_CATEGORIES)}"
        )
    return f"{category}_{CHART_SUFFIXES[chart]}"


class DocumentStore:
    """
    Manages persistent storage of the pipeline outputs.
    Collections are replaced as a whole and read back as validated models.
    """

    def __init__(self, data_dir: str):
        """Initialize the document storage system.

        Args:
            data_dir (str): Base directory path for storing the collections.
        """
        self.storage_dir = Path(data_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _get_collection_file_path(self, name: str) -> str:
        """Generate the file path of a collection.

        Args:
            name (str): Name of the collection.

        Returns:
            str: Complete file path of the collection.
        """
        safe_name = name.replace("/", "_").replace("\\", "_")
        return os.path.join(self.storage_dir, f"{safe_name}.json")

    def replace_collection(self, name: str, documents: Sequence[dict]) -> None:
        """Replace all documents of a collection.

        The file is written next to the target and moved into place, so
        readers see either the previous or the new collection.

        Args:
            name (str): Name of the collection.
            documents (Sequence[dict]): Documents to store.

        Raises:
            Exception: If the write fails.
        """
        file_path = self._get_collection_file_path(name)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.storage_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(list(documents), f, indent=2, default=str)
                os.replace(tmp_path, file_path)
            except BaseException:
                os.unlink(tmp_path)
                raise

            logger.info(
                {
                    "message": "Collection replaced",
                    "collection": name,
                    "documents": len(documents),
                }
            )

        except Exception as e:
            logger.error(
                {
                    "message": "Failed to replace collection",
                    "collection": name,
                    "error": str(e),
                }
            )
            raise

    def load_collection(self, name: str) -> List[dict]:
        """Load the raw documents of a collection.

        Args:
            name (str): Name of the collection.

        Returns:
            List[dict]: Stored documents, empty if the collection does not exist.

        Raises:
            Exception: If the file cannot be read or parsed.
        """
        file_path = self._get_collection_file_path(name)
        if not os.path.exists(file_path):
            return []

        try:
            with open(file_path, "r") as f:
                documents = json.load(f)
            if isinstance(documents, dict):
                documents = [documents]
            return documents

        except Exception as e:
            logger.error(
                {
                    "message": "Failed to load collection",
                    "collection": name,
                    "error": str(e),
                }
            )
            raise

    def count(self, name: str) -> int:
        """Number of documents in a collection."""
        return len(self.load_collection(name))

    def _save_models(self, name: str, models: Sequence[BaseModel]) -> None:
        self.replace_collection(name, [model.model_dump(mode="json") for model in models])

    def _load_models(self, name: str, model: Type[ModelT]) -> List[ModelT]:
        """Validate stored documents, quarantining the ones that do not fit the model."""
        valid = []
        for index, document in enumerate(self.load_collection(name)):
            try:
                valid.append(model.model_validate(document))
            except ValidationError as e:
                logger.warning(
                    {
                        "message": "Quarantined invalid document",
                        "collection": name,
                        "index": index,
                        "error": str(e),
                    }
                )
        return valid

    # Pull requests

    def save_pull_requests(
        self, spec_type: SpecType, records: Sequence[PullRequestRecord]
    ) -> None:
        """Replace the PR records of a spec type."""
        self._save_models(pr_collection(spec_type), records)

    def load_pull_requests(
        self,
        spec_type: SpecType,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[PullRequestRecord]:
        """Load the PR records of a spec type.

        Args:
            spec_type (SpecType): Spec type to load.
            start (Optional[datetime]): Inclusive lower bound on created_at.
            end (Optional[datetime]): Inclusive upper bound on created_at.

        Returns:
            List[PullRequestRecord]: Matching records. When a bound is given,
                records without a creation date do not match.
        """
        records = self._load_models(pr_collection(spec_type), PullRequestRecord)
        if start is None and end is None:
            return records

        start, end = as_utc(start), as_utc(end)
        return [
            pr
            for pr in records
            if pr.created_at is not None
            and (start is None or pr.created_at >= start)
            and (end is None or pr.created_at <= end)
        ]

    # Charts

    def save_chart(self, chart: str, category: str, buckets: Sequence[MonthlyBucket]) -> None:
        """Replace a precomputed chart collection."""
        self._save_models(chart_collection(chart, category), buckets)

    def load_chart(self, chart: str, category: str) -> List[MonthlyBucket]:
        """Load a precomputed chart collection."""
        return self._load_models(chart_collection(chart, category), MonthlyBucket)

    # Open PR snapshots

    def save_snapshots(self, spec_type: SpecType, snapshots: Sequence[OpenPRSnapshot]) -> None:
        """Replace the open PR snapshots of a spec type."""
        self._save_models(snapshot_collection(spec_type), snapshots)

    def load_snapshots(self, spec_type: SpecType) -> List[OpenPRSnapshot]:
        """Load the open PR snapshots of a spec type."""
        return self._load_models(snapshot_collection(spec_type), OpenPRSnapshot)

    # Contributors

    def save_contributors(
        self, repository: str, records: Sequence[ContributorRecord]
    ) -> None:
        """Replace the contributors of one repository, keeping the others."""
        others = [
            document
            for document in self.load_collection(CONTRIBUTORS_COLLECTION)
            if str(document.get("repository", "")).lower() != repository.lower()
        ]
        self.replace_collection(
            CONTRIBUTORS_COLLECTION,
            others + [record.model_dump(mode="json") for record in records],
        )

    def load_contributors(self, repository: Optional[str] = None) -> List[ContributorRecord]:
        """Load contributor records, optionally of one repository (case-insensitive)."""
        records = self._load_models(CONTRIBUTORS_COLLECTION, ContributorRecord)
        if repository is None:
            return records
        return [r for r in records if r.repository.lower() == repository.lower()]

    def save_repository_stats(self, stats: RepositoryStats) -> None:
        """Insert or replace the statistics of a repository."""
        others = [
            document
            for document in self.load_collection(REPOSITORY_STATS_COLLECTION)
            if str(document.get("repository", "")).lower() != stats.repository.lower()
        ]
        self.replace_collection(
            REPOSITORY_STATS_COLLECTION, others + [stats.model_dump(mode="json")]
        )

    def load_repository_stats(self, repository: Optional[str] = None) -> List[RepositoryStats]:
        """Load repository statistics, most recently updated first."""
        stats = self._load_models(REPOSITORY_STATS_COLLECTION, RepositoryStats)
        if repository is not None:
            stats = [s for s in stats if s.repository.lower() == repository.lower()]
        return sorted(stats, key=lambda s: s.last_updated, reverse=True)

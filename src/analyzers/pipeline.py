"""
Analytics Pipeline Module.

This module coordinates one full refresh of the stored analytics across the
configured specification repositories. A run executes four sequential steps:

- Contributor import: mine contributor statistics, rank and aggregate them
- Pull request import: mine all PRs, classify them and replace the stored set
- Open PR snapshots: rebuild the month end snapshots from the stored PRs
- Chart population: rebuild the precomputed monthly chart collections

A failing repository is logged and skipped; a failing step is logged and
marks the run as failed without stopping the remaining steps.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from config import logger
from analyzers.contributors import build_contributor_records, build_repository_stats
from analyzers.models import ALL_CATEGORY, LabelField, MonthlyBucket, RepositoryStats
from analyzers.monthly import aggregate_combined, aggregate_hybrid, aggregate_label_counts
from analyzers.plugins.label_classifier import LabelClassifierPlugin
from analyzers.snapshots import build_open_snapshots
from miners.base import RepositoryMiner
from miners.models import SpecType
from storage.document_store import DocumentStore


class AnalyticsPipeline:
    """
    Coordinates the refresh of all stored analytics.

    Attributes:
        store (DocumentStore): Storage of PRs, charts, snapshots and contributors.
        miner (RepositoryMiner): Instance for mining repository data.
        classifier (LabelClassifierPlugin): Instance for labelling pull requests.
        spec_types (List[SpecType]): Specification repositories to process.
        repository_delay_seconds (float): Pause between two repositories.
        top_contributors_limit (int): Size of the top contributor lists.
    """

    def __init__(
        self,
        store: DocumentStore,
        miner: RepositoryMiner,
        classifier: LabelClassifierPlugin,
        spec_types: Sequence[str],
        repository_delay_seconds: float = 2.0,
        top_contributors_limit: int = 10,
    ):
        """Initialize the analytics pipeline.

        Args:
            store (DocumentStore): Storage of the pipeline outputs.
            miner (RepositoryMiner): Instance for mining repository data.
            classifier (LabelClassifierPlugin): Instance for labelling pull requests.
            spec_types (Sequence[str]): Spec type names, e.g. ["EIP", "ERC", "RIP"].
            repository_delay_seconds (float): Pause between two repositories.
            top_contributors_limit (int): Size of the top contributor lists.

        Raises:
            InvalidSpecTypeError: If a spec type name is not recognized.
        """
        self.store = store
        self.miner = miner
        self.classifier = classifier
        self.spec_types: List[SpecType] = [SpecType.parse(name) for name in spec_types]
        self.repository_delay_seconds = repository_delay_seconds
        self.top_contributors_limit = top_contributors_limit

    async def _pause(self, index: int) -> None:
        if index and self.repository_delay_seconds:
            await asyncio.sleep(self.repository_delay_seconds)

    async def import_contributors(self) -> Dict[str, RepositoryStats]:
        """
        Mine and store contributor statistics of every repository.

        Returns:
            Dict[str, RepositoryStats]: Statistics of the repositories that succeeded.

        Note:
            If a repository fails, the error is logged and the remaining
            repositories are processed.
        """
        results = {}
        for index, spec_type in enumerate(self.spec_types):
            repository = spec_type.repository
            await self._pause(index)
            try:
                logger.info(
                    {"message": "Importing contributors", "repository": repository}
                )
                stats = await self.miner.mine_contributors(spec_type)
                if not stats:
                    logger.warning(
                        {"message": "No contributor data found", "repository": repository}
                    )
                    continue

                records = build_contributor_records(stats, repository)
                self.store.save_contributors(repository, records)

                repository_stats = build_repository_stats(
                    records, repository, self.top_contributors_limit
                )
                self.store.save_repository_stats(repository_stats)
                results[repository] = repository_stats
                logger.info(
                    {"message": repository_stats.summary_text, "repository": repository}
                )

            except Exception as e:
                logger.error(
                    {
                        "message": "Failed to import contributors",
                        "repository": repository,
                        "error": str(e),
                    }
                )

        return results

    async def import_pull_requests(self) -> Dict[str, int]:
        """
        Mine, classify and store the pull requests of every repository.

        Returns:
            Dict[str, int]: Number of stored PRs per spec type that succeeded.
        """
        results = {}
        for index, spec_type in enumerate(self.spec_types):
            await self._pause(index)
            try:
                repo_data = await self.miner.mine_pull_requests(spec_type)
                records = self.classifier.categorize_all(repo_data.pull_requests)
                self.store.save_pull_requests(spec_type, records)
                results[spec_type.value] = len(records)
                logger.info(
                    {
                        "message": "Pull requests imported",
                        "repository": spec_type.repository,
                        "pull_requests": len(records),
                    }
                )

            except Exception as e:
                logger.error(
                    {
                        "message": "Failed to import pull requests",
                        "repository": spec_type.repository,
                        "error": str(e),
                    }
                )

        return results

    async def snapshot_open_prs(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Rebuild the open PR snapshots of every spec type from the stored PRs.

        Args:
            now (Optional[datetime]): Reference time, defaults to the current UTC time.

        Returns:
            Dict[str, int]: Number of snapshots per spec type that succeeded.
        """
        results = {}
        for spec_type in self.spec_types:
            try:
                records = self.store.load_pull_requests(spec_type)
                snapshots = build_open_snapshots(records, spec_type, now)
                self.store.save_snapshots(spec_type, snapshots)
                results[spec_type.value] = len(snapshots)

            except Exception as e:
                logger.error(
                    {
                        "message": "Failed to snapshot open pull requests",
                        "spec_type": spec_type.value,
                        "error": str(e),
                    }
                )

        return results

    async def populate_charts(self) -> Dict[str, int]:
        """
        Rebuild the precomputed chart collections.

        For every spec type the hybrid state chart, the custom label chart and
        the raw label chart are stored; the "all" category sums them across
        the spec types that succeeded.

        Returns:
            Dict[str, int]: Number of buckets per chart collection written.
        """
        charts: Dict[str, List[List[MonthlyBucket]]] = {"prs": [], "custom": [], "raw": []}
        results = {}
        for spec_type in self.spec_types:
            try:
                records = self.store.load_pull_requests(spec_type)
                per_type = {
                    "prs": aggregate_hybrid(records, spec_type),
                    "custom": aggregate_label_counts(records, LabelField.CUSTOM, spec_type),
                    "raw": aggregate_label_counts(records, LabelField.RAW, spec_type),
                }
                for chart, buckets in per_type.items():
                    self.store.save_chart(chart, spec_type.category, buckets)
                    charts[chart].append(buckets)
                    results[f"{spec_type.category}_{chart}"] = len(buckets)

            except Exception as e:
                logger.error(
                    {
                        "message": "Failed to populate charts",
                        "spec_type": spec_type.value,
                        "error": str(e),
                    }
                )

        for chart, sequences in charts.items():
            combined = aggregate_combined(*sequences, by_count=chart != "prs")
            self.store.save_chart(chart, ALL_CATEGORY, combined)
            results[f"{ALL_CATEGORY}_{chart}"] = len(combined)

        logger.info({"message": "Charts populated", "buckets": results})
        return results

    async def run(self) -> bool:
        """
        Execute all pipeline steps in order.

        Returns:
            bool: True if every step completed, False if any step failed.
        """
        started = datetime.now()
        logger.info(
            {
                "message": "Pipeline run started",
                "spec_types": [s.value for s in self.spec_types],
            }
        )

        steps = [
            ("import_contributors", self.import_contributors),
            ("import_pull_requests", self.import_pull_requests),
            ("snapshot_open_prs", self.snapshot_open_prs),
            ("populate_charts", self.populate_charts),
        ]
        success = True
        for name, step in steps:
            try:
                logger.info({"message": "Pipeline step started", "step": name})
                await step()
            except Exception as e:
                success = False
                logger.error(
                    {"message": "Pipeline step failed", "step": name, "error": str(e)}
                )

        logger.info(
            {
                "message": "Pipeline run finished",
                "success": success,
                "duration_seconds": (datetime.now() - started).total_seconds(),
            }
        )
        return success

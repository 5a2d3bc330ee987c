"""
Main Application Entry Point.

This module serves as the primary entry point for the specification PR
analytics system. It wires the configured components together and offers
three commands:

- run: execute the analytics pipeline once
- schedule: execute the pipeline every few hours at the top of the hour
- serve: start the read-only query API

Example:
    python src/app.py run
    python src/app.py schedule --now
    python src/app.py serve --port 3001
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import uvicorn

from config import settings, logger
from analyzers.pipeline import AnalyticsPipeline
from analyzers.plugins.label_classifier import LabelClassifierPlugin, SpecLabelClassifier
from api.server import create_app
from miners.github_miner import GitHubMiner, RepositoryMiner
from scheduler import PipelineScheduler
from storage.document_store import DocumentStore


def build_pipeline(store: DocumentStore) -> AnalyticsPipeline:
    """Create the pipeline with the configured miner and classifier."""
    if settings.github_token is None:
        logger.warning(
            {"message": "No GitHub token configured, using unauthenticated requests"}
        )

    logger.debug("initializing github miner...")
    github_miner: RepositoryMiner = GitHubMiner()

    logger.debug("initializing label classifier...")
    classifier: LabelClassifierPlugin = SpecLabelClassifier()

    return AnalyticsPipeline(
        store,
        github_miner,
        classifier,
        settings.spec_types,
        repository_delay_seconds=settings.repository_delay_seconds,
        top_contributors_limit=settings.top_contributors_limit,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="PR and contributor analytics for the Ethereum specification repositories"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run the analytics pipeline once")

    schedule = subparsers.add_parser(
        "schedule", help="Run the analytics pipeline on a fixed hourly grid"
    )
    schedule.add_argument(
        "--now", action="store_true", help="Run once immediately before waiting"
    )

    serve = subparsers.add_parser("serve", help="Start the query API")
    serve.add_argument("--host", default=settings.api_host, help="Bind address")
    serve.add_argument("--port", type=int, default=settings.api_port, help="Port")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the selected command.

    Returns:
        int: Process exit code, 1 when a single pipeline run failed
    """
    args = parse_args(argv)
    store = DocumentStore(settings.data_dir)

    if args.command == "run":
        logger.info("Starting analytics pipeline...")
        success = asyncio.run(build_pipeline(store).run())
        logger.info("application finished")
        return 0 if success else 1

    if args.command == "schedule":
        scheduler = PipelineScheduler(build_pipeline(store), settings.schedule_interval_hours)
        logger.info(
            {
                "message": "Starting pipeline scheduler",
                "interval_hours": settings.schedule_interval_hours,
            }
        )
        asyncio.run(scheduler.run_forever(run_immediately=args.now))
        return 0

    logger.info({"message": "Starting query API", "host": args.host, "port": args.port})
    uvicorn.run(create_app(store), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())

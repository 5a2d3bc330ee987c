"""
GitHub Repository Data Mining Module.

This module handles the extraction of pull requests and contributor statistics
from the specification repositories. It focuses on complete data collection
with bounded retries while maintaining type safety through Pydantic models.
"""

from datetime import datetime, timezone
from typing import List, Optional

from github import Auth, Github, GithubException
from github.PullRequest import PullRequest
from github.Repository import Repository
from github.StatsContributor import StatsContributor
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from config import settings, logger
from miners.base import RepositoryMiner
from miners.models import (
    ContributorStatsData,
    ContributorWeekData,
    PullRequestRecord,
    RepositoryData,
    SpecType,
)


class StatsNotReadyError(Exception):
    """Raised while GitHub is still computing repository statistics."""


class GitHubMiner(RepositoryMiner):
    """
    GitHubMiner is responsible for mining data from the specification repositories.
    It extracts pull requests and contributor statistics, transforming them into
    Pydantic models.
    """

    def __init__(
        self,
        github_token: Optional[str] = None,
        owner: Optional[str] = None,
        retry_attempts: Optional[int] = None,
        retry_wait_seconds: Optional[float] = None,
        stats_retry_wait_seconds: Optional[float] = None,
    ):
        """Initialize GitHub miner with authentication and configuration.

        Args:
            github_token (Optional[str]): GitHub API token for authentication.
            owner (Optional[str]): Owner of the specification repositories.
            retry_attempts (Optional[int]): Attempts per GitHub call.
            retry_wait_seconds (Optional[float]): Delay between failed attempts.
            stats_retry_wait_seconds (Optional[float]): Delay while statistics are computed.
        """
        if github_token is None and settings.github_token is not None:
            github_token = settings.github_token.get_secret_value()
        self.github = Github(auth=Auth.Token(github_token)) if github_token else Github()
        self.owner = owner or settings.github_owner
        self.retry_attempts = retry_attempts or settings.retry_attempts
        self.retry_wait_seconds = (
            settings.retry_wait_seconds if retry_wait_seconds is None else retry_wait_seconds
        )
        self.stats_retry_wait_seconds = (
            settings.stats_retry_wait_seconds
            if stats_retry_wait_seconds is None
            else stats_retry_wait_seconds
        )

    def _check_rate_limit(self, check_name: str = None) -> None:
        """
        Check and log the GitHub API rate limit status.

        Args:
            check_name (Optional[str]): Identifier for the rate limit check point.

        Raises:
            Exception: Raised when the rate limit is exhausted, indicating time until reset.
        """
        remaining, limit = self.github.rate_limiting
        reset_time = datetime.fromtimestamp(self.github.rate_limiting_resettime, timezone.utc)
        now = datetime.now(timezone.utc)

        logger.info(
            {
                "message": f"{check_name} API rate limit status",
                "remaining_points": remaining,
                "total_points": limit,
                "reset_time": reset_time.isoformat(),
                "minutes_to_reset": (reset_time - now).total_seconds() / 60,
            }
        )

        if remaining < (limit * 0.1) and remaining > 0:
            logger.warning(
                {
                    "message": "GitHub API rate limit running low",
                    "remaining_points": remaining,
                    "reset_time": reset_time.isoformat(),
                }
            )

        if remaining == 0:
            wait_time = (reset_time - now).total_seconds()
            logger.critical(
                {
                    "message": "GitHub API rate limit exhausted",
                    "reset_time": reset_time.isoformat(),
                    "wait_time_seconds": wait_time,
                }
            )
            raise Exception(
                f"GitHub API rate limit exhausted. Resets in {wait_time/60:.1f} minutes"
            )

    def _repo_name(self, spec_type: SpecType) -> str:
        return f"{self.owner}/{spec_type.repository}"

    def _get_pr_data(self, pr: PullRequest, spec_type: SpecType) -> PullRequestRecord:
        """Convert a GitHub PullRequest object to a Pydantic model.

        Args:
            pr (PullRequest): The GitHub PullRequest object.
            spec_type (SpecType): Spec type of the repository the PR belongs to.

        Returns:
            PullRequestRecord: A Pydantic model representing the PR data.
        """
        return PullRequestRecord(
            pr_id=pr.id,
            number=pr.number,
            title=pr.title or "",
            author=pr.user.login if pr.user else "",
            pr_url=pr.html_url,
            raw_labels=[label.name for label in pr.labels],
            state=pr.state,
            created_at=pr.created_at,
            updated_at=pr.updated_at,
            closed_at=pr.closed_at,
            merged_at=pr.merged_at,
            spec_type=spec_type,
        )

    def _get_contributor_data(self, contributor: StatsContributor) -> ContributorStatsData:
        """Convert a GitHub StatsContributor object to a Pydantic model."""
        author = contributor.author
        return ContributorStatsData(
            login=author.login,
            id=author.id,
            avatar_url=author.avatar_url,
            html_url=author.html_url,
            total=contributor.total,
            weeks=[
                ContributorWeekData(
                    week=week.w, additions=week.a, deletions=week.d, commits=week.c
                )
                for week in contributor.weeks
            ],
        )

    def _fetch_pull_requests(self, repo_name: str, spec_type: SpecType) -> List[PullRequestRecord]:
        repo: Repository = self.github.get_repo(repo_name)
        return [self._get_pr_data(pr, spec_type) for pr in repo.get_pulls(state="all")]

    def _fetch_contributor_stats(self, repo_name: str) -> List[StatsContributor]:
        repo: Repository = self.github.get_repo(repo_name)
        stats = repo.get_stats_contributors()
        if stats is None:
            logger.info(
                {
                    "message": "Contributor statistics are being computed",
                    "repository": repo_name,
                }
            )
            raise StatsNotReadyError(f"Statistics for {repo_name} are not ready yet")
        return stats

    async def mine_pull_requests(self, spec_type: SpecType) -> RepositoryData:
        """
        Extract all pull requests of a specification repository.

        Every page is fetched; failed attempts are retried with a fixed delay.

        Args:
            spec_type (SpecType): Specification repository to mine

        Returns:
            RepositoryData: A Pydantic model containing the mined pull requests.

        Raises:
            Exception: Raised if the mining process fails.
        """
        spec_type = SpecType.parse(spec_type)
        repo_name = self._repo_name(spec_type)
        logger.info({"message": "Starting pull request mining", "repository": repo_name})

        try:
            self._check_rate_limit("Pull request mining")

            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_fixed(self.retry_wait_seconds),
                retry=retry_if_exception_type(GithubException),
                reraise=True,
            ):
                with attempt:
                    pull_requests = self._fetch_pull_requests(repo_name, spec_type)

            self._check_rate_limit("Pull request mining finished")
            logger.info(
                {
                    "message": "Pull request mining finished",
                    "repository": repo_name,
                    "pull_requests": len(pull_requests),
                }
            )
            return RepositoryData(
                spec_type=spec_type,
                repository_name=spec_type.repository,
                pull_requests=pull_requests,
            )

        except Exception as e:
            logger.error(
                {
                    "message": "Pull request mining failed",
                    "repository": repo_name,
                    "error": str(e),
                }
            )
            raise

    async def mine_contributors(self, spec_type: SpecType) -> List[ContributorStatsData]:
        """
        Extract contributor statistics of a specification repository.

        GitHub answers with no data while statistics are computed in the
        background; the request is repeated with a fixed delay until they are
        ready or the attempts are exhausted.

        Args:
            spec_type (SpecType): Specification repository to mine

        Returns:
            List[ContributorStatsData]: Statistics per contributor

        Raises:
            StatsNotReadyError: If statistics are still not ready after all attempts
            Exception: Raised if the mining process fails.
        """
        spec_type = SpecType.parse(spec_type)
        repo_name = self._repo_name(spec_type)
        logger.info({"message": "Starting contributor mining", "repository": repo_name})

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_fixed(self.stats_retry_wait_seconds),
                retry=retry_if_exception_type((StatsNotReadyError, GithubException)),
                reraise=True,
            ):
                with attempt:
                    stats = self._fetch_contributor_stats(repo_name)

            contributors = [
                self._get_contributor_data(contributor)
                for contributor in stats
                if contributor.author is not None
            ]
            logger.info(
                {
                    "message": "Contributor mining finished",
                    "repository": repo_name,
                    "contributors": len(contributors),
                }
            )
            return contributors

        except Exception as e:
            logger.error(
                {
                    "message": "Contributor mining failed",
                    "repository": repo_name,
                    "error": str(e),
                }
            )
            raise

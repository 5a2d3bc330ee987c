"""
Abstract Base Class for Repository Miners.

Defines the interface for specification repository mining implementations.
"""

from abc import ABC, abstractmethod
from typing import List

from miners.models import ContributorStatsData, RepositoryData, SpecType


class RepositoryMiner(ABC):
    """
    Abstract base class for repository miners.

    Implementations should handle:
    - Authentication with the repository service
    - Pagination and retries of transient failures
    - Data transformation to common models
    """

    @abstractmethod
    async def mine_pull_requests(self, spec_type: SpecType) -> RepositoryData:
        """
        Extract all pull requests of a specification repository.

        Args:
            spec_type (SpecType): Specification repository to mine

        Returns:
            RepositoryData: Collected pull requests

        Raises:
            Exception: If mining fails
        """
        pass

    @abstractmethod
    async def mine_contributors(self, spec_type: SpecType) -> List[ContributorStatsData]:
        """
        Extract contributor statistics of a specification repository.

        Args:
            spec_type (SpecType): Specification repository to mine

        Returns:
            List[ContributorStatsData]: Statistics per contributor, empty if none

        Raises:
            Exception: If mining fails
        """
        pass

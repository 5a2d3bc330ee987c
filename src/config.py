"""
Application Configuration Module.

Manages application settings and environment variables using Pydantic for validation.
Provides centralized configuration management with type safety and validation.

Features:
- Environment variable loading and validation
- Secure credential management
- Specification repository selection
- Scheduling, retry and API server settings
- Path normalization for the data directory
"""

from typing import List, Optional
import os

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from logger import LogManager


class Settings(BaseSettings):
    """
    Application configuration settings with validation.

    Attributes:
        app_name (str): Name of the application
        dev (bool): Debug mode flag
        log_dir (str): Directory for log files
        log_level (int): Logging level (default: info)
        github_token (Optional[SecretStr]): GitHub API authentication token
        github_owner (str): Owner of the specification repositories
        spec_type_names (str): Comma-separated spec types to mine
        data_dir (str): Directory holding the document collections
        schedule_interval_hours (int): Hours between pipeline runs
        repository_delay_seconds (float): Pause between repositories
        retry_attempts (int): Attempts for a GitHub call before giving up
        retry_wait_seconds (float): Fixed delay between GitHub retries
        stats_retry_wait_seconds (float): Fixed delay while GitHub computes statistics
        api_host (str): Bind address of the query API
        api_port (int): Port of the query API
        top_contributors_limit (int): Size of the top contributor list
    """

    # Application settings
    app_name: str = Field(default="SpecPulse", description="Application name")
    dev: bool = Field(default=False, description="Debug mode")
    log_dir: str = Field(default="logs", description="Logging directory")
    log_level: int = Field(default=20, description="Logging level, default info")

    # GitHub configuration
    github_token: Optional[SecretStr] = Field(default=None, description="GitHub token")
    github_owner: str = Field(
        default="ethereum", description="Owner of the specification repositories"
    )
    spec_type_names: str = Field(
        default="EIP,ERC,RIP",
        description="Comma-separated specification types to mine",
    )

    # Storage
    data_dir: str = Field(default="data", description="Document store directory")

    # Scheduling and rate limiting
    schedule_interval_hours: int = Field(
        default=2, ge=1, le=24, description="Hours between pipeline runs"
    )
    repository_delay_seconds: float = Field(
        default=2.0, ge=0, description="Pause between repositories"
    )
    retry_attempts: int = Field(default=3, ge=1, description="GitHub call attempts")
    retry_wait_seconds: float = Field(
        default=2.0, ge=0, description="Fixed delay between GitHub retries"
    )
    stats_retry_wait_seconds: float = Field(
        default=5.0, ge=0, description="Fixed delay while statistics are computed"
    )

    # Query API
    api_host: str = Field(default="0.0.0.0", description="API bind address")
    api_port: int = Field(default=3001, description="API port")

    top_contributors_limit: int = Field(
        default=10, ge=1, description="Number of top contributors kept per repository"
    )

    @property
    def spec_types(self) -> List[str]:
        """
        Get the configured specification type names.

        Returns:
            List[str]: Upper-cased, non-empty spec type names
        """
        return [
            name.strip().upper() for name in self.spec_type_names.split(",") if name.strip()
        ]

    @field_validator("data_dir")
    def ensure_absolute_path(cls, v: str) -> str:
        """
        Ensure the data directory path is absolute.

        Args:
            v (str): Directory path to validate

        Returns:
            str: Absolute path to the data directory
        """
        if not os.path.isabs(v):
            return os.path.abspath(v)
        return v

    # Configure env file loading
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )


# Create global settings instance
settings = Settings()

# Initialize logging configuration
logger = LogManager(
    app_name=settings.app_name.lower(),
    log_dir=settings.log_dir,
    development=settings.dev,
    level=settings.log_level,
).logger

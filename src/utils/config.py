"""
Environment configuration loader for the update asset publisher.

Loads configuration from a .env file or environment variables: the asset
store endpoint and credentials, plus the tunables of the upload pipeline.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "https://api.expo.dev/graphql"


@dataclass
class PublishConfig:
    """Publisher environment configuration."""

    # Asset store API
    access_token: str
    api_url: str = DEFAULT_API_URL
    request_timeout_seconds: int = 60

    # Upload transport
    upload_concurrency: int = 15
    upload_batch_size: int = 100
    upload_timeout_seconds: int = 300
    upload_max_attempts: int = 3

    # Confirmation loop
    confirmation_max_delay_seconds: float = 5.0
    confirmation_timeout_seconds: Optional[float] = None

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "PublishConfig":
        """
        Load configuration from environment variables.

        Loads the .env file next to the project root (or `env_file`) if
        present, then reads from os.environ. Variables already set in the
        environment win over the file.

        Returns:
            PublishConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or a
                numeric tunable is not a positive number
        """
        env_path = env_file or Path(__file__).parent.parent.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)

        access_token = os.getenv("ASSET_STORE_ACCESS_TOKEN")
        if not access_token:
            raise ValueError(
                "ASSET_STORE_ACCESS_TOKEN environment variable is required. "
                "Set it in .env or export it."
            )

        timeout = os.getenv("CONFIRMATION_TIMEOUT_SECONDS")

        return cls(
            access_token=access_token,
            api_url=os.getenv("ASSET_STORE_API_URL", DEFAULT_API_URL),
            request_timeout_seconds=_positive_int("REQUEST_TIMEOUT_SECONDS", 60),
            upload_concurrency=_positive_int("UPLOAD_CONCURRENCY", 15),
            upload_batch_size=_positive_int("UPLOAD_BATCH_SIZE", 100),
            upload_timeout_seconds=_positive_int("UPLOAD_TIMEOUT_SECONDS", 300),
            upload_max_attempts=_positive_int("UPLOAD_MAX_ATTEMPTS", 3),
            confirmation_max_delay_seconds=float(
                os.getenv("CONFIRMATION_MAX_DELAY_SECONDS", "5")
            ),
            confirmation_timeout_seconds=float(timeout) if timeout else None,
        )


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got: {raw!r})") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive (got: {value})")
    return value


# Global config instance (lazy-loaded)
_config: Optional[PublishConfig] = None


def get_config() -> PublishConfig:
    """
    Get or create publisher configuration singleton.

    Returns:
        PublishConfig instance loaded from environment

    Example:
        >>> config = get_config()
        >>> print(config.upload_concurrency)
        15
    """
    global _config
    if _config is None:
        _config = PublishConfig.from_env()
    return _config

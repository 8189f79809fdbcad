"""Configuration management for the SoundCloud toolkit.

This module handles environment variable validation and configuration loading.
All configuration is read from environment variables (NO .env files).
"""
import os
from dataclasses import dataclass
from typing import Optional

from scclient.models import SoundCloudConfig

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class ToolkitConfig:
    """Configuration for toolkit operations (reads from environment)."""

    # Required: SoundCloud application
    client_id: str
    client_secret: str

    # Optional: endpoints
    api_url: str = "https://api.soundcloud.com"
    token_url: str = "https://secure.soundcloud.com/oauth/token"

    # Optional: retry policy and resolve cache
    max_rate_limit_retries: int = 5
    resolve_cache_ttl: float = 300.0

    # Optional: pacing between sequential calls (seconds)
    inter_call_delay: float = 0.5
    target_pause: float = 1.0
    bulk_pause: float = 0.25

    # Optional: delete already-created targets when a merge fails
    merge_rollback: bool = True

    # Optional: user credential for the CLI
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @classmethod
    def from_environment(cls) -> 'ToolkitConfig':
        """Load configuration from environment variables (NO .env files).

        Returns:
            ToolkitConfig: Loaded configuration object

        Raises:
            EnvironmentError: If required environment variables are missing
            ValueError: If a numeric variable cannot be parsed
        """
        required = {
            'SOUNDCLOUD_CLIENT_ID': os.getenv('SOUNDCLOUD_CLIENT_ID'),
            'SOUNDCLOUD_CLIENT_SECRET': os.getenv('SOUNDCLOUD_CLIENT_SECRET'),
        }

        missing = [var for var, value in required.items() if not value]
        if missing:
            raise EnvironmentError(
                f"Required environment variables missing: {', '.join(missing)}\n"
                f"These variables must be set in your shell environment (NOT in .env files).\n"
                f"Example: export SOUNDCLOUD_CLIENT_ID='your-client-id'"
            )

        return cls(
            client_id=required['SOUNDCLOUD_CLIENT_ID'],
            client_secret=required['SOUNDCLOUD_CLIENT_SECRET'],
            api_url=os.getenv('SOUNDCLOUD_API_URL', 'https://api.soundcloud.com'),
            token_url=os.getenv('SOUNDCLOUD_TOKEN_URL', 'https://secure.soundcloud.com/oauth/token'),
            max_rate_limit_retries=int(os.getenv('SC_MAX_RATE_LIMIT_RETRIES', '5')),
            resolve_cache_ttl=float(os.getenv('SC_RESOLVE_CACHE_TTL', '300')),
            inter_call_delay=float(os.getenv('SC_INTER_CALL_DELAY', '0.5')),
            target_pause=float(os.getenv('SC_TARGET_PAUSE', '1.0')),
            bulk_pause=float(os.getenv('SC_BULK_PAUSE', '0.25')),
            merge_rollback=_env_bool('SC_MERGE_ROLLBACK', True),
            access_token=os.getenv('SOUNDCLOUD_ACCESS_TOKEN'),
            refresh_token=os.getenv('SOUNDCLOUD_REFRESH_TOKEN'),
        )

    def validate(self) -> None:
        """Validate pacing and cache configuration.

        Raises:
            ValueError: If any value is out of range
        """
        if self.max_rate_limit_retries < 0:
            raise ValueError(
                f"Invalid max_rate_limit_retries: {self.max_rate_limit_retries}. Must be >= 0"
            )
        if self.resolve_cache_ttl < 0:
            raise ValueError(f"Invalid resolve_cache_ttl: {self.resolve_cache_ttl}. Must be >= 0")
        for name in ('inter_call_delay', 'target_pause', 'bulk_pause'):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"Invalid {name}: {value}. Must be >= 0")

    def to_soundcloud_config(self) -> SoundCloudConfig:
        """Convert to SoundCloudConfig for SoundCloudClient."""
        return SoundCloudConfig(
            client_id=self.client_id,
            client_secret=self.client_secret,
            api_url=self.api_url,
            token_url=self.token_url,
            max_rate_limit_retries=self.max_rate_limit_retries,
        )

    def __repr__(self) -> str:
        """Return string representation with sensitive data masked."""
        return (
            f"ToolkitConfig("
            f"client_id='{self.client_id}', "
            f"client_secret='***', "
            f"api_url='{self.api_url}', "
            f"token_url='{self.token_url}', "
            f"max_rate_limit_retries={self.max_rate_limit_retries}, "
            f"resolve_cache_ttl={self.resolve_cache_ttl}, "
            f"inter_call_delay={self.inter_call_delay}, "
            f"target_pause={self.target_pause}, "
            f"bulk_pause={self.bulk_pause}, "
            f"merge_rollback={self.merge_rollback}, "
            f"access_token={'***' if self.access_token else None}, "
            f"refresh_token={'***' if self.refresh_token else None}"
            f")"
        )

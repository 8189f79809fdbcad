"""SoundCloud API client module with auth refresh, backoff and resolve caching."""

__version__ = "1.0.0"

from .auth import refresh_credential
from .cancellation import CancelToken, guarded, sleep
from .client import SoundCloudClient, parse_retry_after
from .exceptions import (
    AuthError,
    OperationCancelledError,
    RateLimitError,
    SoundCloudError,
    UpstreamError,
    redact_secrets,
    sanitize_body,
)
from .models import (
    PLAYLIST_TRACK_LIMIT,
    WRITE_BATCH_LIMIT,
    CacheEntry,
    Credential,
    Playlist,
    SoundCloudConfig,
    Track,
    User,
)
from .resolve_cache import CacheBackend, InMemoryCacheBackend, ResolveCache, normalize_url

__all__ = [
    # Client
    "SoundCloudClient",
    "parse_retry_after",
    "refresh_credential",
    # Cancellation
    "CancelToken",
    "guarded",
    "sleep",
    # Resolve cache
    "ResolveCache",
    "CacheBackend",
    "InMemoryCacheBackend",
    "normalize_url",
    # Models
    "SoundCloudConfig",
    "Credential",
    "Track",
    "User",
    "Playlist",
    "CacheEntry",
    "WRITE_BATCH_LIMIT",
    "PLAYLIST_TRACK_LIMIT",
    # Exceptions
    "SoundCloudError",
    "AuthError",
    "RateLimitError",
    "UpstreamError",
    "OperationCancelledError",
    "redact_secrets",
    "sanitize_body",
]

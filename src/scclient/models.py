"""Data models for SoundCloud API integration."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple

# Upstream platform limits
WRITE_BATCH_LIMIT = 100
PLAYLIST_TRACK_LIMIT = 500


@dataclass
class SoundCloudConfig:
    """Configuration for connecting to the SoundCloud API.

    Attributes:
        client_id: OAuth application client ID
        client_secret: OAuth application client secret
        api_url: Base API URL
        token_url: OAuth token endpoint used for refreshes
        auth_scheme: Authorization header scheme placed before the access token
        timeout: Per-request timeout in seconds
        max_rate_limit_retries: Retries allowed after 429 responses before giving up
        default_retry_after: Delay in seconds used when 429 carries no Retry-After
        max_backoff: Upper bound in seconds for a single rate-limit delay
        backoff_jitter: Fraction of the delay added as random jitter (0 disables)
        page_size: Default page size for paginated endpoints
    """

    client_id: str
    client_secret: str
    api_url: str = "https://api.soundcloud.com"
    token_url: str = "https://secure.soundcloud.com/oauth/token"
    auth_scheme: str = "OAuth"
    timeout: float = 30.0
    max_rate_limit_retries: int = 5
    default_retry_after: float = 1.0
    max_backoff: float = 64.0
    backoff_jitter: float = 0.25
    page_size: int = 50

    def __post_init__(self):
        """Validate configuration on initialization."""
        if not self.client_id:
            raise ValueError("client_id is required")
        if not self.client_secret:
            raise ValueError("client_secret is required")

        for name in ("api_url", "token_url"):
            value = getattr(self, name)
            if not value or not value.startswith(("http://", "https://")):
                raise ValueError(f"{name} must be a valid HTTP/HTTPS URL")

        if self.max_rate_limit_retries < 0:
            raise ValueError("max_rate_limit_retries must be >= 0")
        if self.default_retry_after < 0 or self.max_backoff < 0:
            raise ValueError("retry delays must be >= 0")
        if self.backoff_jitter < 0:
            raise ValueError("backoff_jitter must be >= 0")
        if not 1 <= self.page_size <= 200:
            raise ValueError("page_size must be between 1 and 200")

        # Warn about insecure HTTP connections
        if not self.api_url.startswith("https://") or not self.token_url.startswith("https://"):
            import warnings
            warnings.warn(
                "Using HTTP instead of HTTPS for SoundCloud connection. "
                "Tokens will be transmitted insecurely.",
                UserWarning,
                stacklevel=2,
            )


@dataclass
class Credential:
    """Access/refresh token pair for one user.

    The client never persists a credential. It may replace the tokens in place
    after a refresh so later calls in the same chain use the new access token.

    Attributes:
        access_token: Current OAuth access token
        refresh_token: Refresh token used when the access token expires
        expires_at: Optional expiry hint (UTC)
    """

    access_token: str
    refresh_token: str
    expires_at: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"Credential(access_token='***', refresh_token='***', expires_at={self.expires_at!r})"

    def is_expired(self) -> bool:
        """Check if the expiry hint has passed.

        Returns:
            True if expired, False otherwise (or when no hint is known)
        """
        if self.expires_at is None:
            return False
        return datetime.now(timezone.utc) >= self.expires_at

    def update_from(self, other: "Credential") -> None:
        """Replace tokens in place with those of another credential."""
        self.access_token = other.access_token
        self.refresh_token = other.refresh_token
        self.expires_at = other.expires_at

    @classmethod
    def from_token_response(
        cls, data: dict, fallback_refresh_token: Optional[str] = None
    ) -> "Credential":
        """Build a credential from an OAuth token endpoint response.

        Args:
            data: Decoded token response with access_token, refresh_token, expires_in
            fallback_refresh_token: Refresh token kept when the response omits one

        Returns:
            New Credential

        Raises:
            KeyError: If access_token is missing
        """
        expires_at = None
        expires_in = data.get("expires_in")
        if expires_in is not None:
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))

        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token") or fallback_refresh_token or "",
            expires_at=expires_at,
        )


@dataclass(frozen=True)
class Track:
    """Track metadata from the SoundCloud API.

    Attributes:
        id: Unique track identifier
        title: Track title
        access: "playable", "preview" or "blocked" (None when not reported)
        streamable: Streamability flag (None when not reported)
        playback_count: Play count (None when not reported)
        likes_count: Like/favoriting count (None when not reported)
        duration: Duration in milliseconds
        permalink_url: Public URL
        username: Uploader name
        artwork_url: Artwork URL
    """

    id: int
    title: str = ""
    access: Optional[str] = None
    streamable: Optional[bool] = None
    playback_count: Optional[int] = None
    likes_count: Optional[int] = None
    duration: Optional[int] = None
    permalink_url: Optional[str] = None
    username: Optional[str] = None
    artwork_url: Optional[str] = None


@dataclass(frozen=True)
class User:
    """User metadata from followings/followers endpoints."""

    id: int
    username: str = ""
    followers_count: Optional[int] = None
    followings_count: Optional[int] = None
    permalink_url: Optional[str] = None
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class Playlist:
    """Playlist (collection) metadata.

    Attributes:
        id: Unique playlist identifier
        title: Playlist title
        track_count: Server-reported track count
        tracks: Ordered tracks, when the response included them
        permalink_url: Public URL
        sharing: "public" or "private"
    """

    id: int
    title: str = ""
    track_count: int = 0
    tracks: Tuple[Track, ...] = field(default_factory=tuple)
    permalink_url: Optional[str] = None
    sharing: Optional[str] = None

    @property
    def track_ids(self) -> list[int]:
        """Track ids in playlist order."""
        return [track.id for track in self.tracks]


@dataclass(frozen=True)
class CacheEntry:
    """Resolved resource stored by the resolve cache.

    Attributes:
        key: Normalized resource URL
        value: Resolved JSON payload
        expires_at: Clock reading after which the entry is stale
    """

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

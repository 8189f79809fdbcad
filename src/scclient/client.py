"""Async HTTP client for the SoundCloud API."""

import logging
import random
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from .auth import refresh_credential
from .cancellation import CancelToken, guarded, sleep
from .exceptions import AuthError, RateLimitError, UpstreamError, sanitize_body
from .models import Credential, Playlist, SoundCloudConfig, Track, User
from .transform import parse_playlist, parse_playlists, parse_tracks, parse_users, track_urn

logger = logging.getLogger(__name__)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given in seconds.

    HTTP-date values and garbage are ignored so the caller falls back to
    exponential backoff.

    Examples:
        >>> parse_retry_after("2")
        2.0
        >>> parse_retry_after("soon") is None
        True
    """
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except (AttributeError, ValueError):
        return None
    return seconds if seconds >= 0 else None


class SoundCloudClient:
    """Resilient async client for the SoundCloud REST API.

    Every upstream call goes through :meth:`request`, which hides two transient
    failure classes from callers:

    - 401: the credential is refreshed exactly once and the call retried once
    - 429: the call is retried after the server-supplied (or exponential,
      jittered) delay, at most ``max_rate_limit_retries`` times

    Attributes:
        config: SoundCloudConfig with endpoints, limits and retry policy
        client: httpx.AsyncClient used for all calls

    Example:
        >>> config = SoundCloudConfig(client_id="id", client_secret="secret")
        >>> async with SoundCloudClient(config) as client:
        ...     me = await client.get_me(credential)
    """

    def __init__(
        self,
        config: SoundCloudConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        on_refresh: Optional[Callable[[Credential], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the client.

        Args:
            config: SoundCloudConfig with API URL and credentials
            http_client: Optional pre-built httpx.AsyncClient (closed by the caller)
            on_refresh: Optional callback invoked with the credential after a refresh
            rng: Optional random source for backoff jitter
        """
        self.config = config
        self._base_url = config.api_url.rstrip("/")
        self.on_refresh = on_refresh
        self._rng = rng or random.Random()

        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout),
            limits=httpx.Limits(
                max_connections=20,
                max_keepalive_connections=10,
                keepalive_expiry=5.0,
            ),
            follow_redirects=True,
        )

        logger.info(f"Initialized SoundCloud client for {self._base_url}")

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()
            logger.info("Closed SoundCloud client")

    async def __aenter__(self) -> "SoundCloudClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _build_url(self, path: str) -> str:
        """Build a full URL; absolute URLs (pagination cursors) pass through."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _auth_headers(self, credential: Credential) -> Dict[str, str]:
        return {
            "Authorization": f"{self.config.auth_scheme} {credential.access_token}",
            "Accept": "application/json",
        }

    def _rate_limit_delay(self, attempt: int, retry_after: Optional[float]) -> float:
        """Delay before retry ``attempt`` (1-based) after a 429."""
        if retry_after is not None:
            return min(retry_after, self.config.max_backoff)

        delay = self.config.default_retry_after * (2 ** (attempt - 1))
        if self.config.backoff_jitter:
            delay += delay * self._rng.uniform(0, self.config.backoff_jitter)
        return min(delay, self.config.max_backoff)

    async def _send(
        self,
        method: str,
        url: str,
        credential: Credential,
        params: Optional[Dict[str, Any]],
        json: Optional[Any],
        cancel: Optional[CancelToken],
    ) -> httpx.Response:
        try:
            return await guarded(
                self.client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._auth_headers(credential),
                ),
                cancel,
            )
        except httpx.TransportError as e:
            logger.error(f"{method} {url} transport failure: {type(e).__name__}")
            raise UpstreamError(f"API request failed: {type(e).__name__}") from e

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                "API response was not valid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e

    async def request(
        self,
        path: str,
        credential: Credential,
        *,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Any:
        """Perform one logical upstream call.

        Args:
            path: Endpoint path relative to the API URL, or an absolute URL
            credential: Credential used for the Authorization header; replaced
                in place when a refresh succeeds
            method: HTTP method
            params: Query parameters
            json: JSON request body
            cancel: Optional cancel token checked at every suspension point

        Returns:
            Decoded JSON body (None for empty responses)

        Raises:
            AuthError: 401 and the single refresh failed, or 401 again after refresh
            RateLimitError: 429 persisted past max_rate_limit_retries
            UpstreamError: Any other non-success status or a transport failure
            OperationCancelledError: The cancel token fired
        """
        url = self._build_url(path)
        refreshed = False
        rate_limit_attempts = 0

        while True:
            logger.debug(f"{method} {url}")
            response = await self._send(method, url, credential, params, json, cancel)
            status = response.status_code

            if status == 401:
                if refreshed:
                    logger.error(f"{method} {url} still unauthorized after token refresh")
                    raise AuthError("API request failed after token refresh", status_code=401)

                logger.warning(f"{method} {url} returned 401, refreshing access token")
                new_credential = await guarded(
                    refresh_credential(self.client, self.config, credential), cancel
                )
                credential.update_from(new_credential)
                if self.on_refresh is not None:
                    self.on_refresh(credential)
                refreshed = True
                continue

            if status == 429:
                rate_limit_attempts += 1
                retry_after = parse_retry_after(response.headers.get("Retry-After"))

                if rate_limit_attempts > self.config.max_rate_limit_retries:
                    logger.error(
                        f"{method} {url} rate limited after "
                        f"{self.config.max_rate_limit_retries} retries"
                    )
                    raise RateLimitError(
                        f"Rate limited after {self.config.max_rate_limit_retries} retries",
                        retry_after=retry_after,
                        attempts=rate_limit_attempts - 1,
                    )

                delay = self._rate_limit_delay(rate_limit_attempts, retry_after)
                logger.warning(
                    f"Attempt {rate_limit_attempts}: Rate limited (429). "
                    f"Waiting {delay:.2f} seconds before retry..."
                )
                await sleep(delay, cancel)
                continue

            if not 200 <= status < 300:
                logger.error(
                    f"{method} {url} failed: {status} - Response: {sanitize_body(response.text)}"
                )
                raise UpstreamError(
                    f"API request failed: {status}", status_code=status, body=response.text
                )

            return self._decode(response)

    async def paginate(
        self,
        path: str,
        credential: Credential,
        page_size: Optional[int] = None,
        *,
        params: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch every page of a cursor-paginated endpoint.

        The first page is requested with ``limit`` and ``linked_partitioning``;
        later pages follow the server's ``next_href`` until it is absent.
        The result is accumulated eagerly in memory.

        Args:
            path: Endpoint path or absolute URL
            credential: Credential for every page request
            page_size: Items per page (default: config.page_size)
            params: Extra query parameters for the first page
            limit: Stop once this many items have been accumulated
            cancel: Optional cancel token

        Returns:
            Flat list of raw item payloads in server order
        """
        size = page_size or self.config.page_size
        query: Optional[Dict[str, Any]] = dict(params or {})
        query.update({"limit": size, "linked_partitioning": 1})

        items: List[Dict[str, Any]] = []
        next_url: Optional[str] = path
        page = 0

        while next_url:
            page += 1
            data = await self.request(next_url, credential, params=query, cancel=cancel)

            if isinstance(data, list):
                items.extend(data)
                break
            if not isinstance(data, dict):
                break

            items.extend(data.get("collection") or [])
            logger.debug(f"Fetched page {page} of {path}: {len(items)} items so far")

            if limit is not None and len(items) >= limit:
                break

            next_url = data.get("next_href") or None
            # next_href already carries the cursor and page size
            query = None

        if limit is not None:
            items = items[:limit]

        logger.info(f"Retrieved {len(items)} items from {path} in {page} page(s)")
        return items

    async def get_me(self, credential: Credential, cancel: Optional[CancelToken] = None) -> Dict:
        return await self.request("/me", credential, cancel=cancel)

    async def get_playlists(
        self,
        credential: Credential,
        limit: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[Playlist]:
        """Get the user's playlists (without their tracks)."""
        items = await self.paginate(
            "/me/playlists",
            credential,
            params={"show_tracks": "false"},
            limit=limit,
            cancel=cancel,
        )
        return parse_playlists(items)

    async def get_playlist(
        self, playlist_id: int, credential: Credential, cancel: Optional[CancelToken] = None
    ) -> Playlist:
        """Get one playlist with its tracks included."""
        data = await self.request(
            f"/playlists/{playlist_id}",
            credential,
            params={"show_tracks": "true"},
            cancel=cancel,
        )
        return parse_playlist(data)

    async def get_playlist_tracks(
        self, playlist_id: int, credential: Credential, cancel: Optional[CancelToken] = None
    ) -> List[Track]:
        """Get every track of a playlist through the paginated tracks endpoint."""
        items = await self.paginate(f"/playlists/{playlist_id}/tracks", credential, cancel=cancel)
        return parse_tracks(items)

    async def get_likes(
        self,
        credential: Credential,
        limit: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[Track]:
        """Get liked tracks, falling back to the legacy favorites endpoint."""
        try:
            items = await self.paginate("/me/likes/tracks", credential, limit=limit, cancel=cancel)
        except UpstreamError as e:
            logger.warning(f"Likes endpoint failed ({e.status_code}), falling back to favorites")
            items = await self.paginate("/me/favorites", credential, limit=limit, cancel=cancel)
        return parse_tracks(items)

    async def get_followings(
        self,
        credential: Credential,
        limit: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[User]:
        items = await self.paginate("/me/followings", credential, limit=limit, cancel=cancel)
        return parse_users(items)

    async def get_followers(
        self,
        credential: Credential,
        limit: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[User]:
        items = await self.paginate("/me/followers", credential, limit=limit, cancel=cancel)
        return parse_users(items)

    async def get_activities(
        self,
        credential: Credential,
        limit: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
    ) -> List[Dict[str, Any]]:
        """Get the user's activity feed as raw payloads."""
        return await self.paginate("/me/activities", credential, limit=limit, cancel=cancel)

    async def create_playlist(
        self,
        title: str,
        credential: Credential,
        description: str = "",
        track_ids: Iterable[int] = (),
        sharing: str = "public",
        cancel: Optional[CancelToken] = None,
    ) -> Playlist:
        """Create a playlist, optionally seeded with tracks.

        The upstream accepts at most 100 track references per write call;
        callers are expected to batch larger lists.
        """
        playlist: Dict[str, Any] = {
            "title": title,
            "description": description or "",
            "sharing": sharing,
        }
        ids = list(track_ids)
        if ids:
            playlist["tracks"] = [track_urn(track_id) for track_id in ids]

        data = await self.request(
            "/playlists", credential, method="POST", json={"playlist": playlist}, cancel=cancel
        )
        created = parse_playlist(data)
        logger.info(f"Created playlist {created.id} '{title}' with {len(ids)} tracks")
        return created

    async def update_playlist_tracks(
        self,
        playlist_id: int,
        track_ids: Iterable[int],
        credential: Credential,
        title: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
    ) -> Playlist:
        """Replace a playlist's track list (and optionally its title)."""
        ids = list(track_ids)
        playlist: Dict[str, Any] = {"tracks": [track_urn(track_id) for track_id in ids]}
        if title is not None:
            playlist["title"] = title

        data = await self.request(
            f"/playlists/{playlist_id}",
            credential,
            method="PUT",
            json={"playlist": playlist},
            cancel=cancel,
        )
        logger.debug(f"Set playlist {playlist_id} to {len(ids)} tracks")
        if isinstance(data, dict) and "id" in data:
            return parse_playlist(data)
        return Playlist(id=playlist_id, track_count=len(ids))

    async def delete_playlist(
        self, playlist_id: int, credential: Credential, cancel: Optional[CancelToken] = None
    ) -> None:
        await self.request(f"/playlists/{playlist_id}", credential, method="DELETE", cancel=cancel)
        logger.info(f"Deleted playlist {playlist_id}")

    async def resolve(
        self, url: str, credential: Credential, cancel: Optional[CancelToken] = None
    ) -> Dict[str, Any]:
        """Resolve a public SoundCloud URL to its API resource."""
        return await self.request("/resolve", credential, params={"url": url}, cancel=cancel)

    async def unlike_track(
        self, track_id: int, credential: Credential, cancel: Optional[CancelToken] = None
    ) -> None:
        await self.request(f"/likes/tracks/{track_id}", credential, method="DELETE", cancel=cancel)

    async def unfollow_user(
        self, user_id: int, credential: Credential, cancel: Optional[CancelToken] = None
    ) -> None:
        await self.request(f"/me/followings/{user_id}", credential, method="DELETE", cancel=cancel)

"""Transform SoundCloud JSON payloads into client models."""

import logging
from typing import Any, Dict, List, Optional

from .models import Playlist, Track, User

logger = logging.getLogger(__name__)

TRACK_URN_PREFIX = "soundcloud:tracks:"


def track_urn(track_id: int) -> Dict[str, str]:
    """Build the track reference used in playlist write payloads.

    Examples:
        >>> track_urn(123)
        {'urn': 'soundcloud:tracks:123'}
    """
    return {"urn": f"{TRACK_URN_PREFIX}{track_id}"}


def unwrap_track(item: Dict[str, Any]) -> Dict[str, Any]:
    """Return the track payload from a like/activity wrapper.

    The legacy favorites endpoint and the activity feed wrap tracks as
    ``{"track": {...}}`` or ``{"origin": {...}}``; newer endpoints return the
    track directly.

    Examples:
        >>> unwrap_track({"track": {"id": 1}})
        {'id': 1}
        >>> unwrap_track({"id": 2})
        {'id': 2}
    """
    for key in ("track", "origin"):
        inner = item.get(key)
        if isinstance(inner, dict) and "id" in inner:
            return inner
    return item


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_track(data: Dict[str, Any]) -> Track:
    """Convert a track payload into a Track.

    Raises:
        KeyError: If the payload has no id
    """
    data = unwrap_track(data)
    user = data.get("user") or {}
    likes = data.get("likes_count")
    if likes is None:
        likes = data.get("favoritings_count")

    return Track(
        id=int(data["id"]),
        title=data.get("title") or "",
        access=data.get("access"),
        streamable=data.get("streamable"),
        playback_count=_optional_int(data.get("playback_count")),
        likes_count=_optional_int(likes),
        duration=_optional_int(data.get("duration")),
        permalink_url=data.get("permalink_url"),
        username=user.get("username"),
        artwork_url=data.get("artwork_url"),
    )


def parse_tracks(items: List[Dict[str, Any]]) -> List[Track]:
    """Convert a list of track payloads, skipping entries without an id."""
    tracks = []
    for item in items:
        try:
            tracks.append(parse_track(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping track with missing field: {e}")
            continue
    return tracks


def parse_user(data: Dict[str, Any]) -> User:
    """Convert a user payload into a User."""
    return User(
        id=int(data["id"]),
        username=data.get("username") or "",
        followers_count=_optional_int(data.get("followers_count")),
        followings_count=_optional_int(data.get("followings_count")),
        permalink_url=data.get("permalink_url"),
        avatar_url=data.get("avatar_url"),
    )


def parse_users(items: List[Dict[str, Any]]) -> List[User]:
    users = []
    for item in items:
        try:
            users.append(parse_user(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping user with missing field: {e}")
            continue
    return users


def parse_playlist(data: Dict[str, Any]) -> Playlist:
    """Convert a playlist payload into a Playlist.

    ``track_count`` falls back to the number of included tracks when the
    server does not report it.
    """
    tracks = tuple(parse_tracks(data.get("tracks") or []))
    track_count = _optional_int(data.get("track_count"))

    return Playlist(
        id=int(data["id"]),
        title=data.get("title") or "",
        track_count=track_count if track_count is not None else len(tracks),
        tracks=tracks,
        permalink_url=data.get("permalink_url"),
        sharing=data.get("sharing"),
    )


def parse_playlists(items: List[Dict[str, Any]]) -> List[Playlist]:
    playlists = []
    for item in items:
        try:
            playlists.append(parse_playlist(item))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping playlist with missing field: {e}")
            continue
    return playlists

"""In-memory test doubles shared across the suite."""
from typing import Any, Callable, Dict, Iterable, List, Optional

from scclient.models import Playlist, Track


def make_tracks(ids: Iterable[int], **fields: Any) -> List[Track]:
    """Build tracks with the given ids and shared field values."""
    return [Track(id=track_id, title=f"Track {track_id}", **fields) for track_id in ids]


class FakeSoundCloudClient:
    """In-memory stand-in for SoundCloudClient.

    ``playlists`` maps playlist id to its tracks. ``failures`` maps a method
    name to a callable receiving the call's first argument and returning an
    exception to raise (or None).
    """

    def __init__(self) -> None:
        self.playlists: Dict[int, List[Track]] = {}
        self.titles: Dict[int, str] = {}
        self.likes: List[Track] = []
        self.resources: Dict[str, Dict[str, Any]] = {}
        self.failures: Dict[str, Callable[[Any], Optional[BaseException]]] = {}
        self.calls: List[tuple] = []
        self.deleted: List[int] = []
        self._next_id = 9000

    def _check(self, method: str, arg: Any) -> None:
        check = self.failures.get(method)
        if check is not None:
            error = check(arg)
            if error is not None:
                raise error

    def calls_to(self, method: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == method]

    async def get_playlist_tracks(self, playlist_id, credential, cancel=None):
        self.calls.append(("get_playlist_tracks", playlist_id))
        self._check("get_playlist_tracks", playlist_id)
        return list(self.playlists.get(playlist_id, []))

    async def get_playlist(self, playlist_id, credential, cancel=None):
        self.calls.append(("get_playlist", playlist_id))
        self._check("get_playlist", playlist_id)
        tracks = tuple(self.playlists.get(playlist_id, []))
        return Playlist(
            id=playlist_id,
            title=self.titles.get(playlist_id, ""),
            track_count=len(tracks),
            tracks=tracks,
            permalink_url=f"https://soundcloud.com/me/sets/{playlist_id}",
        )

    async def get_likes(self, credential, limit=None, cancel=None):
        self.calls.append(("get_likes", limit))
        self._check("get_likes", limit)
        likes = list(self.likes)
        return likes[:limit] if limit is not None else likes

    async def create_playlist(
        self, title, credential, description="", track_ids=(), sharing="public", cancel=None
    ):
        ids = list(track_ids)
        self.calls.append(("create_playlist", title, ids))
        self._check("create_playlist", title)
        self._next_id += 1
        self.playlists[self._next_id] = make_tracks(ids)
        self.titles[self._next_id] = title
        return Playlist(id=self._next_id, title=title, track_count=len(ids))

    async def update_playlist_tracks(self, playlist_id, track_ids, credential, title=None, cancel=None):
        ids = list(track_ids)
        self.calls.append(("update_playlist_tracks", playlist_id, ids))
        self._check("update_playlist_tracks", playlist_id)
        self.playlists[playlist_id] = make_tracks(ids)
        return Playlist(id=playlist_id, track_count=len(ids))

    async def delete_playlist(self, playlist_id, credential, cancel=None):
        self.calls.append(("delete_playlist", playlist_id))
        self._check("delete_playlist", playlist_id)
        self.playlists.pop(playlist_id, None)
        self.deleted.append(playlist_id)

    async def unlike_track(self, track_id, credential, cancel=None):
        self.calls.append(("unlike_track", track_id))
        self._check("unlike_track", track_id)

    async def unfollow_user(self, user_id, credential, cancel=None):
        self.calls.append(("unfollow_user", user_id))
        self._check("unfollow_user", user_id)

    async def resolve(self, url, credential, cancel=None):
        self.calls.append(("resolve", url))
        self._check("resolve", url)
        return self.resources.get(url, {"kind": "track", "permalink_url": url})



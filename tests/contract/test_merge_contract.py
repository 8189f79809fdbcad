"""
End-to-end merge and bulk behaviour against a respx-simulated SoundCloud API.

These tests run the real SoundCloudClient over httpx so that the write
payloads the API actually receives are checked, not just orchestration calls.
"""

import json
from typing import Dict, List

import httpx
import pytest

from scclient.client import SoundCloudClient
from sctoolkit.bulk import bulk_unlike
from sctoolkit.merge import MergeOrchestrator

HOST = "api.soundcloud.com"
MAX_IDS_PER_WRITE = 100


def track_ids_from(request: httpx.Request) -> List[int]:
    body = json.loads(request.content)
    return [int(ref["urn"].rsplit(":", 1)[1]) for ref in body["playlist"].get("tracks", [])]


class PlaylistApi:
    """Just enough playlist storage to serve create, update, show and track listing."""

    def __init__(self, sources: Dict[int, List[int]]):
        self.playlists: Dict[int, List[int]] = {pid: list(ids) for pid, ids in sources.items()}
        self.titles: Dict[int, str] = {}
        self.write_sizes: List[int] = []
        self._next_id = 5000

    def mount(self, router) -> None:
        router.route(method="POST", host=HOST, path="/playlists").mock(side_effect=self.create)
        router.route(method="PUT", host=HOST, path__regex=r"^/playlists/(?P<playlist_id>\d+)$").mock(
            side_effect=self.update
        )
        router.route(method="GET", host=HOST, path__regex=r"^/playlists/(?P<playlist_id>\d+)$").mock(
            side_effect=self.show
        )
        router.route(
            method="GET", host=HOST, path__regex=r"^/playlists/(?P<playlist_id>\d+)/tracks$"
        ).mock(side_effect=self.tracks)

    def _payload(self, playlist_id: int) -> dict:
        return {
            "id": playlist_id,
            "title": self.titles.get(playlist_id, ""),
            "track_count": len(self.playlists[playlist_id]),
        }

    def create(self, request):
        ids = track_ids_from(request)
        self.write_sizes.append(len(ids))
        self._next_id += 1
        self.playlists[self._next_id] = ids
        self.titles[self._next_id] = json.loads(request.content)["playlist"]["title"]
        return httpx.Response(201, json=self._payload(self._next_id))

    def update(self, request, playlist_id):
        ids = track_ids_from(request)
        self.write_sizes.append(len(ids))
        self.playlists[int(playlist_id)] = ids
        return httpx.Response(200, json=self._payload(int(playlist_id)))

    def show(self, request, playlist_id):
        return httpx.Response(200, json=self._payload(int(playlist_id)))

    def tracks(self, request, playlist_id):
        items = [
            {"id": track_id, "access": "playable", "streamable": True}
            for track_id in self.playlists.get(int(playlist_id), [])
        ]
        return httpx.Response(200, json={"collection": items})

    def created(self) -> Dict[str, List[int]]:
        return {self.titles[pid]: self.playlists[pid] for pid in self.titles}


@pytest.fixture
async def client(sc_config):
    async with SoundCloudClient(sc_config) as sc:
        yield sc


def orchestrator(client):
    return MergeOrchestrator(client, inter_call_delay=0, target_pause=0)


def added_per_call(sizes):
    """New ids carried by each cumulative write; a smaller size starts a new playlist."""
    added = []
    previous = 0
    for size in sizes:
        added.append(size - previous if size > previous else size)
        previous = size
    return added


async def test_merge_keeps_first_occurrence_order(router, client, credential):
    api = PlaylistApi({1: [1, 2, 2], 2: [3, 1, 4]})
    api.mount(router)

    result = await orchestrator(client).merge([1, 2], credential, title="Mix")

    assert result.collections[0].track_ids == [1, 2, 3, 4]
    assert api.created() == {"Mix": [1, 2, 3, 4]}


async def test_up_to_cap_makes_one_playlist_in_small_writes(router, client, credential):
    api = PlaylistApi({1: list(range(1, 301)), 2: list(range(201, 451))})
    api.mount(router)

    result = await orchestrator(client).merge([1, 2], credential, title="Mix")

    assert len(result.collections) == 1
    assert api.created() == {"Mix": list(range(1, 451))}
    assert api.write_sizes == [100, 200, 300, 400, 450]
    assert all(0 < added <= MAX_IDS_PER_WRITE for added in added_per_call(api.write_sizes))
    assert result.stats.verified is True
    assert result.collections[0].track_count == 450


async def test_over_cap_splits_into_numbered_playlists(router, client, credential):
    api = PlaylistApi({1: list(range(1, 401)), 2: list(range(401, 651))})
    api.mount(router)

    result = await orchestrator(client).merge([1, 2], credential, title="Mix")

    assert api.created() == {
        "Mix (1/2)": list(range(1, 501)),
        "Mix (2/2)": list(range(501, 651)),
    }
    assert [collection.title for collection in result.collections] == ["Mix (1/2)", "Mix (2/2)"]
    assert result.stats.unique_before_cap == 650
    assert result.stats.total_written == 650
    assert api.write_sizes == [100, 200, 300, 400, 500, 100, 150]
    assert all(0 < added <= MAX_IDS_PER_WRITE for added in added_per_call(api.write_sizes))


async def test_bulk_failure_is_isolated_and_ordered(router, client, credential):
    for track_id, status in ((11, 200), (12, 404), (13, 200)):
        router.route(method="DELETE", host=HOST, path=f"/likes/tracks/{track_id}").mock(
            return_value=httpx.Response(status)
        )

    result = await bulk_unlike(client, credential, [11, 12, 13], pause=0)

    assert [(item.id, item.status.value) for item in result] == [
        (11, "ok"),
        (12, "error"),
        (13, "ok"),
    ]
    assert "404" in result.results[1].error

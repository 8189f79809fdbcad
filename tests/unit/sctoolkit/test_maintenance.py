"""Tests for playlist de-duplication and health checks."""

import pytest

from scclient.models import Track
from sctoolkit.exceptions import ValidationError
from sctoolkit.maintenance import check_playlist_health, classify_track, deduplicate_playlist
from tests.fakes import make_tracks


class TestDeduplicatePlaylist:
    async def test_preview_does_not_write(self, fake_client, credential):
        fake_client.playlists[7] = make_tracks([1, 2, 1, 3, 2, 1])

        report = await deduplicate_playlist(fake_client, credential, 7)

        assert report.to_dict() == {
            "preview": True,
            "originalCount": 6,
            "uniqueCount": 3,
            "duplicateCount": 3,
            "duplicates": [1, 2, 1],
        }
        assert fake_client.calls_to("update_playlist_tracks") == []

    async def test_confirm_rewrites_in_first_occurrence_order(self, fake_client, credential):
        fake_client.playlists[7] = make_tracks([3, 1, 3, 2, 1])

        report = await deduplicate_playlist(fake_client, credential, "7", confirm=True, inter_call_delay=0)

        assert report.to_dict()["removedDuplicates"] == 2
        assert report.to_dict()["preview"] is False
        assert [track.id for track in fake_client.playlists[7]] == [3, 1, 2]

    async def test_confirm_without_duplicates_skips_write(self, fake_client, credential):
        fake_client.playlists[7] = make_tracks([1, 2, 3])

        report = await deduplicate_playlist(fake_client, credential, 7, confirm=True)

        assert report.applied is True
        assert report.duplicate_count == 0
        assert fake_client.calls_to("update_playlist_tracks") == []

    async def test_preview_lists_at_most_ten_duplicates(self, fake_client, credential):
        fake_client.playlists[7] = make_tracks(list(range(1, 16)) * 2)

        report = await deduplicate_playlist(fake_client, credential, 7)

        assert report.duplicate_count == 15
        assert len(report.to_dict()["duplicates"]) == 10

    async def test_invalid_id(self, fake_client, credential):
        with pytest.raises(ValidationError):
            await deduplicate_playlist(fake_client, credential, "abc")


class TestPlaylistHealth:
    def test_classify(self):
        assert classify_track(Track(id=1)) == "playable"
        assert classify_track(Track(id=1, access="playable")) == "playable"
        assert classify_track(Track(id=1, access="preview")) == "preview"
        assert classify_track(Track(id=1, access="blocked")) == "blocked"

    async def test_report(self, fake_client, credential):
        fake_client.playlists[9] = [
            Track(id=1, access="playable"),
            Track(id=2, access="preview"),
            Track(id=3, access="blocked"),
            Track(id=4),
        ]

        report = await check_playlist_health(fake_client, credential, 9)

        assert report.to_dict() == {
            "playlistId": 9,
            "total": 4,
            "playable": 2,
            "preview": 1,
            "blocked": 1,
            "issueCount": 2,
            "healthPercent": 50,
            "removed": 0,
        }
        assert fake_client.calls_to("update_playlist_tracks") == []

    async def test_remove_keeps_playable(self, fake_client, credential):
        fake_client.playlists[9] = [
            Track(id=1),
            Track(id=2, access="blocked"),
            Track(id=3, access="preview"),
            Track(id=4, access="playable"),
        ]

        report = await check_playlist_health(fake_client, credential, 9, remove=True, inter_call_delay=0)

        assert report.removed == 2
        assert [track.id for track in fake_client.playlists[9]] == [1, 4]

    async def test_remove_on_healthy_playlist_skips_write(self, fake_client, credential):
        fake_client.playlists[9] = make_tracks([1, 2])

        report = await check_playlist_health(fake_client, credential, 9, remove=True)

        assert report.health_percent == 100
        assert report.removed == 0
        assert fake_client.calls_to("update_playlist_tracks") == []

    async def test_refuses_to_empty_playlist(self, fake_client, credential):
        fake_client.playlists[9] = [Track(id=1, access="blocked"), Track(id=2, access="preview")]

        with pytest.raises(ValidationError):
            await check_playlist_health(fake_client, credential, 9, remove=True)

        assert fake_client.calls_to("update_playlist_tracks") == []

    async def test_empty_playlist_is_healthy(self, fake_client, credential):
        report = await check_playlist_health(fake_client, credential, 9)
        assert report.total == 0
        assert report.health_percent == 100

"""Tests for JSON → model transforms."""

from scclient.transform import (
    parse_playlist,
    parse_playlists,
    parse_track,
    parse_tracks,
    parse_user,
    parse_users,
    track_urn,
    unwrap_track,
)


class TestTrackTransforms:
    def test_parse_full_track(self):
        track = parse_track(
            {
                "id": "12",
                "title": "Song",
                "access": "preview",
                "streamable": True,
                "playback_count": 100,
                "likes_count": 7,
                "duration": 180000,
                "permalink_url": "https://soundcloud.com/a/song",
                "user": {"username": "artist"},
                "artwork_url": None,
            }
        )

        assert track.id == 12
        assert track.access == "preview"
        assert track.streamable is True
        assert track.playback_count == 100
        assert track.likes_count == 7
        assert track.username == "artist"

    def test_missing_fields_stay_unknown(self):
        track = parse_track({"id": 3})

        assert track.title == ""
        assert track.access is None
        assert track.streamable is None
        assert track.playback_count is None
        assert track.likes_count is None

    def test_likes_count_falls_back_to_favoritings(self):
        assert parse_track({"id": 1, "favoritings_count": 4}).likes_count == 4

    def test_unwraps_like_and_activity_items(self):
        assert unwrap_track({"track": {"id": 1}}) == {"id": 1}
        assert unwrap_track({"origin": {"id": 2}, "type": "track"}) == {"id": 2}
        assert parse_tracks([{"track": {"id": 5}}, {"origin": {"id": 6}}])[1].id == 6

    def test_parse_tracks_skips_broken_items(self):
        tracks = parse_tracks([{"id": 1}, {"title": "no id"}, {"id": "not-a-number"}, {"id": 2}])
        assert [track.id for track in tracks] == [1, 2]

    def test_track_urn(self):
        assert track_urn(77) == {"urn": "soundcloud:tracks:77"}


class TestPlaylistTransforms:
    def test_track_count_falls_back_to_included_tracks(self):
        playlist = parse_playlist({"id": 9, "tracks": [{"id": 1}, {"id": 2}]})
        assert playlist.track_count == 2
        assert playlist.track_ids == [1, 2]

    def test_reported_track_count_wins(self):
        playlist = parse_playlist({"id": 9, "track_count": 40, "tracks": []})
        assert playlist.track_count == 40

    def test_parse_playlists_skips_broken_items(self):
        playlists = parse_playlists([{"id": 1, "title": "A"}, {"title": "B"}])
        assert [playlist.title for playlist in playlists] == ["A"]


class TestUserTransforms:
    def test_parse_user(self):
        user = parse_user({"id": 4, "username": "dj", "followers_count": 10})
        assert user.username == "dj"
        assert user.followers_count == 10
        assert user.followings_count is None

    def test_parse_users_skips_broken_items(self):
        assert [user.id for user in parse_users([{"id": 1}, {}])] == [1]

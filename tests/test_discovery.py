"""Tests for channel resolution and upload-feed paging.

The API client is a ``MagicMock``; each test scripts the pages it returns.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, call

import pytest

from linkguard.errors import ChannelNotFound, QuotaExhausted
from linkguard.youtube.client import QuotaManagedAPIClient
from linkguard.youtube.discovery import ChannelVideoDiscovery, _coerce_bound

_CHANNEL_ID = "UC" + "b" * 22


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _item(video_id: str, published: str = "2024-03-10T12:00:00Z") -> dict:
    return {
        "snippet": {
            "title": f"Video {video_id}",
            "publishedAt": published,
            "resourceId": {"videoId": video_id},
        }
    }


def _page(items: list[dict], next_token: str | None = None) -> dict:
    data: dict = {"items": items}
    if next_token:
        data["nextPageToken"] = next_token
    return data


@pytest.fixture()
def api() -> MagicMock:
    return MagicMock(spec=QuotaManagedAPIClient)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

class TestResolveChannel:
    def test_channel_id_needs_no_lookup(self, api) -> None:
        assert ChannelVideoDiscovery(api).resolve_channel(_CHANNEL_ID) == _CHANNEL_ID
        api.get_channel_by_handle.assert_not_called()

    def test_handle_is_looked_up(self, api) -> None:
        api.get_channel_by_handle.return_value = {"id": _CHANNEL_ID}
        assert ChannelVideoDiscovery(api).resolve_channel("@creator") == _CHANNEL_ID
        api.get_channel_by_handle.assert_called_once_with("creator")

    def test_user_url_uses_username_lookup(self, api) -> None:
        api.get_channel_by_username.return_value = {"id": _CHANNEL_ID}
        discovery = ChannelVideoDiscovery(api)
        assert discovery.resolve_channel("https://youtube.com/user/oldname") == _CHANNEL_ID
        api.get_channel_by_username.assert_called_once_with("oldname")

    def test_custom_url_falls_back_to_username(self, api) -> None:
        api.get_channel_by_handle.return_value = None
        api.get_channel_by_username.return_value = {"id": _CHANNEL_ID}
        assert ChannelVideoDiscovery(api).resolve_channel("https://youtube.com/c/MyShow") == _CHANNEL_ID

    def test_unknown_handle_raises(self, api) -> None:
        api.get_channel_by_handle.return_value = None
        with pytest.raises(ChannelNotFound):
            ChannelVideoDiscovery(api).resolve_channel("@nobody")

    def test_empty_identifier_raises(self, api) -> None:
        with pytest.raises(ChannelNotFound):
            ChannelVideoDiscovery(api).resolve_channel("  ")


class TestResolveUploadsFeed:
    def test_returns_uploads_playlist(self, api) -> None:
        api.get_channel.return_value = {
            "id": _CHANNEL_ID,
            "contentDetails": {"relatedPlaylists": {"uploads": "UU" + "b" * 22}},
        }
        assert ChannelVideoDiscovery(api).resolve_uploads_feed(_CHANNEL_ID) == "UU" + "b" * 22

    def test_missing_channel_raises(self, api) -> None:
        api.get_channel.return_value = None
        with pytest.raises(ChannelNotFound):
            ChannelVideoDiscovery(api).resolve_uploads_feed(_CHANNEL_ID)

    def test_missing_uploads_playlist_raises(self, api) -> None:
        api.get_channel.return_value = {"id": _CHANNEL_ID, "contentDetails": {}}
        with pytest.raises(ChannelNotFound):
            ChannelVideoDiscovery(api).resolve_uploads_feed(_CHANNEL_ID)


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------

class TestListVideos:
    def test_pages_until_max_results(self, api) -> None:
        api.get_playlist_items.side_effect = [
            _page([_item(f"v{i:010d}") for i in range(3)], "P2"),
            _page([_item(f"w{i:010d}") for i in range(2)], "P3"),
        ]
        videos = ChannelVideoDiscovery(api, page_size=3).list_videos("UU1", 5)

        assert len(videos) == 5
        assert api.get_playlist_items.call_args_list == [
            call("UU1", 3, None),
            call("UU1", 2, "P2"),
        ]

    def test_stops_when_feed_ends(self, api) -> None:
        api.get_playlist_items.return_value = _page([_item("a" * 11)])
        videos = ChannelVideoDiscovery(api).list_videos("UU1", 50)
        assert [v.external_id for v in videos] == ["a" * 11]
        assert api.get_playlist_items.call_count == 1

    def test_empty_feed(self, api) -> None:
        api.get_playlist_items.return_value = _page([])
        assert ChannelVideoDiscovery(api).list_videos("UU1", 10) == []

    def test_never_exceeds_max_results(self, api) -> None:
        api.get_playlist_items.return_value = _page(
            [_item(f"v{i:010d}") for i in range(50)], "NEXT"
        )
        videos = ChannelVideoDiscovery(api).list_videos("UU1", 50)
        assert len(videos) == 50
        assert api.get_playlist_items.call_count == 1

    def test_zero_max_results_makes_no_call(self, api) -> None:
        assert ChannelVideoDiscovery(api).list_videos("UU1", 0) == []
        api.get_playlist_items.assert_not_called()

    def test_date_filter_is_applied_after_each_page(self, api) -> None:
        api.get_playlist_items.side_effect = [
            _page(
                [
                    _item("new00000001", "2024-05-01T00:00:00Z"),
                    _item("inrange0001", "2024-03-31T23:30:00Z"),
                ],
                "P2",
            ),
            _page(
                [
                    _item("inrange0002", "2024-03-01T00:00:00Z"),
                    _item("old00000001", "2024-02-29T23:59:59Z"),
                ]
            ),
        ]
        videos = ChannelVideoDiscovery(api, page_size=2).list_videos(
            "UU1", 10, start_date="2024-03-01", end_date="2024-03-31"
        )
        assert [v.external_id for v in videos] == ["inrange0001", "inrange0002"]

    def test_items_without_date_are_dropped_when_filtering(self, api) -> None:
        undated = {"snippet": {"resourceId": {"videoId": "undated0001"}}}
        api.get_playlist_items.return_value = _page([undated, _item("dated000001")])
        videos = ChannelVideoDiscovery(api).list_videos("UU1", 10, start_date=date(2024, 1, 1))
        assert [v.external_id for v in videos] == ["dated000001"]

    def test_items_without_id_are_skipped(self, api) -> None:
        api.get_playlist_items.return_value = _page([{"snippet": {}}, _item("real0000001")])
        videos = ChannelVideoDiscovery(api).list_videos("UU1", 10)
        assert [v.external_id for v in videos] == ["real0000001"]

    def test_quota_exhaustion_propagates(self, api) -> None:
        api.get_playlist_items.side_effect = QuotaExhausted()
        with pytest.raises(QuotaExhausted):
            ChannelVideoDiscovery(api).list_videos("UU1", 10)

    def test_video_refs_carry_watch_url(self, api) -> None:
        api.get_playlist_items.return_value = _page([_item("dQw4w9WgXcQ")])
        (ref,) = ChannelVideoDiscovery(api).list_videos("UU1", 1)
        assert ref.url == "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
        assert ref.published_at == "2024-03-10T12:00:00Z"


class TestCoerceBound:
    def test_end_date_covers_whole_day(self) -> None:
        bound = _coerce_bound("2024-03-31", end=True)
        assert (bound.hour, bound.minute, bound.second) == (23, 59, 59)

    def test_start_date_is_midnight_utc(self) -> None:
        bound = _coerce_bound("2024-03-01")
        assert bound.hour == 0 and bound.utcoffset().total_seconds() == 0

    def test_invalid_bound(self) -> None:
        with pytest.raises(ValueError):
            _coerce_bound("yesterday")

"""Tests for the three-phase scan pipeline.

The metadata client and discovery are ``MagicMock``s; the checker is either a
mock that marks every link working or a real checker behind ``respx``.
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import httpx
import pytest
import respx

from linkguard.errors import (
    ChannelNotFound,
    PlanLimitExceeded,
    QuotaExhausted,
    ScanCancelled,
    TransientNetworkError,
    UpstreamAPIError,
)
from linkguard.links.checker import LinkHealthChecker
from linkguard.links.models import LinkProbeResult, LinkStatus
from linkguard.scan.models import ScanRequest, parse_plan_limit
from linkguard.scan.orchestrator import ScanOrchestrator
from linkguard.youtube.client import QuotaManagedAPIClient
from linkguard.youtube.discovery import ChannelVideoDiscovery
from linkguard.youtube.models import VideoRef

_CHANNEL_ID = "UC" + "c" * 22
_FEED_ID = "UU" + "c" * 22
_SCANNED_AT = "2024-06-01T00:00:00Z"


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------

def _ref(video_id: str) -> VideoRef:
    return VideoRef(
        external_id=video_id,
        title=f"Feed title {video_id}",
        published_at="2024-05-01T00:00:00Z",
        url=f"https://www.youtube.com/watch?v={video_id}",
    )


def _details(video_id: str, description: str) -> dict:
    return {
        "id": video_id,
        "snippet": {
            "title": f"Title {video_id}",
            "description": description,
            "publishedAt": "2024-05-01T00:00:00Z",
        },
    }


def _all_working(urls, concurrency=1, cancel_event=None):
    return [LinkProbeResult(u, LinkStatus.WORKING, 200) for u in urls]


@pytest.fixture()
def api() -> MagicMock:
    return MagicMock(spec=QuotaManagedAPIClient)


@pytest.fixture()
def discovery() -> MagicMock:
    mock = MagicMock(spec=ChannelVideoDiscovery)
    mock.resolve_channel.return_value = _CHANNEL_ID
    mock.resolve_uploads_feed.return_value = _FEED_ID
    mock.list_videos.return_value = []
    return mock


@pytest.fixture()
def checker() -> MagicMock:
    mock = MagicMock(spec=LinkHealthChecker)
    mock.probe_many.side_effect = _all_working
    return mock


@pytest.fixture()
def engine(api, discovery, checker) -> ScanOrchestrator:
    return ScanOrchestrator(
        api, checker, discovery=discovery, probe_concurrency=1, clock=lambda: _SCANNED_AT
    )


def _details_by_id(mapping: dict[str, str]):
    def _lookup(video_id: str):
        if video_id not in mapping:
            return None
        return _details(video_id, mapping[video_id])
    return _lookup


# ---------------------------------------------------------------------------
# Requests and pre-flight
# ---------------------------------------------------------------------------

class TestScanRequest:
    def test_requires_exactly_one_target(self) -> None:
        with pytest.raises(ValueError):
            ScanRequest(requested_count=1)
        with pytest.raises(ValueError):
            ScanRequest(requested_count=1, target_channel_id="x", video_urls=["y"])

    def test_video_request_defaults_count_to_list_length(self) -> None:
        assert ScanRequest.for_videos(["a", "b", "c"]).requested_count == 3

    def test_enforced_count(self) -> None:
        assert ScanRequest.for_channel("x", 500, plan_limit=50).enforced_count == 50
        assert ScanRequest.for_channel("x", 5, plan_limit=50).enforced_count == 5
        assert ScanRequest.for_channel("x", 500).enforced_count == 500

    @pytest.mark.parametrize(
        "raw, expected",
        [(None, None), ("unlimited", None), ("Unlimited", None), ("25", 25), (10, 10), (0, 0)],
    )
    def test_parse_plan_limit(self, raw, expected) -> None:
        assert parse_plan_limit(raw) == expected

    def test_negative_plan_limit_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_plan_limit(-1)


class TestPreflight:
    def test_zero_requested_count(self, engine, discovery) -> None:
        with pytest.raises(ValueError):
            engine.run(ScanRequest.for_channel(_CHANNEL_ID, 0))
        discovery.resolve_channel.assert_not_called()

    def test_no_scans_remaining(self, engine, discovery) -> None:
        with pytest.raises(PlanLimitExceeded):
            engine.run(ScanRequest.for_channel(_CHANNEL_ID, 5, scans_remaining=0))
        discovery.resolve_channel.assert_not_called()

    def test_zero_plan_limit(self, engine) -> None:
        with pytest.raises(PlanLimitExceeded):
            engine.run(ScanRequest.for_channel(_CHANNEL_ID, 5, plan_limit=0))


# ---------------------------------------------------------------------------
# Phase 1 - collect
# ---------------------------------------------------------------------------

class TestCollect:
    def test_empty_channel_gives_zero_result(self, engine, api) -> None:
        result = engine.run(ScanRequest.for_channel(_CHANNEL_ID, 10))

        assert result.scanned_videos == 0
        assert result.videos_with_links == 0
        assert result.results == []
        assert result.statistics.to_dict() == {
            "totalLinks": 0,
            "brokenLinks": 0,
            "warningLinks": 0,
            "workingLinks": 0,
        }
        api.get_video_details.assert_not_called()

    def test_plan_limit_caps_channel_discovery(self, engine, discovery) -> None:
        result = engine.run(ScanRequest.for_channel(_CHANNEL_ID, 500, plan_limit=50))

        discovery.list_videos.assert_called_once_with(_FEED_ID, 50, None, None)
        assert result.requested_count == 500
        assert result.enforced_count == 50

    def test_date_range_is_forwarded(self, engine, discovery) -> None:
        engine.run(
            ScanRequest.for_channel(
                "@creator", 5, start_date="2024-01-01", end_date="2024-02-01"
            )
        )
        discovery.resolve_channel.assert_called_once_with("@creator")
        discovery.resolve_uploads_feed.assert_called_once_with(_CHANNEL_ID)
        discovery.list_videos.assert_called_once_with(_FEED_ID, 5, "2024-01-01", "2024-02-01")

    def test_unknown_channel_aborts(self, engine, discovery) -> None:
        discovery.resolve_channel.side_effect = ChannelNotFound("@nobody")
        with pytest.raises(ChannelNotFound):
            engine.run(ScanRequest.for_channel("@nobody", 5))

    def test_video_list_skips_invalid_urls_and_caps(self, engine, api) -> None:
        api.get_video_details.side_effect = _details_by_id(
            {"aaaaaaaaaaa": "https://a.example", "bbbbbbbbbbb": "https://b.example"}
        )
        request = ScanRequest.for_videos(
            [
                "https://example.com/not-a-video",
                "https://youtu.be/aaaaaaaaaaa",
                "https://www.youtube.com/watch?v=bbbbbbbbbbb",
                "https://www.youtube.com/watch?v=ccccccccccc",
            ],
            plan_limit=2,
        )

        result = engine.run(request)

        assert result.scanned_videos == 2
        assert [v.video_id for v in result.results] == ["aaaaaaaaaaa", "bbbbbbbbbbb"]
        assert result.results[0].video_url == "https://www.youtube.com/watch?v=aaaaaaaaaaa"


# ---------------------------------------------------------------------------
# Phase 2 - extract
# ---------------------------------------------------------------------------

class TestExtract:
    def test_videos_without_links_are_dropped(self, engine, api, discovery) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa"), _ref("bbbbbbbbbbb")]
        api.get_video_details.side_effect = _details_by_id(
            {"aaaaaaaaaaa": "no links here", "bbbbbbbbbbb": "https://b.example/1 https://b.example/2"}
        )

        result = engine.run(ScanRequest.for_channel(_CHANNEL_ID, 10))

        assert result.scanned_videos == 2
        assert result.videos_with_links == 1
        assert result.results[0].video_id == "bbbbbbbbbbb"
        assert result.results[0].video_title == "Title bbbbbbbbbbb"
        assert [link.url for link in result.results[0].links] == [
            "https://b.example/1",
            "https://b.example/2",
        ]

    @pytest.mark.parametrize(
        "failure",
        [
            UpstreamAPIError(404, "videos"),
            TransientNetworkError("down"),
        ],
    )
    def test_failed_detail_fetch_skips_only_that_video(self, engine, api, discovery, failure) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa"), _ref("bbbbbbbbbbb")]

        def _lookup(video_id: str):
            if video_id == "aaaaaaaaaaa":
                raise failure
            return _details(video_id, "https://b.example")

        api.get_video_details.side_effect = _lookup

        result = engine.run(ScanRequest.for_channel(_CHANNEL_ID, 10))

        assert result.scanned_videos == 2
        assert [v.video_id for v in result.results] == ["bbbbbbbbbbb"]

    def test_missing_video_is_skipped(self, engine, api, discovery) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa")]
        api.get_video_details.return_value = None

        result = engine.run(ScanRequest.for_channel(_CHANNEL_ID, 10))

        assert result.scanned_videos == 1
        assert result.videos_with_links == 0

    def test_quota_exhaustion_aborts(self, engine, api, discovery, checker) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa")]
        api.get_video_details.side_effect = QuotaExhausted()

        with pytest.raises(QuotaExhausted):
            engine.run(ScanRequest.for_channel(_CHANNEL_ID, 10))
        checker.probe_many.assert_not_called()


# ---------------------------------------------------------------------------
# Phase 3 - check and aggregation
# ---------------------------------------------------------------------------

class TestCheckAndAggregate:
    def test_statistics_match_links(self, api, discovery) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa"), _ref("bbbbbbbbbbb")]
        api.get_video_details.side_effect = _details_by_id(
            {
                "aaaaaaaaaaa": "https://ok.example/a https://gone.example/b",
                "bbbbbbbbbbb": "https://www.facebook.com/page https://dead.example/c",
            }
        )
        with respx.mock:
            respx.get("https://ok.example/a").mock(return_value=httpx.Response(200))
            respx.get("https://gone.example/b").mock(return_value=httpx.Response(404))
            respx.get("https://www.facebook.com/page").mock(return_value=httpx.Response(403))
            respx.get("https://dead.example/c").mock(side_effect=RuntimeError("boom"))
            with LinkHealthChecker(sleep=MagicMock()) as checker:
                engine = ScanOrchestrator(api, checker, discovery=discovery, clock=lambda: _SCANNED_AT)
                result = engine.run(ScanRequest.for_channel(_CHANNEL_ID, 10))

        links = [link for v in result.results for link in v.links]
        assert [(link.status, link.http_status_code) for link in links] == [
            (LinkStatus.WORKING, 200),
            (LinkStatus.BROKEN, 404),
            (LinkStatus.WARNING, 403),
            (LinkStatus.BROKEN, 0),
        ]
        stats = result.statistics
        assert stats.total_links == len(links) == 4
        assert stats.total_links == stats.working_links + stats.warning_links + stats.broken_links
        assert (stats.working_links, stats.warning_links, stats.broken_links) == (1, 1, 2)
        assert result.scanned_at == _SCANNED_AT

    def test_probe_concurrency_is_passed_to_checker(self, api, discovery, checker) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa")]
        api.get_video_details.return_value = _details("aaaaaaaaaaa", "https://a.example")
        engine = ScanOrchestrator(api, checker, discovery=discovery, probe_concurrency=4)

        engine.run(ScanRequest.for_channel(_CHANNEL_ID, 1))

        assert checker.probe_many.call_args.kwargs["concurrency"] == 4

    def test_wire_form(self, engine, api, discovery) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa")]
        api.get_video_details.return_value = _details("aaaaaaaaaaa", "https://a.example")

        data = engine.run(ScanRequest.for_channel(_CHANNEL_ID, 1)).to_dict()

        assert data["scannedVideos"] == 1
        assert data["videosWithLinks"] == 1
        assert data["scannedAt"] == _SCANNED_AT
        assert data["statistics"]["workingLinks"] == 1
        video = data["results"][0]
        assert video["videoId"] == "aaaaaaaaaaa"
        assert video["publishedAt"] == "2024-05-01T00:00:00Z"
        assert video["links"] == [
            {"url": "https://a.example", "status": "working", "httpStatusCode": 200}
        ]


# ---------------------------------------------------------------------------
# Progress and cancellation
# ---------------------------------------------------------------------------

class TestProgressAndCancellation:
    def test_progress_is_monotonic_and_ends_at_100(self, engine, api, discovery) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa"), _ref("bbbbbbbbbbb")]
        api.get_video_details.side_effect = _details_by_id(
            {"aaaaaaaaaaa": "https://a.example", "bbbbbbbbbbb": "https://b.example"}
        )
        events = []

        engine.run(ScanRequest.for_channel(_CHANNEL_ID, 2), progress=events.append)

        percents = [e.percent for e in events]
        assert percents == sorted(percents)
        assert percents[-1] == 100
        assert events[-1].phase == "done"
        phases = [e.phase for e in events]
        assert phases.index("collect") < phases.index("extract") < phases.index("check")
        assert any(e.phase == "collect" and e.percent == 10 for e in events)
        assert any(e.phase == "extract" and e.percent == 40 for e in events)

    def test_empty_scan_still_reports_completion(self, engine) -> None:
        events = []
        engine.run(ScanRequest.for_channel(_CHANNEL_ID, 2), progress=events.append)
        assert events[-1].percent == 100

    def test_cancel_between_videos(self, engine, api, discovery) -> None:
        discovery.list_videos.return_value = [_ref("aaaaaaaaaaa"), _ref("bbbbbbbbbbb")]
        api.get_video_details.return_value = _details("aaaaaaaaaaa", "https://a.example")
        cancel = threading.Event()

        def _progress(event) -> None:
            if event.phase == "extract":
                cancel.set()

        with pytest.raises(ScanCancelled):
            engine.run(
                ScanRequest.for_channel(_CHANNEL_ID, 2),
                progress=_progress,
                cancel_event=cancel,
            )
        assert api.get_video_details.call_count == 1

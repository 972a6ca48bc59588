"""Request, intermediate, and result types of a scan.

The wire form produced by ``to_dict`` uses camelCase keys, matching what the
HTTP layer and the result store exchange.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from linkguard.links.models import LinkProbeResult, LinkStatus
from linkguard.youtube.models import VideoRef

UNLIMITED = "unlimited"

PlanLimit = Optional[int]


def parse_plan_limit(value: Union[int, str, None]) -> PlanLimit:
    """Map the policy collaborator's value to ``int`` or ``None`` (unlimited)."""
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("", UNLIMITED):
            return None
        value = int(text)
    if value < 0:
        raise ValueError(f"Plan limit must be >= 0, got {value}")
    return int(value)


def enforce_count(requested_count: int, plan_limit: PlanLimit) -> int:
    """``min(requested_count, plan_limit)``, or *requested_count* when unlimited."""
    if plan_limit is None:
        return requested_count
    return min(requested_count, plan_limit)


@dataclass
class ScanRequest:
    """One inbound scan request: a channel or an explicit list of videos."""

    requested_count: int
    target_channel_id: Optional[str] = None
    video_urls: list[str] = field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    plan_limit: PlanLimit = None
    scans_remaining: Optional[int] = None

    def __post_init__(self) -> None:
        if bool(self.target_channel_id) == bool(self.video_urls):
            raise ValueError("Provide exactly one of target_channel_id or video_urls")

    @property
    def is_channel_scan(self) -> bool:
        return bool(self.target_channel_id)

    @property
    def enforced_count(self) -> int:
        return enforce_count(self.requested_count, self.plan_limit)

    @classmethod
    def for_channel(cls, channel: str, requested_count: int, **kwargs: Any) -> "ScanRequest":
        return cls(requested_count=requested_count, target_channel_id=channel, **kwargs)

    @classmethod
    def for_videos(cls, video_urls: list[str], **kwargs: Any) -> "ScanRequest":
        kwargs.setdefault("requested_count", len(video_urls))
        return cls(video_urls=list(video_urls), **kwargs)


@dataclass
class ScanStatistics:
    total_links: int = 0
    working_links: int = 0
    warning_links: int = 0
    broken_links: int = 0

    @classmethod
    def from_links(cls, links: Iterable[LinkProbeResult]) -> "ScanStatistics":
        stats = cls()
        for link in links:
            stats.total_links += 1
            if link.status is LinkStatus.WORKING:
                stats.working_links += 1
            elif link.status is LinkStatus.WARNING:
                stats.warning_links += 1
            else:
                stats.broken_links += 1
        return stats

    def to_dict(self) -> dict[str, int]:
        return {
            "totalLinks": self.total_links,
            "brokenLinks": self.broken_links,
            "warningLinks": self.warning_links,
            "workingLinks": self.working_links,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanStatistics":
        return cls(
            total_links=int(data.get("totalLinks", 0)),
            working_links=int(data.get("workingLinks", 0)),
            warning_links=int(data.get("warningLinks", 0)),
            broken_links=int(data.get("brokenLinks", 0)),
        )


@dataclass
class VideoScanResult:
    video_id: str
    video_title: str
    video_url: str
    links: list[LinkProbeResult] = field(default_factory=list)
    published_at: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "videoTitle": self.video_title,
            "videoUrl": self.video_url,
            "publishedAt": self.published_at,
            "links": [link.to_dict() for link in self.links],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VideoScanResult":
        return cls(
            video_id=data["videoId"],
            video_title=data.get("videoTitle", ""),
            video_url=data.get("videoUrl", ""),
            links=[LinkProbeResult.from_dict(link) for link in data.get("links", [])],
            published_at=data.get("publishedAt"),
        )


@dataclass
class ScanResult:
    scanned_videos: int
    videos_with_links: int
    statistics: ScanStatistics
    results: list[VideoScanResult]
    scanned_at: str
    requested_count: int = 0
    enforced_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "scannedVideos": self.scanned_videos,
            "videosWithLinks": self.videos_with_links,
            "statistics": self.statistics.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "scannedAt": self.scanned_at,
            "requestedCount": self.requested_count,
            "enforcedCount": self.enforced_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScanResult":
        return cls(
            scanned_videos=int(data.get("scannedVideos", 0)),
            videos_with_links=int(data.get("videosWithLinks", 0)),
            statistics=ScanStatistics.from_dict(data.get("statistics", {})),
            results=[VideoScanResult.from_dict(r) for r in data.get("results", [])],
            scanned_at=data.get("scannedAt", ""),
            requested_count=int(data.get("requestedCount", 0)),
            enforced_count=int(data.get("enforcedCount", 0)),
        )


@dataclass
class PendingVideo:
    """A Phase 2 survivor: a video with at least one extracted link."""

    ref: VideoRef
    title: str
    published_at: Optional[str]
    links: list[str]


@dataclass
class ScanJob:
    """Request-scoped working state; discarded when ``run`` returns."""

    requested_count: int
    enforced_count: int
    videos: list[VideoRef] = field(default_factory=list)
    pending: list[PendingVideo] = field(default_factory=list)
    results: list[VideoScanResult] = field(default_factory=list)
    statistics: ScanStatistics = field(default_factory=ScanStatistics)


@dataclass(frozen=True)
class ScanProgress:
    """Progress notification emitted while a scan runs."""

    phase: str
    percent: int
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"phase": self.phase, "percent": self.percent, "message": self.message}

"""Data models for the metadata-API side of the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as returned by the API (``...Z`` suffix)."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class VideoRef:
    """One entry of a channel's upload feed."""

    external_id: str
    title: str
    published_at: Optional[str]
    url: str

    @classmethod
    def from_playlist_item(cls, item: dict[str, Any]) -> "VideoRef":
        snippet = item.get("snippet", {})
        video_id = (
            snippet.get("resourceId", {}).get("videoId")
            or item.get("contentDetails", {}).get("videoId", "")
        )
        return cls(
            external_id=video_id,
            title=snippet.get("title", ""),
            published_at=snippet.get("publishedAt"),
            url=WATCH_URL.format(video_id=video_id),
        )

    @classmethod
    def from_video_id(cls, video_id: str) -> "VideoRef":
        """Build a bare reference for an explicitly requested video."""
        return cls(
            external_id=video_id,
            title="",
            published_at=None,
            url=WATCH_URL.format(video_id=video_id),
        )


@dataclass(frozen=True)
class VideoDetails:
    """The subset of a ``videos`` resource the scanner needs."""

    external_id: str
    title: str
    description: str
    published_at: Optional[str]

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "VideoDetails":
        snippet = item.get("snippet") or {}
        video_id = item.get("id", "")
        return cls(
            external_id=video_id,
            title=snippet.get("title") or f"Video {video_id}",
            description=snippet.get("description") or "",
            published_at=snippet.get("publishedAt"),
        )


@dataclass(frozen=True)
class ChannelInfo:
    """Channel identity plus the id of its uploads playlist."""

    channel_id: str
    title: str
    uploads_playlist_id: Optional[str]

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "ChannelInfo":
        related = item.get("contentDetails", {}).get("relatedPlaylists", {})
        return cls(
            channel_id=item.get("id", ""),
            title=item.get("snippet", {}).get("title", ""),
            uploads_playlist_id=related.get("uploads"),
        )

"""Data models for link extraction and probing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class LinkStatus(str, Enum):
    WORKING = "working"
    WARNING = "warning"
    BROKEN = "broken"


@dataclass(frozen=True)
class ExtractedLink:
    """One URL found in a video description."""

    source_video_id: str
    raw_url: str


@dataclass(frozen=True)
class LinkProbeResult:
    """Outcome of probing one URL.

    ``http_status_code`` is ``0`` when no response was received at all.
    """

    url: str
    status: LinkStatus
    http_status_code: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "url": self.url,
            "status": self.status.value,
            "httpStatusCode": self.http_status_code,
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LinkProbeResult":
        return cls(
            url=data["url"],
            status=LinkStatus(data["status"]),
            http_status_code=int(data.get("httpStatusCode", 0)),
            error=data.get("error"),
        )

"""Dataclass models representing DB rows.

Plain Python objects, not ORM models.
"""

from __future__ import annotations

from dataclasses import dataclass

from linkguard.scan.models import ScanResult, ScanStatistics


@dataclass
class StoredScan:
    id: str
    scan_key: str
    target: str
    statistics: ScanStatistics
    scanned_videos: int
    videos_with_links: int
    scanned_at: str
    created_at: int
    result: ScanResult | None = None

    def summary(self) -> dict:
        """Row shape used by list views (no per-video payload)."""
        return {
            "id": self.id,
            "key": self.scan_key,
            "target": self.target,
            "scannedVideos": self.scanned_videos,
            "videosWithLinks": self.videos_with_links,
            "statistics": self.statistics.to_dict(),
            "scannedAt": self.scanned_at,
            "createdAt": self.created_at,
        }

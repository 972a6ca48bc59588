"""Scan orchestration: request → collect → extract → check → result."""

from linkguard.scan.models import (
    ScanProgress,
    ScanRequest,
    ScanResult,
    ScanStatistics,
    VideoScanResult,
    parse_plan_limit,
)
from linkguard.scan.orchestrator import (
    ScanOrchestrator,
    build_credential_pool,
    build_orchestrator,
)

__all__ = [
    "ScanOrchestrator",
    "ScanProgress",
    "ScanRequest",
    "ScanResult",
    "ScanStatistics",
    "VideoScanResult",
    "build_credential_pool",
    "build_orchestrator",
    "parse_plan_limit",
]

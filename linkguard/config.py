"""Centralised settings for the LinkGuard scanning engine.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


def _split_keys(raw: str) -> List[str]:
    """Split a comma-separated key list, dropping blanks."""
    return [k.strip() for k in raw.split(",") if k.strip()]


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("LINKGUARD_WORKSPACE", Path.home() / ".linkguard_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database holding scan results."""
        return self.workspace_dir / "scans.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Metadata API (YouTube Data API v3)
    # ------------------------------------------------------------------
    youtube_api_keys: List[str] = field(
        default_factory=lambda: _split_keys(
            os.environ.get("YOUTUBE_API_KEYS")
            or os.environ.get("YOUTUBE_API_KEY", "")
        )
    )
    youtube_api_base: str = field(
        default_factory=lambda: os.environ.get(
            "YOUTUBE_API_BASE", "https://www.googleapis.com/youtube/v3"
        )
    )
    api_quota_limit: int = field(
        default_factory=lambda: int(os.environ.get("YOUTUBE_QUOTA_LIMIT", "10000"))
    )
    api_quota_reset_hours: float = field(
        default_factory=lambda: float(os.environ.get("YOUTUBE_QUOTA_RESET_HOURS", "24"))
    )
    api_timeout: float = field(
        default_factory=lambda: float(os.environ.get("YOUTUBE_API_TIMEOUT", "20.0"))
    )
    api_max_attempts: int = field(
        default_factory=lambda: int(os.environ.get("YOUTUBE_API_MAX_ATTEMPTS", "2"))
    )
    api_retry_delay: float = field(
        default_factory=lambda: float(os.environ.get("YOUTUBE_API_RETRY_DELAY", "1.0"))
    )

    # ------------------------------------------------------------------
    # Channel discovery
    # ------------------------------------------------------------------
    discovery_page_size: int = field(
        default_factory=lambda: int(os.environ.get("DISCOVERY_PAGE_SIZE", "50"))
    )

    # ------------------------------------------------------------------
    # Link probing
    # ------------------------------------------------------------------
    probe_timeout: float = field(
        default_factory=lambda: float(os.environ.get("PROBE_TIMEOUT", "15.0"))
    )
    probe_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("PROBE_MAX_RETRIES", "2"))
    )
    probe_retry_delay: float = field(
        default_factory=lambda: float(os.environ.get("PROBE_RETRY_DELAY", "2.0"))
    )
    # 1 keeps the sequential baseline; raise it to probe links of a video
    # through a bounded thread pool.
    probe_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("PROBE_CONCURRENCY", "1"))
    )
    policy_file: Optional[Path] = field(
        default_factory=lambda: (
            Path(os.environ["LINKGUARD_POLICY_FILE"])
            if os.environ.get("LINKGUARD_POLICY_FILE")
            else None
        )
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton - import this everywhere:
#   from linkguard.config import settings
settings = Settings()

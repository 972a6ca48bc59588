"""Map engine errors onto HTTP responses."""

from __future__ import annotations

import math
from typing import Optional

from fastapi import HTTPException

from linkguard.config import settings
from linkguard.errors import (
    ChannelNotFound,
    LinkGuardError,
    PlanLimitExceeded,
    QuotaExhausted,
    ScanCancelled,
    TransientNetworkError,
    UpstreamAPIError,
)
from linkguard.youtube.credentials import CredentialPool

_STATUS: list[tuple[type[Exception], int]] = [
    (ChannelNotFound, 404),
    (PlanLimitExceeded, 403),
    (QuotaExhausted, 503),
    (UpstreamAPIError, 502),
    (TransientNetworkError, 502),
    (ScanCancelled, 499),
    (ValueError, 422),
]


def status_for(exc: Exception) -> int:
    for exc_type, status in _STATUS:
        if isinstance(exc, exc_type):
            return status
    return 500


def to_http_exception(
    exc: LinkGuardError | ValueError,
    pool: Optional[CredentialPool] = None,
) -> HTTPException:
    """Build the ``HTTPException`` for *exc*.

    ``QuotaExhausted`` carries a ``Retry-After`` header derived from the
    pool's rollover window when a *pool* is given.
    """
    status = status_for(exc)
    headers = None
    if isinstance(exc, QuotaExhausted):
        window = settings.api_quota_reset_hours * 3600
        wait = pool.seconds_until_reset(window) if pool is not None else window
        headers = {"Retry-After": str(max(1, math.ceil(wait)))}
    return HTTPException(status_code=status, detail=str(exc), headers=headers)

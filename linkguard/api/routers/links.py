"""Ad-hoc link checks outside of a scan.

Routes
------
GET  /links/check?url=...   Probe one URL
POST /links/check           Body: {"urls": [...]}; probe up to 100 URLs in order
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from linkguard.api.deps import get_checker
from linkguard.config import settings
from linkguard.links.checker import LinkHealthChecker
from linkguard.scan.models import ScanStatistics

router = APIRouter()

MAX_BATCH = 100


class LinkBatch(BaseModel):
    urls: list[str] = Field(min_length=1, max_length=MAX_BATCH)


@router.get("/check")
def check_link(
    url: str = Query(..., min_length=1),
    checker: LinkHealthChecker = Depends(get_checker),
) -> dict[str, Any]:
    return checker.safe_probe(url).to_dict()


@router.post("/check")
def check_links(
    body: LinkBatch,
    checker: LinkHealthChecker = Depends(get_checker),
) -> dict[str, Any]:
    """Probe every URL; results keep the request order."""
    results = checker.probe_many(body.urls, concurrency=settings.probe_concurrency)
    return {
        "results": [r.to_dict() for r in results],
        "statistics": ScanStatistics.from_links(results).to_dict(),
    }

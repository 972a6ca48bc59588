"""Scan endpoints, including a Server-Sent Events (SSE) progress stream.

Routes
------
POST /scans/channel          Scan a channel's uploads; returns the result
POST /scans/channel/stream   Same, streamed as SSE progress events
POST /scans/videos           Scan an explicit list of video URLs
GET  /scans?key=...          Stored scan summaries, newest first
GET  /scans/{scan_id}        One stored scan with its full result

Every finished scan is stored under the request's ``key``.

SSE event format
----------------
Each event is a JSON-encoded object on the ``data:`` line::

    data: {"event": "progress", "phase": "extract", "percent": 25, "message": "..."}

    data: {"event": "done", "scanId": "...", "result": {...}}

    data: {"event": "error", "status": 404, "detail": "..."}
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, AsyncIterator, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from linkguard.api.deps import EngineFactory, get_engine_factory
from linkguard.api.errors import status_for, to_http_exception
from linkguard.db.scans import get_scan, list_scans, save_scan
from linkguard.errors import LinkGuardError, ScanCancelled
from linkguard.scan.models import ScanRequest, ScanResult, parse_plan_limit

logger = logging.getLogger(__name__)

router = APIRouter()

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="scan")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class _PlanFields(BaseModel):
    # int, or "unlimited"; omitted means unlimited.
    plan_limit: Optional[Union[int, str]] = None
    scans_remaining: Optional[int] = None
    key: str = "default"


class ChannelScanBody(_PlanFields):
    channel: str = Field(min_length=1)
    requested_count: int = Field(ge=1)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class VideoScanBody(_PlanFields):
    video_urls: list[str] = Field(min_length=1)
    requested_count: Optional[int] = Field(default=None, ge=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _channel_request(body: ChannelScanBody) -> ScanRequest:
    try:
        return ScanRequest.for_channel(
            body.channel,
            body.requested_count,
            start_date=body.start_date.isoformat() if body.start_date else None,
            end_date=body.end_date.isoformat() if body.end_date else None,
            plan_limit=parse_plan_limit(body.plan_limit),
            scans_remaining=body.scans_remaining,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _videos_request(body: VideoScanBody) -> ScanRequest:
    kwargs: dict[str, Any] = {}
    if body.requested_count is not None:
        kwargs["requested_count"] = body.requested_count
    try:
        return ScanRequest.for_videos(
            body.video_urls,
            plan_limit=parse_plan_limit(body.plan_limit),
            scans_remaining=body.scans_remaining,
            **kwargs,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _run_scan(request: Request, factory: EngineFactory, scan_request: ScanRequest) -> ScanResult:
    engine = factory()
    try:
        return engine.run(scan_request)
    except (LinkGuardError, ValueError) as exc:
        logger.warning("Scan failed: %s", exc)
        raise to_http_exception(exc, request.app.state.pool) from exc
    finally:
        engine.close()


def _stored_response(scan_id: str, result: ScanResult) -> dict[str, Any]:
    return {"scanId": scan_id, **result.to_dict()}


def _sse(payload: dict[str, Any]) -> str:
    """Format a payload dict as a single SSE ``data:`` line."""
    return f"data: {json.dumps(payload)}\n\n"


# ---------------------------------------------------------------------------
# Background runner
# ---------------------------------------------------------------------------

def _run_streamed_scan(
    factory: EngineFactory,
    scan_request: ScanRequest,
    conn: sqlite3.Connection,
    key: str,
    target: str,
    cancel_event: threading.Event,
    queue: "asyncio.Queue[str | None]",
    loop: asyncio.AbstractEventLoop,
) -> None:
    """Run one scan in a worker thread, pushing SSE strings into *queue*.

    A ``None`` sentinel is enqueued when the thread finishes so the async
    generator knows to stop.
    """
    def _put(payload: dict[str, Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, _sse(payload))

    engine = factory()
    try:
        result = engine.run(
            scan_request,
            progress=lambda p: _put({"event": "progress", **p.to_dict()}),
            cancel_event=cancel_event,
        )
        stored = save_scan(conn, key, target, result)
        _put({"event": "done", "scanId": stored.id, "result": result.to_dict()})
    except ScanCancelled:
        logger.info("Streamed scan of %s cancelled", target)
    except (LinkGuardError, ValueError) as exc:
        logger.warning("Streamed scan of %s failed: %s", target, exc)
        _put({"event": "error", "status": status_for(exc), "detail": str(exc)})
    except Exception as exc:
        logger.exception("Streamed scan of %s crashed", target)
        _put({"event": "error", "status": 500, "detail": str(exc)})
    finally:
        engine.close()
        loop.call_soon_threadsafe(queue.put_nowait, None)  # sentinel


async def _scan_sse_generator(
    factory: EngineFactory,
    scan_request: ScanRequest,
    conn: sqlite3.Connection,
    key: str,
    target: str,
) -> AsyncIterator[str]:
    """Yield SSE strings for the duration of a scan.

    If the client goes away before the scan ends, the scan is cancelled.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    cancel_event = threading.Event()

    future = loop.run_in_executor(
        _executor,
        _run_streamed_scan,
        factory,
        scan_request,
        conn,
        key,
        target,
        cancel_event,
        queue,
        loop,
    )

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        cancel_event.set()
        await asyncio.shield(future)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/channel")
def scan_channel(
    body: ChannelScanBody,
    request: Request,
    factory: EngineFactory = Depends(get_engine_factory),
) -> dict[str, Any]:
    """Scan a channel's most recent uploads and store the result."""
    result = _run_scan(request, factory, _channel_request(body))
    stored = save_scan(request.app.state.db, body.key, body.channel, result)
    return _stored_response(stored.id, result)


@router.post("/channel/stream")
async def scan_channel_stream(
    body: ChannelScanBody,
    request: Request,
    factory: EngineFactory = Depends(get_engine_factory),
) -> StreamingResponse:
    """Scan a channel and stream progress as SSE.

    Request validation errors are returned as ordinary 422 responses; errors
    raised once the scan has started arrive as an ``error`` event.
    """
    scan_request = _channel_request(body)
    return StreamingResponse(
        _scan_sse_generator(
            factory, scan_request, request.app.state.db, body.key, body.channel
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )


@router.post("/videos")
def scan_videos(
    body: VideoScanBody,
    request: Request,
    factory: EngineFactory = Depends(get_engine_factory),
) -> dict[str, Any]:
    """Scan an explicit list of videos and store the result."""
    result = _run_scan(request, factory, _videos_request(body))
    target = f"{len(body.video_urls)} video(s)"
    stored = save_scan(request.app.state.db, body.key, target, result)
    return _stored_response(stored.id, result)


@router.get("")
def list_scans_endpoint(
    request: Request,
    key: Optional[str] = None,
    limit: int = Query(20, ge=1, le=200),
) -> list[dict[str, Any]]:
    return [s.summary() for s in list_scans(request.app.state.db, key, limit)]


@router.get("/{scan_id}")
def get_scan_endpoint(scan_id: str, request: Request) -> dict[str, Any]:
    stored = get_scan(request.app.state.db, scan_id)
    if stored is None or stored.result is None:
        raise HTTPException(status_code=404, detail=f"Scan not found: {scan_id}")
    return {
        "id": stored.id,
        "key": stored.scan_key,
        "target": stored.target,
        **stored.result.to_dict(),
    }

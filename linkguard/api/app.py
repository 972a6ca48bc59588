"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``), initialises the schema, and builds
the credential pool (``request.app.state.pool``).  The pool lives as long as
the app so quota accounting carries over between requests.  On shutdown the
connection is closed.

Routers
-------
    /scans        Channel and video-list scans, stored results, SSE stream
    /links        Ad-hoc link checks
    /credentials  Credential pool status
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linkguard.db import get_connection, init_db
from linkguard.log import configure_logging
from linkguard.scan.orchestrator import build_credential_pool

from linkguard.api.routers import credentials as credentials_router
from linkguard.api.routers import links as links_router
from linkguard.api.routers import scans as scans_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB and build the credential pool on startup."""
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    app.state.pool = build_credential_pool()
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    configure_logging()
    app = FastAPI(
        title="LinkGuard API",
        description=(
            "Scan YouTube channels and videos for broken links in their "
            "descriptions, check individual links, and inspect the API "
            "credential pool."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scans_router.router, prefix="/scans", tags=["scans"])
    app.include_router(links_router.router, prefix="/links", tags=["links"])
    app.include_router(
        credentials_router.router, prefix="/credentials", tags=["credentials"]
    )

    return app


# Module-level instance used by uvicorn:
#   uvicorn linkguard.api.app:app --reload
app = create_app()

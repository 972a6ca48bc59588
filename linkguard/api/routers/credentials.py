"""Credential pool status.

Routes
------
GET  /credentials         Pool summary with masked keys
POST /credentials/reset   Re-activate every credential (manual quota rollover)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("")
def credentials_status(request: Request) -> dict[str, Any]:
    """Return the pool status; raw keys are never included."""
    return request.app.state.pool.status()


@router.post("/reset")
def reset_credentials(request: Request) -> dict[str, Any]:
    pool = request.app.state.pool
    pool.reset_all()
    return pool.status()

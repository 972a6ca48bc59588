"""Request-scoped dependencies shared by the routers.

Overridable through ``app.dependency_overrides`` in tests.
"""

from __future__ import annotations

from typing import Callable, Iterator

from fastapi import Request

from linkguard.links.checker import LinkHealthChecker
from linkguard.scan.orchestrator import ScanOrchestrator, build_orchestrator

EngineFactory = Callable[[], ScanOrchestrator]


def get_engine_factory(request: Request) -> EngineFactory:
    """Return a factory that wires an orchestrator around the app's pool.

    A factory rather than an instance, so streaming handlers can build the
    engine inside their worker thread and close it when the scan ends.
    """
    pool = request.app.state.pool
    return lambda: build_orchestrator(pool)


def get_checker() -> Iterator[LinkHealthChecker]:
    checker = LinkHealthChecker()
    try:
        yield checker
    finally:
        checker.close()

"""Reusable health-check router.

``/health/live`` answers as long as the process is serving requests.
``/health/ready`` runs every registered probe with a timeout and reports
per-probe status and latency; any failing probe turns the answer into a 503.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, Response, status

HealthCheck = Callable[[], Awaitable[bool]]

logger = structlog.get_logger()


async def _run_probe(check: HealthCheck, timeout: float) -> tuple[str, float]:
    started = time.perf_counter()
    try:
        ok = await asyncio.wait_for(check(), timeout=timeout)
        outcome = "ok" if ok else "failing"
    except asyncio.TimeoutError:
        outcome = "timeout"
    except Exception as exc:
        outcome = f"error: {exc}"
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
    return outcome, elapsed_ms


def create_health_router(
    readiness_checks: list[HealthCheck] | None = None,
    *,
    probe_timeout: float = 2.0,
) -> APIRouter:
    """Build a health router.

    Args:
        readiness_checks: Async callables returning True when the dependency is usable.
        probe_timeout: Seconds each probe may take before it counts as failed.
    """
    router = APIRouter(prefix="/health", tags=["health"])
    checks = list(readiness_checks or [])

    @router.get("/live", summary="Liveness probe")
    async def liveness() -> dict[str, str]:
        return {"status": "alive"}

    @router.get("/ready", summary="Readiness probe")
    async def readiness(response: Response) -> dict[str, Any]:
        results: dict[str, dict[str, Any]] = {}

        for check in checks:
            name = getattr(check, "__name__", str(check))
            outcome, elapsed_ms = await _run_probe(check, probe_timeout)
            results[name] = {"status": outcome, "latency_ms": elapsed_ms}

        failing = [name for name, r in results.items() if r["status"] != "ok"]
        if failing:
            logger.warning("readiness_probe_failed", probes=failing)
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

        return {"status": "unavailable" if failing else "ready", "checks": results}

    return router

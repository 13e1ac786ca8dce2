from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from promo_allocator.storage.base import KeyValueStore
from promo_allocator.storage.errors import StorageError

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)


def _ok_check(extra: dict[str, Any] | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"status": "ok"}
    if extra:
        payload.update(extra)
    return payload


def _failed_check(error: str) -> dict[str, str]:
    return {"status": "failed", "error": error}


async def _check_storage(store: KeyValueStore) -> dict[str, Any]:
    try:
        alive = await store.ping()
    except StorageError as exc:
        logger.warning("health_storage_check_failed", error=str(exc))
        return _failed_check("storage_unavailable")
    if not alive:
        return _failed_check("storage_unavailable")
    return _ok_check()


async def _check_code_pool(request: Request) -> dict[str, Any]:
    stats = await request.app.state.code_manager.get_code_database_stats()
    return _ok_check({"available_count": stats.available_count})


async def _collect_checks(request: Request) -> dict[str, dict[str, Any]]:
    return {"storage": await _check_storage(request.app.state.store)}


def _all_checks_ok(checks: dict[str, dict[str, Any]]) -> bool:
    return all(check.get("status") == "ok" for check in checks.values())


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    checks = await _collect_checks(request)
    if _all_checks_ok(checks):
        checks["code_pool"] = await _check_code_pool(request)
    is_healthy = _all_checks_ok(checks)
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ok" if is_healthy else "degraded",
            "checks": checks,
        },
    )


@router.get("/ready")
async def ready(request: Request) -> JSONResponse:
    checks = await _collect_checks(request)
    is_ready = _all_checks_ok(checks)
    return JSONResponse(
        status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": checks,
        },
    )

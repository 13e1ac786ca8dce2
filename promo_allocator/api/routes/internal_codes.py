from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, HTTPException, Request

from promo_allocator.api.routes.internal_codes_models import (
    AssignmentResponse,
    AssignRequest,
    CodeBatchRequest,
    LedgerResponse,
    MarkUsedRequest,
    OperationResponse,
    PoolResponse,
    StatsResponse,
    UserAssignmentsResponse,
    assignment_as_response,
    ledger_entry_as_response,
    pool_entry_as_response,
    stats_as_response,
)
from promo_allocator.codes.service import PromoCodeManager
from promo_allocator.core.config import get_settings
from promo_allocator.services.internal_auth import (
    extract_client_ip,
    is_client_ip_allowed,
    is_internal_request_authenticated,
)

router = APIRouter(prefix="/internal/codes", tags=["internal", "codes"])
logger = structlog.get_logger(__name__)


def _assert_internal_access(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_codes_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_internal_request_authenticated(request, expected_token=settings.internal_api_token):
        logger.warning(
            "internal_codes_auth_failed",
            reason="invalid_credentials",
            client_ip=client_ip,
        )
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _get_manager(request: Request) -> PromoCodeManager:
    return request.app.state.code_manager


def _storage_unavailable() -> HTTPException:
    return HTTPException(status_code=503, detail={"code": "E_PROMO_STORAGE_UNAVAILABLE"})


def _resolve_batch(payload: CodeBatchRequest) -> list[str]:
    codes = payload.resolve_codes()
    if not codes:
        raise HTTPException(status_code=422, detail={"code": "E_PROMO_CODES_EMPTY"})
    return codes


@router.post("/initialize", response_model=OperationResponse)
async def initialize_codes(payload: CodeBatchRequest, request: Request) -> OperationResponse:
    _assert_internal_access(request)
    codes = _resolve_batch(payload)

    manager = _get_manager(request)
    if not await manager.initialize_code_database(codes):
        raise _storage_unavailable()

    logger.info("internal_codes_initialized", codes_received=len(codes))
    return OperationResponse(
        success=True,
        stats=stats_as_response(await manager.get_code_database_stats()),
    )


@router.post("/add", response_model=OperationResponse)
async def add_codes(payload: CodeBatchRequest, request: Request) -> OperationResponse:
    _assert_internal_access(request)
    codes = _resolve_batch(payload)

    manager = _get_manager(request)
    if not await manager.add_codes_to_database(codes):
        raise _storage_unavailable()

    return OperationResponse(
        success=True,
        stats=stats_as_response(await manager.get_code_database_stats()),
    )


@router.get("/available", response_model=PoolResponse)
async def list_available_codes(request: Request) -> PoolResponse:
    _assert_internal_access(request)
    entries = await _get_manager(request).get_available_codes()
    return PoolResponse(
        count=len(entries),
        codes=[pool_entry_as_response(entry) for entry in entries],
    )


@router.get("/assigned", response_model=LedgerResponse)
async def list_assigned_codes(request: Request) -> LedgerResponse:
    _assert_internal_access(request)
    entries = await _get_manager(request).get_assigned_codes()
    return LedgerResponse(
        count=len(entries),
        entries=[ledger_entry_as_response(entry) for entry in entries],
    )


@router.get("/stats", response_model=StatsResponse)
async def get_code_stats(request: Request) -> StatsResponse:
    _assert_internal_access(request)
    return stats_as_response(await _get_manager(request).get_code_database_stats())


@router.post("/clear", response_model=OperationResponse)
async def clear_codes(request: Request) -> OperationResponse:
    _assert_internal_access(request)
    if not await _get_manager(request).clear_all_code_data():
        raise _storage_unavailable()
    return OperationResponse(success=True)


@router.post("/assign", response_model=AssignmentResponse)
async def assign_code(payload: AssignRequest, request: Request) -> AssignmentResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    expires_at = payload.expires_at
    if expires_at is not None:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at < now_utc:
            raise HTTPException(status_code=422, detail={"code": "E_PROMO_EXPIRY_INVALID"})

    assignment = await _get_manager(request).assign_promo_code_to_user(
        payload.user_id,
        payload.offer_id,
        expires_at,
        now_utc=now_utc,
    )
    if assignment is None:
        raise HTTPException(status_code=409, detail={"code": "E_PROMO_POOL_EXHAUSTED"})

    return assignment_as_response(assignment, now_utc=now_utc)


@router.post("/mark-used", response_model=OperationResponse)
async def mark_code_used(payload: MarkUsedRequest, request: Request) -> OperationResponse:
    _assert_internal_access(request)
    marked = await _get_manager(request).mark_user_promo_code_as_used(
        payload.user_id,
        payload.offer_id,
    )
    if not marked:
        raise HTTPException(status_code=404, detail={"code": "E_PROMO_NOT_FOUND"})
    return OperationResponse(success=True)


@router.get("/users/{user_id}", response_model=UserAssignmentsResponse)
async def list_user_codes(user_id: str, request: Request) -> UserAssignmentsResponse:
    _assert_internal_access(request)
    now_utc = datetime.now(timezone.utc)
    assignments = await _get_manager(request).get_all_user_promo_codes(user_id)
    return UserAssignmentsResponse(
        user_id=user_id,
        assignments=[
            assignment_as_response(assignment, now_utc=now_utc)
            for assignment in sorted(assignments, key=lambda item: item.assigned_at)
        ],
    )


@router.get("/users/{user_id}/offers/{offer_id}", response_model=AssignmentResponse)
async def get_user_code_for_offer(
    user_id: str,
    offer_id: str,
    request: Request,
) -> AssignmentResponse:
    _assert_internal_access(request)
    assignment = await _get_manager(request).get_user_promo_code_for_offer(user_id, offer_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail={"code": "E_PROMO_NOT_FOUND"})
    return assignment_as_response(assignment, now_utc=datetime.now(timezone.utc))

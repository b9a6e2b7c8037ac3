"""Admin API routes -- signup review, approval, analytics.

Every route except OPTIONS requires the admin bearer secret and sits behind the admin gate,
which counts the 401s returned here and clears the count on a 200.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from starlette.concurrency import run_in_threadpool

from funnel.application.analytics_service import aggregate_page_views, parse_days, window_start
from funnel.application.approval_service import ApprovalService
from funnel.domain.signup import SignupValidationError, parse_approval_ids
from funnel.infrastructure.auth.dependencies import require_admin
from funnel.infrastructure.repositories.supabase_repository import (
    DataStoreError,
    DataStoreNotConfigured,
    PageViewRepository,
    SignupRepository,
    SupabaseClient,
    shared_client,
)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

# OPTIONS is answered without credentials; the admin gate still runs its block check.
preflight_router = APIRouter(prefix="/api/admin", tags=["admin"])

log = logging.getLogger("funnel.routes.admin")

_signup_repo = None
_page_view_repo = None


def init_admin_routes(signup_repo=None, page_view_repo=None):
    """Inject repositories; when left as None they are built from env per request."""
    global _signup_repo, _page_view_repo
    _signup_repo = signup_repo
    _page_view_repo = page_view_repo


def _config_error() -> HTTPException:
    return HTTPException(status_code=500, detail="Server configuration error")


def _signups() -> SignupRepository:
    if _signup_repo is not None:
        return _signup_repo
    try:
        return SignupRepository(shared_client())
    except DataStoreNotConfigured:
        log.error("Missing data store config: %s", SupabaseClient.describe_config())
        raise _config_error()


def _page_views() -> PageViewRepository:
    if _page_view_repo is not None:
        return _page_view_repo
    try:
        return PageViewRepository(shared_client())
    except DataStoreNotConfigured:
        log.error("Missing data store config: %s", SupabaseClient.describe_config())
        raise _config_error()


# ---------------------------------------------------------------------------
# Signups
# ---------------------------------------------------------------------------

@router.get("/signups")
def api_admin_signups():
    """Return every signup, newest first."""
    repo = _signups()
    try:
        signups = repo.list_all()
    except DataStoreError:
        raise HTTPException(status_code=500, detail="Failed to fetch signups")
    return {"signups": signups}


# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------

@router.post("/approve")
async def api_admin_approve(request: Request):
    """Approve up to 50 signups by id and send invite emails.

    Body: ``{"ids": ["<uuid>", ...]}``. The body is parsed by hand so that
    credentials are checked before any payload validation.
    """
    repo = _signups()

    raw = await request.body()
    try:
        body = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    try:
        ids = parse_approval_ids(body)
    except SignupValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    service = ApprovalService(repo)
    results = await run_in_threadpool(service.approve_all, ids)
    approved = sum(1 for r in results if r.approved)
    log.info("Approval batch: %d/%d approved", approved, len(results))
    return {"results": [r.model_dump() for r in results]}


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

@router.get("/analytics")
def api_admin_analytics(days: Optional[str] = Query(None)):
    """Aggregated page-view stats for the last ``days`` days (1..90, default 30)."""
    repo = _page_views()
    window = parse_days(days)
    since = window_start(window).isoformat()
    try:
        views = repo.list_since(since)
    except DataStoreError:
        raise HTTPException(status_code=500, detail="Failed to fetch analytics")
    return aggregate_page_views(views, window)


# ---------------------------------------------------------------------------
# Pre-flight
# ---------------------------------------------------------------------------

@preflight_router.options("/{path:path}", include_in_schema=False)
def api_admin_options(path: str):
    return Response(status_code=204)

"""Page-view beacon. Never fails the caller: tracking must not break the site."""
import json
import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from funnel.domain.page_view import PageView, detect_device
from funnel.infrastructure.repositories.supabase_repository import (
    DataStoreError,
    DataStoreNotConfigured,
    PageViewRepository,
    shared_client,
)

router = APIRouter(prefix="/api", tags=["track"])

log = logging.getLogger("funnel.routes.track")

COUNTRY_HEADER = "CF-IPCountry"

_page_view_repo = None


def init_track_routes(page_view_repo=None):
    global _page_view_repo
    _page_view_repo = page_view_repo


def _ok() -> PlainTextResponse:
    return PlainTextResponse("ok", status_code=200)


@router.post("/track", response_class=PlainTextResponse)
async def api_track(request: Request):
    """Record ``{path, referrer?}`` with country and device type, no IP."""
    repo = _page_view_repo
    if repo is None:
        try:
            repo = PageViewRepository(shared_client())
        except DataStoreNotConfigured:
            return _ok()

    try:
        body = json.loads(await request.body())
    except ValueError:
        return _ok()
    if not isinstance(body, dict):
        return _ok()

    device = detect_device(request.headers.get("User-Agent"))
    if device is None:
        return _ok()

    view = PageView.from_beacon(body, request.headers.get(COUNTRY_HEADER), device)
    try:
        await run_in_threadpool(repo.insert, view.to_row())
    except DataStoreError as exc:
        log.warning("Page view not recorded: %s", exc)

    return _ok()


@router.options("/track", include_in_schema=False)
def api_track_options():
    return Response(status_code=204)

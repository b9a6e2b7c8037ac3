"""Public signup route -- store the lead, send the welcome email."""
import json
import logging

from fastapi import APIRouter, HTTPException, Request, Response
from starlette.concurrency import run_in_threadpool

from funnel.domain.signup import Signup, SignupValidationError
from funnel.infrastructure.auth.email_sender import (
    EmailDeliveryError,
    email_enabled,
    send_welcome_email,
)
from funnel.infrastructure.repositories.supabase_repository import (
    DataStoreError,
    DataStoreNotConfigured,
    DuplicateRowError,
    SignupRepository,
    SupabaseClient,
    shared_client,
)

router = APIRouter(prefix="/api", tags=["signup"])

log = logging.getLogger("funnel.routes.signup")

_signup_repo = None


def init_signup_routes(signup_repo=None):
    global _signup_repo
    _signup_repo = signup_repo


def _signups() -> SignupRepository:
    if _signup_repo is not None:
        return _signup_repo
    try:
        return SignupRepository(shared_client())
    except DataStoreNotConfigured:
        log.error("Missing data store config: %s", SupabaseClient.describe_config())
        raise HTTPException(
            status_code=500,
            detail="Server configuration error: missing environment variables",
        )


def _send_welcome(email: str) -> None:
    try:
        send_welcome_email(email)
    except EmailDeliveryError as exc:
        log.error("Welcome email to %s failed: %s", email, exc)


@router.post("/signup", status_code=201)
async def api_signup(request: Request):
    """Create a signup. Body: ``{email, name?, terms_accepted}``."""
    try:
        body = json.loads(await request.body())
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON")

    try:
        signup = Signup.from_form(body)
    except SignupValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    repo = _signups()
    try:
        await run_in_threadpool(repo.insert, signup.to_row())
    except DuplicateRowError:
        raise HTTPException(status_code=409, detail="This email already has an account")
    except DataStoreError as exc:
        raise HTTPException(status_code=500, detail="Could not save signup: " + exc.body[:200])

    log.info("New signup stored for %s", signup.email)

    if email_enabled():
        await run_in_threadpool(_send_welcome, signup.address)

    return {"ok": True, "message": "Account created."}


@router.options("/signup", include_in_schema=False)
def api_signup_options():
    return Response(status_code=204)

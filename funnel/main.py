"""Entry point. Wires repositories and the admin gate into the API.

Attempt store strategy:
  - If REDIS_URL is set  -> Redis, shared by all workers.
  - Otherwise            -> process-local memory (development only).

Middleware order, outermost first: admin gate, admin security headers, CORS.
The gate sits outside CORS so admin pre-flights still hit the block check,
and the security headers wrap CORS so pre-flight answers carry them too.
"""
import logging
import os

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_DIR = os.path.dirname(BASE_DIR)
load_dotenv(os.path.join(PROJECT_DIR, ".env"))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest

from funnel.api.routes.admin_routes import preflight_router as admin_preflight_router
from funnel.api.routes.admin_routes import router as admin_router
from funnel.api.routes.signup_routes import router as signup_router
from funnel.api.routes.track_routes import router as track_router
from funnel.infrastructure.auth.admin_gate import ADMIN_PREFIX, AdminGateMiddleware
from funnel.infrastructure.auth.bruteforce import AttemptTracker
from funnel.infrastructure.auth.security import build_security_headers
from funnel.infrastructure.cache.attempt_store import build_attempt_store
from funnel.infrastructure.repositories.supabase_repository import close_shared_client
from funnel.infrastructure.settings import allowed_origins, log_level

logging.basicConfig(
    level=log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("funnel.startup")


class AdminSecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject no-sniff / no-frame / no-store headers on /api/admin/* responses."""

    async def dispatch(self, request: StarletteRequest, call_next):
        response = await call_next(request)
        path = request.url.path
        if path == ADMIN_PREFIX or path.startswith(ADMIN_PREFIX + "/"):
            for name, value in build_security_headers().items():
                response.headers[name] = value
        return response


async def http_error_handler(request: StarletteRequest, exc: StarletteHTTPException):
    """Render HTTP errors as ``{"error": "..."}`` for the browser clients."""
    return JSONResponse(
        {"error": exc.detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: StarletteRequest, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(attempt_store=None) -> FastAPI:
    application = FastAPI(
        title="Sunset Net signup funnel",
        description="Signup, approval and analytics API with a throttled admin surface.",
        version="1.0.0",
    )

    tracker = AttemptTracker(attempt_store if attempt_store is not None else build_attempt_store())
    application.state.attempt_tracker = tracker

    application.add_exception_handler(StarletteHTTPException, http_error_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    application.add_middleware(AdminSecurityHeadersMiddleware)
    application.add_middleware(AdminGateMiddleware, tracker=tracker)

    application.include_router(signup_router)
    application.include_router(track_router)
    application.include_router(admin_preflight_router)
    application.include_router(admin_router)

    @application.on_event("shutdown")
    def _shutdown():
        close_shared_client()

    @application.get("/health")
    def health():
        return {
            "status": "online",
            "system": "Sunset Net funnel v1.0.0",
            "attempt_store": tracker.backend,
        }

    log.info("Funnel API ready (attempt store: %s)", tracker.backend)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "funnel.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8000")),
        reload=True,
    )

"""Rate-limit gate in front of every /api/admin/* route.

Per request:
  CHECK        resolve the client IP, read its failed-attempt count
  BLOCKED      count >= MAX_ATTEMPTS -> 429, downstream never runs
  PASSTHROUGH  OPTIONS pre-flight -> forwarded, nothing observed
  DISPATCH     call the protected route
  OBSERVE      401 -> increment, 200 -> reset, anything else -> untouched
"""
import logging

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from funnel.infrastructure.auth.bruteforce import AttemptTracker
from funnel.infrastructure.auth.security import build_security_headers
from funnel.infrastructure.settings import trusted_ip_header

UNKNOWN_IP = "unknown"
ADMIN_PREFIX = "/api/admin"
BLOCKED_MESSAGE = "Too many attempts. Try again in 5 minutes."

log = logging.getLogger("funnel.gate")


def client_ip(request: Request) -> str:
    """Client IP as reported by the edge; shared sentinel when absent."""
    return request.headers.get(trusted_ip_header()) or UNKNOWN_IP


def blocked_response(window_seconds: int) -> JSONResponse:
    headers = build_security_headers()
    headers["Retry-After"] = str(window_seconds)
    return JSONResponse({"error": BLOCKED_MESSAGE}, status_code=429, headers=headers)


class AdminGateMiddleware(BaseHTTPMiddleware):
    """Throttle admin authentication by client IP."""

    def __init__(self, app, tracker: AttemptTracker, path_prefix: str = ADMIN_PREFIX):
        super().__init__(app)
        self.tracker = tracker
        self.path_prefix = path_prefix.rstrip("/")

    def _is_protected(self, path: str) -> bool:
        return path == self.path_prefix or path.startswith(self.path_prefix + "/")

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self._is_protected(request.url.path):
            return await call_next(request)

        ip = client_ip(request)
        if await run_in_threadpool(self.tracker.is_blocked, ip):
            log.warning("Blocked admin request from %s", ip)
            return blocked_response(self.tracker.window_seconds)

        if request.method == "OPTIONS":
            return await call_next(request)

        response = await call_next(request)

        if response.status_code == 401:
            await run_in_threadpool(self.tracker.increment, ip)
        elif response.status_code == 200:
            await run_in_threadpool(self.tracker.reset, ip)

        return response

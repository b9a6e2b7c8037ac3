"""
Shared pytest fixtures for the funnel test suite.

Strategy:
- Domain/application tests: pure in-memory, zero I/O.
- API tests: FastAPI TestClient over ``create_app`` with an in-memory attempt
  store and MagicMock repositories. No Redis, Supabase or Resend is touched.
"""
import os

import pytest

# ---------------------------------------------------------------------------
# Ensure no real backend is configured during the test run
# ---------------------------------------------------------------------------
for _name in (
    "REDIS_URL",
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "RESEND_API_KEY",
    "TRUSTED_IP_HEADER",
    "ALLOWED_ORIGINS",
):
    os.environ.pop(_name, None)
os.environ["ADMIN_SECRET"] = "test-admin-secret"
os.environ["ADMIN_FAILED_AUTH_DELAY"] = "0"

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

import funnel.api.routes.admin_routes as admin_module
import funnel.api.routes.signup_routes as signup_module
import funnel.api.routes.track_routes as track_module
from funnel.infrastructure.cache.attempt_store import MemoryAttemptStore
from funnel.infrastructure.repositories.supabase_repository import close_shared_client
from funnel.main import create_app

ADMIN_SECRET = "test-admin-secret"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _test_env(monkeypatch):
    monkeypatch.setenv("ADMIN_SECRET", ADMIN_SECRET)
    monkeypatch.setenv("ADMIN_FAILED_AUTH_DELAY", "0")
    for name in ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "RESEND_API_KEY", "TRUSTED_IP_HEADER"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def attempt_store(clock) -> MemoryAttemptStore:
    return MemoryAttemptStore(clock=clock)


@pytest.fixture()
def signup_repo() -> MagicMock:
    repo = MagicMock()
    repo.list_all.return_value = []
    repo.insert.return_value = []
    return repo


@pytest.fixture()
def page_view_repo() -> MagicMock:
    repo = MagicMock()
    repo.list_since.return_value = []
    return repo


@pytest.fixture()
def application(attempt_store, signup_repo, page_view_repo):
    admin_module.init_admin_routes(signup_repo, page_view_repo)
    signup_module.init_signup_routes(signup_repo)
    track_module.init_track_routes(page_view_repo)
    yield create_app(attempt_store=attempt_store)
    admin_module.init_admin_routes()
    signup_module.init_signup_routes()
    track_module.init_track_routes()
    close_shared_client()


@pytest.fixture()
def client(application) -> TestClient:
    with TestClient(application, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
def tracker(application):
    return application.state.attempt_tracker

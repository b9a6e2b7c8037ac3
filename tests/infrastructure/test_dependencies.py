"""Tests for the require_admin dependency."""
from unittest.mock import patch

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from funnel.infrastructure.auth.dependencies import require_admin


@pytest.fixture()
def guarded_client():
    app = FastAPI()

    @app.get("/guarded")
    def guarded(_=Depends(require_admin)):
        return {"ok": True}

    return TestClient(app)


def test_correct_secret_passes(guarded_client):
    resp = guarded_client.get("/guarded", headers={"Authorization": "Bearer test-admin-secret"})
    assert resp.status_code == 200


def test_lowercase_scheme_passes(guarded_client):
    resp = guarded_client.get("/guarded", headers={"Authorization": "bearer test-admin-secret"})
    assert resp.status_code == 200


def test_wrong_secret_is_401(guarded_client):
    resp = guarded_client.get("/guarded", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_missing_header_is_401(guarded_client):
    assert guarded_client.get("/guarded").status_code == 401


def test_unset_secret_rejects_everything(guarded_client, monkeypatch):
    monkeypatch.setenv("ADMIN_SECRET", "")
    resp = guarded_client.get("/guarded", headers={"Authorization": "Bearer "})
    assert resp.status_code == 401


def test_failure_waits_configured_delay(guarded_client, monkeypatch):
    monkeypatch.setenv("ADMIN_FAILED_AUTH_DELAY", "1.5")
    with patch("funnel.infrastructure.auth.dependencies.time.sleep") as sleep:
        guarded_client.get("/guarded", headers={"Authorization": "Bearer nope"})
    sleep.assert_called_once_with(1.5)


def test_success_does_not_wait(guarded_client, monkeypatch):
    monkeypatch.setenv("ADMIN_FAILED_AUTH_DELAY", "1.5")
    with patch("funnel.infrastructure.auth.dependencies.time.sleep") as sleep:
        guarded_client.get("/guarded", headers={"Authorization": "Bearer test-admin-secret"})
    sleep.assert_not_called()


def test_raw_token_without_scheme_passes(guarded_client):
    resp = guarded_client.get("/guarded", headers={"Authorization": "test-admin-secret"})
    assert resp.status_code == 200

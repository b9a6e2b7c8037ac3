"""Tests for the POST /api/track page-view beacon."""
from unittest.mock import MagicMock, patch

import funnel.api.routes.track_routes as track_module
from funnel.infrastructure.repositories.supabase_repository import DataStoreError

DESKTOP_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) Safari/605.1.15"


def _track(client, body=None, ua=DESKTOP_UA, **headers):
    headers = {"User-Agent": ua, **headers}
    if body is None:
        body = {"path": "/pricing", "referrer": "https://google.com/"}
    return client.post("/api/track", json=body, headers=headers)


def test_records_view(client, page_view_repo):
    resp = _track(client, **{"CF-IPCountry": "BR"})
    assert resp.status_code == 200
    assert resp.text == "ok"
    page_view_repo.insert.assert_called_once_with({
        "path": "/pricing",
        "referrer": "https://google.com/",
        "country": "BR",
        "device": "desktop",
    })


def test_ip_is_never_stored(client, page_view_repo):
    _track(client, **{"CF-Connecting-IP": "1.2.3.4"})
    assert "1.2.3.4" not in str(page_view_repo.insert.call_args)


def test_bots_are_ignored(client, page_view_repo):
    resp = _track(client, ua="Googlebot/2.1 (+http://www.google.com/bot.html)")
    assert resp.text == "ok"
    page_view_repo.insert.assert_not_called()


def test_invalid_json_is_ok(client, page_view_repo):
    resp = client.post("/api/track", content=b"not json", headers={"User-Agent": DESKTOP_UA})
    assert resp.status_code == 200
    assert resp.text == "ok"
    page_view_repo.insert.assert_not_called()


def test_non_object_body_is_ok(client, page_view_repo):
    assert _track(client, body=[1, 2]).text == "ok"
    page_view_repo.insert.assert_not_called()


def test_store_error_is_ok(client, page_view_repo):
    page_view_repo.insert.side_effect = DataStoreError(500, "boom")
    resp = _track(client)
    assert resp.status_code == 200
    assert resp.text == "ok"


def test_missing_config_is_ok(client):
    track_module.init_track_routes()
    resp = _track(client)
    assert resp.status_code == 200
    assert resp.text == "ok"


def test_one_session_serves_many_requests(client, monkeypatch):
    track_module.init_track_routes()
    monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "k")
    session_cls = MagicMock()
    session_cls.return_value.request.return_value = MagicMock(ok=True, content=b"")
    with patch("funnel.infrastructure.repositories.supabase_repository.requests.Session", session_cls):
        _track(client)
        _track(client)
    session_cls.assert_called_once_with()
    assert session_cls.return_value.request.call_count == 2


def test_options_is_answered(client):
    assert client.options("/api/track").status_code == 204

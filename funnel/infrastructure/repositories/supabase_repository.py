"""Supabase (PostgREST) backed repositories for signups and page views.

Reads SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY through settings on
construction. Rows are plain dicts; the service role key bypasses row level
security, so these classes must only be used server-side.
"""
import logging
import threading
from typing import Optional
from urllib.parse import quote

import requests

from funnel.infrastructure.settings import http_timeout, supabase_config

log = logging.getLogger("funnel.datastore")

SIGNUP_COLUMNS = "id,email,primary_stack,priority_lab,created_at,approved_at,invite_sent_at"
PAGE_VIEW_COLUMNS = "path,referrer,country,device,created_at"
PAGE_VIEW_LIMIT = 10000


class DataStoreNotConfigured(RuntimeError):
    """SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is missing."""


class DataStoreError(RuntimeError):
    def __init__(self, status_code: Optional[int], body: str):
        super().__init__(f"data store error {status_code}: {body[:200]}")
        self.status_code = status_code
        self.body = body


class DuplicateRowError(DataStoreError):
    pass


class SupabaseClient:
    """Thin REST wrapper: one requests.Session, service-role headers."""

    def __init__(self, base_url: str, service_key: str, session: Optional[requests.Session] = None):
        if not base_url or not service_key:
            raise DataStoreNotConfigured("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
        self.base_url = base_url.rstrip("/")
        self._key = service_key
        self._session = session or requests.Session()

    @classmethod
    def from_env(cls, session: Optional[requests.Session] = None) -> "SupabaseClient":
        cfg = supabase_config()
        return cls(cfg["url"], cfg["key"], session=session)

    @staticmethod
    def describe_config() -> dict:
        cfg = supabase_config()
        return {"has_url": bool(cfg["url"]), "has_key": bool(cfg["key"])}

    def close(self) -> None:
        self._session.close()

    def _headers(self, prefer: Optional[str] = None) -> dict:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def request(self, method: str, table: str, query: str = "", json_body=None,
                prefer: Optional[str] = None):
        url = f"{self.base_url}/rest/v1/{table}"
        if query:
            url = f"{url}?{query}"
        try:
            resp = self._session.request(
                method, url, headers=self._headers(prefer), json=json_body, timeout=http_timeout(),
            )
        except requests.RequestException as exc:
            log.error("Data store %s %s failed: %s", method, table, exc)
            raise DataStoreError(None, str(exc)) from exc

        if not resp.ok:
            body = resp.text or ""
            if resp.status_code == 409 or "duplicate" in body or "unique" in body:
                raise DuplicateRowError(resp.status_code, body)
            log.error("Data store %s %s returned %s: %s", method, table, resp.status_code, body[:500])
            raise DataStoreError(resp.status_code, body)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None


_shared_client: Optional[SupabaseClient] = None
_shared_lock = threading.Lock()


def shared_client() -> SupabaseClient:
    """Process-wide client, built from env on first use and reused after.

    Raises DataStoreNotConfigured while the config is missing; nothing is
    cached in that case.
    """
    global _shared_client
    with _shared_lock:
        if _shared_client is None:
            _shared_client = SupabaseClient.from_env()
            log.info("Data store client ready for %s", _shared_client.base_url)
        return _shared_client


def close_shared_client() -> None:
    global _shared_client
    with _shared_lock:
        client, _shared_client = _shared_client, None
    if client is not None:
        client.close()


class SignupRepository:
    table = "signups"

    def __init__(self, client: SupabaseClient):
        self._client = client

    def insert(self, row: dict) -> list:
        return self._client.request("POST", self.table, json_body=row, prefer="return=representation") or []

    def list_all(self) -> list[dict]:
        query = f"select={SIGNUP_COLUMNS}&order=created_at.desc"
        return self._client.request("GET", self.table, query) or []

    def find(self, signup_id: str) -> Optional[dict]:
        query = f"id=eq.{quote(signup_id, safe='')}&select=id,email,approved_at,invite_sent_at"
        rows = self._client.request("GET", self.table, query) or []
        return rows[0] if rows else None

    def _patch(self, signup_id: str, fields: dict) -> None:
        self._client.request(
            "PATCH", self.table, f"id=eq.{quote(signup_id, safe='')}",
            json_body=fields, prefer="return=representation",
        )

    def mark_approved(self, signup_id: str, ts: str) -> None:
        self._patch(signup_id, {"approved_at": ts})

    def mark_invited(self, signup_id: str, ts: str) -> None:
        self._patch(signup_id, {"invite_sent_at": ts})


class PageViewRepository:
    table = "page_views"

    def __init__(self, client: SupabaseClient):
        self._client = client

    def insert(self, row: dict) -> None:
        self._client.request("POST", self.table, json_body=row, prefer="return=minimal")

    def list_since(self, since_iso: str) -> list[dict]:
        query = (
            f"select={PAGE_VIEW_COLUMNS}&created_at=gte.{quote(since_iso, safe='')}"
            f"&order=created_at.desc&limit={PAGE_VIEW_LIMIT}"
        )
        return self._client.request("GET", self.table, query) or []

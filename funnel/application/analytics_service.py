"""Page-view aggregation for the admin analytics panel.

Runs in-process over the rows of one filtered select on page_views.
"""
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from urllib.parse import urlparse

DEFAULT_DAYS = 30
MAX_DAYS = 90

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def parse_days(raw: str | None) -> int:
    """Clamp the ?days= parameter to 1..90; missing, zero or garbage -> 30."""
    match = _LEADING_INT_RE.match(raw or "")
    days = int(match.group(1)) if match else 0
    if days == 0:
        days = DEFAULT_DAYS
    return min(max(days, 1), MAX_DAYS)


def window_start(days: int, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


def _referrer_host(referrer: str) -> str:
    parsed = urlparse(referrer)
    if parsed.scheme and parsed.netloc:
        return parsed.hostname or ""
    return referrer


def _top(counter: Counter, n: int) -> list[dict]:
    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(counter.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "count": count} for name, count in ranked[:n]]


def aggregate_page_views(views: list[dict], days: int, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)

    daily: Counter = Counter()
    paths: Counter = Counter()
    countries: Counter = Counter()
    devices: Counter = Counter()
    referrers: Counter = Counter()

    for view in views:
        created_at = view.get("created_at")
        daily[created_at[:10] if created_at else "unknown"] += 1
        paths[view.get("path") or "/"] += 1

        if view.get("country"):
            countries[view["country"]] += 1
        if view.get("device"):
            devices[view["device"]] += 1

        referrer = view.get("referrer")
        if referrer:
            host = _referrer_host(referrer)
            if host and host != "null":
                referrers[host] += 1

    series = []
    for offset in range(days - 1, -1, -1):
        day = (now - timedelta(days=offset)).date().isoformat()
        series.append({"date": day, "views": daily.get(day, 0)})

    today = now.date().isoformat()
    yesterday = (now - timedelta(days=1)).date().isoformat()

    return {
        "total_views": len(views),
        "today_views": daily.get(today, 0),
        "yesterday_views": daily.get(yesterday, 0),
        "daily": series,
        "top_pages": _top(paths, 10),
        "top_countries": _top(countries, 10),
        "top_referrers": _top(referrers, 10),
        "devices": _top(devices, 5),
        "days": days,
    }

"""Anonymous page view -- no cookies, no IP addresses."""
import re
from enum import Enum

PATH_MAX_LENGTH = 500
REFERRER_MAX_LENGTH = 1000

_HANDHELD_RE = re.compile(r"mobile|android|iphone|ipad|ipod")
_TABLET_RE = re.compile(r"ipad|tablet")
_BOT_RE = re.compile(r"bot|crawl|spider|slurp|lighthouse")


class Device(str, Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


def detect_device(user_agent: str | None) -> Device | None:
    """Classify a User-Agent. Returns None for crawlers, which are not tracked."""
    ua = (user_agent or "").lower()
    if _HANDHELD_RE.search(ua):
        return Device.TABLET if _TABLET_RE.search(ua) else Device.MOBILE
    if _BOT_RE.search(ua):
        return None
    return Device.DESKTOP


class PageView:
    def __init__(self, path: str, referrer: str | None, country: str | None, device: Device):
        self.path = path
        self.referrer = referrer
        self.country = country
        self.device = device

    @classmethod
    def from_beacon(cls, body: dict, country: str | None, device: Device) -> "PageView":
        path = body.get("path")
        referrer = body.get("referrer")
        return cls(
            path=path[:PATH_MAX_LENGTH] if isinstance(path, str) else "/",
            referrer=(referrer[:REFERRER_MAX_LENGTH] or None) if isinstance(referrer, str) else None,
            country=country or None,
            device=device,
        )

    def to_row(self) -> dict:
        return {
            "path": self.path,
            "referrer": self.referrer,
            "country": self.country,
            "device": self.device.value,
        }

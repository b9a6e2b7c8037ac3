"""Runtime configuration helpers.

Every value is read fresh from the environment on each call.

Env vars:
  ADMIN_SECRET               bearer token accepted by /api/admin/*
  ADMIN_FAILED_AUTH_DELAY    seconds to stall a failed admin auth (default: 1)
  TRUSTED_IP_HEADER          header set by the edge with the client IP
                             (default: CF-Connecting-IP)
  REDIS_URL                  attempt store backend; in-memory when unset
  SUPABASE_URL               data store REST base URL
  SUPABASE_SERVICE_ROLE_KEY  data store service key
  RESEND_API_KEY             email API key; emails are only logged when unset
  CONFIRMATION_FROM_EMAIL    sender shown on outgoing mail
  ALLOWED_ORIGINS            comma-separated CORS origins (default: *)
  HTTP_TIMEOUT_SECONDS       timeout for outbound REST calls (default: 10)
  LOG_LEVEL                  root log level (default: INFO)
"""
import os

DEFAULT_FROM_EMAIL = "Sunset Net <onboarding@resend.dev>"
DEFAULT_IP_HEADER = "CF-Connecting-IP"


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def admin_secret() -> str:
    return os.environ.get("ADMIN_SECRET", "")


def failed_auth_delay() -> float:
    return max(0.0, _float_env("ADMIN_FAILED_AUTH_DELAY", 1.0))


def trusted_ip_header() -> str:
    return os.environ.get("TRUSTED_IP_HEADER", "").strip() or DEFAULT_IP_HEADER


def redis_url() -> str:
    return os.environ.get("REDIS_URL", "").strip()


def supabase_config() -> dict:
    """Return the data store URL (without trailing slashes) and service key."""
    return {
        "url": os.environ.get("SUPABASE_URL", "").strip().rstrip("/"),
        "key": os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "").strip(),
    }


def resend_config() -> dict:
    return {
        "api_key": os.environ.get("RESEND_API_KEY", "").strip(),
        "from": os.environ.get("CONFIRMATION_FROM_EMAIL", "").strip() or DEFAULT_FROM_EMAIL,
    }


def allowed_origins() -> list[str]:
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


def http_timeout() -> float:
    return _float_env("HTTP_TIMEOUT_SECONDS", 10.0)


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "").strip().upper() or "INFO"

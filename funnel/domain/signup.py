"""Signup entity and approval batch validation."""
import re
from datetime import datetime, timezone

EMAIL_MAX_LENGTH = 254
NAME_MAX_LENGTH = 100
MAX_APPROVAL_BATCH = 50

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE
)


class SignupValidationError(ValueError):
    """Raised with a message that is safe to show to the submitter."""


def sanitize(value, max_length: int = 200) -> str | None:
    """Trim and truncate an optional form value; blank becomes None."""
    if value is None:
        return None
    cleaned = str(value).strip()[:max_length]
    return cleaned or None


def is_valid_email(value) -> bool:
    if not isinstance(value, str) or len(value) > EMAIL_MAX_LENGTH:
        return False
    return bool(_EMAIL_RE.fullmatch(value.strip()))


class Signup:
    """A validated signup submission, ready to be stored."""

    def __init__(self, email: str, name: str | None = None, terms_accepted_at: str | None = None):
        self._address = email.strip()
        self._email = self._address.lower()
        self._name = name
        self._terms_accepted_at = terms_accepted_at or datetime.now(timezone.utc).isoformat()

    @property
    def email(self) -> str:
        return self._email

    @property
    def address(self) -> str:
        """The email as submitted, trimmed but with its original case."""
        return self._address

    @property
    def name(self) -> str | None:
        return self._name

    @classmethod
    def from_form(cls, body: dict) -> "Signup":
        email = sanitize(body.get("email"), EMAIL_MAX_LENGTH)
        if not email or not is_valid_email(email):
            raise SignupValidationError("Valid work email is required")

        name = sanitize(body.get("name"), NAME_MAX_LENGTH)
        if not body.get("terms_accepted"):
            raise SignupValidationError("You must accept the Safety Terms")

        return cls(email=email, name=name)

    def to_row(self) -> dict:
        return {
            "email": self._email,
            "name": self._name,
            "terms_accepted_at": self._terms_accepted_at,
        }


def parse_approval_ids(body) -> list[str]:
    """Return the signup ids of an approval batch or raise SignupValidationError."""
    ids = body.get("ids") if isinstance(body, dict) else None
    if not isinstance(ids, list) or not ids:
        raise SignupValidationError("ids must be a non-empty array")
    if len(ids) > MAX_APPROVAL_BATCH:
        raise SignupValidationError(f"Max {MAX_APPROVAL_BATCH} IDs per batch")
    for index, signup_id in enumerate(ids):
        if not isinstance(signup_id, str) or not _UUID_RE.fullmatch(signup_id):
            raise SignupValidationError(f"Invalid ID format at index {index}")
    return ids

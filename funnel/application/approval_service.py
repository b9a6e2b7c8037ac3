"""Approve a batch of signups and send each one an invite email.

Each id is handled independently: a failure on one row is reported in its
result and the batch carries on.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from funnel.infrastructure.auth.email_sender import (
    EmailDeliveryError,
    email_enabled,
    send_invite_email,
)
from funnel.infrastructure.repositories.supabase_repository import DataStoreError

log = logging.getLogger("funnel.approval")


class ApprovalResult(BaseModel):
    id: str
    approved: bool = False
    invited: bool = False
    error: Optional[str] = None


class ApprovalService:
    def __init__(self, signup_repo, send_invite=send_invite_email, is_email_enabled=email_enabled):
        self._signups = signup_repo
        self._send_invite = send_invite
        self._email_enabled = is_email_enabled

    def approve_all(self, ids: list[str]) -> list[ApprovalResult]:
        return [self.approve(signup_id) for signup_id in ids]

    def approve(self, signup_id: str) -> ApprovalResult:
        result = ApprovalResult(id=signup_id)
        try:
            self._approve_into(result)
        except Exception:
            log.exception("Approve failed for %s", signup_id)
            result.error = "Internal error"
        return result

    def _approve_into(self, result: ApprovalResult) -> None:
        signup_id = result.id
        try:
            signup = self._signups.find(signup_id)
        except DataStoreError:
            result.error = "Failed to fetch signup"
            return
        if not signup:
            result.error = "Signup not found"
            return

        now = datetime.now(timezone.utc).isoformat()

        if not signup.get("approved_at"):
            try:
                self._signups.mark_approved(signup_id, now)
            except DataStoreError:
                result.error = "Failed to update approved_at"
                return
        result.approved = True

        if signup.get("invite_sent_at"):
            result.invited = True
            return
        if not self._email_enabled():
            result.error = "Approved but RESEND_API_KEY not configured"
            return

        try:
            self._send_invite(signup["email"])
        except EmailDeliveryError:
            result.error = "Approved but email send failed"
            return

        # The email already went out; a failed timestamp write only means a
        # later batch may invite again.
        try:
            self._signups.mark_invited(signup_id, now)
        except DataStoreError as exc:
            log.error("Invite sent but invite_sent_at not saved for %s: %s", signup_id, exc)
        result.invited = True

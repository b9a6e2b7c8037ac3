"""Tests for the signup approval service."""
from unittest.mock import MagicMock

import pytest

from funnel.application.approval_service import ApprovalService
from funnel.infrastructure.auth.email_sender import EmailDeliveryError
from funnel.infrastructure.repositories.supabase_repository import DataStoreError

SIGNUP_ID = "3f2b8c1e-9a4d-4e6f-8b7a-1c2d3e4f5a6b"


@pytest.fixture()
def repo():
    r = MagicMock()
    r.find.return_value = {"id": SIGNUP_ID, "email": "a@b.co", "approved_at": None, "invite_sent_at": None}
    return r


@pytest.fixture()
def send_invite():
    return MagicMock()


@pytest.fixture()
def service(repo, send_invite):
    return ApprovalService(repo, send_invite=send_invite, is_email_enabled=lambda: True)


def test_happy_path(service, repo, send_invite):
    result = service.approve(SIGNUP_ID)
    assert result.model_dump() == {"id": SIGNUP_ID, "approved": True, "invited": True, "error": None}
    repo.mark_approved.assert_called_once()
    send_invite.assert_called_once_with("a@b.co")
    repo.mark_invited.assert_called_once()


def test_fetch_failure(service, repo):
    repo.find.side_effect = DataStoreError(500, "boom")
    result = service.approve(SIGNUP_ID)
    assert result.error == "Failed to fetch signup"
    assert not result.approved


def test_not_found(service, repo):
    repo.find.return_value = None
    assert service.approve(SIGNUP_ID).error == "Signup not found"


def test_approve_write_failure(service, repo, send_invite):
    repo.mark_approved.side_effect = DataStoreError(500, "boom")
    result = service.approve(SIGNUP_ID)
    assert result.error == "Failed to update approved_at"
    assert not result.approved
    send_invite.assert_not_called()


def test_already_approved_is_not_rewritten(service, repo):
    repo.find.return_value["approved_at"] = "2026-01-01T00:00:00+00:00"
    result = service.approve(SIGNUP_ID)
    assert result.approved
    repo.mark_approved.assert_not_called()


def test_already_invited_sends_nothing(service, repo, send_invite):
    repo.find.return_value.update(approved_at="t1", invite_sent_at="t2")
    result = service.approve(SIGNUP_ID)
    assert result.approved and result.invited and result.error is None
    send_invite.assert_not_called()


def test_email_disabled(repo, send_invite):
    service = ApprovalService(repo, send_invite=send_invite, is_email_enabled=lambda: False)
    result = service.approve(SIGNUP_ID)
    assert result.approved and not result.invited
    assert result.error == "Approved but RESEND_API_KEY not configured"
    send_invite.assert_not_called()


def test_email_failure(service, repo, send_invite):
    send_invite.side_effect = EmailDeliveryError("rejected", 422)
    result = service.approve(SIGNUP_ID)
    assert result.approved and not result.invited
    assert result.error == "Approved but email send failed"
    repo.mark_invited.assert_not_called()


def test_invite_timestamp_failure_still_invited(service, repo):
    repo.mark_invited.side_effect = DataStoreError(500, "boom")
    result = service.approve(SIGNUP_ID)
    assert result.invited
    assert result.error is None


def test_unexpected_error_is_internal(service, repo):
    repo.find.side_effect = KeyError("email")
    assert service.approve(SIGNUP_ID).error == "Internal error"


def test_batch_keeps_going(service, repo):
    repo.find.side_effect = [None, repo.find.return_value]
    results = service.approve_all(["a", SIGNUP_ID])
    assert [r.error for r in results] == ["Signup not found", None]
    assert [r.id for r in results] == ["a", SIGNUP_ID]

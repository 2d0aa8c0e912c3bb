"""
End-to-end tests for the login gate.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from logingate.audit import (
    LOGIN_ALLOWED, LOGIN_DENIED, LOGIN_ERROR, CONSENT_REQUIRED, CONSENT_ACCEPTED,
    CONSENT_REJECTED, CONSENT_CANCELLED
)
from logingate.authz import VerdictCode
from logingate.core import GateStatus
from logingate.integration.testing import (
    MockAuthorizationClient, create_test_config, create_test_gate, create_test_user
)
from logingate.store import StorageError


NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def client():
    client = MockAuthorizationClient()
    client.set_active("ada@example.org", short_name="Ada", projects={})
    return client


@pytest.fixture
def gate(client):
    config = create_test_config(banned_emails="mallory@example.org", allowed_groups="staff")
    users = [
        create_test_user("ada", "ada@example.org"),
        create_test_user("mallory", "mallory@example.org"),
        create_test_user("sam", "sam@elsewhere.org", groups=["staff"]),
    ]
    return create_test_gate(config, users=users, client=client)


async def complete_consent(gate, user_id, result, start):
    """Accept every presented document once its reading time has passed."""
    seen = []
    when = start
    while result.status == GateStatus.CONSENT_REQUIRED:
        seen.append(result.prompt.document_key)
        when += timedelta(seconds=10)
        result = await gate.submit_consent(user_id, result.state, "accept", now=when)
    return result, seen


class TestLogin:
    """Test complete login attempts"""

    @pytest.mark.asyncio
    async def test_active_user_accepts_all_documents(self, gate):
        result = await gate.login("ada", now=NOW)

        assert result.status == GateStatus.CONSENT_REQUIRED
        assert result.verdict.code == VerdictCode.ALLOWED_ACTIVE

        result, seen = await complete_consent(gate, "ada", result, NOW)

        assert result.status == GateStatus.ALLOWED
        assert result.allowed
        assert seen == ["tandc", "ause", "dpriv"]
        assert result.attributes == {"short_name": "Ada", "projects": "{}"}
        assert await gate.store.get_attribute("ada", "short_name") == ["Ada"]
        for key in ("tandc", "ause", "dpriv"):
            assert len(await gate.store.get_attribute("ada", f"{key}_accepted")) == 1

    @pytest.mark.asyncio
    async def test_second_login_needs_no_consent(self, gate):
        result = await gate.login("ada", now=NOW)
        await complete_consent(gate, "ada", result, NOW)

        again = await gate.login("ada", now=NOW + timedelta(days=1))

        assert again.status == GateStatus.ALLOWED

    @pytest.mark.asyncio
    async def test_too_early_message(self, gate):
        result = await gate.login("ada", now=NOW)

        result = await gate.submit_consent("ada", result.state, "accept", now=NOW + timedelta(seconds=2))

        assert result.status == GateStatus.CONSENT_REQUIRED
        assert result.prompt.document_key == "tandc"
        assert result.message == (
            "It has only been 2 seconds. Are you sure you have read and understood it fully?"
        )

    @pytest.mark.asyncio
    async def test_banned_user(self, gate, client):
        result = await gate.login("mallory", now=NOW)

        assert result.status == GateStatus.DENIED
        assert result.verdict.code == VerdictCode.BANNED
        assert result.support_contact == "support@example.org"
        assert result.state is None
        assert client.call_count == 0

    @pytest.mark.asyncio
    async def test_group_member_skips_service(self, gate, client):
        result = await gate.login("sam", now=NOW)

        assert result.status == GateStatus.CONSENT_REQUIRED
        assert result.verdict.code == VerdictCode.ALLOWED_GROUP
        assert client.call_count == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self, gate):
        result = await gate.login("nobody", now=NOW)

        assert result.status == GateStatus.INTERNAL_ERROR
        assert result.message == "Internal error"
        assert result.support_contact == "support@example.org"

    @pytest.mark.asyncio
    async def test_storage_failure(self, gate):
        gate.store.get_user = AsyncMock(side_effect=StorageError("get_user", "ada", "down"))

        result = await gate.login("ada", now=NOW)

        assert result.status == GateStatus.INTERNAL_ERROR

    @pytest.mark.asyncio
    async def test_unexpected_fault(self, gate, client):
        client.fetch = AsyncMock(side_effect=RuntimeError("boom"))

        result = await gate.login("ada", now=NOW)

        assert result.status == GateStatus.INTERNAL_ERROR
        assert result.message == "Internal error"
        errors = await gate.audit_logger.get_events(event_type=LOGIN_ERROR)
        assert errors[0].details["error"] == "unexpected error: boom"

    @pytest.mark.asyncio
    async def test_history_with_utc_offsets(self, gate):
        await gate.store.set_attribute("ada", "tandc_accepted", ["2024-05-01T10:00:00Z"])
        await gate.store.set_attribute("ada", "ause_accepted", ["2024-05-01T10:00:00+01:00"])

        result = await gate.login("ada", now=NOW)

        assert result.status == GateStatus.CONSENT_REQUIRED
        assert result.prompt.document_key == "dpriv"

    @pytest.mark.asyncio
    async def test_overlong_short_name(self, gate, client):
        client.set_active("ada@example.org", short_name="x" * 200)

        result = await gate.login("ada", now=NOW)

        assert result.status == GateStatus.INTERNAL_ERROR
        assert result.verdict.code == VerdictCode.SHORT_NAME_TOO_LONG


class TestConsent:
    """Test consent responses through the gate"""

    @pytest.mark.asyncio
    async def test_cancel_resets(self, gate):
        result = await gate.login("ada", now=NOW)

        result = await gate.submit_consent("ada", result.state, None, cancel=True, now=NOW)

        assert result.status == GateStatus.RESET
        assert await gate.store.get_attribute("ada", "tandc_accepted") is None

    @pytest.mark.asyncio
    async def test_unexpected_fault(self, gate):
        result = await gate.login("ada", now=NOW)
        gate.workflow.respond = AsyncMock(side_effect=RuntimeError("boom"))

        result = await gate.submit_consent("ada", result.state, "accept", now=NOW)

        assert result.status == GateStatus.INTERNAL_ERROR
        assert result.support_contact == "support@example.org"

    @pytest.mark.asyncio
    async def test_tampered_state(self, gate):
        result = await gate.submit_consent("ada", "{not json", "accept", now=NOW)

        assert result.status == GateStatus.INTERNAL_ERROR
        assert result.support_contact == "support@example.org"

    @pytest.mark.asyncio
    async def test_result_to_dict(self, gate):
        result = await gate.login("ada", now=NOW)

        data = result.to_dict()

        assert data["status"] == "consent_required"
        assert data["prompt"]["docKey"] == "tandc"
        assert data["prompt"]["docType"] == "Access Terms"
        assert data["verdict"]["code"] == "allowed_active"


class TestAuditAndMetrics:
    """Test the audit trail and metrics of login attempts"""

    @pytest.mark.asyncio
    async def test_audit_trail(self, gate):
        result = await gate.login("ada", now=NOW)
        result = await gate.submit_consent("ada", result.state, "yes", now=NOW + timedelta(seconds=1))
        await complete_consent(gate, "ada", result, NOW)
        await gate.login("mallory", now=NOW)

        events = [e.event_type for e in await gate.audit_logger.get_events(user_id="ada")]

        assert events[:3] == [CONSENT_REQUIRED, CONSENT_REJECTED, CONSENT_REQUIRED]
        assert events.count(CONSENT_ACCEPTED) == 3
        assert events[-1] == LOGIN_ALLOWED

        denied = await gate.audit_logger.get_events(event_type=LOGIN_DENIED)
        assert [e.user_id for e in denied] == ["mallory"]
        assert denied[0].details["code"] == "banned"

    @pytest.mark.asyncio
    async def test_cancel_and_error_audited(self, gate):
        result = await gate.login("ada", now=NOW)
        await gate.submit_consent("ada", result.state, None, cancel=True, now=NOW)
        await gate.login("nobody", now=NOW)

        assert len(await gate.audit_logger.get_events(event_type=CONSENT_CANCELLED)) == 1
        errors = await gate.audit_logger.get_events(event_type=LOGIN_ERROR)
        assert [e.user_id for e in errors] == ["nobody"]

    @pytest.mark.asyncio
    async def test_verdict_metrics(self, gate):
        await gate.login("ada", now=NOW)
        await gate.login("mallory", now=NOW)

        assert gate.metrics.get_value(
            "logingate_login_verdicts_total", {"kind": "allow", "code": "allowed_active"}
        ) == 1.0
        assert gate.metrics.get_value(
            "logingate_login_verdicts_total", {"kind": "deny", "code": "banned"}
        ) == 1.0


class TestTokenClaims:
    """Test claims refreshed through the gate"""

    @pytest.mark.asyncio
    async def test_token_claims(self, gate):
        assert await gate.token_claims("ada") == {"short_name": "Ada", "projects": "{}"}
        assert await gate.token_claims("nobody") == {}

    @pytest.mark.asyncio
    async def test_close(self, gate):
        await gate.close()

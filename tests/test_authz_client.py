"""
Tests for the remote authorization service client.
"""

import asyncio
from unittest.mock import MagicMock

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from logingate.authz import AuthorizationClient, AuthorizationRecord, API_FAILURE_REASON
from logingate.metrics import GateMetrics


ACTIVE_BODY = {
    "email": "ada@example.org",
    "status": "active",
    "short_name": "ada",
    "projects": {
        "p1": {"name": "Project One", "resources": [{"name": "gpu", "username": "ada.p1"}]}
    },
    "invited_by": "",
    "reason": "",
    "unexpected": "ignored",
}


def make_app(handler):
    app = web.Application()
    app.router.add_get("/api/check", handler)
    return app


class TestAuthorizationRecord:
    """Test decoding of authorization records"""

    def test_decode_full_record(self):
        record = AuthorizationRecord.from_dict(ACTIVE_BODY)
        assert record.status == "active"
        assert record.short_name == "ada"
        assert record.projects["p1"].resources[0].username == "ada.p1"
        assert not record.is_failure

    def test_missing_fields_default_to_empty(self):
        record = AuthorizationRecord.from_dict({"status": "invited"})
        assert record.email == ""
        assert record.short_name is None
        assert record.projects == {}
        assert record.invited_by == ""

    @pytest.mark.parametrize("body", [
        [],
        "active",
        {"projects": []},
        {"projects": {"p1": "nope"}},
        {"projects": {"p1": {"resources": {"name": "x"}}}},
        {"projects": {"p1": {"resources": ["x"]}}},
    ])
    def test_malformed_records_rejected(self, body):
        with pytest.raises(ValueError):
            AuthorizationRecord.from_dict(body)

    def test_failed_record(self):
        record = AuthorizationRecord.failed("timeout")
        assert record.status == ""
        assert record.reason == API_FAILURE_REASON
        assert record.is_failure


class TestAuthorizationClient:
    """Test the HTTP path of the authorization client"""

    @pytest.mark.asyncio
    async def test_fetch_sends_email_and_token(self):
        seen = {}

        async def handler(request):
            seen["email"] = request.query.get("email")
            seen["authorization"] = request.headers.get("Authorization")
            return web.json_response(ACTIVE_BODY)

        async with TestServer(make_app(handler)) as server:
            client = AuthorizationClient(timeout=5)
            record = await client.fetch(
                "ada@example.org", str(server.make_url("/api/check")), "secret"
            )

        assert seen == {"email": "ada@example.org", "authorization": "Token secret"}
        assert record.status == "active"
        assert record.short_name == "ada"
        assert "p1" in record.projects

    @pytest.mark.asyncio
    async def test_non_200_is_failure(self):
        async def handler(request):
            return web.Response(status=503, text="down")

        async with TestServer(make_app(handler)) as server:
            record = await AuthorizationClient().fetch(
                "ada@example.org", str(server.make_url("/api/check")), "secret"
            )

        assert record.is_failure
        assert record.status == ""
        assert record.reason == API_FAILURE_REASON

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 500])
    async def test_invalid_utf8_body_is_failure(self, status):
        async def handler(request):
            return web.Response(status=status, body=b"\xff\xfe bad",
                                content_type="text/plain", charset="utf-8")

        async with TestServer(make_app(handler)) as server:
            record = await AuthorizationClient().fetch(
                "ada@example.org", str(server.make_url("/api/check")), "secret"
            )

        assert record.is_failure
        assert record.reason == API_FAILURE_REASON

    @pytest.mark.asyncio
    async def test_unexpected_error_is_failure(self):
        session = MagicMock()
        session.get.side_effect = RuntimeError("boom")

        record = await AuthorizationClient(session=session).fetch(
            "ada@example.org", "http://authz.test/api/check", "secret"
        )

        assert record.is_failure
        assert record.failure == "unexpected error: boom"
        session.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_undecodable_body_is_failure(self):
        async def handler(request):
            return web.Response(status=200, text="<html>not json</html>")

        async with TestServer(make_app(handler)) as server:
            record = await AuthorizationClient().fetch(
                "ada@example.org", str(server.make_url("/api/check")), "secret"
            )

        assert record.is_failure
        assert record.reason == API_FAILURE_REASON

    @pytest.mark.asyncio
    async def test_non_object_body_is_failure(self):
        async def handler(request):
            return web.json_response(["active"])

        async with TestServer(make_app(handler)) as server:
            record = await AuthorizationClient().fetch(
                "ada@example.org", str(server.make_url("/api/check")), "secret"
            )

        assert record.is_failure

    @pytest.mark.asyncio
    async def test_timeout_is_failure(self):
        async def handler(request):
            await asyncio.sleep(0.5)
            return web.json_response(ACTIVE_BODY)

        async with TestServer(make_app(handler)) as server:
            record = await AuthorizationClient(timeout=0.05).fetch(
                "ada@example.org", str(server.make_url("/api/check")), "secret"
            )

        assert record.is_failure
        assert record.failure == "timeout"

    @pytest.mark.asyncio
    async def test_connection_error_is_failure(self):
        record = await AuthorizationClient(timeout=1).fetch(
            "ada@example.org", "http://127.0.0.1:1/api/check", "secret"
        )
        assert record.is_failure
        assert record.reason == API_FAILURE_REASON

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,endpoint,key", [
        (None, "http://authz/api", "k"),
        ("ada@example.org", None, "k"),
        ("ada@example.org", "http://authz/api", None),
    ])
    async def test_missing_input_is_failure(self, email, endpoint, key):
        record = await AuthorizationClient().fetch(email, endpoint, key)
        assert record.is_failure
        assert record.reason == API_FAILURE_REASON

    @pytest.mark.asyncio
    async def test_injected_session_is_not_closed(self):
        async def handler(request):
            return web.json_response(ACTIVE_BODY)

        async with TestServer(make_app(handler)) as server:
            async with aiohttp.ClientSession() as session:
                client = AuthorizationClient(session=session)
                url = str(server.make_url("/api/check"))
                first = await client.fetch("ada@example.org", url, "secret")
                second = await client.fetch("ada@example.org", url, "secret")
                assert not session.closed

        assert first.status == second.status == "active"

    @pytest.mark.asyncio
    async def test_fetch_is_timed(self):
        async def handler(request):
            return web.json_response(ACTIVE_BODY)

        metrics = GateMetrics()
        async with TestServer(make_app(handler)) as server:
            await AuthorizationClient(metrics=metrics).fetch(
                "ada@example.org", str(server.make_url("/api/check")), "secret"
            )

        count = metrics.get_value(
            "logingate_authorization_fetch_seconds_count", {"result": "ok"}
        )
        assert count == 1.0

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            AuthorizationClient(timeout=0)

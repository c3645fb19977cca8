"""Tests for posagent.engine.auth and the backend error descriptions it relies on."""
import httpx
import pytest

from posagent.engine.auth import DEFAULT_PIN, authenticate
from posagent.engine.backend import describeError
from posagent.engine.config import AgentCredential
from posagent.engine.errors import AuthError

LOGIN = ("POST", "/api/auth/login")
PIN = ("POST", "/api/auth/validate-pin")

PIN_REQUIRED = {
    "isPinRequired": True,
    "pendingAuth": {"userId": "U7", "theaterId": "TH2"},
}


class TestPasswordLogin:
    @pytest.mark.asyncio
    async def test_token_and_theater_from_user(self, server, backend, credential):
        server.json(*LOGIN, {"token": "T", "user": {"theaterId": "TH1"}})
        session = await authenticate(backend, credential)

        assert session.token == "T"
        assert session.theaterId == "TH1"
        assert session.label == "A"
        assert not session.isSuperAdmin
        assert server.bodies(*LOGIN) == [{"username": "u", "password": "p"}]

    @pytest.mark.asyncio
    async def test_no_theater_is_super_admin(self, server, backend, credential):
        server.json(*LOGIN, {"token": "T", "user": {}})
        session = await authenticate(backend, credential)
        assert session.theaterId is None
        assert session.isSuperAdmin

    @pytest.mark.asyncio
    async def test_theater_hint_used_when_backend_silent(self, server, backend):
        cred = AgentCredential(username="u", password="p", label="A", theaterId="TH5")
        server.json(*LOGIN, {"token": "T"})
        session = await authenticate(backend, cred)
        assert session.theaterId == "TH5"

    @pytest.mark.asyncio
    async def test_no_token_fails(self, server, backend, credential):
        server.json(*LOGIN, {"user": {"theaterId": "TH1"}})
        with pytest.raises(AuthError, match="no token"):
            await authenticate(backend, credential)

    @pytest.mark.asyncio
    async def test_http_error_fails_with_status(self, server, backend, credential):
        server.json(*LOGIN, {"message": "bad credentials"}, status=401)
        with pytest.raises(AuthError, match="HTTP 401: bad credentials"):
            await authenticate(backend, credential)

    @pytest.mark.asyncio
    async def test_transport_error_fails(self, server, backend, credential):
        server.fail(*LOGIN)
        with pytest.raises(AuthError, match="login request failed"):
            await authenticate(backend, credential)

    @pytest.mark.asyncio
    async def test_bearer_header_uses_token(self, server, backend, credential):
        server.json(*LOGIN, {"token": "secret-token"})
        session = await authenticate(backend, credential)
        assert session.bearer() == {"Authorization": "Bearer secret-token"}
        assert "secret-token" not in repr(session)


class TestPinLogin:
    @pytest.mark.asyncio
    async def test_pin_flow_posts_expected_body(self, server, backend):
        cred = AgentCredential(username="u", password="p", label="A", pin="4321")
        server.json(*LOGIN, PIN_REQUIRED)
        server.json(*PIN, {"success": True, "token": "T2", "user": {"theaterId": "TH3"}})

        session = await authenticate(backend, cred)

        assert server.bodies(*PIN) == [
            {
                "userId": "U7",
                "pin": "4321",
                "theaterId": "TH2",
                "_tempPassword": "p",
                "loginUsername": "u",
            }
        ]
        assert session.token == "T2"
        assert session.theaterId == "TH3"

    @pytest.mark.asyncio
    async def test_default_pin_when_none_configured(self, server, backend, credential, logs):
        server.json(*LOGIN, PIN_REQUIRED)
        server.json(*PIN, {"success": True, "token": "T2"})

        await authenticate(backend, credential)

        assert server.bodies(*PIN)[0]["pin"] == DEFAULT_PIN == "1234"
        assert any("default PIN" in line for line in logs)

    @pytest.mark.asyncio
    async def test_theater_falls_back_to_pending_auth(self, server, backend, credential):
        server.json(*LOGIN, PIN_REQUIRED)
        server.json(*PIN, {"success": True, "token": "T2", "user": {}})
        session = await authenticate(backend, credential)
        assert session.theaterId == "TH2"

    @pytest.mark.asyncio
    async def test_rejected_pin_carries_server_error(self, server, backend, credential):
        server.json(*LOGIN, PIN_REQUIRED)
        server.json(*PIN, {"success": False, "error": "Invalid PIN"})
        with pytest.raises(AuthError, match="PIN validation failed: Invalid PIN"):
            await authenticate(backend, credential)

    @pytest.mark.asyncio
    async def test_success_without_token_is_unknown_error(self, server, backend, credential):
        server.json(*LOGIN, PIN_REQUIRED)
        server.json(*PIN, {"success": True})
        with pytest.raises(AuthError, match="Unknown error"):
            await authenticate(backend, credential)

    @pytest.mark.asyncio
    async def test_pin_http_error(self, server, backend, credential):
        server.json(*LOGIN, PIN_REQUIRED)
        server.json(*PIN, {"error": "locked"}, status=403)
        with pytest.raises(AuthError, match="PIN validation failed: HTTP 403: locked"):
            await authenticate(backend, credential)

    @pytest.mark.asyncio
    async def test_pin_flag_without_pending_auth_fails(self, server, backend, credential):
        server.json(*LOGIN, {"isPinRequired": True})
        with pytest.raises(AuthError, match="no token"):
            await authenticate(backend, credential)
        assert server.calls(*PIN) == []


class TestDescribeError:
    def test_status_without_body_message(self):
        request = httpx.Request("GET", "http://b/x")
        response = httpx.Response(500, text="oops", request=request)
        e = httpx.HTTPStatusError("boom", request=request, response=response)
        assert describeError(e) == "HTTP 500"

    def test_plain_exception(self):
        assert describeError(ValueError()) == "ValueError"
        assert describeError(ValueError("bad json")) == "bad json"

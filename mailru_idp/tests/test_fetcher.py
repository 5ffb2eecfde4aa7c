"""
Profile Fetcher Tests

Tests the Mail.ru user profile request: token passing, error translation
into FederationIOError and log redaction.

Run tests:
----------
    pytest mailru_idp/tests/test_fetcher.py -v
"""

import json
import logging
from unittest.mock import patch

import httpx
import pytest

from mailru_idp.federation.config import PROFILE_URL
from mailru_idp.federation.errors import FederationIOError
from mailru_idp.federation.fetcher import fetch_profile, redact_profile, redact_token

REAL_ASYNC_CLIENT = httpx.AsyncClient

PROFILE = {"email": "user@corp.io", "first_name": "Ann", "last_name": "Lee"}


def mock_client(handler):
    """AsyncClient whose requests are answered by handler"""
    return REAL_ASYNC_CLIENT(transport=httpx.MockTransport(handler))


# ============================================================================
# Successful Requests
# ============================================================================

@pytest.mark.asyncio
class TestFetchProfile:
    """Test suite for successful profile requests"""

    async def test_token_sent_as_query_parameter(self):
        """Test that the token goes into ?access_token= and not a header"""
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=PROFILE)

        async with mock_client(handler) as client:
            profile = await fetch_profile("abc-token", client=client)

        assert profile == PROFILE
        assert len(seen) == 1
        request = seen[0]
        assert request.method == "GET"
        assert str(request.url).startswith(PROFILE_URL + "?")
        assert request.url.params["access_token"] == "abc-token"
        assert "authorization" not in request.headers

    async def test_token_is_url_encoded(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=PROFILE)

        async with mock_client(handler) as client:
            await fetch_profile("a+b/c=&d", client=client)

        assert seen[0].url.params["access_token"] == "a+b/c=&d"

    async def test_shared_client_left_open(self):
        async with mock_client(lambda request: httpx.Response(200, json=PROFILE)) as client:
            await fetch_profile("abc-token", client=client)

            assert not client.is_closed

    async def test_own_client_created_and_closed(self):
        created = []

        def factory(**kwargs):
            client = REAL_ASYNC_CLIENT(
                transport=httpx.MockTransport(lambda request: httpx.Response(200, json=PROFILE)),
                **kwargs,
            )
            created.append(client)
            return client

        with patch.object(httpx, "AsyncClient", side_effect=factory):
            profile = await fetch_profile("abc-token", timeout=3.0)

        assert profile == PROFILE
        assert len(created) == 1
        assert created[0].is_closed


# ============================================================================
# Failures
# ============================================================================

@pytest.mark.asyncio
class TestFetchProfileErrors:
    """Test suite for errors surfaced as FederationIOError"""

    async def test_empty_token_rejected_without_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=PROFILE)

        async with mock_client(handler) as client:
            for token in ("", "   "):
                with pytest.raises(ValueError):
                    await fetch_profile(token, client=client)

        assert calls == []

    @pytest.mark.parametrize(
        "error_cls",
        [httpx.ConnectError, httpx.ReadTimeout, httpx.RemoteProtocolError],
    )
    async def test_transport_error(self, error_cls):
        calls = []

        def handler(request):
            calls.append(request)
            raise error_cls("connection failed", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(FederationIOError) as exc_info:
                await fetch_profile("abc-token", client=client)

        error = exc_info.value
        assert isinstance(error.cause, error_cls)
        assert error.__cause__ is error.cause
        assert error.status_code is None
        assert "could not obtain user profile from mail.ru" in error.message.lower()
        # no retries
        assert len(calls) == 1

    async def test_non_json_body(self):
        async with mock_client(lambda request: httpx.Response(200, text="<html>oops</html>")) as client:
            with pytest.raises(FederationIOError) as exc_info:
                await fetch_profile("abc-token", client=client)

        assert isinstance(exc_info.value.cause, json.JSONDecodeError)
        assert exc_info.value.status_code == 200
        assert not exc_info.value.token_rejected

    async def test_json_array_body(self):
        async with mock_client(lambda request: httpx.Response(200, json=[PROFILE])) as client:
            with pytest.raises(FederationIOError) as exc_info:
                await fetch_profile("abc-token", client=client)

        assert "JSON object" in exc_info.value.message

    async def test_unauthorized_status(self):
        def handler(request):
            return httpx.Response(401, json={"error": "invalid_token"})

        async with mock_client(handler) as client:
            with pytest.raises(FederationIOError) as exc_info:
                await fetch_profile("expired-token", client=client)

        assert exc_info.value.status_code == 401
        assert exc_info.value.token_rejected
        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)
        assert "expired-token" not in exc_info.value.message
        assert "HTTP 401" in exc_info.value.message

    async def test_server_error_status(self):
        async with mock_client(lambda request: httpx.Response(503, text="unavailable")) as client:
            with pytest.raises(FederationIOError) as exc_info:
                await fetch_profile("abc-token", client=client)

        assert exc_info.value.status_code == 503
        assert not exc_info.value.token_rejected

    async def test_error_document(self):
        """Test that an error object in a 200 response is a refused token"""
        body = {"error": "invalid_token", "error_code": 5, "error_description": "token not found"}

        async with mock_client(lambda request: httpx.Response(200, json=body)) as client:
            with pytest.raises(FederationIOError) as exc_info:
                await fetch_profile("abc-token", client=client)

        assert "token not found" in exc_info.value.message
        assert exc_info.value.token_rejected
        assert exc_info.value.status_code == 200

    async def test_provider_name_in_message(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(FederationIOError) as exc_info:
                await fetch_profile("abc-token", client=client, provider_name="Мой Мир")

        assert exc_info.value.provider == "Мой Мир"
        assert "Мой Мир" in exc_info.value.message


# ============================================================================
# Logging
# ============================================================================

@pytest.mark.asyncio
class TestFetchProfileLogging:
    """Test suite for token and profile logging"""

    async def test_token_redacted_by_default(self, caplog):
        caplog.set_level(logging.DEBUG, logger="mailru_idp.federation.fetcher")

        async with mock_client(lambda request: httpx.Response(200, json=PROFILE)) as client:
            await fetch_profile("secret-token-value", client=client)

        tokens = [r.subject_token for r in caplog.records if hasattr(r, "subject_token")]
        profiles = [r.profile for r in caplog.records if hasattr(r, "profile")]
        urls = [r.user_info_url for r in caplog.records if hasattr(r, "user_info_url")]

        assert tokens == [redact_token("secret-token-value")]
        assert all(
            "secret-token-value" not in r.getMessage()
            for r in caplog.records
            if r.name == "mailru_idp.federation.fetcher"
        )
        assert profiles == [redact_profile(PROFILE)]
        assert urls == [PROFILE_URL]

    async def test_sensitive_logging_opt_in(self, caplog):
        caplog.set_level(logging.DEBUG, logger="mailru_idp.federation.fetcher")

        async with mock_client(lambda request: httpx.Response(200, json=PROFILE)) as client:
            await fetch_profile("secret-token-value", client=client, log_sensitive=True)

        tokens = [r.subject_token for r in caplog.records if hasattr(r, "subject_token")]
        profiles = [r.profile for r in caplog.records if hasattr(r, "profile")]

        assert tokens == ["secret-token-value"]
        assert profiles == [PROFILE]


def test_redact_token():
    assert redact_token("abcdefghij") == "abcd...(len=10)"


def test_redact_profile():
    assert redact_profile({"email": "x@y.z", "age": 3}) == {"email": "str", "age": "int"}


def test_token_rejected_follows_status_code():
    assert FederationIOError("refused", status_code=401).token_rejected
    assert not FederationIOError("down", status_code=503).token_rejected
    assert not FederationIOError("unreachable").token_rejected


def test_token_rejected_explicit_flag_keeps_status_code():
    error = FederationIOError("refused", status_code=200, token_rejected=True)

    assert error.token_rejected
    assert error.status_code == 200

"""Tests for OAuth helpers — token endpoint mocked, consent flow patched."""

from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs

import httpx
import pytest

from src.gmail.oauth import GMAIL_SCOPES, OAuthCredentials, OAuthError, run_authorization_flow


def _credentials(handler: object) -> OAuthCredentials:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))  # type: ignore[arg-type]
    return OAuthCredentials("client_id", "client_secret", "refresh_123", http=http)


class TestOAuthCredentials:
    async def test_exchanges_refresh_token(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"access_token": "access_1", "expires_in": 3599})

        token = await _credentials(handler).access_token()

        assert token == "access_1"
        form = parse_qs(seen[0].content.decode())
        assert form["grant_type"] == ["refresh_token"]
        assert form["refresh_token"] == ["refresh_123"]
        assert form["client_id"] == ["client_id"]

    async def test_caches_until_expiry(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"access_token": f"access_{calls}", "expires_in": 3600})

        creds = _credentials(handler)
        assert await creds.access_token() == "access_1"
        assert await creds.access_token() == "access_1"
        assert calls == 1

    async def test_short_lived_token_is_refreshed(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            # Within the expiry margin, so it is treated as already expired
            return httpx.Response(200, json={"access_token": f"access_{calls}", "expires_in": 30})

        creds = _credentials(handler)
        await creds.access_token()
        assert await creds.access_token() == "access_2"

    async def test_rejected_refresh_raises(self) -> None:
        creds = _credentials(lambda _: httpx.Response(400, json={"error": "invalid_grant"}))
        with pytest.raises(OAuthError, match="invalid_grant"):
            await creds.access_token()

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, json={"token_type": "Bearer", "expires_in": 3600}),
            httpx.Response(200, json={"access_token": "", "expires_in": 3600}),
            httpx.Response(200, json={"access_token": "access_1", "expires_in": "soon"}),
            httpx.Response(200, json=["access_1"]),
            httpx.Response(200, text="<html>captive portal</html>"),
        ],
    )
    async def test_malformed_success_body_raises_oauth_error(self, response: httpx.Response) -> None:
        creds = _credentials(lambda _: response)
        with pytest.raises(OAuthError, match="Token refresh returned"):
            await creds.access_token()


class TestRunAuthorizationFlow:
    def test_returns_refresh_token(self) -> None:
        flow = MagicMock()
        flow.run_local_server.return_value = MagicMock(refresh_token="refresh_new")
        with patch("src.gmail.oauth.InstalledAppFlow.from_client_config", return_value=flow) as factory:
            token = run_authorization_flow(
                "cid", "secret", "http://localhost:3000/oauth2callback", open_browser=False
            )

        assert token == "refresh_new"
        client_config, scopes = factory.call_args.args
        assert client_config["installed"]["client_id"] == "cid"
        assert scopes == GMAIL_SCOPES
        kwargs = flow.run_local_server.call_args.kwargs
        assert kwargs["port"] == 3000
        assert kwargs["access_type"] == "offline"
        assert kwargs["prompt"] == "consent"
        assert kwargs["open_browser"] is False

    def test_missing_refresh_token_raises(self) -> None:
        flow = MagicMock()
        flow.run_local_server.return_value = MagicMock(refresh_token=None)
        with patch("src.gmail.oauth.InstalledAppFlow.from_client_config", return_value=flow):
            with pytest.raises(OAuthError, match="No refresh token"):
                run_authorization_flow("cid", "secret")

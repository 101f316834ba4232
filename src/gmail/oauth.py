"""Gmail OAuth2 helpers — refresh-token exchange and the one-off consent flow."""

import logging
import time
from urllib.parse import urlparse

import httpx
from google_auth_oauthlib.flow import InstalledAppFlow  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GMAIL_SCOPES: list[str] = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.compose",
]
DEFAULT_REDIRECT_URI = "http://localhost:3000/oauth2callback"

# Refresh slightly early so a token never expires mid-request
_EXPIRY_MARGIN_SECONDS = 60


class OAuthError(Exception):
    """Raised when Google rejects a token exchange or refresh."""


class OAuthCredentials:
    """Exchanges a stored refresh token for short-lived access tokens.

    The access token is cached until shortly before it expires; callers just
    await ``access_token()`` before each Gmail request.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._http = http
        self._access_token: str | None = None
        self._expires_at = 0.0

    async def access_token(self) -> str:
        """Return a valid access token, refreshing it if needed."""
        if self._access_token and time.monotonic() < self._expires_at:
            return self._access_token
        await self.refresh()
        assert self._access_token is not None
        return self._access_token

    async def refresh(self) -> None:
        """Force a refresh-token exchange against Google's token endpoint."""
        data = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "refresh_token": self._refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            if self._http is not None:
                response = await self._http.post(GOOGLE_TOKEN_URL, data=data)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.post(GOOGLE_TOKEN_URL, data=data)
        except httpx.HTTPError as exc:
            raise OAuthError(f"Token refresh failed: {exc}") from exc

        if response.status_code != 200:
            raise OAuthError(
                f"Token refresh failed ({response.status_code}): {response.text}".strip()
            )

        try:
            token_data = response.json()
            access_token = token_data["access_token"]
            expires_in = int(token_data.get("expires_in", 3600))
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise OAuthError(
                f"Token refresh returned an unexpected response: {response.text[:200]}"
            ) from exc
        if not isinstance(access_token, str) or not access_token:
            raise OAuthError("Token refresh returned no access token")

        self._access_token = access_token
        self._expires_at = time.monotonic() + max(0, expires_in - _EXPIRY_MARGIN_SECONDS)
        logger.debug("Refreshed Gmail access token (expires in %ds)", expires_in)


def run_authorization_flow(
    client_id: str,
    client_secret: str,
    redirect_uri: str = DEFAULT_REDIRECT_URI,
    open_browser: bool = True,
) -> str:
    """Run the browser consent flow and return the granted refresh token.

    Starts a local callback server on the redirect URI's host and port, opens
    the consent page, and exchanges the returned code for tokens.  Consent is
    forced so Google always issues a refresh token.
    """
    parsed = urlparse(redirect_uri)
    client_config = {
        "installed": {
            "client_id": client_id,
            "client_secret": client_secret,
            "auth_uri": GOOGLE_AUTH_URL,
            "token_uri": GOOGLE_TOKEN_URL,
            "redirect_uris": [redirect_uri],
        }
    }
    flow = InstalledAppFlow.from_client_config(client_config, GMAIL_SCOPES)
    credentials = flow.run_local_server(
        host=parsed.hostname or "localhost",
        port=parsed.port or 3000,
        redirect_uri_trailing_slash=False,
        open_browser=open_browser,
        access_type="offline",
        prompt="consent",
        success_message="Authorization successful! You can close this window and return to the terminal.",
        timeout_seconds=5 * 60,
    )

    refresh_token = getattr(credentials, "refresh_token", None)
    if not refresh_token:
        raise OAuthError(
            "No refresh token received. Make sure you selected consent and "
            "authorized all requested scopes."
        )
    logger.info("OAuth consent granted for scopes: %s", ", ".join(GMAIL_SCOPES))
    return str(refresh_token)

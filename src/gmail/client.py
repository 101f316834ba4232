"""Gmail REST client — wraps the three Gmail v1 endpoints the tools need."""

import logging
from typing import Any, Protocol

import httpx

from src.gmail.oauth import OAuthCredentials, OAuthError

logger = logging.getLogger(__name__)

GMAIL_API_BASE_URL = "https://gmail.googleapis.com/gmail/v1/users/me"

# JSON object as decoded from a Gmail API response
_JsonDict = dict[str, Any]


class ProviderError(Exception):
    """Raised when a Gmail API or network call fails.

    The provider's message text is passed through unchanged.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(ProviderError):
    """Raised when the referenced Gmail message or resource does not exist."""


class MailProvider(Protocol):
    """The slice of the Gmail API that GmailService depends on."""

    async def list_messages(self, query: str) -> list[_JsonDict]:
        """Return ``{"id", "threadId"}`` stubs for messages matching ``query``."""
        ...

    async def get_message(
        self,
        message_id: str,
        fmt: str = "full",
        metadata_headers: list[str] | None = None,
    ) -> _JsonDict:
        """Return a message resource at the requested detail level."""
        ...

    async def create_draft(self, raw: str, thread_id: str) -> _JsonDict:
        """Create a draft from a base64url-encoded RFC 2822 message."""
        ...


class GmailApiClient:
    """Thin async wrapper around the Gmail REST API.

    Authenticates every request with a fresh access token from
    ``OAuthCredentials``.  The underlying ``httpx.AsyncClient`` can be injected
    for tests; otherwise one is created and owned by this instance.
    """

    def __init__(
        self,
        credentials: OAuthCredentials,
        http: httpx.AsyncClient | None = None,
        base_url: str = GMAIL_API_BASE_URL,
    ) -> None:
        self._credentials = credentials
        self._http = http or httpx.AsyncClient(timeout=30.0)
        self._owns_http = http is None
        self._base_url = base_url.rstrip("/")

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ── Public API ─────────────────────────────────────────────────────────────

    async def list_messages(self, query: str) -> list[_JsonDict]:
        data = await self._request("GET", "/messages", params={"q": query})
        return list(data.get("messages") or [])

    async def get_message(
        self,
        message_id: str,
        fmt: str = "full",
        metadata_headers: list[str] | None = None,
    ) -> _JsonDict:
        params: dict[str, Any] = {"format": fmt}
        if metadata_headers:
            # httpx repeats list values: metadataHeaders=From&metadataHeaders=Subject
            params["metadataHeaders"] = metadata_headers
        return await self._request("GET", f"/messages/{message_id}", params=params)

    async def create_draft(self, raw: str, thread_id: str) -> _JsonDict:
        body = {"message": {"threadId": thread_id, "raw": raw}}
        return await self._request("POST", "/drafts", json=body)

    # ── Internal helpers ───────────────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: _JsonDict | None = None,
    ) -> _JsonDict:
        """Send one authenticated request and return the decoded JSON body.

        Raises NotFoundError on 404 and ProviderError on any other failure.
        """
        try:
            token = await self._credentials.access_token()
        except OAuthError as exc:
            raise ProviderError(str(exc)) from exc

        url = f"{self._base_url}{path}"
        logger.debug("Gmail → %s %s %s", method, path, params or "")
        try:
            response = await self._http.request(
                method,
                url,
                params=params,
                json=json,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                },
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Gmail request {method} {path} failed: {exc}") from exc

        if response.status_code == 404:
            raise NotFoundError(
                f"Gmail resource not found: {path} ({response.text})",
                status_code=404,
            )
        if not response.is_success:
            logger.error("Gmail API error: %s - %s", response.status_code, response.text)
            raise ProviderError(
                f"Gmail API error ({response.status_code}): {response.text}".strip(),
                status_code=response.status_code,
            )

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError(f"Gmail returned a non-JSON response for {path}") from exc
        return data if isinstance(data, dict) else {}

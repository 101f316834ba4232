"""Gmail service — unread summaries and threaded draft replies.

Builds on a MailProvider (normally GmailApiClient) so the reply composition
and listing logic can be exercised against fakes.
"""

import asyncio
import base64
import logging
import re
from typing import Any

from src.gmail.client import MailProvider
from src.gmail.types import DraftFormat, DraftReplyResult, UnreadEmailSummary

logger = logging.getLogger(__name__)

UNREAD_QUERY = "is:unread"
REPLY_PREFIX = "Re: "

_CONTENT_TYPES: dict[str, str] = {
    "plain": "text/plain; charset=utf-8",
    "html": "text/html; charset=utf-8",
}

_ANGLE_ADDRESS = re.compile(r"<(.+)>")


# ── Message helpers ────────────────────────────────────────────────────────────


def get_header_value(message: dict[str, Any], name: str) -> str:
    """Return a header value from a Gmail message resource, or ``""``.

    Header names are matched case-insensitively since Gmail reports both
    ``Message-ID`` and ``Message-Id`` depending on the sending client.
    """
    headers = (message.get("payload") or {}).get("headers") or []
    for header in headers:
        if str(header.get("name", "")).lower() == name.lower():
            return str(header.get("value") or "")
    return ""


def reply_subject(subject: str) -> str:
    """Prefix ``Re: `` unless the subject already starts with it."""
    return subject if subject.startswith(REPLY_PREFIX) else f"{REPLY_PREFIX}{subject}"


def reply_recipient(from_header: str) -> str:
    """Extract the bare address from ``Name <addr>``; otherwise return as-is."""
    if "<" in from_header:
        match = _ANGLE_ADDRESS.search(from_header)
        if match:
            return match.group(1)
    return from_header


def build_reply_message(
    to: str,
    subject: str,
    body: str,
    message_id: str = "",
    fmt: DraftFormat = "plain",
) -> str:
    """Serialise an RFC 2822 reply: headers, one blank line, then the body.

    ``In-Reply-To`` and ``References`` are emitted only when the original
    message carried a Message-ID.
    """
    lines = [f"To: {to}", f"Subject: {subject}"]
    if message_id:
        lines.append(f"In-Reply-To: {message_id}")
        lines.append(f"References: {message_id}")
    lines.append(f"Content-Type: {_CONTENT_TYPES[fmt]}")
    lines.append("")
    lines.append(body)
    return "\r\n".join(lines)


def encode_base64url(raw: str) -> str:
    """Encode a message as unpadded base64url (RFC 4648 §5), as Gmail expects."""
    return base64.urlsafe_b64encode(raw.encode("utf-8")).rstrip(b"=").decode("ascii")


# ── Service ────────────────────────────────────────────────────────────────────


class GmailService:
    """Stateless Gmail operations behind the MCP tools."""

    def __init__(self, provider: MailProvider) -> None:
        self._provider = provider

    async def list_unread(self) -> list[UnreadEmailSummary]:
        """Return a summary (From, Subject, snippet) for every unread message.

        Metadata fetches run concurrently; the result keeps the listing order.
        A failure on any message fails the whole call.
        """
        stubs = await self._provider.list_messages(UNREAD_QUERY)
        if not stubs:
            return []

        summaries = await asyncio.gather(
            *(self._fetch_summary(stub) for stub in stubs)
        )
        logger.info("Fetched %d unread email summary(ies)", len(summaries))
        return list(summaries)

    async def compose_draft_reply(
        self,
        email_id: str,
        reply_body: str,
        fmt: DraftFormat = "plain",
    ) -> DraftReplyResult:
        """Create a draft reply threaded onto the original message.

        Raises NotFoundError if ``email_id`` does not exist.  Every call creates
        a new draft.
        """
        if fmt not in _CONTENT_TYPES:
            raise ValueError(f"Unsupported reply format: {fmt!r}")

        original = await self._provider.get_message(email_id, fmt="full")
        thread_id = str(original.get("threadId", ""))

        raw = build_reply_message(
            to=reply_recipient(get_header_value(original, "From")),
            subject=reply_subject(get_header_value(original, "Subject")),
            body=reply_body,
            message_id=get_header_value(original, "Message-ID"),
            fmt=fmt,
        )

        draft = await self._provider.create_draft(encode_base64url(raw), thread_id)
        draft_id = str(draft.get("id", ""))
        logger.info("Created draft %s in thread %s (reply to %s)", draft_id, thread_id, email_id)
        return DraftReplyResult(draft_id=draft_id, thread_id=thread_id)

    async def _fetch_summary(self, stub: dict[str, Any]) -> UnreadEmailSummary:
        message_id = str(stub["id"])
        message = await self._provider.get_message(
            message_id, fmt="metadata", metadata_headers=["From", "Subject"]
        )
        return UnreadEmailSummary(
            sender=get_header_value(message, "From"),
            subject=get_header_value(message, "Subject"),
            body=str(message.get("snippet") or ""),
            email_id=str(message.get("id") or message_id),
            thread_id=str(message.get("threadId") or stub.get("threadId") or ""),
        )

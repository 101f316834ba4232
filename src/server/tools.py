"""MCP tool registry — exposes the Gmail and APOD services over FastMCP.

Every tool answers with a JSON text payload.  Failures are logged and come
back as ``{"error": "..."}`` on a result flagged ``isError`` so the calling
assistant can read the message and tell it apart from a successful answer.
"""

import json
import logging
from collections.abc import Awaitable
from typing import Annotated, Any, Literal

from mcp.server.fastmcp import FastMCP
from mcp.types import CallToolResult, TextContent
from pydantic import Field

from src.apod.service import ApodService
from src.gmail.reply_validation import check_reply_has_body_before_marker
from src.gmail.service import GmailService

logger = logging.getLogger(__name__)

SERVER_NAME = "gmail-mcp-server"

UNREAD_DESCRIPTION = (
    "Retrieves all unread emails from the Gmail account. Returns sender, subject, "
    "body/snippet, email ID, and thread ID for each unread email."
)

DRAFT_DESCRIPTION = (
    "Creates a draft reply to an existing email. Maintains proper email threading "
    "by linking to the original message."
)

SPACE_PICTURE_DESCRIPTION = "\n".join([
    'Retrieves NASA Astronomy Picture of the Day (APOD) and returns a ready-to-paste '
    '"Did you know? Space Edition!" section.',
    "",
    "IMPORTANT: Ask the user for consent before calling this tool (opt-in). Only include "
    "the Space Edition section if the user says yes.",
    "When included, always keep the provided credits/references in the draft.",
    "",
    "NOTE: This tool does NOT create a Gmail draft by itself. If the user asked you to "
    "draft a reply, you must still compose the full reply (normal reply first, Space "
    "Edition after) and then call `create_draft_reply` to save the draft.",
])

# Earlier builds exposed the APOD tool under this name
SPACE_PICTURE_ALIAS = "get_cosmic_inspiration"


class ToolHandlers:
    """Argument checking and result shaping for each tool, independent of MCP."""

    def __init__(self, gmail: GmailService, apod: ApodService | None = None) -> None:
        self._gmail = gmail
        self._apod = apod

    async def get_unread_emails(self) -> list[dict[str, str]]:
        emails = await self._gmail.list_unread()
        return [email.to_dict() for email in emails]

    async def create_draft_reply(
        self,
        email_id: str | None,
        reply_body: str | None,
        fmt: str | None = "plain",
    ) -> dict[str, Any]:
        if not email_id or not reply_body:
            raise ValueError("emailId and replyBody are required")
        fmt = fmt or "plain"
        if fmt not in ("plain", "html"):
            raise ValueError(f'format must be "plain" or "html", got {fmt!r}')

        check_reply_has_body_before_marker(reply_body, fmt)  # type: ignore[arg-type]
        result = await self._gmail.compose_draft_reply(email_id, reply_body, fmt)  # type: ignore[arg-type]
        return {
            "success": True,
            "draftId": result.draft_id,
            "threadId": result.thread_id,
            "message": "Draft reply created successfully",
        }

    async def get_space_picture_of_the_day(
        self,
        date: str | None = None,
        max_days_back: Any = None,
    ) -> dict[str, Any]:
        if self._apod is None:
            raise RuntimeError("Space picture of the day is disabled")
        picture = await self._apod.get_picture_of_day(date=date, max_days_back=max_days_back)
        return picture.to_dict()


def _json_result(payload: Any, is_error: bool = False) -> CallToolResult:
    text = json.dumps(payload, indent=2, ensure_ascii=False)
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


async def respond(tool_name: str, pending: Awaitable[Any]) -> CallToolResult:
    """Await a handler and wrap its result (or its error) as a JSON text tool result."""
    try:
        result = await pending
    except Exception as exc:  # noqa: BLE001
        logger.error("Tool %s failed: %s", tool_name, exc, exc_info=True)
        return _json_result({"error": str(exc)}, is_error=True)
    return _json_result(result)


def create_server(handlers: ToolHandlers, enable_space_picture: bool = True) -> FastMCP:
    """Build a FastMCP server with the Gmail tools and, optionally, the APOD tools."""
    server = FastMCP(name=SERVER_NAME)

    async def get_unread_emails() -> CallToolResult:
        return await respond("get_unread_emails", handlers.get_unread_emails())

    async def create_draft_reply(
        emailId: Annotated[
            str, Field(description="The ID of the email to reply to (from get_unread_emails)")
        ],
        replyBody: Annotated[str, Field(description="The body text of the reply")],
        format: Annotated[
            Literal["plain", "html"],
            Field(description='Body format of the reply: "plain" (default) or "html"'),
        ] = "plain",
    ) -> CallToolResult:
        return await respond(
            "create_draft_reply",
            handlers.create_draft_reply(emailId, replyBody, format),
        )

    server.add_tool(get_unread_emails, name="get_unread_emails", description=UNREAD_DESCRIPTION)
    server.add_tool(create_draft_reply, name="create_draft_reply", description=DRAFT_DESCRIPTION)

    if enable_space_picture:

        async def get_space_picture_of_the_day(
            date: Annotated[
                str | None,
                Field(
                    description="Optional date (YYYY-MM-DD). Defaults to today. If the APOD "
                    "is missing for that date, the server will try previous days."
                ),
            ] = None,
            maxDaysBack: Annotated[
                float | None,
                Field(
                    description="How many days back to search if the requested date "
                    "fails. Default 10; max 30."
                ),
            ] = None,
        ) -> CallToolResult:
            return await respond(
                "get_space_picture_of_the_day",
                handlers.get_space_picture_of_the_day(date=date, max_days_back=maxDaysBack),
            )

        for name in ("get_space_picture_of_the_day", SPACE_PICTURE_ALIAS):
            server.add_tool(
                get_space_picture_of_the_day,
                name=name,
                description=SPACE_PICTURE_DESCRIPTION,
            )

    logger.debug("Registered MCP tools (space picture %s)",
                 "enabled" if enable_space_picture else "disabled")
    return server

"""Shared pytest fixtures."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


def gmail_message(
    message_id: str,
    thread_id: str,
    headers: dict[str, str] | None = None,
    snippet: str | None = None,
) -> dict[str, Any]:
    """Build a Gmail API message resource with the given headers."""
    message: dict[str, Any] = {
        "id": message_id,
        "threadId": thread_id,
        "payload": {
            "headers": [{"name": k, "value": v} for k, v in (headers or {}).items()],
        },
    }
    if snippet is not None:
        message["snippet"] = snippet
    return message


@pytest.fixture
def provider() -> MagicMock:
    """A MailProvider whose calls are all AsyncMocks."""
    p = MagicMock()
    p.list_messages = AsyncMock(return_value=[])
    p.get_message = AsyncMock()
    p.create_draft = AsyncMock(return_value={"id": "draft_001"})
    return p


@pytest.fixture
def sample_apod() -> dict[str, str]:
    """A complete APOD API response."""
    return {
        "date": "2026-01-22",
        "title": "Test APOD",
        "explanation": "A long explanation about the cosmos.",
        "media_type": "image",
        "url": "https://example.com/image.jpg",
        "hdurl": "https://example.com/hd.jpg",
        "copyright": "Test Author",
        "service_version": "v1",
    }


@pytest.fixture
def make_message() -> Any:
    """Factory fixture for Gmail message resources (see gmail_message)."""
    return gmail_message

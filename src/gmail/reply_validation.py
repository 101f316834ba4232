"""Guardrail for reply bodies that embed the Space Edition block.

Catches the common failure where the calling model pastes only the Space
Edition section as the whole reply.  This is a presence check on the text
before the marker, not a judgement of its content.
"""

import re

from src.gmail.types import DraftFormat

SPACE_EDITION_MARKER = "Did you know? Space Edition!"

_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")


class MissingReplyBodyError(ValueError):
    """Raised when a reply has no text before the Space Edition block."""


def check_reply_has_body_before_marker(reply_body: str, fmt: DraftFormat) -> None:
    """Raise MissingReplyBodyError if nothing precedes the Space Edition marker.

    Bodies without the marker always pass.  In HTML mode tags are stripped
    and whitespace collapsed before judging emptiness.
    """
    idx = reply_body.find(SPACE_EDITION_MARKER)
    if idx == -1:
        return

    prefix = reply_body[:idx]

    if fmt == "html":
        prefix_text = _WHITESPACE.sub(" ", _TAG.sub(" ", prefix)).strip()
        if not prefix_text:
            raise MissingReplyBodyError(
                "replyBody appears to contain only the Space Edition section. "
                "Write the email reply FIRST, then append the Space Edition block "
                'after it (use format="html" if embedding the image).'
            )
        return

    if not prefix.strip():
        raise MissingReplyBodyError(
            "replyBody appears to contain only the Space Edition section. "
            "Write the email reply FIRST, then append the Space Edition block after it."
        )

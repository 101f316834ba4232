"""Data types shared across the Gmail modules."""

from dataclasses import dataclass
from typing import Literal

#: Body format of a composed reply.
DraftFormat = Literal["plain", "html"]


@dataclass(frozen=True)
class UnreadEmailSummary:
    """An unread email as surfaced by the ``get_unread_emails`` tool.

    ``body`` is Gmail's auto-generated snippet, not the full message body.
    """

    sender: str
    subject: str
    body: str
    email_id: str
    thread_id: str

    def to_dict(self) -> dict[str, str]:
        return {
            "sender": self.sender,
            "subject": self.subject,
            "body": self.body,
            "emailId": self.email_id,
            "threadId": self.thread_id,
        }


@dataclass(frozen=True)
class DraftReplyResult:
    """Identifiers of a draft created by GmailService.compose_draft_reply()."""

    draft_id: str
    thread_id: str

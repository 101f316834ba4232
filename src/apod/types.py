"""Data types for the NASA Astronomy Picture of the Day (APOD) integration."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SpacePictureOfTheDay:
    """An APOD entry plus paste-ready "Space Edition" blocks.

    ``date_used`` is the date that actually produced a result and is never
    later than ``requested_date``.
    """

    requested_date: str
    date_used: str
    title: str
    explanation: str
    media_type: str
    media_url: str
    apod_page_url: str
    credits_text: str
    space_edition_block: str
    space_edition_block_html: str
    hd_url: str | None = None
    copyright: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "requestedDate": self.requested_date,
            "dateUsed": self.date_used,
            "title": self.title,
            "explanation": self.explanation,
            "mediaType": self.media_type,
            "mediaUrl": self.media_url,
        }
        if self.hd_url:
            data["hdUrl"] = self.hd_url
        data["apodPageUrl"] = self.apod_page_url
        data["attribution"] = {"copyright": self.copyright} if self.copyright else {}
        data["creditsText"] = self.credits_text
        data["spaceEditionBlock"] = self.space_edition_block
        data["spaceEditionBlockHtml"] = self.space_edition_block_html
        return data

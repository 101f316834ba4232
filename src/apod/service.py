"""NASA APOD service — fetches the picture of the day with a backward date walk.

If the requested date has no usable entry (not yet published, API hiccup,
malformed payload) the service steps back one UTC day at a time until an
entry is found or the look-back window is exhausted.  The result is formatted
into a paste-ready "Did you know? Space Edition!" section in plain text and
HTML.
"""

import html
import logging
import math
import os
import re
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx

from src.apod.types import SpacePictureOfTheDay

logger = logging.getLogger(__name__)

APOD_API_URL = "https://api.nasa.gov/planetary/apod"
APOD_PAGE_BASE_URL = "https://apod.nasa.gov/apod"
SPACE_EDITION_BANNER = "Did you know? Space Edition!"

DEFAULT_MAX_DAYS_BACK = 10
MAX_DAYS_BACK_LIMIT = 30
EXPLANATION_CHAR_LIMIT = 420

_DATE_FORMAT = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
_REQUIRED_FIELDS = ("date", "title", "explanation", "url")


class ApodError(Exception):
    """Base class for APOD failures."""


class InvalidDateFormatError(ApodError):
    """Raised when a requested date is not a real YYYY-MM-DD date."""


class ApodFetchError(ApodError):
    """Raised when a single date's fetch fails; triggers the next fallback day."""


class ExhaustedFallbackError(ApodError):
    """Raised when every date in the look-back window failed.

    Only the most recent failure is reported; earlier ones are counted.
    """

    def __init__(self, attempts: int, requested_date: str, last_date: str, last_reason: str) -> None:
        super().__init__(
            f"Unable to fetch NASA APOD after checking {attempts} day(s) back from "
            f"{requested_date}. Last error ({last_date}): {last_reason}"
        )
        self.attempts = attempts
        self.requested_date = requested_date
        self.last_date = last_date
        self.last_reason = last_reason


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def parse_apod_date(value: str) -> date:
    """Parse a strict ``YYYY-MM-DD`` string into a date.

    Raises InvalidDateFormatError for anything else, including impossible
    calendar dates such as ``2026-02-30``.
    """
    if not isinstance(value, str) or not _DATE_FORMAT.match(value):
        raise InvalidDateFormatError("Invalid date format. Use YYYY-MM-DD.")
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError as exc:
        raise InvalidDateFormatError("Invalid date format. Use YYYY-MM-DD.") from exc


def clamp_days_back(value: Any) -> int:
    """Clamp a look-back count into [0, 30]; unusable input means the default."""
    if value is None or isinstance(value, bool):
        return DEFAULT_MAX_DAYS_BACK
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_MAX_DAYS_BACK
    if not math.isfinite(number):
        return DEFAULT_MAX_DAYS_BACK
    return max(0, min(MAX_DAYS_BACK_LIMIT, math.floor(number)))


def apod_page_url(apod_date: str) -> str:
    """Human-facing APOD page, e.g. 2026-01-22 -> .../ap260122.html."""
    yy, mm, dd = apod_date[2:4], apod_date[5:7], apod_date[8:10]
    return f"{APOD_PAGE_BASE_URL}/ap{yy}{mm}{dd}.html"


def truncate(text: str, limit: int = EXPLANATION_CHAR_LIMIT) -> str:
    """Shorten ``text`` to at most ``limit`` characters, ending with an ellipsis.

    Python strings slice by code point, so a cut never lands inside a
    multi-byte sequence.
    """
    if len(text) <= limit:
        return text
    return f"{text[:max(0, limit - 1)].rstrip()}…"


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class ApodService:
    """Fetches APOD entries and turns them into Space Edition sections."""

    def __init__(
        self,
        api_key: str | None = None,
        http: httpx.AsyncClient | None = None,
        base_url: str = APOD_API_URL,
        today: Callable[[], date] = _utc_today,
    ) -> None:
        self._api_key = api_key or os.environ.get("NASA_API_KEY") or "DEMO_KEY"
        self._http = http
        self._base_url = base_url
        self._today = today

    async def get_picture_of_day(
        self,
        date: str | None = None,
        max_days_back: Any = DEFAULT_MAX_DAYS_BACK,
    ) -> SpacePictureOfTheDay:
        """Return the APOD for ``date`` (default: today, UTC), walking back on failure.

        Makes at most ``max_days_back + 1`` requests, strictly one after another.

        Raises:
            InvalidDateFormatError: ``date`` is not a real YYYY-MM-DD date.
                No request is made.
            ExhaustedFallbackError: every date in the window failed.
        """
        requested_date = date if date is not None else self._today().isoformat()
        current = parse_apod_date(requested_date)
        days_back = clamp_days_back(max_days_back)

        attempts = 0
        last_date = requested_date
        last_reason = ""
        for step in range(days_back + 1):
            if step:
                try:
                    current -= timedelta(days=1)
                except OverflowError:
                    # Nothing exists before date.min.
                    break
            date_to_try = current.isoformat()
            attempts += 1
            try:
                apod = await self._fetch(date_to_try)
            except ApodFetchError as exc:
                last_date, last_reason = date_to_try, str(exc)
                logger.warning("APOD unavailable for %s: %s", date_to_try, exc)
                continue

            if date_to_try != requested_date:
                logger.info(
                    "APOD for %s unavailable; using %s after %d attempt(s)",
                    requested_date,
                    date_to_try,
                    attempts,
                )
            return self._to_picture(apod, requested_date)

        raise ExhaustedFallbackError(attempts, requested_date, last_date, last_reason)

    # ── Internal helpers ───────────────────────────────────────────────────────

    async def _fetch(self, apod_date: str) -> dict[str, Any]:
        """Fetch one date's entry. Any failure surfaces as ApodFetchError."""
        params = {"api_key": self._api_key, "date": apod_date}
        logger.debug("APOD → GET %s date=%s", self._base_url, apod_date)
        try:
            if self._http is not None:
                response = await self._http.get(self._base_url, params=params)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await client.get(self._base_url, params=params)
        except httpx.HTTPError as exc:
            raise ApodFetchError(f"NASA API request failed: {exc}") from exc

        if not response.is_success:
            raise ApodFetchError(
                f"NASA API error ({response.status_code}): {response.text}".strip()
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise ApodFetchError("NASA API returned a non-JSON response.") from exc

        if not isinstance(data, dict) or not all(data.get(f) for f in _REQUIRED_FIELDS):
            raise ApodFetchError("NASA API returned an unexpected response shape.")
        return data

    def _to_picture(self, apod: dict[str, Any], requested_date: str) -> SpacePictureOfTheDay:
        page_url = apod_page_url(str(apod["date"]))
        copyright_ = _clean_optional(apod.get("copyright"))
        credits = build_credits_text(page_url, copyright_)
        return SpacePictureOfTheDay(
            requested_date=requested_date,
            date_used=str(apod["date"]),
            title=str(apod["title"]),
            explanation=str(apod["explanation"]),
            media_type=str(apod.get("media_type") or ""),
            media_url=str(apod["url"]),
            hd_url=_clean_optional(apod.get("hdurl")),
            copyright=copyright_,
            apod_page_url=page_url,
            credits_text=credits,
            space_edition_block=build_space_edition_block(apod, page_url, credits),
            space_edition_block_html=build_space_edition_html(apod, page_url, copyright_),
        )


def _clean_optional(value: Any) -> str | None:
    # APOD copyright strings often carry stray newlines
    if not value:
        return None
    return normalize_whitespace(str(value)) or None


# ── Formatting ─────────────────────────────────────────────────────────────────


def build_credits_text(page_url: str, copyright_: str | None = None) -> str:
    parts = [f"Source: NASA Astronomy Picture of the Day (APOD) — {page_url}"]
    if copyright_:
        parts.append(f"Credit: {copyright_}")
    parts.append("API: https://api.nasa.gov/")
    return " | ".join(parts)


def build_space_edition_block(apod: dict[str, Any], page_url: str, credits_text: str) -> str:
    """Plain-text Space Edition section, one field per line."""
    lines = [
        SPACE_EDITION_BANNER,
        f"NASA APOD ({apod['date']}) — {apod['title']}",
        "",
        truncate(normalize_whitespace(str(apod["explanation"]))),
        "",
        f"Media: {apod['url']}",
    ]
    if apod.get("hdurl"):
        lines.append(f"HD: {apod['hdurl']}")
    lines.append(f"More: {page_url}")
    lines.append(credits_text)
    return "\n".join(lines)


def build_space_edition_html(apod: dict[str, Any], page_url: str, copyright_: str | None) -> str:
    """HTML Space Edition section with the image inline and credits below it."""
    esc = html.escape
    title = esc(str(apod["title"]))
    media_url = esc(str(apod["url"]), quote=True)
    page = esc(page_url, quote=True)
    explanation = esc(truncate(normalize_whitespace(str(apod["explanation"]))))

    parts = [
        "<div>",
        f"<h3>{esc(SPACE_EDITION_BANNER)}</h3>",
        f"<p><strong>NASA APOD ({esc(str(apod['date']))}) — {title}</strong></p>",
    ]
    if apod.get("media_type") == "image":
        parts.append(
            f'<p><a href="{page}"><img src="{media_url}" alt="{title}" '
            'style="max-width:100%;height:auto;" /></a></p>'
        )
    else:
        parts.append(f'<p>Media: <a href="{media_url}">{media_url}</a></p>')
    parts.append(f"<p>{explanation}</p>")

    links = [f'<a href="{page}">More on APOD</a>']
    if apod.get("hdurl"):
        links.append(f'<a href="{esc(str(apod["hdurl"]), quote=True)}">HD image</a>')
    parts.append(f"<p>{' | '.join(links)}</p>")

    credit = (
        f'<p><small>Source: <a href="{page}">NASA Astronomy Picture of the Day (APOD)</a>'
    )
    if copyright_:
        credit += f" | Credit: {esc(copyright_)}"
    credit += ' | API: <a href="https://api.nasa.gov/">api.nasa.gov</a></small></p>'
    parts.append(credit)
    parts.append("</div>")
    return "\n".join(parts)

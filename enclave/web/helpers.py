"""Template helpers registered as Jinja filters and globals, plus file downloads."""

import logging
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import quote, urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import Response

from enclave.clock import as_utc
from enclave.consts import STAT_LIST
from enclave.resources.lfg import party_stat_totals

logger = logging.getLogger(__name__)

CALENDAR_URL = "https://calendar.google.com/calendar/render"
CALENDAR_FORMAT = "%Y%m%dT%H%M%SZ"


def format_date(value: Optional[datetime], fmt: str = "%b %d, %Y", tz: Optional[str] = None) -> str:
    """Format a stored (naive UTC) timestamp, optionally in another zone."""
    if value is None:
        return ""
    moment = as_utc(value)
    if tz:
        try:
            moment = moment.astimezone(ZoneInfo(tz))
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown time zone %r, showing UTC", tz)
    return moment.strftime(fmt)


def calendar_link(title: str, start: Optional[datetime], details: str = "",
                  duration: timedelta = timedelta(hours=1)) -> str:
    """Google Calendar "add event" link; empty when there is no start time."""
    if start is None:
        return ""
    begin = as_utc(start)
    end = begin + duration
    query = urlencode({
        "action": "TEMPLATE",
        "text": title or "",
        "dates": f"{begin.strftime(CALENDAR_FORMAT)}/{end.strftime(CALENDAR_FORMAT)}",
        "details": details or "",
    })
    return f"{CALENDAR_URL}?{query}"


def stat_total(character) -> int:
    """Sum of a character's twelve stats."""
    return sum(getattr(character, stat, 0) or 0 for stat in STAT_LIST)


def download_response(exported) -> Response:
    """Send an export as an attachment that is never cached."""
    headers = {
        "Content-Disposition": f"attachment; filename*=UTF-8''{quote(exported.filename)}",
        "Cache-Control": "no-cache, no-store, must-revalidate",
    }
    return Response(exported.content, content_type=f"{exported.mimetype}; charset=utf-8", headers=headers)


def register(app):
    app.jinja_env.filters["format_date"] = format_date
    app.jinja_env.filters["stat_total"] = stat_total
    app.jinja_env.globals["calendar_link"] = calendar_link
    app.jinja_env.globals["party_stat_totals"] = party_stat_totals
    app.jinja_env.globals["STAT_LIST"] = STAT_LIST

"""Scalar coercion for imported and form-submitted values.

Each function accepts whatever the language model or a form produced and
returns a value that fits the record, never raising on bad input.
"""

import re
import unicodedata
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import dateparser
from pydantic import HttpUrl, TypeAdapter, ValidationError

from enclave.clock import to_naive_utc, utcnow
from enclave.models.enums import Outcome

OUTCOME_OPTIONS = [Outcome.SUCCESS.value, Outcome.FAILURE.value, Outcome.PENDING.value]

DATEPARSER_SETTINGS = {
    "TIMEZONE": "UTC",
    "TO_TIMEZONE": "UTC",
    "RETURN_AS_TIMEZONE_AWARE": True,
}

_url_adapter = TypeAdapter(HttpUrl)


def coerce_outcome(value) -> str:
    """First outcome keyword contained in the text, else pending."""
    if not value or not isinstance(value, str):
        return Outcome.PENDING.value
    lowered = value.lower()
    for option in OUTCOME_OPTIONS:
        if option in lowered:
            return option
    return Outcome.PENDING.value


def parse_date(value) -> Optional[datetime]:
    """Parse a date permissively; returns an aware UTC datetime or None."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if not value or not isinstance(value, str) or not value.strip():
        return None
    parsed = dateparser.parse(value.strip(), settings=DATEPARSER_SETTINGS)
    if parsed is None:
        return None
    return parsed.astimezone(timezone.utc)


def coerce_date(value) -> datetime:
    """Parsed date as naive UTC; unparseable or absent values become now."""
    parsed = parse_date(value)
    if parsed is None:
        return utcnow()
    return to_naive_utc(parsed)


def coerce_optional_date(value) -> Optional[datetime]:
    parsed = parse_date(value)
    return to_naive_utc(parsed) if parsed is not None else None


def to_text(value) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def to_url_or_none(value) -> Optional[str]:
    """Return the URL if it is an absolute http(s) URL, otherwise None."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return str(_url_adapter.validate_python(value.strip()))
    except ValidationError:
        return None


def normalize_name(name) -> str:
    """Comparison key for a person's name.

    Accents are decomposed and their combining marks removed, punctuation
    becomes a space, whitespace collapses and the result is lower-cased.
    """
    if not isinstance(name, str):
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    spaced = re.sub(r"[^\w\s]", " ", stripped)
    return re.sub(r"\s+", " ", spaced).strip().lower()


def dedupe_names(names: Optional[Iterable[str]]) -> List[str]:
    """Drop names whose normalized form was already seen; keeps first spelling, trimmed."""
    seen = set()
    result = []
    for name in names or []:
        key = normalize_name(name)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(name.strip())
    return result

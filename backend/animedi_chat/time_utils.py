from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any

_FRACTION_RE = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")
_SHORT_OFFSET_RE = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?[+-]\d{2})$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _normalize_iso(text: str) -> str:
    # fromisoformat before 3.11 needs exactly 6 fraction digits and a +HH:MM offset
    text = _FRACTION_RE.sub(lambda m: m.group(1) + "." + m.group(2)[:6].ljust(6, "0"), text)
    return _SHORT_OFFSET_RE.sub(r"\1:00", text)


def parse_iso(value: Any) -> datetime | None:
    """Best-effort parse of a date-ish value into an aware UTC datetime.

    Accepts datetimes, dates, ISO-8601 strings (with ``Z`` or an offset, or
    date-only) and epoch seconds. Anything else yields ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        text = _normalize_iso(text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

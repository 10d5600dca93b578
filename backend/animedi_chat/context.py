from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from .models import MAX_CONTEXT_ITEMS, MAX_FIELD_CHARS, TRUNCATION_MARKER, ContextSummary
from .time_utils import parse_iso, utc_now

PET_PROFILE_FIELDS = ("id", "name", "species", "breed", "age", "gender", "color", "weight", "notes")
_BINARY_FIELDS = {"files", "file", "file_data", "base64"}
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def truncate_text(value: Any, max_chars: int = MAX_FIELD_CHARS) -> Any:
    if isinstance(value, str) and len(value) > max_chars:
        return value[:max_chars] + TRUNCATION_MARKER
    return value


def _first_date(item: dict[str, Any], keys: Iterable[str]) -> datetime | None:
    for key in keys:
        raw = item.get(key)
        if raw:
            return parse_iso(raw)
    return None


def newest_first(items: Any, date_keys: Iterable[str]) -> list[dict[str, Any]]:
    """Sort dict items by the first present date key, newest first.

    Items whose date is missing or unparsable sort after dated ones.
    Non-dict entries are dropped.
    """
    keys = tuple(date_keys)
    rows = [item for item in (items or []) if isinstance(item, dict)]

    def sort_key(item: dict[str, Any]) -> tuple[bool, datetime]:
        parsed = _first_date(item, keys)
        return (parsed is not None, parsed or _EPOCH)

    return sorted(rows, key=sort_key, reverse=True)


def _safe_copy(item: dict[str, Any], text_fields: Iterable[str]) -> dict[str, Any]:
    copy = {key: value for key, value in item.items() if key not in _BINARY_FIELDS}
    for name in text_fields:
        if name in copy:
            copy[name] = truncate_text(copy[name])
    return copy


def pet_projection(pet: Any) -> dict[str, Any]:
    if not isinstance(pet, dict):
        return {}
    return {name: pet.get(name) for name in PET_PROFILE_FIELDS}


def _is_overdue(reminder: dict[str, Any], now: datetime) -> bool:
    status = str(reminder.get("status") or "").strip().lower()
    if status == "overdue":
        return True
    due = parse_iso(reminder.get("due_date"))
    return due is not None and due < now and status != "completed"


def summarize_reminders(reminders: list[dict[str, Any]], now: datetime | None = None) -> str:
    if not reminders:
        return "No reminders."
    now = now or utc_now()
    overdue = sum(1 for row in reminders if _is_overdue(row, now))
    recurring = sum(1 for row in reminders if row.get("is_recurring"))
    latest = reminders[0].get("title") or reminders[0].get("description") or "N/A"
    return f'{len(reminders)} total, {overdue} overdue, {recurring} recurring. Most recent: "{latest}"'


def summarize_records(records: list[dict[str, Any]]) -> str:
    if not records:
        return "No medical records."
    by_type: dict[str, int] = {}
    for row in records:
        kind = row.get("type")
        if kind:
            by_type[str(kind)] = by_type.get(str(kind), 0) + 1
    breakdown = ", ".join(f"{count} {kind}" for kind, count in by_type.items())
    latest = records[0].get("title") or "N/A"
    head = f"{len(records)} records" + (f", {breakdown}" if breakdown else "")
    return f'{head}. Most recent: "{latest}"'


def summarize_logs(logs: list[dict[str, Any]]) -> str:
    if not logs:
        return "No logs."
    latest = logs[0].get("action") or logs[0].get("event") or "N/A"
    return f"{len(logs)} actions logged. Most recent: {latest}"


def summarize_context(
    *,
    pet: Any = None,
    reminders: Any = None,
    records: Any = None,
    logs: Any = None,
    now: datetime | None = None,
) -> ContextSummary:
    kept_reminders = newest_first(reminders, ("due_date", "date"))[:MAX_CONTEXT_ITEMS]
    kept_records = newest_first(records, ("date",))[:MAX_CONTEXT_ITEMS]
    kept_logs = newest_first(logs, ("date", "timestamp", "created_at"))[:MAX_CONTEXT_ITEMS]

    safe_reminders = [_safe_copy(row, ("description",)) for row in kept_reminders]
    safe_records = [_safe_copy(row, ("description", "extractedText")) for row in kept_records]
    safe_logs = [_safe_copy(row, ("description", "log_text")) for row in kept_logs]

    return ContextSummary(
        pet=pet_projection(pet),
        reminders=safe_reminders,
        records=safe_records,
        logs=safe_logs,
        reminders_summary=summarize_reminders(safe_reminders, now),
        records_summary=summarize_records(safe_records),
        logs_summary=summarize_logs(safe_logs),
    )

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from animedi_chat.context import newest_first
from animedi_chat.time_utils import parse_iso


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2025-03-01T10:15:30.5+00:00", datetime(2025, 3, 1, 10, 15, 30, 500000, tzinfo=timezone.utc)),
        ("2025-03-01T10:15:30.12Z", datetime(2025, 3, 1, 10, 15, 30, 120000, tzinfo=timezone.utc)),
        ("2025-03-01 10:15:30.1234+00", datetime(2025, 3, 1, 10, 15, 30, 123400, tzinfo=timezone.utc)),
        ("2025-03-01T10:15:30.12345-05:00", datetime(2025, 3, 1, 15, 15, 30, 123450, tzinfo=timezone.utc)),
        ("2025-03-01T10:15:30.1234567Z", datetime(2025, 3, 1, 10, 15, 30, 123456, tzinfo=timezone.utc)),
        ("2025-03-01 10:15:30+02", datetime(2025, 3, 1, 8, 15, 30, tzinfo=timezone.utc)),
        ("2025-03-01", datetime(2025, 3, 1, tzinfo=timezone.utc)),
    ],
)
def test_parse_iso_accepts_database_timestamps(raw, expected):
    assert parse_iso(raw) == expected


@pytest.mark.parametrize("raw", ["", "yesterday", None, True, {"date": "2025-01-01"}])
def test_parse_iso_rejects_garbage(raw):
    assert parse_iso(raw) is None


def test_trimmed_fractions_still_sort_newest_first():
    records = [
        {"title": "older", "date": "2025-03-01T08:00:00.123456+00:00"},
        {"title": "newest", "date": "2025-03-02T09:30:00.5+00:00"},
        {"title": "middle", "date": "2025-03-01T12:00:00.25+00"},
    ]

    assert [row["title"] for row in newest_first(records, ("date",))] == ["newest", "middle", "older"]

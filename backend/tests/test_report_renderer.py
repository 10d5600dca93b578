from __future__ import annotations

from animedi_services.report import (
    APPENDIX_LIMIT,
    DETAIL_CHARS,
    build_report_layout,
    pdf_safe,
    render_report_pdf,
)


def test_empty_inputs_render_every_placeholder():
    layout = build_report_layout({}, pet={"name": "Milo"}, reminders=[], records=[], logs=[])

    assert [(s.title, s.body) for s in layout.narrative] == [
        ("Health Summary", "No summary available."),
        ("Medical History", "No medical history available."),
        ("Reminders", "No reminders available."),
        ("Medical Records", "No records available."),
        ("Logs", "No logs available."),
    ]
    assert all(section.is_placeholder for section in layout.narrative)
    assert [(s.title, s.entries, s.placeholder) for s in layout.appendix] == [
        ("Reminders", [], "No reminders available."),
        ("Medical Records", [], "No medical records available."),
        ("Logs", [], "No logs available."),
    ]


def test_whitespace_narrative_counts_as_missing():
    layout = build_report_layout({"summary": "   ", "logs": "Walked daily."})

    assert layout.narrative[0].body == "No summary available."
    assert layout.narrative[4].body == "Walked daily."
    assert layout.pet_name == "pet"


def test_appendix_is_capped_and_detail_truncated():
    records = [
        {"title": f"Record {i}", "date": f"2025-01-{i % 28 + 1:02d}", "description": "d" * 800}
        for i in range(30)
    ]
    logs = [{"log_text": "ate breakfast", "created_at": "2025-05-01T08:00:00Z"}]

    layout = build_report_layout({}, records=records, logs=logs)

    entries = layout.appendix[1].entries
    assert len(entries) == APPENDIX_LIMIT
    assert entries[0].index == 1 and entries[-1].index == APPENDIX_LIMIT
    assert len(entries[0].detail) == DETAIL_CHARS
    log_entry = layout.appendix[2].entries[0]
    assert log_entry.title == "Untitled"
    assert log_entry.date == "2025-05-01T08:00:00Z"
    assert log_entry.detail == "ate breakfast"


def test_parse_error_report_is_rendered_as_is():
    report = {"error": "Invalid JSON from model", "raw": "Milo is doing great", "parseError": "Expecting value"}

    layout = build_report_layout(report)

    summary = layout.narrative[0].body
    assert "Invalid JSON from model" in summary
    assert "Expecting value" in summary
    assert "Milo is doing great" in summary


def test_render_produces_pdf_bytes_without_logo(tmp_path):
    layout = build_report_layout(
        {"summary": "Healthy overall \u2014 keep it up \u2019til next visit \U0001F436"},
        pet={"name": "Milo"},
        reminders=[{"title": "Flea treatment", "due_date": "2025-06-10", "description": "Monthly"}],
        records=[],
        logs=[],
    )

    pdf_bytes = render_report_pdf(layout, logo_path=tmp_path / "missing.png")

    assert pdf_bytes.startswith(b"%PDF")
    assert len(pdf_bytes) > 1000


def test_pdf_safe_maps_to_latin1():
    assert pdf_safe("a \u2014 b \u2018c\u2019") == "a - b 'c'"
    assert pdf_safe("\U0001F436") == "?"

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from fpdf import FPDF
from fpdf.enums import XPos, YPos

logger = logging.getLogger(__name__)

ACCENT_COLOR = (139, 92, 246)
HEADER_BG = (245, 243, 255)
SECTION_BG = (243, 244, 246)
DIVIDER_COLOR = (229, 231, 235)
FOOTER_COLOR = (136, 136, 136)

REPORT_TITLE = "AniMedi Health Report"
FOOTER_TEXT = "This report is generated by AniMedi. For more information, visit https://animedi.pet"
APPENDIX_LIMIT = 20
DETAIL_CHARS = 300

NARRATIVE_SECTIONS = (
    ("Health Summary", "summary", "No summary available."),
    ("Medical History", "medical_history", "No medical history available."),
    ("Reminders", "reminders", "No reminders available."),
    ("Medical Records", "records", "No records available."),
    ("Logs", "logs", "No logs available."),
)

_UNICODE_REPLACEMENTS = {
    chr(0x2018): "'",
    chr(0x2019): "'",
    chr(0x201C): '"',
    chr(0x201D): '"',
    chr(0x2013): "-",
    chr(0x2014): "-",
    chr(0x2022): "-",
    chr(0x2026): "...",
    chr(0x00A0): " ",
}


@dataclass
class AppendixEntry:
    index: int
    title: str
    date: str
    detail: str | None = None


@dataclass
class NarrativeSection:
    title: str
    body: str
    is_placeholder: bool = False


@dataclass
class AppendixSection:
    title: str
    entries: list[AppendixEntry] = field(default_factory=list)
    placeholder: str = ""


@dataclass
class ReportLayout:
    pet_name: str
    narrative: list[NarrativeSection] = field(default_factory=list)
    appendix: list[AppendixSection] = field(default_factory=list)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _narrative(report: dict[str, Any]) -> list[NarrativeSection]:
    sections: list[NarrativeSection] = []
    for title, key, placeholder in NARRATIVE_SECTIONS:
        body = _text(report.get(key))
        sections.append(NarrativeSection(title, body or placeholder, is_placeholder=not body))
    if report.get("error"):
        error_body = f"{report.get('error')}: {_text(report.get('parseError'))}\n\n{_text(report.get('raw'))}".strip()
        sections[0] = NarrativeSection(sections[0].title, error_body)
    return sections


def _appendix_entries(rows: Any, date_keys: tuple[str, ...], detail_keys: tuple[str, ...]) -> list[AppendixEntry]:
    entries: list[AppendixEntry] = []
    for index, row in enumerate([r for r in (rows or []) if isinstance(r, dict)][:APPENDIX_LIMIT], start=1):
        date = next((_text(row.get(key)) for key in date_keys if _text(row.get(key))), "N/A")
        detail = next((_text(row.get(key)) for key in detail_keys if _text(row.get(key))), "")
        entries.append(
            AppendixEntry(
                index=index,
                title=_text(row.get("title")) or "Untitled",
                date=date,
                detail=detail[:DETAIL_CHARS] or None,
            )
        )
    return entries


def build_report_layout(
    report: dict[str, Any],
    *,
    pet: dict[str, Any] | None = None,
    reminders: Any = None,
    records: Any = None,
    logs: Any = None,
) -> ReportLayout:
    appendix = [
        AppendixSection(
            "Reminders",
            _appendix_entries(reminders, ("date", "due_date"), ("description",)),
            "No reminders available.",
        ),
        AppendixSection(
            "Medical Records",
            _appendix_entries(records, ("date",), ("description", "extractedText")),
            "No medical records available.",
        ),
        AppendixSection(
            "Logs",
            _appendix_entries(logs, ("created_at", "date", "timestamp"), ("log_text", "description")),
            "No logs available.",
        ),
    ]
    return ReportLayout(
        pet_name=_text((pet or {}).get("name")) or "pet",
        narrative=_narrative(report if isinstance(report, dict) else {}),
        appendix=appendix,
    )


def pdf_safe(text: str) -> str:
    """Coerce text to the latin-1 range the core PDF fonts can draw."""
    for source, target in _UNICODE_REPLACEMENTS.items():
        text = text.replace(source, target)
    return text.encode("latin-1", errors="replace").decode("latin-1")


class HealthReportPDF(FPDF):
    def __init__(self, logo_path: Path | None = None) -> None:
        super().__init__(orientation="P", unit="mm", format="A4")
        self.logo_path = logo_path
        self.set_margins(14, 14, 14)
        self.set_auto_page_break(auto=True, margin=20)

    def header(self) -> None:
        if self.page_no() != 1:
            return
        self.set_fill_color(*HEADER_BG)
        self.rect(0, 0, self.w, 25, style="F")
        if self.logo_path is not None and self.logo_path.exists():
            try:
                self.image(str(self.logo_path), x=self.l_margin, y=5, w=14, h=14)
            except (OSError, RuntimeError, ValueError):
                logger.debug("logo at %s could not be drawn", self.logo_path)
        self.set_xy(0, 8)
        self.set_font("Helvetica", "B", 22)
        self.set_text_color(*ACCENT_COLOR)
        self.cell(self.w, 10, REPORT_TITLE, align="C")
        self.set_text_color(0, 0, 0)
        self.set_y(32)

    def footer(self) -> None:
        self.set_y(-14)
        self.set_font("Helvetica", "", 8)
        self.set_text_color(*FOOTER_COLOR)
        self.cell(0, 8, FOOTER_TEXT, align="C")
        self.set_text_color(0, 0, 0)

    def section_banner(self, title: str) -> None:
        self.ln(2)
        self.set_fill_color(*SECTION_BG)
        self.set_text_color(*ACCENT_COLOR)
        self.set_font("Helvetica", "B", 14)
        self.cell(0, 9, pdf_safe(f"  {title}"), fill=True, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def divider(self) -> None:
        self.ln(3)
        self.set_draw_color(*DIVIDER_COLOR)
        self.set_line_width(0.3)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.ln(3)

    def body_text(self, text: str, *, size: float = 11, indent: float = 0, style: str = "") -> None:
        self.set_font("Helvetica", style, size)
        self.set_x(self.l_margin + indent)
        self.multi_cell(self.epw - indent, size * 0.5, pdf_safe(text), new_x=XPos.LMARGIN, new_y=YPos.NEXT)


def render_report_pdf(layout: ReportLayout, *, logo_path: Path | None = None) -> bytes:
    pdf = HealthReportPDF(logo_path=logo_path)
    pdf.add_page()

    for section in layout.narrative:
        pdf.section_banner(section.title)
        pdf.body_text(section.body)
        pdf.divider()

    pdf.add_page()
    pdf.section_banner("Raw Data Appendix")
    for category in layout.appendix:
        pdf.section_banner(category.title)
        if not category.entries:
            pdf.body_text(category.placeholder, size=10, indent=4)
        for entry in category.entries:
            pdf.set_text_color(*ACCENT_COLOR)
            pdf.body_text(f"{entry.index}. {entry.title}", size=10, indent=4, style="B")
            pdf.set_text_color(0, 0, 0)
            pdf.body_text(f"Date: {entry.date}", size=9, indent=8)
            if entry.detail:
                pdf.body_text(f"Details: {entry.detail}", size=9, indent=8)
            pdf.ln(2)
        pdf.divider()

    return bytes(pdf.output())

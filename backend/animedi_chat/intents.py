from __future__ import annotations

import re
from typing import Any

from .context import newest_first
from .models import ChatIntent, Defer, DirectAnswer, RouteResult

NO_EXTRACTED_TEXT = "No document found or no extracted text available."
NO_DOCUMENT = "No document found."
NO_MEDICATIONS = "No prescribed medicines or frequency found in any document."


class IntentRouter:
    """Answers a few chat questions straight from the supplied records.

    Rules run in a fixed order and the first match wins. Only ``Defer``
    sends the turn on to the model.
    """

    _EXTRACTED_TEXT_PATTERNS = [
        re.compile(r"text.*last.*doc", re.IGNORECASE),
        re.compile(r"extracted.*text.*last", re.IGNORECASE),
        re.compile(r"content.*last.*document", re.IGNORECASE),
    ]
    _LAST_DOCUMENT_PATTERN = re.compile(r"last.*doc(ument)?( details| info| information)?", re.IGNORECASE)
    _MEDICATION_TERMS = re.compile(
        r"medicine|medication|prescribe|frequency|dose|dosage|tablet|pill|drug|treatment",
        re.IGNORECASE,
    )
    _ALL_DOCUMENTS = re.compile(
        r"all.*doc|every.*doc|uploaded.*doc|all.*record|every.*record|uploaded.*record",
        re.IGNORECASE,
    )
    MEDICATION_LINE = re.compile(
        r"\b(\d+(\.\d+)?\s?(mg|mcg|ml)|mg|mcg|ml|tablets?|pills?|capsules?|chewables?|doses?|dosage"
        r"|prescribed?|prescription|administer(ed)?|give|directions?)\b",
        re.IGNORECASE,
    )

    def classify(self, message: str) -> ChatIntent:
        text = (message or "").strip()
        if any(pattern.search(text) for pattern in self._EXTRACTED_TEXT_PATTERNS):
            return ChatIntent.EXTRACTED_TEXT
        if self._LAST_DOCUMENT_PATTERN.search(text):
            return ChatIntent.LAST_DOCUMENT
        if self._MEDICATION_TERMS.search(text) and self._ALL_DOCUMENTS.search(text):
            return ChatIntent.MEDICATION_SCAN
        return ChatIntent.MODEL

    def route(self, message: str, records: Any) -> RouteResult:
        intent = self.classify(message)
        if intent is ChatIntent.EXTRACTED_TEXT:
            return DirectAnswer(intent, self._extracted_text(records))
        if intent is ChatIntent.LAST_DOCUMENT:
            return DirectAnswer(intent, self._last_document(records))
        if intent is ChatIntent.MEDICATION_SCAN:
            return DirectAnswer(intent, self._medication_lines(records))
        return Defer()

    def _newest(self, records: Any) -> dict[str, Any] | None:
        ordered = newest_first(records, ("date",))
        return ordered[0] if ordered else None

    def _extracted_text(self, records: Any) -> str:
        last = self._newest(records)
        if last is None:
            return NO_EXTRACTED_TEXT
        text = last.get("description") or last.get("extractedText")
        return text if isinstance(text, str) and text else NO_EXTRACTED_TEXT

    def _last_document(self, records: Any) -> str:
        last = self._newest(records)
        if last is None:
            return NO_DOCUMENT
        body = last.get("description") or last.get("extractedText") or ""
        return f"Title: {last.get('title')}\nDate: {last.get('date')}\n{body}"

    def _medication_lines(self, records: Any) -> str:
        matches: list[str] = []
        for record in records or []:
            if not isinstance(record, dict):
                continue
            seen: set[str] = set()
            for field_name in ("description", "extractedText"):
                text = record.get(field_name)
                if not isinstance(text, str):
                    continue
                for raw_line in re.split(r"[\r\n]+", text):
                    line = raw_line.strip()
                    if not line or line in seen or not self.MEDICATION_LINE.search(line):
                        continue
                    seen.add(line)
                    matches.append(f'From document "{record.get("title")}" ({record.get("date")}):\n{line}')
        if not matches:
            return NO_MEDICATIONS
        return "\n\n".join(matches)

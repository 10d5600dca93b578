from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


TRUNCATION_MARKER = "... [truncated]"
MAX_FIELD_CHARS = 500
MAX_CONTEXT_ITEMS = 5


class ChatIntent(str, Enum):
    EXTRACTED_TEXT = "extracted_text"
    LAST_DOCUMENT = "last_document"
    MEDICATION_SCAN = "medication_scan"
    MODEL = "model"


@dataclass(frozen=True)
class DirectAnswer:
    intent: ChatIntent
    text: str


@dataclass(frozen=True)
class Defer:
    intent: ChatIntent = ChatIntent.MODEL


RouteResult = Union[DirectAnswer, Defer]


@dataclass
class ContextSummary:
    pet: dict[str, Any] = field(default_factory=dict)
    reminders: list[dict[str, Any]] = field(default_factory=list)
    records: list[dict[str, Any]] = field(default_factory=list)
    logs: list[dict[str, Any]] = field(default_factory=list)
    reminders_summary: str = "No reminders."
    records_summary: str = "No medical records."
    logs_summary: str = "No logs."


@dataclass(frozen=True)
class ChatTurn:
    user_id: str
    pet_id: str
    role: str
    content: str
    created_at: str

    def as_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

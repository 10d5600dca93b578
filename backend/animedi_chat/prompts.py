from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .models import TRUNCATION_MARKER, ContextSummary

logger = logging.getLogger(__name__)

DEFAULT_PROMPT_CHAR_BUDGET = 24000

STRICT_INSTRUCTIONS = (
    "You are AniMedi's AI assistant. You must:\n"
    "- Always use all available data from reminders, medical records, logs, and pet details to answer.\n"
    "- Cross-reference reminders and medical records for every answer about medications, treatments, "
    "or appointments.\n"
    "- If the user asks for a document's content, reply ONLY with the exact OCR/extracted text, "
    "no extra words or summary.\n"
    "- If there is a mismatch between reminders and prescriptions, point it out clearly.\n"
    "- Never hallucinate or omit details. If a field is missing, say so explicitly.\n"
    "- For questions about past events, use the logs table.\n"
    "- At the start of your answer, summarize all available data if the user asks for a summary.\n"
    "- If you are unsure, say so and suggest the user check with a veterinarian.\n"
)

CONTEXT_PREAMBLE = (
    "Here is the user's current context. Use this to answer the user's question. "
    "Use the exact data as provided. Do not omit any details. "
    "Do not mention that you have this context unless it's directly relevant to the user's question.\n\n"
)

# Serialized sections are dropped in this order when the prompt is over budget.
_DROP_ORDER = ("logs", "reminders", "records")


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


@dataclass
class _Section:
    key: str
    title: str
    summary: str
    label: str
    rows: list[dict[str, Any]]
    include_rows: bool = True

    def render(self) -> str:
        text = f"\n{self.title} Summary:\n{self.summary}\n"
        if self.include_rows:
            text += f"{self.label} (up to 5):\n{_dump(self.rows)}\n"
        return text


class PromptAssembler:
    def __init__(self, char_budget: int = DEFAULT_PROMPT_CHAR_BUDGET) -> None:
        self.char_budget = max(1000, int(char_budget))

    def context_block(self, *, user_name: str | None, summary: ContextSummary) -> str:
        pet = dict(summary.pet)
        sections = [
            _Section("reminders", "Reminders", summary.reminders_summary, "Recent Reminders", summary.reminders),
            _Section("records", "Medical Records", summary.records_summary, "Recent Medical Records", summary.records),
            _Section("logs", "Logs", summary.logs_summary, "Recent Logs", summary.logs),
        ]

        def render() -> str:
            text = CONTEXT_PREAMBLE
            if user_name:
                text += f"User's Name: {user_name}\n"
            if any(value is not None for value in pet.values()):
                text += "\nActive Pet Profile:\n" + _dump(pet) + "\n"
            return text + "".join(section.render() for section in sections)

        block = render()
        budget = self.char_budget - len(STRICT_INSTRUCTIONS)
        by_key = {section.key: section for section in sections}
        for key in _DROP_ORDER:
            if len(block) <= budget:
                break
            by_key[key].include_rows = False
            block = render()
            logger.debug("prompt over budget, dropped serialized %s", key)

        notes = pet.get("notes")
        if len(block) > budget and isinstance(notes, str) and notes:
            overflow = len(block) - budget
            keep = max(0, len(notes) - overflow - len(TRUNCATION_MARKER))
            pet["notes"] = notes[:keep] + TRUNCATION_MARKER
            block = render()

        if len(block) > budget:
            block = block[: max(0, budget - len(TRUNCATION_MARKER))] + TRUNCATION_MARKER
        return block

    def build_messages(
        self,
        *,
        message: str,
        summary: ContextSummary,
        user_name: str | None = None,
        attachment: str | None = None,
    ) -> list[dict[str, Any]]:
        system_content = STRICT_INSTRUCTIONS + self.context_block(user_name=user_name, summary=summary)
        user_content: Any = message
        if attachment:
            user_content = [
                {"type": "text", "text": message},
                {"type": "image_url", "image_url": {"url": attachment}},
            ]
        messages = [
            {"role": "system", "content": system_content},
            {"role": "user", "content": user_content},
        ]
        logger.debug("prompt length (chars): %d", len(system_content) + len(message))
        return messages

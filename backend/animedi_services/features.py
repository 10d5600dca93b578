from __future__ import annotations

import json
import re
from typing import Any

FORBIDDEN_TIP_WORDS = ("cat", "dog", "pet", "animal", "species")
_FORBIDDEN_TIP_RE = re.compile(
    r"\b(?:(?:your|the|a|an|this|my)\s+)?(?:cats?|dogs?|pets?|animals?|species)\b",
    re.IGNORECASE,
)
_CODE_FENCE_START = re.compile(r"^```(?:json)?", re.IGNORECASE)

REPORT_RECORD_FIELDS = ("id", "title", "date", "description", "extractedText", "type")
REPORT_ITEM_LIMIT = 10


def tip_prompt(pet_name: str, owner_name: str) -> str:
    return (
        f"Give a unique, practical, and concise daily health tip for a pet named {pet_name} "
        f"whose owner is {owner_name}. Do not use the words 'cat', 'dog', 'pet', 'animal', or "
        f"'species' in the tip. Address the tip as if speaking directly to {owner_name} about "
        f"{pet_name}. Vary the advice every time."
    )


GENERIC_TIP = "Keep fresh, clean water within reach all day."


def contains_forbidden(text: str) -> bool:
    lowered = (text or "").lower()
    return any(word in lowered for word in FORBIDDEN_TIP_WORDS)


def fallback_tip(pet_name: str, owner_name: str) -> str:
    tip = f"{owner_name}, make sure {pet_name} always has fresh, clean water within reach today."
    return GENERIC_TIP if contains_forbidden(tip) else tip


def scrub_tip(text: str, pet_name: str) -> str:
    """Replace any forbidden word (and a leading article) with the pet's name."""
    cleaned = _FORBIDDEN_TIP_RE.sub(pet_name, text or "")
    return re.sub(r"[ \t]{2,}", " ", cleaned).strip()


def finalize_tip(text: str, pet_name: str, owner_name: str) -> str:
    """Scrubbed model tip, or the fallback when a forbidden word survives anywhere in it."""
    tip = scrub_tip(text, pet_name)
    if not tip or contains_forbidden(tip):
        return fallback_tip(pet_name, owner_name)
    return tip


def care_guide_prompt(pet_info: Any) -> str:
    return (
        "Create a super detailed, comprehensive, and practical owner's manual for a pet with the "
        f"following details: {json.dumps(pet_info, ensure_ascii=False, default=str)}. The manual should be "
        "extremely thorough and cover everything an owner needs to know, including but not limited to: "
        "nutrition, feeding schedule, exercise, play, training, grooming, hygiene, health monitoring, "
        "vaccinations, emergency care, enrichment, seasonal/environmental care, red flags, do's, don'ts, "
        "additional tips, breed-specific advice, and any other important information. Each section should "
        "have at least 8-10 actionable, specific, and personalized items (with explanations where helpful). "
        'Format the response as JSON with these keys: { "summary": string, "nutrition": [ ... ], '
        '"exercise": [ ... ], "grooming": [ ... ], "health_monitoring": [ ... ], "emergency_care": [ ... ], '
        '"enrichment": [ ... ], "seasonal_care": [ ... ], "red_flags": [ ... ], "dos": [ ... ], '
        '"donts": [ ... ], "tips": [ ... ] }. Add a disclaimer at the end: \'This guide is for '
        "informational purposes only and does not replace professional veterinary advice.'"
    )


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def health_report_prompt(
    pet: Any,
    records: list[dict[str, Any]],
    reminders: list[dict[str, Any]],
    logs: list[dict[str, Any]],
) -> str:
    records_for_model = [
        {name: row.get(name) for name in REPORT_RECORD_FIELDS}
        for row in records[:REPORT_ITEM_LIMIT]
        if isinstance(row, dict)
    ]
    return (
        "You are a veterinary medical assistant. Generate a comprehensive, chronological medical report "
        "for the following pet. The report should include:\n"
        "- All medical history, past medicines, vaccines, illnesses, issues, etc.\n"
        "- All reminders (upcoming, overdue, completed), all medical records (with OCR/extracted text), "
        "all logs, and all pet profile info.\n"
        "- A summary of the pet's health, and a section with all raw data (reminders, logs, records) "
        "for reference.\n"
        "- Be detailed, clear, and use professional language. Format the report in sections: Pet Profile, "
        "Medical History, Reminders, Medical Records, Logs, Health Summary, and Raw Data Appendix.\n\n"
        f"Pet Profile:\n{_dump(pet)}\n\n"
        f"Recent Reminders (up to {REPORT_ITEM_LIMIT}, total: {len(reminders)}):\n"
        f"{_dump(reminders[:REPORT_ITEM_LIMIT])}\n\n"
        f"Recent Medical Records (up to {REPORT_ITEM_LIMIT}, total: {len(records)}):\n"
        f"{_dump(records_for_model)}\n\n"
        f"Recent Logs (up to {REPORT_ITEM_LIMIT}, total: {len(logs)}):\n"
        f"{_dump(logs[:REPORT_ITEM_LIMIT])}\n\n"
        'Return the report as structured JSON with keys: { "summary": string, "medical_history": string, '
        '"reminders": string, "records": string, "logs": string, "raw_data": { reminders: any[], '
        "records: any[], logs: any[] } }"
    )


def strip_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    cleaned = _CODE_FENCE_START.sub("", cleaned, count=1).strip()
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3].strip()
    return cleaned


def parse_model_json(text: str) -> dict[str, Any]:
    """Decode a JSON object from a model reply.

    A reply that is not a JSON object comes back as an error payload
    carrying the raw text instead of raising.
    """
    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        return {"error": "Invalid JSON from model", "raw": cleaned, "parseError": str(exc)}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON from model", "raw": cleaned, "parseError": "Expected a JSON object."}
    return payload

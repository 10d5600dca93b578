from __future__ import annotations

import pytest

from animedi_services.features import (
    GENERIC_TIP,
    contains_forbidden,
    fallback_tip,
    finalize_tip,
    health_report_prompt,
    parse_model_json,
    scrub_tip,
    strip_code_fences,
    tip_prompt,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": 1}\n```', '{"a": 1}'),
        ('  {"a": 1}  ', '{"a": 1}'),
    ],
)
def test_strip_code_fences(raw, expected):
    assert strip_code_fences(raw) == expected


def test_parse_model_json_rejects_non_objects():
    assert parse_model_json('```json\n{"summary": "ok"}\n```') == {"summary": "ok"}

    broken = parse_model_json("{not json")
    assert broken["error"] == "Invalid JSON from model"
    assert broken["raw"] == "{not json"
    assert broken["parseError"]

    listed = parse_model_json("[1, 2]")
    assert listed["error"] == "Invalid JSON from model"


def test_scrub_tip_replaces_articles_and_plurals():
    text = "Give your dog a treat. Dogs and other animals love the species-appropriate toys."

    cleaned = scrub_tip(text, "Rex")

    assert cleaned == "Give Rex a treat. Rex and other Rex love Rex-appropriate toys."


def test_finalize_tip_falls_back_when_forbidden_text_hides_inside_words():
    reply = "Ana, watch Milo's appetite and note anything that could indicate stress."

    tip = finalize_tip(reply, "Milo", "Ana")

    assert tip == "Ana, make sure Milo always has fresh, clean water within reach today."
    assert not contains_forbidden(tip)


def test_finalize_tip_keeps_a_clean_scrubbed_tip():
    assert finalize_tip("Brush your dog after walks.", "Rex", "Sam") == "Brush Rex after walks."


@pytest.mark.parametrize(("pet_name", "owner_name"), [("Peter", "Sam"), ("Rex", "Catherine"), ("Doggo", "Ana")])
def test_fallback_tip_drops_names_carrying_forbidden_text(pet_name, owner_name):
    tip = fallback_tip(pet_name, owner_name)

    assert tip == GENERIC_TIP
    assert not contains_forbidden(tip)
    assert finalize_tip("", pet_name, owner_name) == GENERIC_TIP


def test_tip_prompt_names_pet_and_owner():
    prompt = tip_prompt("Milo", "Ana")

    assert "named Milo" in prompt
    assert "owner is Ana" in prompt


def test_health_report_prompt_caps_lists_and_projects_records():
    records = [{"id": i, "title": f"r{i}", "files": "BASE64", "extractedText": "x"} for i in range(12)]
    reminders = [{"title": f"rem{i}"} for i in range(12)]

    prompt = health_report_prompt({"name": "Milo"}, records, reminders, [])

    assert "up to 10, total: 12" in prompt
    assert '"r9"' in prompt and '"r10"' not in prompt
    assert '"rem9"' in prompt and '"rem10"' not in prompt
    assert "BASE64" not in prompt

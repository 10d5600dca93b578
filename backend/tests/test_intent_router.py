from __future__ import annotations

import random

import pytest

from animedi_chat.intents import NO_DOCUMENT, NO_EXTRACTED_TEXT, NO_MEDICATIONS, IntentRouter
from animedi_chat.models import ChatIntent, Defer, DirectAnswer

RECORDS = [
    {
        "title": "Annual checkup",
        "date": "2025-01-15",
        "extractedText": "Weight 4.2kg\nGive 1 tablet of Milbemax with food\nNext visit in 12 months",
    },
    {
        "title": "Dental cleaning",
        "date": "2025-04-02",
        "description": "Scaling done.\nAmoxicillin 50 mg twice daily for 7 days\nSoft food only",
    },
    {
        "title": "Skin check",
        "date": "2024-11-30",
        "description": "Mild dermatitis noted.\nApply cream to the affected area",
    },
]


@pytest.fixture
def router() -> IntentRouter:
    return IntentRouter()


@pytest.mark.parametrize(
    "message",
    [
        "Show me the text of my last document",
        "what is the EXTRACTED TEXT from the last upload",
        "give me the content of the last document please",
    ],
)
def test_extracted_text_returns_newest_record_verbatim(router, message):
    for _ in range(5):
        shuffled = random.sample(RECORDS, k=len(RECORDS))
        result = router.route(message, shuffled)
        assert isinstance(result, DirectAnswer)
        assert result.intent is ChatIntent.EXTRACTED_TEXT
        assert result.text == RECORDS[1]["description"]


def test_extracted_text_falls_back_to_extracted_text_field(router):
    records = [{"title": "Lab", "date": "2025-05-01", "extractedText": "ALT 45 U/L"}]
    result = router.route("extracted text of the last file", records)
    assert result.text == "ALT 45 U/L"


def test_extracted_text_without_records_is_not_found(router):
    assert router.route("text of last doc", []).text == NO_EXTRACTED_TEXT
    assert router.route("text of last doc", None).text == NO_EXTRACTED_TEXT
    assert router.route("text of last doc", [{"title": "Empty", "date": "2025-01-01"}]).text == NO_EXTRACTED_TEXT


def test_last_document_details_block(router):
    result = router.route("What were the last document details?", RECORDS)
    assert isinstance(result, DirectAnswer)
    assert result.intent is ChatIntent.LAST_DOCUMENT
    assert result.text.startswith("Title: Dental cleaning\nDate: 2025-04-02\n")
    assert "Amoxicillin 50 mg" in result.text


def test_last_document_without_records(router):
    assert router.route("open my last doc", []).text == NO_DOCUMENT


def test_medication_scan_attributes_every_line(router):
    result = router.route("List every medication across all documents", RECORDS)
    assert isinstance(result, DirectAnswer)
    assert result.intent is ChatIntent.MEDICATION_SCAN

    blocks = result.text.split("\n\n")
    assert len(blocks) == 2
    for block in blocks:
        header, line = block.split("\n", 1)
        assert header.startswith('From document "')
        assert router.MEDICATION_LINE.search(line)
    assert 'From document "Annual checkup" (2025-01-15):\nGive 1 tablet of Milbemax with food' in blocks
    assert 'From document "Dental cleaning" (2025-04-02):\nAmoxicillin 50 mg twice daily for 7 days' in blocks


def test_medication_scan_with_no_matching_lines(router):
    records = [{"title": "Skin check", "date": "2024-11-30", "description": "Mild dermatitis noted."}]
    result = router.route("what dosage is in all my uploaded records?", records)
    assert result.text == NO_MEDICATIONS


def test_medication_term_without_all_documents_qualifier_defers(router):
    assert isinstance(router.route("what dose of ibuprofen is safe?", RECORDS), Defer)


def test_rules_apply_in_priority_order(router):
    message = "extracted text of last document with the medication dose in all documents"
    assert router.classify(message) is ChatIntent.EXTRACTED_TEXT
    assert router.classify("last doc info about medication in all documents") is ChatIntent.LAST_DOCUMENT


def test_general_question_defers_to_model(router):
    result = router.route("How often should Milo be brushed?", RECORDS)
    assert isinstance(result, Defer)
    assert result.intent is ChatIntent.MODEL

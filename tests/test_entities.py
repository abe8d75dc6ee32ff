from helpdesk.conversations.entities import estimate_tokens, extract_entities
from helpdesk.conversations.models import ChatMessage


def _messages(*texts):
    return [ChatMessage(role="user", content=text) for text in texts]


def test_extracts_each_identifier_kind():
    entities = extract_entities(
        _messages(
            "Where is ORD-1234? I was charged $79.99 on INV-1234.",
            "The tracking number TRK-2345678901 shows nothing, also tried 1Z999AA10123456784.",
        )
    )

    assert entities.order_numbers == ["ORD-1234"]
    assert entities.invoice_numbers == ["INV-1234"]
    assert entities.tracking_ids == ["TRK-2345678901", "1Z999AA10123456784"]
    assert entities.amounts == ["$79.99"]


def test_deduplicates_in_first_seen_order():
    entities = extract_entities(
        _messages("ORD-2 then ORD-1", "back to ORD-2 and ORD-3", "paid $1,200.50 and $5")
    )

    assert entities.order_numbers == ["ORD-2", "ORD-1", "ORD-3"]
    assert entities.amounts == ["$1,200.50", "$5"]


def test_long_numeric_runs_count_as_tracking_ids():
    entities = extract_entities(_messages("USPS says 940011189922385512345 is in transit"))

    assert entities.tracking_ids == ["940011189922385512345"]


def test_no_identifiers_yields_empty_entities():
    entities = extract_entities(_messages("Hello there", ""))

    assert entities.is_empty()
    assert entities.as_dict() == {
        "order_numbers": [],
        "invoice_numbers": [],
        "tracking_ids": [],
        "amounts": [],
    }


def test_estimate_tokens_rounds_up_quarter_characters():
    assert estimate_tokens([]) == 0
    assert estimate_tokens(_messages("abcd")) == 1
    assert estimate_tokens(_messages("abcde")) == 2
    assert estimate_tokens(_messages("ab", "cd", "e")) == 2

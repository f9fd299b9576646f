"""
Tests for reference numbers, scanned-code parsing and ticket pricing.
"""

from decimal import Decimal

from ticketing.services.event_catalog import (
    all_qr_prefixes,
    calculate_total,
    gateway_fee,
    get_event_config,
)
from ticketing.services.reference import (
    generate_order_id,
    generate_reference_number,
    parse_reference,
    reference_candidates,
)

PREFIXES = all_qr_prefixes()


def test_reference_number_shape():
    """Event prefix + 6 clock digits + 4 random characters."""
    ref = generate_reference_number("DIW")
    assert ref.startswith("DIW")
    assert len(ref) == 13
    assert ref[3:9].isdigit()
    assert ref[9:].isalnum() and ref[9:].upper() == ref[9:]


def test_order_id_shape():
    order_id = generate_order_id()
    assert order_id.startswith("TXN")
    assert len(order_id) == 3 + 13 + 6
    assert generate_order_id() != order_id


def test_parse_qr_payload():
    """Text after the prefix token up to the next hyphen is the reference."""
    assert parse_reference("SLANUP-DIWALI-DIW123456ABCD-Asha Rao", PREFIXES) == "DIW123456ABCD"


def test_parse_is_case_insensitive_and_trims():
    assert parse_reference("  slanup-luau-luau654321zz9q-ravi ", PREFIXES) == "LUAU654321ZZ9Q"


def test_parse_bare_reference():
    assert parse_reference("diw123456abcd", PREFIXES) == "DIW123456ABCD"


def test_parse_prefix_without_reference_falls_back_to_input():
    assert parse_reference("SLANUP-DIWALI-", PREFIXES) == "SLANUP-DIWALI-"


def test_candidates_order():
    """Parsed reference first, then the raw normalized input."""
    assert reference_candidates("SLANUP-DIWALI-DIW1-X", PREFIXES) == [
        "DIW1",
        "SLANUP-DIWALI-DIW1-X",
    ]
    assert reference_candidates("DIW1", PREFIXES) == ["DIW1"]


def test_gateway_fee_rounds_up_to_paisa():
    assert gateway_fee(Decimal("1699"), 2.24) == Decimal("38.06")
    assert gateway_fee(Decimal("100"), 2.24) == Decimal("2.24")


def test_calculate_total():
    ticket = get_event_config("diwali").ticket_type("ultimate")
    assert calculate_total(ticket, 1, 2.24) == Decimal("1737.06")


def test_unknown_event_and_ticket_type():
    assert get_event_config("nope") is None
    assert get_event_config("LUAU").ticket_type("vip") is None

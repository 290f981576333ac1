"""Tests for order numbers and payment references."""

import re

from ordering.order.numbering import (
    DailyOrderSequence,
    extract_payment_reference,
    format_order_number,
    payment_memo,
    payment_reference_for,
)


class TestOrderNumber:
    def test_format_pads_sequence(self):
        assert format_order_number("20250101", 1) == "ORD-20250101-00001"
        assert format_order_number("20250101", 12345) == "ORD-20250101-12345"

    def test_daily_sequence_increments(self):
        sequence = DailyOrderSequence(date_key="20250101")
        assert sequence.next_value() == 1
        assert sequence.next_value() == 2
        assert sequence.last_value == 2


class TestPaymentReference:
    def test_reference_is_eight_upper_hex_chars(self):
        reference = payment_reference_for("ORD-20250101-00001")
        assert re.fullmatch(r"[0-9A-F]{8}", reference)

    def test_reference_is_deterministic(self):
        assert payment_reference_for("ORD-20250101-00001") == payment_reference_for("ORD-20250101-00001")

    def test_different_orders_get_different_references(self):
        assert payment_reference_for("ORD-20250101-00001") != payment_reference_for("ORD-20250101-00002")

    def test_memo_prefixes_reference(self):
        assert payment_memo("A1B2C3D4") == "DHA1B2C3D4"
        assert payment_memo("A1B2C3D4", prefix="SHOP") == "SHOPA1B2C3D4"


class TestExtractPaymentReference:
    def test_finds_reference_inside_memo(self):
        assert extract_payment_reference("NGUYEN VAN A chuyen tien DHA1B2C3D4 cam on") == "A1B2C3D4"

    def test_matching_is_case_insensitive(self):
        assert extract_payment_reference("thanh toan dha1b2c3d4") == "A1B2C3D4"

    def test_memo_without_reference(self):
        assert extract_payment_reference("thanh toan don hang") is None

    def test_empty_memo(self):
        assert extract_payment_reference(None) is None
        assert extract_payment_reference("") is None

    def test_short_token_is_not_a_reference(self):
        assert extract_payment_reference("DHA1B2") is None

    def test_custom_prefix(self):
        assert extract_payment_reference("SHOPA1B2C3D4", prefix="SHOP") == "A1B2C3D4"
        assert extract_payment_reference("DHA1B2C3D4", prefix="SHOP") is None

"""Tests for bank-transfer payment instructions and the VietQR quick link."""

from datetime import UTC, datetime
from urllib.parse import parse_qs, urlparse

from ordering.order.instructions import transfer_instructions, vietqr_image_url
from ordering.order.order import Order, PaymentMethod

DEADLINE = datetime(2025, 1, 1, 10, 20, tzinfo=UTC)


def _order(payment_method):
    extra = {}
    if payment_method == PaymentMethod.BANK_TRANSFER.value:
        extra = {
            "payment_reference": "A1B2C3D4",
            "bank_transfer": {
                "account_number": "0123456789",
                "account_name": "STOREFRONT",
                "bank_code": "MB",
                "amount": 305000.0,
                "reserved_until": DEADLINE,
            },
        }
    return Order.place(
        order_number="ORD-20250101-00001",
        user_id="user-001",
        items_data=[{"variant_id": "var-001", "product_name": "Shirt", "unit_price": 250000.0, "quantity": 1}],
        shipping_address={"full_name": "A", "phone": "0900000000", "street": "1 St", "city": "Hue"},
        payment_method=payment_method,
        pricing={"subtotal": 250000.0, "tax": 25000.0, "shipping_fee": 30000.0, "discount": 0.0, "total": 305000.0},
        **extra,
    )


class TestVietQrImageUrl:
    def test_url_carries_amount_and_memo(self):
        url = vietqr_image_url("MB", "0123456789", 305000.0, "DHA1B2C3D4", account_name="STOREFRONT")
        parsed = urlparse(url)

        assert parsed.netloc == "img.vietqr.io"
        assert parsed.path == "/image/MB-0123456789-compact2.png"
        query = parse_qs(parsed.query)
        assert query["amount"] == ["305000"]
        assert query["addInfo"] == ["DHA1B2C3D4"]
        assert query["accountName"] == ["STOREFRONT"]

    def test_account_name_is_optional(self):
        url = vietqr_image_url("MB", "0123456789", 1000, "DHA1B2C3D4")
        assert "accountName" not in url


class TestTransferInstructions:
    def test_bank_transfer_order(self):
        instructions = transfer_instructions(_order(PaymentMethod.BANK_TRANSFER.value))

        assert instructions.bank_code == "MB"
        assert instructions.account_number == "0123456789"
        assert instructions.amount == 305000.0
        assert instructions.memo == "DHA1B2C3D4"
        assert instructions.reserved_until == DEADLINE
        assert "addInfo=DHA1B2C3D4" in instructions.qr_image_url

    def test_custom_prefix(self):
        instructions = transfer_instructions(_order(PaymentMethod.BANK_TRANSFER.value), prefix="SHOP")
        assert instructions.memo == "SHOPA1B2C3D4"

    def test_other_payment_methods_have_none(self):
        assert transfer_instructions(_order(PaymentMethod.COD.value)) is None

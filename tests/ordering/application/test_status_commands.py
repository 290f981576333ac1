"""Application tests for cancellation, admin status updates and refunds."""

import pytest
from ordering.errors import AlreadyCancelled, InvalidTransition
from ordering.order.cancellation import CancelOrder
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.order.status import MarkPaymentRefunded, UpdateOrderStatus
from ordering.reconciliation.manual import ConfirmPaymentManually
from ordering.stock.stock import VariantStock
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _update(order_id, status, **kwargs):
    return current_domain.process(UpdateOrderStatus(order_id=order_id, status=status, **kwargs), asynchronous=False)


def _reload(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _available(variant_id="var-001"):
    return current_domain.repository_for(VariantStock).get(variant_id).available


class TestCancelOrder:
    def test_cancel_releases_reserved_stock(self, register_stock, place_order, make_line):
        register_stock(available=5)
        order = place_order(items=[make_line(quantity=3)])
        assert _available() == 2

        current_domain.process(CancelOrder(order_id=order.id, reason="Changed my mind"), asynchronous=False)

        order = _reload(order.id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Changed my mind"
        assert _available() == 5

    def test_cancelling_twice_is_rejected_without_double_release(self, register_stock, place_order):
        register_stock(available=5)
        order = place_order()
        current_domain.process(CancelOrder(order_id=order.id, reason="first"), asynchronous=False)

        with pytest.raises(AlreadyCancelled):
            current_domain.process(CancelOrder(order_id=order.id, reason="second"), asynchronous=False)
        assert _available() == 5

    def test_shipped_order_cannot_be_cancelled(self, register_stock, place_order):
        register_stock()
        order = place_order(payment_method="cod")
        _update(order.id, "processing")
        _update(order.id, "shipped")

        with pytest.raises(InvalidTransition):
            current_domain.process(CancelOrder(order_id=order.id, reason="too late"), asynchronous=False)
        assert _reload(order.id).status == OrderStatus.SHIPPED.value

    def test_unknown_order(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(CancelOrder(order_id="missing", reason="x"), asynchronous=False)


class TestUpdateOrderStatus:
    def test_cod_order_walks_the_happy_path(self, register_stock, place_order):
        register_stock()
        order = place_order(payment_method="cod")

        assert _update(order.id, "processing") == "processing"
        _update(order.id, "shipped", tracking_number="TRK-42", carrier="GHTK")
        _update(order.id, "delivered", note="Left at reception")

        order = _reload(order.id)
        assert order.status == OrderStatus.DELIVERED.value
        assert order.tracking_number == "TRK-42"
        assert order.carrier == "GHTK"
        assert [c.status for c in order.history] == ["pending", "processing", "shipped", "delivered"]

    def test_shipping_commits_reserved_stock(self, register_stock, place_order, make_line):
        register_stock(available=5)
        order = place_order(items=[make_line(quantity=2)], payment_method="cod")
        _update(order.id, "processing")
        _update(order.id, "shipped")

        stock = current_domain.repository_for(VariantStock).get("var-001")
        assert stock.available == 3
        assert len(stock.reservations) == 0

    def test_unpaid_bank_transfer_cannot_be_processed(self, register_stock, place_order):
        register_stock()
        order = place_order()

        with pytest.raises(InvalidTransition):
            _update(order.id, "processing")
        assert _reload(order.id).status == OrderStatus.PENDING.value

    def test_skipping_a_step_is_rejected(self, register_stock, place_order):
        register_stock()
        order = place_order(payment_method="cod")

        with pytest.raises(InvalidTransition):
            _update(order.id, "delivered")

    def test_unknown_status_is_rejected(self, register_stock, place_order):
        register_stock()
        order = place_order(payment_method="cod")

        with pytest.raises(ValidationError) as exc:
            _update(order.id, "lost")
        assert "Invalid status" in str(exc.value)

    def test_admin_cancel_releases_stock(self, register_stock, place_order):
        register_stock(available=4)
        order = place_order()
        assert _available() == 3

        _update(order.id, "cancelled", note="Fraud check")

        order = _reload(order.id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Fraud check"
        assert _available() == 4


class TestMarkPaymentRefunded:
    def test_refund_paid_then_cancelled_order(self, register_stock, place_order):
        register_stock()
        order = place_order()
        current_domain.process(ConfirmPaymentManually(order_id=order.id), asynchronous=False)
        _update(order.id, "cancelled")

        current_domain.process(MarkPaymentRefunded(order_id=order.id, note="Refunded"), asynchronous=False)

        assert _reload(order.id).payment_status == PaymentStatus.REFUNDED.value

    def test_refund_requires_cancelled_order(self, register_stock, place_order):
        register_stock()
        order = place_order()
        current_domain.process(ConfirmPaymentManually(order_id=order.id), asynchronous=False)

        with pytest.raises(InvalidTransition):
            current_domain.process(MarkPaymentRefunded(order_id=order.id), asynchronous=False)

"""Shared BDD fixtures and step definitions for checkout and reconciliation."""

import json
from datetime import timedelta

import pytest
from ordering.errors import InsufficientStock
from ordering.order.numbering import payment_memo
from ordering.order.order import Order
from ordering.reconciliation.manual import ConfirmPaymentManually
from ordering.reconciliation.webhook import receive_bank_webhook
from ordering.stock.stock import VariantStock
from ordering.utils.clock import utcnow
from protean import current_domain
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def checkout():
    """What happened during the scenario: the placed order, errors, webhook replies."""
    return {"order_id": None, "error": None, "webhook_body": None, "ack": None}


def _order(checkout):
    return current_domain.repository_for(Order).get(checkout["order_id"])


def webhook_body(order, amount):
    return json.dumps(
        {
            "transactionId": f"FT-{order.order_number}",
            "accountNumber": order.bank_transfer.account_number,
            "amount": amount,
            "description": f"{payment_memo(order.payment_reference)} thanh toan",
            "creditDebit": "CREDIT",
            "status": "SUCCESS",
        }
    ).encode()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("prices include no tax and no shipping")
def _(settings_env):
    settings_env(ORDERING_TAX_RATE=0, ORDERING_FLAT_SHIPPING_FEE=0)


@given(parsers.cfparse('a variant "{variant_id}" with {available:d} units in stock'))
def _(register_stock, variant_id, available):
    register_stock(variant_id=variant_id, available=available)


@given(parsers.cfparse('the buyer ordered {quantity:d} units of "{variant_id}" at {price:d} each by bank transfer'))
@when(parsers.cfparse('the buyer orders {quantity:d} units of "{variant_id}" at {price:d} each by bank transfer'))
def _(checkout, place_order, make_line, quantity, variant_id, price):
    try:
        order = place_order(items=[make_line(variant_id, quantity=quantity, unit_price=float(price))])
    except InsufficientStock as exc:
        checkout["error"] = exc
    else:
        checkout["order_id"] = order.id


@given(parsers.cfparse("the bank sent a webhook for the order with amount {amount:d}"))
@when(parsers.cfparse("the bank sends a webhook for the order with amount {amount:d}"))
def _(checkout, amount):
    checkout["webhook_body"] = webhook_body(_order(checkout), amount)
    checkout["ack"] = receive_bank_webhook("MB", checkout["webhook_body"])


@given("an admin confirmed the payment manually")
def _(checkout):
    current_domain.process(ConfirmPaymentManually(order_id=checkout["order_id"]), asynchronous=False)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order total is {total:d}"))
def _(checkout, total):
    assert _order(checkout).pricing.total == total


@then(parsers.cfparse('the order status is "{status}"'))
def _(checkout, status):
    assert _order(checkout).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(checkout, status):
    assert _order(checkout).payment_status == status


@then(parsers.cfparse('the stock of "{variant_id}" is {available:d}'))
def _(variant_id, available):
    assert current_domain.repository_for(VariantStock).get(variant_id).available == available


@then("the payment window closes about 20 minutes from now")
def _(checkout):
    remaining = _order(checkout).reserved_until - utcnow()
    assert timedelta(minutes=19) < remaining <= timedelta(minutes=20)


@then(parsers.cfparse('the webhook outcome is "{outcome}"'))
def _(checkout, outcome):
    assert checkout["ack"]["outcome"] == outcome


@then(parsers.cfparse("the order history has {count:d} entries"))
def _(checkout, count):
    assert len(_order(checkout).status_history) == count

"""Order placement: turn a cart snapshot into a pending order with reserved stock."""

import json
from datetime import timedelta

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import EmptyCart, InsufficientStock
from ordering.order.numbering import next_order_number, payment_reference_for
from ordering.order.order import Order, PaymentMethod
from ordering.order.pricing import price_order
from ordering.settings import get_settings
from ordering.stock.stock import VariantStock
from ordering.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True, max_length=50)
    discount = Float(default=0.0, min_value=0.0)
    coupon_code = String(max_length=50)


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


def _validate_lines(items_data):
    if not isinstance(items_data, list):
        raise ValidationError({"items": ["Items must be a list of order lines"]})
    if not items_data:
        raise EmptyCart({"items": ["Cannot place an order from an empty cart"]})

    errors = []
    for position, line in enumerate(items_data, start=1):
        if not isinstance(line, dict):
            errors.append(f"Line {position}: must be an object")
            continue
        if not line.get("variant_id"):
            errors.append(f"Line {position}: variant_id is required")
        if not line.get("product_name"):
            errors.append(f"Line {position}: product_name is required")
        quantity = line.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
            errors.append(f"Line {position}: quantity must be a positive integer")
        unit_price = line.get("unit_price")
        if not isinstance(unit_price, int | float) or isinstance(unit_price, bool) or unit_price < 0:
            errors.append(f"Line {position}: unit_price must be a non-negative number")
    if errors:
        raise ValidationError({"items": errors})


def _unique_payment_reference(order_number):
    repo = current_domain.repository_for(Order)
    attempt = 0
    reference = payment_reference_for(order_number)
    while repo.find_by_payment_reference(reference) is not None:
        attempt += 1
        reference = payment_reference_for(order_number, attempt)
    return reference


def _requested_quantities(items_data):
    """Sum quantities per variant so repeated lines are checked together."""
    requested = {}
    for line in items_data:
        variant_id = str(line["variant_id"])
        requested[variant_id] = requested.get(variant_id, 0) + line["quantity"]
    return requested


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        settings = get_settings()
        items_data = _load(command.items)
        shipping_address = _load(command.shipping_address)

        _validate_lines(items_data)
        if command.payment_method not in {m.value for m in PaymentMethod}:
            raise ValidationError({"payment_method": [f"Unsupported payment method '{command.payment_method}'"]})

        # Check every variant before touching any of them
        stock_repo = current_domain.repository_for(VariantStock)
        requested = _requested_quantities(items_data)
        stocks = {}
        for variant_id, quantity in requested.items():
            stock = stock_repo.get(variant_id)
            if not stock.can_reserve(quantity):
                raise InsufficientStock(variant_id, quantity, stock.available)
            stocks[variant_id] = stock

        pricing = price_order(
            items_data,
            tax_rate=settings.tax_rate,
            free_shipping_threshold=settings.free_shipping_threshold,
            flat_shipping_fee=settings.flat_shipping_fee,
            discount=command.discount,
            currency=settings.currency,
        )

        now = utcnow()
        order_number = next_order_number(now)
        payment_reference = None
        bank_transfer = None
        if command.payment_method == PaymentMethod.BANK_TRANSFER.value:
            payment_reference = _unique_payment_reference(order_number)
            bank_transfer = {
                "account_number": settings.bank_account_number,
                "account_name": settings.bank_account_name,
                "bank_code": settings.bank_code,
                "amount": pricing["total"],
                "reserved_until": now + timedelta(minutes=settings.reservation_window_minutes),
            }

        order = Order.place(
            order_number=order_number,
            user_id=command.user_id,
            items_data=items_data,
            shipping_address=shipping_address,
            payment_method=command.payment_method,
            pricing=pricing,
            payment_reference=payment_reference,
            bank_transfer=bank_transfer,
            coupon_code=command.coupon_code,
        )

        for variant_id, quantity in requested.items():
            stock = stocks[variant_id]
            stock.reserve(order.id, quantity)
            stock_repo.add(stock)

        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order_number,
            payment_method=command.payment_method,
            total=pricing["total"],
        )
        return str(order.id)

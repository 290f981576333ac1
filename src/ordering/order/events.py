"""Domain events for the Order aggregate.

Events are versioned, immutable facts raised by the aggregate and delivered
with the unit of work that persists it.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A new order was created from a cart snapshot and its stock reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    payment_method = String(required=True)
    payment_reference = String()
    subtotal = Float(required=True)
    tax = Float()
    shipping_fee = Float()
    discount = Float()
    total = Float(required=True)
    currency = String(default="VND")
    reserved_until = DateTime()
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status in the state machine."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
    note = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by its owner, an admin, or the expiry sweep."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentConfirmed:
    """A bank transfer was matched to the order and the order marked paid."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    transaction_id = String(required=True)
    expected_amount = Float(required=True)
    paid_amount = Float(required=True)
    source = String()
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentExpired:
    """The bank-transfer window lapsed without a matching payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    user_id = Identifier(required=True)
    reserved_until = DateTime(required=True)
    expired_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentRefunded:
    """The payment of a cancelled or refunded order was returned to the buyer."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    note = String()
    refunded_at = DateTime(required=True)

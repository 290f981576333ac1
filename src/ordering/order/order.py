"""Order aggregate (CQRS): a placed order, its status trail and its payment.

State Machine:
    pending → processing → shipped → delivered → refunded
    pending | processing → cancelled

Every transition appends a ``StatusChange`` entry; ``status`` always equals
the latest entry. A bank-transfer order leaves ``pending`` for ``processing``
only once its payment is confirmed. Unpaid bank-transfer orders whose
reservation window has lapsed are expired and cancelled by the sweep.
"""

import json
from datetime import timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import AlreadyCancelled, InvalidTransition
from ordering.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
    PaymentConfirmed,
    PaymentExpired,
    PaymentRefunded,
)
from ordering.utils.clock import as_utc, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    COD = "cod"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    MOMO = "momo"
    ZALOPAY = "zalopay"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"
    EXPIRED = "expired"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

EXPIRY_NOTE = "payment window expired"


def parse_status(value):
    """Return the ``OrderStatus`` for ``value`` or raise a ValidationError."""
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise ValidationError({"status": [f"Invalid status '{value}'. Must be one of: {allowed}"]}) from None


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order is delivered, captured at checkout and never updated."""

    full_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=20)
    street = String(required=True, max_length=255)
    ward = String(max_length=100)
    district = String(max_length=100)
    city = String(required=True, max_length=100)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Totals locked at creation: ``total = subtotal + tax + shipping_fee - discount``."""

    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="VND")


@ordering.value_object(part_of="Order")
class BankTransfer:
    """Expected transfer for a bank-transfer order, and the transfer that settled it.

    The expected half (account, amount, deadline) is fixed at creation. The
    settlement half is stamped once, when a transaction is matched.
    """

    account_number = String(required=True, max_length=50)
    account_name = String(max_length=255)
    bank_code = String(max_length=20)
    amount = Float(required=True, min_value=0.0)
    reserved_until = DateTime(required=True)
    transaction_id = String(max_length=255)
    paid_amount = Float()
    paid_at = DateTime()
    source_bank_code = String(max_length=20)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """Price and product snapshot of one purchased variant."""

    variant_id = Identifier(required=True)
    product_id = Identifier()
    product_name = String(required=True, max_length=255)
    product_slug = String(max_length=255)
    sku = String(max_length=50)
    image = String(max_length=1000)
    attributes = Text()  # JSON: {"size": "M", "color": "black"}
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    subtotal = Float(required=True, min_value=0.0)


@ordering.entity(part_of="Order")
class StatusChange:
    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    changed_at = DateTime(required=True)
    note = String(max_length=500)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    status_history = HasMany(StatusChange)
    pricing = ValueObject(OrderPricing)
    coupon_code = String(max_length=50)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=8, unique=True)
    bank_transfer = ValueObject(BankTransfer)
    paid_at = DateTime()
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def total_must_follow_pricing_formula(self):
        if not self.pricing:
            return
        p = self.pricing
        expected = (p.subtotal or 0.0) + (p.tax or 0.0) + (p.shipping_fee or 0.0) - (p.discount or 0.0)
        if abs(expected - (p.total or 0.0)) > 0.01:
            raise ValidationError({"pricing": ["Total must equal subtotal + tax + shipping_fee - discount"]})
        if (p.total or 0.0) < 0:
            raise ValidationError({"pricing": ["Total cannot be negative"]})

    @invariant.post
    def bank_transfer_details_only_for_bank_transfers(self):
        is_transfer = self.payment_method == PaymentMethod.BANK_TRANSFER.value
        if is_transfer and (self.bank_transfer is None or not self.payment_reference):
            raise ValidationError({"bank_transfer": ["Bank-transfer orders need transfer details and a reference"]})
        if not is_transfer and (self.bank_transfer is not None or self.payment_reference):
            raise ValidationError({"bank_transfer": ["Transfer details are only kept for bank-transfer orders"]})

    @invariant.post
    def status_must_match_latest_history_entry(self):
        if not self.status_history:
            return
        latest = max(self.status_history, key=lambda change: change.sequence)
        if latest.status != self.status:
            raise ValidationError({"status": ["Status must match the latest status history entry"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        user_id,
        items_data,
        shipping_address,
        payment_method,
        pricing,
        payment_reference=None,
        bank_transfer=None,
        coupon_code=None,
    ):
        now = utcnow()
        order = cls(
            order_number=order_number,
            user_id=user_id,
            status=OrderStatus.PENDING.value,
            pricing=OrderPricing(**pricing),
            coupon_code=coupon_code,
            shipping_address=ShippingAddress(**shipping_address),
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            payment_reference=payment_reference,
            bank_transfer=BankTransfer(**bank_transfer) if bank_transfer else None,
            created_at=now,
            updated_at=now,
        )

        with atomic_change(order):
            for item_data in items_data:
                attributes = item_data.get("attributes")
                order.add_items(
                    OrderItem(
                        variant_id=item_data["variant_id"],
                        product_id=item_data.get("product_id"),
                        product_name=item_data["product_name"],
                        product_slug=item_data.get("product_slug"),
                        sku=item_data.get("sku"),
                        image=item_data.get("image"),
                        attributes=json.dumps(attributes) if attributes is not None else None,
                        unit_price=item_data["unit_price"],
                        quantity=item_data["quantity"],
                        subtotal=item_data["unit_price"] * item_data["quantity"],
                    )
                )
            order.add_status_history(
                StatusChange(
                    sequence=1,
                    status=OrderStatus.PENDING.value,
                    changed_at=now,
                    note="Order placed",
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                user_id=str(user_id),
                items=json.dumps(
                    [
                        {
                            "variant_id": str(item["variant_id"]),
                            "quantity": item["quantity"],
                            "unit_price": item["unit_price"],
                        }
                        for item in items_data
                    ]
                ),
                payment_method=payment_method,
                payment_reference=payment_reference,
                subtotal=order.pricing.subtotal,
                tax=order.pricing.tax,
                shipping_fee=order.pricing.shipping_fee,
                discount=order.pricing.discount,
                total=order.pricing.total,
                currency=order.pricing.currency,
                reserved_until=order.bank_transfer.reserved_until if order.bank_transfer else None,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def history(self):
        """Status changes in the order they happened."""
        return sorted(self.status_history, key=lambda change: change.sequence)

    @property
    def is_bank_transfer(self):
        return self.payment_method == PaymentMethod.BANK_TRANSFER.value

    @property
    def reserved_until(self):
        return as_utc(self.bank_transfer.reserved_until) if self.bank_transfer else None

    def is_payment_expired(self, as_of=None):
        """True when an unpaid bank-transfer order is past its reservation deadline.

        Both the payment matcher and the expiry sweep decide on this predicate.
        """
        if not self.is_bank_transfer:
            return False
        if self.payment_status != PaymentStatus.PENDING.value or self.status != OrderStatus.PENDING.value:
            return False
        as_of = as_utc(as_of) if as_of else utcnow()
        return as_of > self.reserved_until

    def minutes_left_to_pay(self, as_of=None):
        if not self.reserved_until:
            return None
        as_of = as_utc(as_of) if as_of else utcnow()
        return max(0, int((self.reserved_until - as_of) / timedelta(minutes=1)))

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def transition_to(self, new_status, note=None, tracking_number=None, carrier=None):
        target = parse_status(new_status) if not isinstance(new_status, OrderStatus) else new_status
        current = OrderStatus(self.status)

        if current == OrderStatus.CANCELLED and target == OrderStatus.CANCELLED:
            raise AlreadyCancelled(self.id)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)
        if (
            target == OrderStatus.PROCESSING
            and self.is_bank_transfer
            and self.payment_status != PaymentStatus.PAID.value
        ):
            raise InvalidTransition(current.value, target.value, reason="bank transfer has not been paid")

        now = utcnow()
        sequence = max((change.sequence for change in self.status_history), default=0) + 1

        with atomic_change(self):
            self.status = target.value
            self.add_status_history(
                StatusChange(
                    sequence=sequence,
                    status=target.value,
                    changed_at=now,
                    note=note,
                )
            )
            if target == OrderStatus.SHIPPED:
                self.shipped_at = self.shipped_at or now
                self.tracking_number = self.tracking_number or tracking_number
                self.carrier = self.carrier or carrier
            elif target == OrderStatus.DELIVERED:
                self.delivered_at = self.delivered_at or now
            elif target == OrderStatus.CANCELLED:
                self.cancelled_at = self.cancelled_at or now
                self.cancellation_reason = self.cancellation_reason or note
            self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                from_status=current.value,
                to_status=target.value,
                note=note,
                changed_at=now,
            )
        )
        if target == OrderStatus.CANCELLED:
            self.raise_(
                OrderCancelled(
                    order_id=str(self.id),
                    order_number=self.order_number,
                    user_id=str(self.user_id),
                    reason=note,
                    cancelled_at=now,
                )
            )

    def cancel(self, reason):
        self.transition_to(OrderStatus.CANCELLED, note=reason)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def confirm_bank_transfer(self, transaction_id, amount, source_bank_code=None, source=None, note=None):
        """Stamp the settling transfer, mark the order paid and move it to processing.

        Callers decide whether the transfer is acceptable; this only records it.
        """
        now = utcnow()
        expected = self.bank_transfer
        with atomic_change(self):
            self.bank_transfer = BankTransfer(
                account_number=expected.account_number,
                account_name=expected.account_name,
                bank_code=expected.bank_code,
                amount=expected.amount,
                reserved_until=expected.reserved_until,
                transaction_id=transaction_id,
                paid_amount=amount,
                paid_at=now,
                source_bank_code=source_bank_code,
            )
            self.payment_status = PaymentStatus.PAID.value
            self.paid_at = now
            self.updated_at = now

        self.transition_to(OrderStatus.PROCESSING, note=note or f"Payment confirmed ({transaction_id})")

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=str(self.user_id),
                transaction_id=transaction_id,
                expected_amount=expected.amount,
                paid_amount=amount,
                source=source,
                paid_at=now,
            )
        )

    def expire_reservation(self):
        """Close the payment window: payment expired, order cancelled."""
        now = utcnow()
        with atomic_change(self):
            self.payment_status = PaymentStatus.EXPIRED.value
            self.updated_at = now

        self.transition_to(OrderStatus.CANCELLED, note=EXPIRY_NOTE)

        self.raise_(
            PaymentExpired(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=str(self.user_id),
                reserved_until=self.reserved_until,
                expired_at=now,
            )
        )

    def mark_payment_refunded(self, note=None):
        if self.payment_status != PaymentStatus.PAID.value:
            raise InvalidTransition(self.payment_status, PaymentStatus.REFUNDED.value, reason="payment is not paid")
        if self.status not in (OrderStatus.CANCELLED.value, OrderStatus.REFUNDED.value):
            raise InvalidTransition(
                self.payment_status,
                PaymentStatus.REFUNDED.value,
                reason=f"order is {self.status}",
            )

        now = utcnow()
        with atomic_change(self):
            self.payment_status = PaymentStatus.REFUNDED.value
            self.updated_at = now

        self.raise_(
            PaymentRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                note=note,
                refunded_at=now,
            )
        )

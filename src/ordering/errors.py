"""Business errors raised by the ordering domain.

Input problems use Protean's ``ValidationError`` and missing records use
``ObjectNotFoundError``. Everything else a caller must react to derives from
``OrderingError`` and is grouped by kind, which the HTTP layer maps to a
status code.
"""

from protean.exceptions import ValidationError


class OrderingError(Exception):
    code = "ordering_error"

    def __init__(self, message, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        return {"error": self.code, "message": self.message, **self.context}


class EmptyCart(ValidationError):
    """An order was requested without any line items."""


# ---------------------------------------------------------------------------
# Conflicts: the request is valid but the current state forbids it
# ---------------------------------------------------------------------------
class ConflictError(OrderingError):
    code = "conflict"


class InsufficientStock(ConflictError):
    code = "insufficient_stock"

    def __init__(self, variant_id, requested, available):
        super().__init__(
            f"Insufficient stock for variant {variant_id}: requested {requested}, available {available}",
            variant_id=str(variant_id),
            requested=requested,
            available=available,
        )
        self.variant_id = str(variant_id)
        self.requested = requested
        self.available = available


class InvalidTransition(ConflictError):
    code = "invalid_transition"

    def __init__(self, current, target, reason=None):
        message = f"Cannot transition from {current} to {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, current=current, target=target)
        self.current = current
        self.target = target


class AlreadyCancelled(ConflictError):
    code = "already_cancelled"

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} is already cancelled", order_id=str(order_id))


class AlreadyPaid(ConflictError):
    code = "already_paid"

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} is already paid", order_id=str(order_id))


class AmountMismatch(ConflictError):
    code = "amount_mismatch"

    def __init__(self, expected, received):
        super().__init__(
            f"Transferred amount {received} does not satisfy expected amount {expected}",
            expected=expected,
            received=received,
        )


class NotPayable(ConflictError):
    code = "not_payable"

    def __init__(self, order_id, status):
        super().__init__(f"Order {order_id} cannot accept payment in status {status}", order_id=str(order_id))


class DuplicateTransaction(ConflictError):
    code = "duplicate_transaction"

    def __init__(self, transaction_id, order_id):
        super().__init__(
            f"Transaction {transaction_id} was already applied to order {order_id}",
            transaction_id=transaction_id,
            order_id=str(order_id),
        )


class ReservationActive(ConflictError):
    code = "reservation_active"

    def __init__(self, order_id):
        super().__init__(f"Order {order_id} is not past its payment window", order_id=str(order_id))


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------
class ExpiredError(OrderingError):
    code = "expired"


class ReservationExpired(ExpiredError):
    code = "reservation_expired"

    def __init__(self, order_id, reserved_until):
        super().__init__(
            f"Payment window for order {order_id} closed at {reserved_until}",
            order_id=str(order_id),
            reserved_until=str(reserved_until),
        )


# ---------------------------------------------------------------------------
# External integrations
# ---------------------------------------------------------------------------
class ExternalIntegrationError(OrderingError):
    code = "external_integration"


class InvalidSignature(ExternalIntegrationError):
    code = "invalid_signature"

    def __init__(self, bank):
        super().__init__(f"Webhook signature for bank {bank} is missing or invalid", bank=bank)


class FeedUnavailable(ExternalIntegrationError):
    code = "feed_unavailable"

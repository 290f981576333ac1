"""Manual payment confirmation by an admin who checked the bank statement."""

from uuid import uuid4

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import AlreadyPaid, DuplicateTransaction, NotPayable, ReservationExpired
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.reconciliation.ledger import AppliedTransaction, TransactionSource, find_applied
from ordering.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ConfirmPaymentManually:
    order_id = Identifier(required=True)
    transaction_id = String(max_length=255)
    amount = Float(min_value=0.0)
    note = String(max_length=500)
    confirmed_by = String(max_length=100, default="admin")


@ordering.command_handler(part_of=Order)
class ConfirmPaymentManuallyHandler:
    @handle(ConfirmPaymentManually)
    def confirm_payment_manually(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if not order.is_bank_transfer:
            raise ValidationError({"order_id": ["Only bank-transfer orders can be confirmed manually"]})
        if order.payment_status == PaymentStatus.PAID.value:
            raise AlreadyPaid(order.id)
        if order.payment_status == PaymentStatus.EXPIRED.value:
            raise ReservationExpired(order.id, order.reserved_until)
        if order.payment_status != PaymentStatus.PENDING.value or order.status != OrderStatus.PENDING.value:
            raise NotPayable(order.id, order.status)

        transaction_id = command.transaction_id or f"MANUAL-{uuid4().hex[:12].upper()}"
        applied = find_applied(transaction_id)
        if applied is not None:
            raise DuplicateTransaction(transaction_id, applied.order_id)

        amount = command.amount if command.amount is not None else order.bank_transfer.amount
        order.confirm_bank_transfer(
            transaction_id,
            amount,
            source=TransactionSource.MANUAL.value,
            note=command.note or f"Payment confirmed manually by {command.confirmed_by}",
        )
        repo.add(order)
        current_domain.repository_for(AppliedTransaction).add(
            AppliedTransaction(
                transaction_id=transaction_id,
                order_id=str(order.id),
                order_number=order.order_number,
                amount=amount,
                memo=command.note,
                source=TransactionSource.MANUAL.value,
                applied_at=utcnow(),
            )
        )

        logger.info(
            "Payment confirmed manually",
            order_id=str(order.id),
            transaction_id=transaction_id,
            confirmed_by=command.confirmed_by,
            amount=amount,
        )
        return transaction_id

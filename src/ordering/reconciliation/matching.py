"""Payment matcher: settle one pending bank-transfer order from one bank transaction.

Both reconciliation drivers (webhook and feed poller) hand every credit they
see to ``MatchBankTransaction``. The handler decides, in order:

    1. Skipped          not a successful credit to the merchant account
    2. AlreadyPaid      transaction id already in the applied-transaction ledger
    3. NoReferenceFound memo carries no ``DH`` + 8 character reference
    4. OrderNotFound    no order has that reference
    5. AlreadyPaid      the order is paid (by another transaction)
    6. Expired          the order's payment window lapsed
    7. NotPayable       the order is no longer pending
    8. AmountMismatch   amount fails the configured amount policy
    9. Matched          order marked paid, moved to processing, ledger written

Rejections are returned as results, never raised, so a driver can acknowledge
the event and move on. The order update and the ledger row are committed in
one unit of work. Two concurrent matches race on the ledger identity and on
the order's version; the loser fails to commit.
"""

from dataclasses import dataclass
from enum import Enum

import structlog
from protean import handle
from protean.fields import DateTime, Float, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.numbering import extract_payment_reference
from ordering.order.order import Order, OrderStatus, PaymentStatus
from ordering.reconciliation.ledger import AppliedTransaction, TransactionSource, find_applied
from ordering.settings import get_settings
from ordering.utils.clock import as_utc, utcnow

logger = structlog.get_logger(__name__)

CREDIT = "CREDIT"
SUCCESS = "SUCCESS"


class MatchOutcome(Enum):
    MATCHED = "Matched"
    ALREADY_PAID = "AlreadyPaid"
    NO_REFERENCE_FOUND = "NoReferenceFound"
    ORDER_NOT_FOUND = "OrderNotFound"
    EXPIRED = "Expired"
    NOT_PAYABLE = "NotPayable"
    AMOUNT_MISMATCH = "AmountMismatch"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class MatchResult:
    outcome: MatchOutcome
    transaction_id: str
    order_id: str | None = None
    order_number: str | None = None
    detail: str | None = None

    @property
    def matched(self) -> bool:
        return self.outcome == MatchOutcome.MATCHED


@ordering.command(part_of="Order")
class MatchBankTransaction:
    transaction_id = String(required=True, max_length=255)
    amount = Float(required=True)
    memo = String(max_length=1000)
    occurred_at = DateTime()
    direction = String(max_length=10)  # CREDIT / DEBIT
    bank_status = String(max_length=20, default=SUCCESS)
    account_number = String(max_length=50)
    bank_code = String(max_length=20)
    source = String(choices=TransactionSource, default=TransactionSource.WEBHOOK.value)
    as_of = DateTime()  # Optional: defaults to now


def amount_satisfies(policy, expected, received):
    """Whether ``received`` settles an order expecting ``expected`` under ``policy``."""
    if policy == "exact":
        return abs(received - expected) < 0.005
    return received + 0.005 >= expected


@ordering.command_handler(part_of=Order)
class MatchBankTransactionHandler:
    @handle(MatchBankTransaction)
    def match_bank_transaction(self, command):
        result = self._match(command)
        logger.info(
            "Bank transaction processed",
            transaction_id=command.transaction_id,
            source=command.source,
            outcome=result.outcome.value,
            order_number=result.order_number,
            detail=result.detail,
        )
        return result

    def _match(self, command):
        settings = get_settings()
        transaction_id = command.transaction_id

        def result(outcome, order=None, detail=None):
            return MatchResult(
                outcome=outcome,
                transaction_id=transaction_id,
                order_id=str(order.id) if order else None,
                order_number=order.order_number if order else None,
                detail=detail,
            )

        if (command.direction or "").upper() != CREDIT:
            return result(MatchOutcome.SKIPPED, detail=f"direction {command.direction}")
        if (command.bank_status or SUCCESS).upper() != SUCCESS:
            return result(MatchOutcome.SKIPPED, detail=f"bank status {command.bank_status}")
        if command.account_number and command.account_number != settings.bank_account_number:
            return result(MatchOutcome.SKIPPED, detail="credit to another account")

        applied = find_applied(transaction_id)
        if applied is not None:
            return MatchResult(
                outcome=MatchOutcome.ALREADY_PAID,
                transaction_id=transaction_id,
                order_id=str(applied.order_id),
                order_number=applied.order_number,
                detail="transaction already applied",
            )

        reference = extract_payment_reference(command.memo, settings.payment_reference_prefix)
        if reference is None:
            return result(MatchOutcome.NO_REFERENCE_FOUND)

        repo = current_domain.repository_for(Order)
        candidate = repo.find_by_payment_reference(reference)
        if candidate is None:
            return result(MatchOutcome.ORDER_NOT_FOUND, detail=f"reference {reference}")

        # Reload through the repository so children and version are tracked.
        order = repo.get(candidate.id)
        as_of = as_utc(command.as_of) if command.as_of else utcnow()

        if order.payment_status == PaymentStatus.PAID.value:
            return result(MatchOutcome.ALREADY_PAID, order, detail="order already paid")
        if order.payment_status == PaymentStatus.EXPIRED.value or order.is_payment_expired(as_of):
            return result(MatchOutcome.EXPIRED, order, detail=f"window closed at {order.reserved_until}")
        if order.payment_status != PaymentStatus.PENDING.value or order.status != OrderStatus.PENDING.value:
            return result(MatchOutcome.NOT_PAYABLE, order, detail=f"order is {order.status}/{order.payment_status}")

        expected = order.bank_transfer.amount
        if not amount_satisfies(settings.amount_policy, expected, command.amount):
            return result(
                MatchOutcome.AMOUNT_MISMATCH,
                order,
                detail=f"expected {expected}, received {command.amount}",
            )

        order.confirm_bank_transfer(
            transaction_id,
            command.amount,
            source_bank_code=command.bank_code,
            source=command.source,
        )
        repo.add(order)
        current_domain.repository_for(AppliedTransaction).add(
            AppliedTransaction(
                transaction_id=transaction_id,
                order_id=str(order.id),
                order_number=order.order_number,
                amount=command.amount,
                memo=command.memo,
                source=command.source or TransactionSource.WEBHOOK.value,
                bank_code=command.bank_code,
                applied_at=utcnow(),
            )
        )
        return result(MatchOutcome.MATCHED, order)

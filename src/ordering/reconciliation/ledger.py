"""Ledger of bank transactions already applied to an order.

The external transaction id is the aggregate identity, so a transaction can be
recorded at most once and therefore settle at most one order.
"""

from enum import Enum

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering


class TransactionSource(Enum):
    WEBHOOK = "webhook"
    POLL = "poll"
    MANUAL = "manual"


@ordering.aggregate
class AppliedTransaction:
    transaction_id = String(identifier=True, max_length=255)
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=20)
    amount = Float(required=True)
    memo = String(max_length=1000)
    source = String(choices=TransactionSource, default=TransactionSource.WEBHOOK.value)
    bank_code = String(max_length=20)
    applied_at = DateTime(required=True)


def find_applied(transaction_id) -> AppliedTransaction | None:
    try:
        return current_domain.repository_for(AppliedTransaction).get(transaction_id)
    except ObjectNotFoundError:
        return None

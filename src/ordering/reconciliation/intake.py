"""Feeding validated bank transactions to the matcher, shared by both drivers."""

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ordering.notifications import notify_safely
from ordering.utils.logging import add_context, clear_context

logger = structlog.get_logger(__name__)


def _match(command):
    try:
        return current_domain.process(command, asynchronous=False)
    except ExpectedVersionError:
        logger.warning("Lost race while applying bank transaction")
        return current_domain.process(command, asynchronous=False)


def apply_transaction(transaction, source, bank_code=None):
    """Match ``transaction`` against pending orders and notify the buyer on success.

    A concurrent match of the same order or transaction surfaces as a version
    conflict at commit. The match is then evaluated once more against the
    committed state, which reports the winner's outcome. Log lines emitted
    while matching carry the transaction id and source.
    """
    command = transaction.to_command(source=source, bank_code=bank_code)
    add_context(transaction_id=transaction.transaction_id, source=source)
    try:
        result = _match(command)
    finally:
        clear_context()

    if result.matched:
        notify_safely(
            "payment_confirmed",
            order_id=result.order_id,
            order_number=result.order_number,
            transaction_id=result.transaction_id,
        )
    return result

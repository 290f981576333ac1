"""Settling an order's reserved units on the stock ledger.

Both helpers run inside the caller's unit of work: a cancelled or expired
order releases its units back to ``available``, a shipped order commits them.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.stock.stock import VariantStock

logger = structlog.get_logger(__name__)


def _settle(order, settle):
    repo = current_domain.repository_for(VariantStock)
    units = 0
    for variant_id in sorted({str(item.variant_id) for item in order.items}):
        try:
            stock = repo.get(variant_id)
        except ObjectNotFoundError:
            logger.warning(
                "Stock ledger entry missing for order",
                order_id=str(order.id),
                variant_id=variant_id,
            )
            continue

        settled = settle(stock, order.id)
        if settled:
            repo.add(stock)
            units += settled
    return units


def release_order_stock(order):
    """Release every unit held for ``order``. Returns the total units released."""
    released = _settle(order, VariantStock.release_for_order)
    logger.info("Released order stock", order_id=str(order.id), units=released)
    return released


def commit_order_stock(order):
    """Commit every unit held for a shipped ``order``. Returns the total units committed."""
    committed = _settle(order, VariantStock.commit_for_order)
    logger.info("Committed order stock", order_id=str(order.id), units=committed)
    return committed

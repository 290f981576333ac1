"""Order cancellation by its owner or an admin: command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.stock.release import release_order_stock

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = String(max_length=50, default="Customer")


def cancel_and_release(order, reason):
    """Cancel ``order`` and return its reserved units, in the caller's unit of work."""
    order.cancel(reason)
    return release_order_stock(order)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        released = cancel_and_release(order, command.reason)
        repo.add(order)

        logger.info(
            "Order cancelled",
            order_id=str(order.id),
            cancelled_by=command.cancelled_by,
            released_units=released,
        )

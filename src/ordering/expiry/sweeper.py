"""Expiration sweep: cancel bank-transfer orders whose payment window lapsed.

``sweep_expired_orders`` finds unpaid bank-transfer orders past
``reserved_until`` and dispatches ``ExpireOrderReservation`` for each, one
unit of work per order. The handler re-checks the same expiry predicate the
payment matcher uses, so an order paid between the query and the command is
left alone and a second sweep finds nothing to do.
"""

from dataclasses import dataclass

import structlog
from protean import handle
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import ReservationActive
from ordering.notifications import notify_safely
from ordering.order.order import Order
from ordering.stock.release import release_order_stock
from ordering.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ExpireOrderReservation:
    order_id = Identifier(required=True)
    as_of = DateTime()  # Optional: defaults to now


@ordering.command_handler(part_of=Order)
class ExpireOrderReservationHandler:
    @handle(ExpireOrderReservation)
    def expire_order_reservation(self, command):
        as_of = command.as_of or utcnow()
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if not order.is_payment_expired(as_of):
            return False

        order.expire_reservation()
        released = release_order_stock(order)
        repo.add(order)

        logger.info(
            "Expired unpaid order",
            order_id=str(order.id),
            order_number=order.order_number,
            reserved_until=str(order.reserved_until),
            released_units=released,
        )
        return True


@dataclass
class SweepReport:
    expired: int = 0
    skipped: int = 0
    failed: int = 0


def expire_order(order_id, as_of=None):
    """Expire a single order on request, e.g. from the admin console."""
    expired = current_domain.process(ExpireOrderReservation(order_id=order_id, as_of=as_of), asynchronous=False)
    if not expired:
        raise ReservationActive(order_id)

    order = current_domain.repository_for(Order).get(order_id)
    notify_safely("order_expired", order_id=str(order.id), order_number=order.order_number)
    return order


def sweep_expired_orders(as_of=None) -> SweepReport:
    as_of = as_of or utcnow()
    report = SweepReport()

    for order in current_domain.repository_for(Order).find_expired_transfers(as_of):
        order_id = str(order.id)
        try:
            expired = current_domain.process(
                ExpireOrderReservation(order_id=order_id, as_of=as_of),
                asynchronous=False,
            )
        except Exception as exc:
            report.failed += 1
            logger.error("Failed to expire order", order_id=order_id, error=str(exc))
            continue

        if expired:
            report.expired += 1
            notify_safely("order_expired", order_id=order_id, order_number=order.order_number)
        else:
            report.skipped += 1

    if report.expired or report.failed:
        logger.info(
            "Expired order sweep complete",
            expired=report.expired,
            skipped=report.skipped,
            failed=report.failed,
        )
    else:
        logger.debug("No expired orders found")
    return report

"""Admin status management: move an order through the state machine."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.cancellation import cancel_and_release
from ordering.order.order import Order, OrderStatus, parse_status
from ordering.stock.release import commit_order_stock

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    note = String(max_length=500)
    tracking_number = String(max_length=255)
    carrier = String(max_length=100)


@ordering.command(part_of="Order")
class MarkPaymentRefunded:
    order_id = Identifier(required=True)
    note = String(max_length=500)


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        target = parse_status(command.status)

        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status

        if target == OrderStatus.CANCELLED:
            cancel_and_release(order, command.note or "Cancelled by admin")
        else:
            order.transition_to(
                target,
                note=command.note,
                tracking_number=command.tracking_number,
                carrier=command.carrier,
            )
            if target == OrderStatus.SHIPPED:
                commit_order_stock(order)
        repo.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            from_status=previous,
            to_status=target.value,
        )
        return order.status

    @handle(MarkPaymentRefunded)
    def mark_payment_refunded(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_payment_refunded(command.note)
        repo.add(order)

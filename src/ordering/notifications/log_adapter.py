"""Notifier that only logs; stands in until a delivery channel is wired up."""

import structlog

from ordering.notifications.port import OrderNotifier

logger = structlog.get_logger(__name__)


class LoggingOrderNotifier(OrderNotifier):
    def payment_confirmed(self, order_id, order_number, transaction_id):
        logger.info(
            "Notify buyer: payment confirmed",
            order_id=order_id,
            order_number=order_number,
            transaction_id=transaction_id,
        )

    def order_expired(self, order_id, order_number):
        logger.info("Notify buyer: order expired", order_id=order_id, order_number=order_number)

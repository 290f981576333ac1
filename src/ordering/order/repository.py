"""Repository for the Order aggregate with the lookups reconciliation needs."""

from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus, PaymentMethod, PaymentStatus


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_payment_reference(self, reference) -> Order | None:
        """The order whose transfer memo token is ``reference``, if any."""
        matches = self._dao.query.filter(payment_reference=reference.upper()).all().items
        return matches[0] if matches else None

    def find_by_order_number(self, order_number) -> Order | None:
        matches = self._dao.query.filter(order_number=order_number).all().items
        return matches[0] if matches else None

    def find_awaiting_transfer(self) -> list[Order]:
        """Every bank-transfer order still waiting for its payment."""
        return (
            self._dao.query.filter(
                payment_method=PaymentMethod.BANK_TRANSFER.value,
                payment_status=PaymentStatus.PENDING.value,
                status=OrderStatus.PENDING.value,
            )
            .limit(None)
            .all()
            .items
        )

    def find_expired_transfers(self, as_of) -> list[Order]:
        """Unpaid bank-transfer orders whose reservation lapsed before ``as_of``."""
        return [order for order in self.find_awaiting_transfer() if order.is_payment_expired(as_of)]

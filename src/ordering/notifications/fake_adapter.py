"""Recording notifier for tests: every call lands in ``sent``."""

from ordering.notifications.port import OrderNotifier


class FakeOrderNotifier(OrderNotifier):
    def __init__(self) -> None:
        self.sent: list[dict] = []

    def payment_confirmed(self, order_id, order_number, transaction_id):
        self.sent.append(
            {
                "kind": "payment_confirmed",
                "order_id": order_id,
                "order_number": order_number,
                "transaction_id": transaction_id,
            }
        )

    def order_expired(self, order_id, order_number):
        self.sent.append({"kind": "order_expired", "order_id": order_id, "order_number": order_number})

    def kinds(self) -> list[str]:
        return [message["kind"] for message in self.sent]

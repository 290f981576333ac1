"""Order notifier port: tells the buyer what happened to their payment."""

from abc import ABC, abstractmethod


class OrderNotifier(ABC):
    @abstractmethod
    def payment_confirmed(self, order_id: str, order_number: str, transaction_id: str) -> None:
        ...

    @abstractmethod
    def order_expired(self, order_id: str, order_number: str) -> None:
        ...

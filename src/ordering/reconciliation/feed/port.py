"""Bank transaction feed port (abstract interface).

The poller reads recent account activity through this contract, so the HTTP
adapter can be swapped for a fake in development and tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class BankTransactionFeed(ABC):
    """Source of raw transaction payloads for the merchant account."""

    @abstractmethod
    def fetch_transactions(self, account_number: str, from_date: datetime, to_date: datetime) -> list[dict]:
        """Return raw transactions booked on ``account_number`` within the window.

        Raises ``FeedUnavailable`` when the bank cannot be reached or answers
        with something unusable.
        """
        ...

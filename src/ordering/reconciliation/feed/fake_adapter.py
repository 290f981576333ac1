"""In-memory bank feed for development and testing.

Transactions are queued with ``add_transaction`` and returned on every fetch
until cleared, which mirrors how a trailing-window poll sees the same credit
more than once.
"""

from ordering.errors import FeedUnavailable
from ordering.reconciliation.feed.port import BankTransactionFeed


class FakeBankFeed(BankTransactionFeed):
    def __init__(self) -> None:
        self.transactions: list[dict] = []
        self.failure: str | None = None
        self.calls: list[dict] = []

    def add_transaction(self, **raw) -> None:
        self.transactions.append(raw)

    def fail_with(self, message: str | None) -> None:
        """Make subsequent fetches fail (``None`` restores normal behaviour)."""
        self.failure = message

    def clear(self) -> None:
        self.transactions = []

    def fetch_transactions(self, account_number, from_date, to_date):
        self.calls.append(
            {
                "account_number": account_number,
                "from_date": from_date,
                "to_date": to_date,
            }
        )
        if self.failure:
            raise FeedUnavailable(self.failure)
        return list(self.transactions)

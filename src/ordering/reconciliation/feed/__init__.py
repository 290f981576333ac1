"""Bank feed factory.

``get_feed()`` returns the HTTP adapter when ``BANKING_API_URL`` is configured
and an empty FakeBankFeed otherwise. ``set_feed()`` swaps it (useful for tests).
"""

from ordering.reconciliation.feed.fake_adapter import FakeBankFeed
from ordering.reconciliation.feed.http_adapter import HttpBankFeed
from ordering.reconciliation.feed.port import BankTransactionFeed
from ordering.settings import get_settings

_current_feed: BankTransactionFeed | None = None


def get_feed() -> BankTransactionFeed:
    global _current_feed
    if _current_feed is None:
        settings = get_settings()
        _current_feed = HttpBankFeed.from_settings(settings) if settings.bank_feed_url else FakeBankFeed()
    return _current_feed


def set_feed(feed: BankTransactionFeed) -> None:
    global _current_feed
    _current_feed = feed


def reset_feed() -> None:
    global _current_feed
    _current_feed = None

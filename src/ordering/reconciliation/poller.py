"""Pull driver: poll the bank feed over a trailing window and match every credit.

The window is wider than the poll interval, so a credit is usually seen more
than once; the matcher's ledger makes the repeats harmless. A feed outage is
logged and the next tick simply tries again.
"""

from dataclasses import dataclass, field
from datetime import timedelta

import structlog
from pydantic import ValidationError as PayloadError

from ordering.errors import FeedUnavailable
from ordering.reconciliation.feed import get_feed
from ordering.reconciliation.intake import apply_transaction
from ordering.reconciliation.ledger import TransactionSource
from ordering.reconciliation.transaction import BankTransaction
from ordering.settings import get_settings
from ordering.utils.clock import utcnow

logger = structlog.get_logger(__name__)


@dataclass
class PollReport:
    fetched: int = 0
    invalid: int = 0
    failed: int = 0
    outcomes: dict[str, int] = field(default_factory=dict)
    feed_error: str | None = None

    @property
    def matched(self) -> int:
        return self.outcomes.get("Matched", 0)

    def record(self, result) -> None:
        key = result.outcome.value
        self.outcomes[key] = self.outcomes.get(key, 0) + 1


class BankFeedPoller:
    def __init__(self, feed=None, settings=None) -> None:
        self._feed = feed
        self.settings = settings or get_settings()

    @property
    def feed(self):
        return self._feed or get_feed()

    def poll_once(self, as_of=None) -> PollReport:
        to_date = as_of or utcnow()
        from_date = to_date - timedelta(minutes=self.settings.poll_window_minutes)
        report = PollReport()

        try:
            raw_transactions = self.feed.fetch_transactions(self.settings.bank_account_number, from_date, to_date)
        except FeedUnavailable as exc:
            logger.error("Bank feed unavailable", error=str(exc))
            report.feed_error = str(exc)
            return report

        report.fetched = len(raw_transactions)
        for raw in raw_transactions:
            try:
                transaction = BankTransaction.model_validate(raw)
            except PayloadError as exc:
                report.invalid += 1
                logger.warning("Skipping malformed feed transaction", error=str(exc))
                continue

            try:
                result = apply_transaction(
                    transaction,
                    source=TransactionSource.POLL.value,
                    bank_code=self.settings.bank_code,
                )
            except Exception as exc:
                report.failed += 1
                logger.error(
                    "Failed to apply feed transaction",
                    transaction_id=transaction.transaction_id,
                    error=str(exc),
                )
                continue

            report.record(result)

        logger.info(
            "Bank feed poll complete",
            fetched=report.fetched,
            matched=report.matched,
            invalid=report.invalid,
            failed=report.failed,
        )
        return report

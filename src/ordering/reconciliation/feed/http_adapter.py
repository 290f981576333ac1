"""Bank feed adapter that queries the bank's transaction API over HTTP."""

import httpx
import structlog

from ordering.errors import FeedUnavailable
from ordering.reconciliation.feed.port import BankTransactionFeed

logger = structlog.get_logger(__name__)


class HttpBankFeed(BankTransactionFeed):
    """POSTs ``{accountNumber, fromDate, toDate}`` and reads ``transactions`` from the reply."""

    def __init__(self, url: str, token: str | None = None, timeout: float = 60.0, transport=None) -> None:
        self.url = url
        self.token = token
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings) -> "HttpBankFeed":
        return cls(
            url=settings.bank_feed_url,
            token=settings.bank_feed_token,
            timeout=settings.bank_feed_timeout_seconds,
        )

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch_transactions(self, account_number, from_date, to_date):
        payload = {
            "accountNumber": account_number,
            "fromDate": from_date.isoformat(),
            "toDate": to_date.isoformat(),
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, json=payload, headers=self._headers())
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as exc:
            raise FeedUnavailable(f"Bank feed request failed: {exc}") from exc
        except ValueError as exc:
            raise FeedUnavailable("Bank feed returned a non-JSON response") from exc

        transactions = data.get("transactions") if isinstance(data, dict) else None
        if not isinstance(transactions, list):
            raise FeedUnavailable("Bank feed response has no transactions list")

        logger.debug("Fetched bank transactions", count=len(transactions), account_number=account_number)
        return transactions

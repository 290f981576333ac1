"""Application tests for handing bank transactions to the matcher from either driver."""

import json

import pytest
import structlog
from ordering.domain import ordering
from ordering.order.numbering import payment_memo
from ordering.order.order import Order, PaymentStatus
from ordering.reconciliation import intake
from ordering.reconciliation.intake import apply_transaction
from ordering.reconciliation.ledger import find_applied
from ordering.reconciliation.matching import MatchOutcome
from ordering.reconciliation.poller import BankFeedPoller
from ordering.reconciliation.transaction import BankTransaction
from ordering.reconciliation.webhook import receive_bank_webhook
from protean import current_domain
from protean.exceptions import ExpectedVersionError

TRANSACTION_ID = "FT-BOTH-1"


def _payload(order):
    return {
        "transactionId": TRANSACTION_ID,
        "accountNumber": "0000000000",
        "amount": order.bank_transfer.amount,
        "description": payment_memo(order.payment_reference),
        "creditDebit": "CREDIT",
        "status": "SUCCESS",
    }


def _deliver_webhook(order):
    return receive_bank_webhook("mb", json.dumps(_payload(order)).encode())


def _reload(order):
    return current_domain.repository_for(Order).get(order.id)


class RacingDomain:
    """Stands in for the domain: the first match loses a race, later ones go through."""

    def __init__(self, winner_commits=False):
        self.winner_commits = winner_commits
        self.calls = 0
        self.contexts = []

    def process(self, command, asynchronous=True):
        self.calls += 1
        self.contexts.append(structlog.contextvars.get_contextvars())
        if self.calls == 1:
            if self.winner_commits:
                ordering.process(command, asynchronous=False)
            raise ExpectedVersionError("Version mismatch on Order")
        return ordering.process(command, asynchronous=asynchronous)


@pytest.fixture()
def pending_order(register_stock, place_order):
    register_stock()
    return place_order()


class TestAcrossDrivers:
    def test_webhook_then_poll_applies_the_credit_once(self, pending_order, feed, notifier):
        ack = _deliver_webhook(pending_order)
        feed.add_transaction(**_payload(pending_order))
        report = BankFeedPoller().poll_once()

        assert ack["outcome"] == "Matched"
        assert report.outcomes == {"AlreadyPaid": 1}
        assert find_applied(TRANSACTION_ID).source == "webhook"
        assert _reload(pending_order).payment_status == PaymentStatus.PAID.value
        assert notifier.kinds() == ["payment_confirmed"]

    def test_poll_then_webhook_applies_the_credit_once(self, pending_order, feed, notifier):
        feed.add_transaction(**_payload(pending_order))
        report = BankFeedPoller().poll_once()
        ack = _deliver_webhook(pending_order)

        assert report.matched == 1
        assert ack["success"] is False
        assert ack["outcome"] == "AlreadyPaid"
        assert find_applied(TRANSACTION_ID).source == "poll"
        assert notifier.kinds() == ["payment_confirmed"]


class TestLostRace:
    def test_retry_after_version_conflict_matches(self, monkeypatch, pending_order, notifier):
        racing = RacingDomain()
        monkeypatch.setattr(intake, "current_domain", racing)

        result = apply_transaction(BankTransaction.model_validate(_payload(pending_order)), source="webhook")

        assert racing.calls == 2
        assert result.outcome == MatchOutcome.MATCHED
        assert _reload(pending_order).payment_status == PaymentStatus.PAID.value
        assert notifier.kinds() == ["payment_confirmed"]

    def test_retry_reports_the_winners_outcome(self, monkeypatch, pending_order, notifier):
        racing = RacingDomain(winner_commits=True)
        monkeypatch.setattr(intake, "current_domain", racing)

        result = apply_transaction(BankTransaction.model_validate(_payload(pending_order)), source="poll")

        assert result.outcome == MatchOutcome.ALREADY_PAID
        assert find_applied(TRANSACTION_ID) is not None
        assert notifier.kinds() == []


class TestLogContext:
    def test_transaction_is_bound_while_matching(self, monkeypatch, pending_order, notifier):
        racing = RacingDomain()
        monkeypatch.setattr(intake, "current_domain", racing)

        apply_transaction(BankTransaction.model_validate(_payload(pending_order)), source="poll")

        assert racing.contexts[-1] == {"transaction_id": TRANSACTION_ID, "source": "poll"}
        assert structlog.contextvars.get_contextvars() == {}

"""Tests for the bank transaction boundary model."""

import pytest
from ordering.reconciliation.transaction import BankTransaction
from pydantic import ValidationError


def _payload(**overrides):
    payload = {
        "transactionId": "FT25001",
        "accountNumber": "0000000000",
        "amount": 305000,
        "description": "DHA1B2C3D4",
        "transactionDate": "2025-01-01T10:05:00+00:00",
        "creditDebit": "CREDIT",
        "status": "SUCCESS",
    }
    payload.update(overrides)
    return payload


class TestBankTransactionParsing:
    def test_webhook_spelling(self):
        transaction = BankTransaction.model_validate(_payload())

        assert transaction.transaction_id == "FT25001"
        assert transaction.account_number == "0000000000"
        assert transaction.amount == 305000.0
        assert transaction.description == "DHA1B2C3D4"
        assert transaction.credit_debit == "CREDIT"
        assert transaction.transaction_date.year == 2025

    def test_feed_spelling(self):
        transaction = BankTransaction.model_validate(
            {"id": 991, "account_number": 123456, "amount": 1000, "memo": "DHA1B2C3D4", "credit_debit": "credit"}
        )

        assert transaction.transaction_id == "991"
        assert transaction.account_number == "123456"
        assert transaction.description == "DHA1B2C3D4"
        assert transaction.credit_debit == "CREDIT"

    def test_status_defaults_to_success(self):
        payload = _payload()
        del payload["status"]
        assert BankTransaction.model_validate(payload).status == "SUCCESS"

    def test_unknown_fields_are_ignored(self):
        transaction = BankTransaction.model_validate(_payload(bankBranch="HN"))
        assert transaction.transaction_id == "FT25001"

    @pytest.mark.parametrize("amount", [0, -10])
    def test_amount_must_be_positive(self, amount):
        with pytest.raises(ValidationError):
            BankTransaction.model_validate(_payload(amount=amount))

    def test_transaction_id_is_required(self):
        payload = _payload()
        del payload["transactionId"]
        with pytest.raises(ValidationError):
            BankTransaction.model_validate(payload)


class TestToCommand:
    def test_builds_match_command(self):
        command = BankTransaction.model_validate(_payload()).to_command(source="webhook", bank_code="MB")

        assert command.transaction_id == "FT25001"
        assert command.amount == 305000.0
        assert command.memo == "DHA1B2C3D4"
        assert command.direction == "CREDIT"
        assert command.bank_status == "SUCCESS"
        assert command.bank_code == "MB"
        assert command.source == "webhook"

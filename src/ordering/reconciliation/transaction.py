"""Boundary model for bank transactions arriving from a webhook or the feed.

Raw payloads are validated once here. Banks disagree on field names (the feed
sends ``id`` where the webhook sends ``transactionId``), so each field accepts
the known spellings.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ordering.reconciliation.matching import MatchBankTransaction


class BankTransaction(BaseModel):
    transaction_id: str = Field(
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("transactionId", "transaction_id", "id"),
    )
    account_number: str | None = Field(default=None, validation_alias=AliasChoices("accountNumber", "account_number"))
    amount: float = Field(gt=0)
    description: str = Field(default="", validation_alias=AliasChoices("description", "memo", "content"))
    transaction_date: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("transactionDate", "transaction_date"),
    )
    credit_debit: str | None = Field(default=None, validation_alias=AliasChoices("creditDebit", "credit_debit"))
    status: str = "SUCCESS"

    model_config = {
        "extra": "ignore",
        "str_strip_whitespace": True,
    }

    @field_validator("transaction_id", "account_number", mode="before")
    @classmethod
    def _coerce_to_str(cls, value):
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("credit_debit", "status")
    @classmethod
    def _upper(cls, value):
        return value.upper() if isinstance(value, str) else value

    def to_command(self, source, bank_code=None):
        return MatchBankTransaction(
            transaction_id=self.transaction_id,
            amount=self.amount,
            memo=self.description,
            occurred_at=self.transaction_date,
            direction=self.credit_debit,
            bank_status=self.status,
            account_number=self.account_number,
            bank_code=bank_code,
            source=source,
        )

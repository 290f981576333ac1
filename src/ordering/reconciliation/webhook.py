"""Push driver: bank webhooks announcing credits to the merchant account.

The bank signs the raw request body with HMAC-SHA256 and sends the hex digest
in ``X-Signature``. When a secret is configured for the bank (or globally) the
signature is mandatory. Past the signature check every request is
acknowledged, so the bank does not retry deliveries the service has seen.
"""

import hashlib
import hmac
import json

import structlog
from pydantic import ValidationError as PayloadError

from ordering.errors import InvalidSignature
from ordering.reconciliation.intake import apply_transaction
from ordering.reconciliation.ledger import TransactionSource
from ordering.reconciliation.transaction import BankTransaction
from ordering.settings import get_settings

logger = structlog.get_logger(__name__)


def sign(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    if not secret:
        return True
    if not signature:
        return False
    return hmac.compare_digest(sign(body, secret), signature.strip().lower())


def acknowledgement(success, message, result=None):
    ack = {"success": success, "message": message}
    if result is not None:
        ack["outcome"] = result.outcome.value
        ack["order_number"] = result.order_number
    return ack


def receive_bank_webhook(bank: str, body: bytes, signature: str | None = None, settings=None) -> dict:
    """Verify, parse and match one webhook delivery. Returns the acknowledgement body.

    Raises ``InvalidSignature`` when the signature check fails.
    """
    settings = settings or get_settings()
    bank_code = bank.upper()

    if not verify_signature(body, signature, settings.webhook_secret_for(bank_code)):
        logger.warning("Rejected bank webhook with invalid signature", bank=bank_code)
        raise InvalidSignature(bank_code)

    if not body or not body.strip():
        return acknowledgement(False, "Empty payload")

    try:
        payload = json.loads(body)
        transaction = BankTransaction.model_validate(payload)
    except (ValueError, PayloadError) as exc:
        logger.warning("Malformed bank webhook payload", bank=bank_code, error=str(exc))
        return acknowledgement(False, "Malformed payload")

    try:
        result = apply_transaction(transaction, source=TransactionSource.WEBHOOK.value, bank_code=bank_code)
    except Exception as exc:
        logger.error(
            "Failed to process bank webhook",
            bank=bank_code,
            transaction_id=transaction.transaction_id,
            error=str(exc),
            exc_info=True,
        )
        return acknowledgement(False, "Processing error")

    return acknowledgement(result.matched, result.detail or result.outcome.value, result)

"""Payment instructions shown to a buyer who chose bank transfer."""

from dataclasses import dataclass
from datetime import datetime
from urllib.parse import urlencode

from ordering.order.numbering import payment_memo

VIETQR_IMAGE_URL = "https://img.vietqr.io/image/{bank}-{account}-compact2.png"


@dataclass(frozen=True)
class TransferInstructions:
    bank_code: str
    account_number: str
    account_name: str
    amount: float
    memo: str
    reserved_until: datetime
    qr_image_url: str


def vietqr_image_url(bank_code, account_number, amount, memo, account_name=None):
    """Quick-link URL of a VietQR image that pre-fills the transfer in banking apps."""
    params = {"amount": int(round(amount)), "addInfo": memo}
    if account_name:
        params["accountName"] = account_name
    base = VIETQR_IMAGE_URL.format(bank=bank_code, account=account_number)
    return f"{base}?{urlencode(params)}"


def transfer_instructions(order, prefix="DH"):
    """Build the instructions for a bank-transfer order, or None for other methods."""
    if not order.is_bank_transfer:
        return None

    transfer = order.bank_transfer
    memo = payment_memo(order.payment_reference, prefix)
    return TransferInstructions(
        bank_code=transfer.bank_code,
        account_number=transfer.account_number,
        account_name=transfer.account_name,
        amount=transfer.amount,
        memo=memo,
        reserved_until=order.reserved_until,
        qr_image_url=vietqr_image_url(
            transfer.bank_code,
            transfer.account_number,
            transfer.amount,
            memo,
            account_name=transfer.account_name,
        ),
    )

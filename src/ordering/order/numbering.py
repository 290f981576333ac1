"""Order numbers and bank-transfer payment references.

Order numbers have the form ``ORD-YYYYMMDD-NNNNN``: the UTC creation date and
a per-day sequence. The sequence is an aggregate of its own, incremented in
the same unit of work that persists the order, so numbers are unique and a
failed checkout does not consume one.

The payment reference is the first eight hex digits of SHA-256 over the order
number, upper-cased. A token already held by another order is re-derived with
an attempt counter, so references stay unique. Buyers put it in the transfer
memo after the configured prefix (``DH`` by default).
"""

import hashlib
import re

from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.utils.clock import utcnow

REFERENCE_LENGTH = 8


@ordering.aggregate
class DailyOrderSequence:
    date_key = String(identifier=True, max_length=8)  # YYYYMMDD
    last_value = Integer(default=0, min_value=0)

    def next_value(self):
        self.last_value += 1
        return self.last_value


def format_order_number(date_key, value):
    return f"ORD-{date_key}-{value:05d}"


def next_order_number(now=None):
    """Reserve the next order number for today (UTC) in the current unit of work."""
    date_key = (now or utcnow()).strftime("%Y%m%d")
    repo = current_domain.repository_for(DailyOrderSequence)
    try:
        sequence = repo.get(date_key)
    except ObjectNotFoundError:
        sequence = DailyOrderSequence(date_key=date_key, last_value=0)

    value = sequence.next_value()
    repo.add(sequence)
    return format_order_number(date_key, value)


def payment_reference_for(order_number, attempt=0):
    """Reference token for ``order_number``; ``attempt`` re-derives it after a collision."""
    seed = order_number if not attempt else f"{order_number}#{attempt}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:REFERENCE_LENGTH].upper()


def payment_memo(reference, prefix="DH"):
    """Text the buyer must include in the transfer description."""
    return f"{prefix}{reference}"


def extract_payment_reference(memo, prefix="DH"):
    """Return the reference token in a transfer memo, or None.

    Matching is case-insensitive; the token is returned upper-cased.
    """
    if not memo:
        return None
    match = re.search(rf"{re.escape(prefix)}([A-Z0-9]{{{REFERENCE_LENGTH}}})", memo, re.IGNORECASE)
    return match.group(1).upper() if match else None

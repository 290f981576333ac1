"""Ordering bounded context: orders, stock reservations and bank-transfer reconciliation.

Every aggregate the checkout path touches lives in this one domain so that an
order, the stock it reserves and the daily number sequence it consumes are
persisted in a single unit of work.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)

"""Purchasing bounded context — pricing, order lifecycle, stock and card payments.

Owns server-side order pricing, the order state machine with stock
reservation and rollback, and the redirect-based card gateway protocol
(transaction creation, callback correlation and confirmation).
"""

import structlog
from protean.domain import Domain

purchasing = Domain(name="purchasing")

logger = structlog.get_logger(__name__)

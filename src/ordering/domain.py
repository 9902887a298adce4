"""Ordering bounded context — order & payment orchestration.

Turns a cart into a durable order, reserves inventory per variant, drives
the order through its lifecycle and reconciles payment confirmations that
arrive through client callbacks, provider webhooks and cash-on-delivery.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)

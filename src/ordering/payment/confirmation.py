"""Payment confirmation signals.

Every way a payment can be confirmed is one of three closed variants. The
reconciler handles each explicitly and rejects anything else.
"""

from dataclasses import dataclass
from enum import Enum


class WebhookEventKind(Enum):
    CAPTURED = "captured"
    FAILED = "failed"
    IGNORED = "ignored"


@dataclass(frozen=True)
class ClientSignature:
    """Confirmation reported by the customer's browser after checkout."""

    order_id: str
    provider_payment_id: str
    signature: str
    customer_id: str | None = None


@dataclass(frozen=True)
class WebhookEvent:
    """A provider push, already verified and parsed by its gateway."""

    method: str
    kind: WebhookEventKind
    event_type: str
    provider_order_id: str | None = None
    provider_payment_id: str | None = None
    order_reference: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class CODConfirmation:
    order_id: str
    actor: str = "admin"


PaymentConfirmation = ClientSignature | WebhookEvent | CODConfirmation


@dataclass(frozen=True)
class WebhookAck:
    """What the webhook endpoint reports back to the provider."""

    status: str  # processed | duplicate | ignored
    event_type: str
    order_id: str | None = None

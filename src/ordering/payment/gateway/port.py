"""Payment gateway port (abstract interface).

Each provider offers three things: creating a provider-side order for an
amount, a confirmation the customer's browser reports back that can be
verified, and webhooks signed with a shared secret. Adapters translate a
provider's wire format into these calls so the reconciler never sees it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ordering.payment.confirmation import WebhookEvent


@dataclass(frozen=True)
class ProviderOrder:
    """A provider-side order/intent. Amounts are minor units."""

    provider_order_id: str
    amount: int
    currency: str
    client_secret: str | None = None


class PaymentGateway(ABC):
    method: str = ""
    signature_header: str = ""

    @abstractmethod
    def create_payment_order(self, amount: int, currency: str, receipt: str, order_id: str) -> ProviderOrder:
        """Create the provider order the customer will pay against."""
        ...

    @abstractmethod
    def verify_payment_signature(self, provider_order_id: str, provider_payment_id: str, signature: str) -> bool:
        """Check a client-reported confirmation against our provider order id."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature_header: str) -> bool:
        """Verify that a webhook payload is authentically from the provider."""
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes) -> WebhookEvent:
        """Translate a verified webhook body into a ``WebhookEvent``."""
        ...

"""Stripe gateway adapter, built on stripe-python.

The provider order is a PaymentIntent. Stripe's browser flow returns no
signature, so a client-reported confirmation is verified by retrieving the
intent and checking that it belongs to this order and has succeeded.
Webhook signatures are checked by ``stripe.Webhook.construct_event``.
"""

import json

import stripe
import structlog

from ordering.errors import ProviderUnavailable
from ordering.payment.confirmation import WebhookEvent, WebhookEventKind
from ordering.payment.gateway.port import PaymentGateway, ProviderOrder

logger = structlog.get_logger(__name__)

_EVENT_KINDS = {
    "payment_intent.succeeded": WebhookEventKind.CAPTURED,
    "payment_intent.payment_failed": WebhookEventKind.FAILED,
}


class StripeGateway(PaymentGateway):
    method = "stripe"
    signature_header = "Stripe-Signature"

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        stripe_client=stripe,
        tolerance: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ) -> None:
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.tolerance = tolerance
        self._stripe = stripe_client

    def create_payment_order(self, amount: int, currency: str, receipt: str, order_id: str) -> ProviderOrder:
        try:
            intent = self._stripe.PaymentIntent.create(
                api_key=self.secret_key,
                amount=amount,
                currency=currency.lower(),
                description=receipt,
                metadata={"order_id": order_id, "order_number": receipt},
            )
        except stripe.StripeError as exc:
            logger.error("Stripe intent creation failed", order_id=order_id, error=str(exc))
            raise ProviderUnavailable(self.method, str(exc)) from exc

        return ProviderOrder(
            provider_order_id=intent["id"],
            amount=intent["amount"],
            currency=intent["currency"].upper(),
            client_secret=intent["client_secret"],
        )

    def verify_payment_signature(
        self,
        provider_order_id: str,
        provider_payment_id: str,
        signature: str,  # noqa: ARG002
    ) -> bool:
        if not provider_order_id or provider_payment_id != provider_order_id:
            return False
        try:
            intent = self._stripe.PaymentIntent.retrieve(provider_payment_id, api_key=self.secret_key)
        except stripe.StripeError as exc:
            logger.error("Stripe intent lookup failed", provider_payment_id=provider_payment_id, error=str(exc))
            raise ProviderUnavailable(self.method, str(exc)) from exc

        return intent["id"] == provider_order_id and intent["status"] == "succeeded"

    def verify_webhook_signature(self, payload: bytes, signature_header: str) -> bool:
        if not self.webhook_secret or not signature_header:
            return False
        try:
            self._stripe.Webhook.construct_event(
                payload, signature_header, self.webhook_secret, tolerance=self.tolerance
            )
        except stripe.SignatureVerificationError:
            return False
        except ValueError:
            # Body is not JSON
            return False
        return True

    def parse_webhook(self, payload: bytes) -> WebhookEvent:
        body = json.loads(payload)
        event_type = body.get("type", "")
        kind = _EVENT_KINDS.get(event_type, WebhookEventKind.IGNORED)

        intent = body.get("data", {}).get("object", {})
        metadata = intent.get("metadata") or {}
        error = intent.get("last_payment_error") or {}
        return WebhookEvent(
            method=self.method,
            kind=kind,
            event_type=event_type,
            provider_order_id=intent.get("id"),
            provider_payment_id=intent.get("id"),
            order_reference=metadata.get("order_id"),
            failure_reason=error.get("message"),
        )

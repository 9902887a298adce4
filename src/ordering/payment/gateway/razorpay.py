"""Razorpay gateway adapter.

Client confirmations carry ``razorpay_signature``: the hex HMAC-SHA256 of
``"{order_id}|{payment_id}"`` keyed with the API key secret. Webhooks are
signed over the raw body with a separate webhook secret and delivered in
the ``X-Razorpay-Signature`` header.
"""

import hashlib
import hmac
import json

import httpx
import structlog

from ordering.errors import ProviderUnavailable
from ordering.payment.confirmation import WebhookEvent, WebhookEventKind
from ordering.payment.gateway.port import PaymentGateway, ProviderOrder

logger = structlog.get_logger(__name__)

_EVENT_KINDS = {
    "payment.captured": WebhookEventKind.CAPTURED,
    "order.paid": WebhookEventKind.CAPTURED,
    "payment.failed": WebhookEventKind.FAILED,
}


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


class RazorpayGateway(PaymentGateway):
    method = "razorpay"
    signature_header = "X-Razorpay-Signature"

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        client: httpx.Client | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self._client = client or httpx.Client(base_url=base_url, auth=(key_id, key_secret), timeout=timeout)

    def create_payment_order(self, amount: int, currency: str, receipt: str, order_id: str) -> ProviderOrder:
        try:
            response = self._client.post(
                "/orders",
                json={
                    "amount": amount,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": {"order_id": order_id},
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Razorpay order creation failed", order_id=order_id, error=str(exc))
            raise ProviderUnavailable(self.method, str(exc)) from exc

        body = response.json()
        return ProviderOrder(
            provider_order_id=body["id"],
            amount=body.get("amount", amount),
            currency=body.get("currency", currency),
        )

    def sign_payment(self, provider_order_id: str, provider_payment_id: str) -> str:
        return _hmac_hex(self.key_secret, f"{provider_order_id}|{provider_payment_id}".encode())

    def verify_payment_signature(self, provider_order_id: str, provider_payment_id: str, signature: str) -> bool:
        if not self.key_secret or not provider_order_id or not signature:
            return False
        expected = self.sign_payment(provider_order_id, provider_payment_id)
        return hmac.compare_digest(expected, signature)

    def sign_webhook(self, payload: bytes) -> str:
        return _hmac_hex(self.webhook_secret, payload)

    def verify_webhook_signature(self, payload: bytes, signature_header: str) -> bool:
        if not self.webhook_secret or not signature_header:
            return False
        return hmac.compare_digest(self.sign_webhook(payload), signature_header)

    def parse_webhook(self, payload: bytes) -> WebhookEvent:
        body = json.loads(payload)
        event_type = body.get("event", "")
        kind = _EVENT_KINDS.get(event_type, WebhookEventKind.IGNORED)

        entity = body.get("payload", {}).get("payment", {}).get("entity", {})
        notes = entity.get("notes") or {}
        return WebhookEvent(
            method=self.method,
            kind=kind,
            event_type=event_type,
            provider_order_id=entity.get("order_id"),
            provider_payment_id=entity.get("id"),
            order_reference=notes.get("order_id") if isinstance(notes, dict) else None,
            failure_reason=entity.get("error_description"),
        )

"""Payment reconciler — one idempotent path for every confirmation channel.

Client confirmations, provider webhooks and cash-on-delivery confirmations
all end in a command processed under the order's lock. Anything that talks
to a provider (creating a payment order, checking a signature that needs a
lookup) happens before the lock is taken, and the command re-checks the
order's state once inside it.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.errors import InvalidSignature, OrderNotFound
from ordering.locks import order_key, registry
from ordering.order.lookup import find_order_by_provider_order_id, get_order
from ordering.payment.confirmation import (
    ClientSignature,
    CODConfirmation,
    WebhookAck,
    WebhookEvent,
    WebhookEventKind,
)
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.port import ProviderOrder
from ordering.payment.reconciliation import (
    ApplyGatewayEvent,
    ConfirmCashOnDelivery,
    ConfirmClientPayment,
    RecordProviderOrder,
)

logger = structlog.get_logger(__name__)


class PaymentReconciler:
    def __init__(self, locks=registry):
        self.locks = locks

    # -------------------------------------------------------------------
    # Payment initiation
    # -------------------------------------------------------------------
    def initiate(self, order_id) -> ProviderOrder:
        """Create (or return the existing) provider order for an order."""
        order = get_order(order_id)
        order.require_online_payment()
        if order.is_paid:
            raise ValidationError({"payment": ["Order is already paid"]})
        if order.is_terminal:
            raise ValidationError({"status": [f"Cannot take payment for a {order.status} order"]})

        currency = order.pricing.currency
        if order.provider_order_id:
            return ProviderOrder(order.provider_order_id, order.pricing.total, currency)

        provider_order = get_gateway(order.payment_method).create_payment_order(
            amount=order.pricing.total,
            currency=currency,
            receipt=order.order_number,
            order_id=str(order.id),
        )
        with self.locks.hold(order_key(order.id)):
            recorded = current_domain.process(
                RecordProviderOrder(order_id=str(order.id), provider_order_id=provider_order.provider_order_id),
                asynchronous=False,
            )

        logger.info(
            "Payment initiated",
            order_id=str(order.id),
            method=order.payment_method,
            provider_order_id=recorded,
        )
        if recorded != provider_order.provider_order_id:
            return ProviderOrder(recorded, order.pricing.total, currency)
        return provider_order

    # -------------------------------------------------------------------
    # Confirmation channels
    # -------------------------------------------------------------------
    def reconcile(self, confirmation):
        if isinstance(confirmation, ClientSignature):
            return self._confirm_client(confirmation)
        if isinstance(confirmation, WebhookEvent):
            return self._apply_webhook(confirmation)
        if isinstance(confirmation, CODConfirmation):
            return self._confirm_cod(confirmation)
        raise TypeError(f"Unsupported payment confirmation: {type(confirmation).__name__}")

    def handle_webhook(self, method: str, payload: bytes, signature_header: str) -> WebhookAck:
        gateway = get_gateway(method)
        if not gateway.verify_webhook_signature(payload, signature_header):
            logger.warning("Webhook signature rejected", method=method)
            raise InvalidSignature(method)
        return self.reconcile(gateway.parse_webhook(payload))

    def _confirm_client(self, confirmation: ClientSignature):
        order = get_order(confirmation.order_id)
        if confirmation.customer_id and str(order.customer_id) != str(confirmation.customer_id):
            raise OrderNotFound(confirmation.order_id)
        order.require_online_payment()

        gateway = get_gateway(order.payment_method)
        if not gateway.verify_payment_signature(
            order.provider_order_id,
            confirmation.provider_payment_id,
            confirmation.signature,
        ):
            logger.warning(
                "Client payment signature rejected",
                order_id=str(order.id),
                method=order.payment_method,
                provider_payment_id=confirmation.provider_payment_id,
            )
            raise InvalidSignature(order.payment_method)

        with self.locks.hold(order_key(order.id)):
            current_domain.process(
                ConfirmClientPayment(
                    order_id=str(order.id),
                    provider_order_id=order.provider_order_id,
                    provider_payment_id=confirmation.provider_payment_id,
                ),
                asynchronous=False,
            )
        return get_order(order.id)

    def _locate(self, event: WebhookEvent):
        if event.order_reference:
            try:
                return get_order(event.order_reference)
            except OrderNotFound:
                pass
        if event.provider_order_id:
            return find_order_by_provider_order_id(event.provider_order_id)
        return None

    def _apply_webhook(self, event: WebhookEvent) -> WebhookAck:
        if event.kind == WebhookEventKind.IGNORED:
            logger.debug("Webhook event ignored", method=event.method, event_type=event.event_type)
            return WebhookAck(status="ignored", event_type=event.event_type)

        order = self._locate(event)
        if order is None:
            logger.warning(
                "Webhook for unknown order",
                method=event.method,
                event_type=event.event_type,
                provider_order_id=event.provider_order_id,
            )
            return WebhookAck(status="ignored", event_type=event.event_type)

        if event.kind == WebhookEventKind.CAPTURED and not event.provider_payment_id:
            logger.warning("Captured webhook without payment id", order_id=str(order.id))
            return WebhookAck(status="ignored", event_type=event.event_type, order_id=str(order.id))

        with self.locks.hold(order_key(order.id)):
            applied = current_domain.process(
                ApplyGatewayEvent(
                    order_id=str(order.id),
                    method=event.method,
                    kind=event.kind.value,
                    provider_payment_id=event.provider_payment_id,
                    failure_reason=event.failure_reason,
                ),
                asynchronous=False,
            )

        if not applied:
            logger.info(
                "Duplicate webhook acknowledged",
                order_id=str(order.id),
                event_type=event.event_type,
                provider_payment_id=event.provider_payment_id,
            )
        return WebhookAck(
            status="processed" if applied else "duplicate",
            event_type=event.event_type,
            order_id=str(order.id),
        )

    def _confirm_cod(self, confirmation: CODConfirmation):
        with self.locks.hold(order_key(confirmation.order_id)):
            current_domain.process(
                ConfirmCashOnDelivery(order_id=str(confirmation.order_id), actor=confirmation.actor),
                asynchronous=False,
            )
        return get_order(confirmation.order_id)


reconciler = PaymentReconciler()

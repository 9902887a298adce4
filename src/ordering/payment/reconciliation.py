"""Payment reconciliation: commands and handler.

These handlers run under the order's lock, after any call to the payment
provider has already completed. They re-check the order's current state,
so a confirmation that lost a race against another channel becomes a
no-op instead of a second confirmation.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.errors import InvalidSignature
from ordering.order.lookup import get_order
from ordering.order.order import Actor, Order
from ordering.payment.confirmation import WebhookEventKind

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class RecordProviderOrder:
    order_id = Identifier(required=True)
    provider_order_id = String(required=True, max_length=255)


@ordering.command(part_of="Order")
class ConfirmClientPayment:
    order_id = Identifier(required=True)
    provider_order_id = String(required=True, max_length=255)  # the id the signature was verified against
    provider_payment_id = String(required=True, max_length=255)


@ordering.command(part_of="Order")
class ApplyGatewayEvent:
    order_id = Identifier(required=True)
    method = String(required=True, max_length=20)
    kind = String(required=True, choices=WebhookEventKind)
    provider_payment_id = String(max_length=255)
    failure_reason = String(max_length=500)


@ordering.command(part_of="Order")
class ConfirmCashOnDelivery:
    order_id = Identifier(required=True)
    actor = String(default=Actor.ADMIN.value, choices=Actor)


@ordering.command_handler(part_of=Order)
class PaymentReconciliationHandler:
    @handle(RecordProviderOrder)
    def record_provider_order(self, command):
        order = get_order(command.order_id)
        if order.provider_order_id:
            return order.provider_order_id

        order.record_provider_order(command.provider_order_id)
        current_domain.repository_for(Order).add(order)
        return command.provider_order_id

    @handle(ConfirmClientPayment)
    def confirm_client_payment(self, command):
        order = get_order(command.order_id)
        if order.provider_order_id != command.provider_order_id:
            raise InvalidSignature(order.payment_method)

        applied = order.mark_paid(
            provider_payment_id=command.provider_payment_id,
            method=order.payment_method,
            channel="client",
            actor=Actor.CUSTOMER.value,
        )
        if applied:
            current_domain.repository_for(Order).add(order)
        return applied

    @handle(ApplyGatewayEvent)
    def apply_gateway_event(self, command):
        order = get_order(command.order_id)

        if command.kind == WebhookEventKind.CAPTURED.value:
            applied = order.mark_paid(
                provider_payment_id=command.provider_payment_id,
                method=command.method,
                channel="webhook",
            )
        else:
            applied = order.mark_payment_failed(
                provider_payment_id=command.provider_payment_id,
                method=command.method,
                reason=command.failure_reason or "Payment failed at provider",
            )

        if applied:
            current_domain.repository_for(Order).add(order)
        return applied

    @handle(ConfirmCashOnDelivery)
    def confirm_cash_on_delivery(self, command):
        order = get_order(command.order_id)
        applied = order.confirm_cash_on_delivery(actor=command.actor)
        if applied:
            current_domain.repository_for(Order).add(order)
        return applied

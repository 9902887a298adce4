"""Order lifecycle notifications.

Each order event is forwarded to the dispatcher exactly once, after the
caller that raised it has released its locks. Dispatcher failures are
logged and never undo the transition that raised the event.
"""

from functools import partial

import structlog
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.locks import registry
from ordering.notification.dispatcher import get_dispatcher
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderPlaced,
    OrderProcessing,
    OrderReturned,
    OrderShipped,
    PaymentFailed,
    PaymentReceived,
)
from ordering.order.lookup import get_order
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


def _notify(event_kind, order_id):
    try:
        order = get_order(order_id)
        get_dispatcher().notify(event_kind, order)
    except Exception:
        logger.exception("Notification dispatch failed", event_kind=event_kind, order_id=str(order_id))


def _dispatch(event_kind, order_id):
    registry.after_release(partial(_notify, event_kind, order_id))


@ordering.event_handler(part_of=Order)
class OrderNotificationsHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        _dispatch("order.created", event.order_id)

    @handle(OrderConfirmed)
    def on_order_confirmed(self, event: OrderConfirmed) -> None:
        _dispatch("order.confirmed", event.order_id)

    @handle(OrderProcessing)
    def on_order_processing(self, event: OrderProcessing) -> None:
        _dispatch("order.processing", event.order_id)

    @handle(OrderShipped)
    def on_order_shipped(self, event: OrderShipped) -> None:
        _dispatch("order.shipped", event.order_id)

    @handle(OrderDelivered)
    def on_order_delivered(self, event: OrderDelivered) -> None:
        _dispatch("order.delivered", event.order_id)

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        _dispatch("order.cancelled", event.order_id)

    @handle(OrderReturned)
    def on_order_returned(self, event: OrderReturned) -> None:
        _dispatch("order.returned", event.order_id)

    @handle(PaymentReceived)
    def on_payment_received(self, event: PaymentReceived) -> None:
        _dispatch("payment.received", event.order_id)

    @handle(PaymentFailed)
    def on_payment_failed(self, event: PaymentFailed) -> None:
        _dispatch("payment.failed", event.order_id)

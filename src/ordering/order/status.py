"""Order status changes — cancellation and administrative transitions.

Entering ``cancelled`` or ``returned`` releases every line item back to the
inventory ledger within the same unit of work as the status change.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.inventory.ledger import release_lines
from ordering.order.lookup import get_order
from ordering.order.order import STOCK_RELEASING_STATES, Actor, Order, OrderStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor = String(required=True, choices=Actor)
    reason = String(max_length=500)


@ordering.command(part_of="Order")
class TransitionOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    actor = String(required=True, choices=Actor)
    note = String(max_length=500)


def _release_if_closed(order):
    if OrderStatus(order.status) in STOCK_RELEASING_STATES:
        release_lines(order.stock_lines())
        logger.info(
            "Stock released for closed order",
            order_id=str(order.id),
            status=order.status,
            lines=len(order.stock_lines()),
        )


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = get_order(command.order_id)
        order.cancel(actor=command.actor, reason=command.reason)
        _release_if_closed(order)
        current_domain.repository_for(Order).add(order)

    @handle(TransitionOrderStatus)
    def transition_order_status(self, command):
        order = get_order(command.order_id)
        order.transition_to(OrderStatus(command.status), actor=command.actor, note=command.note)
        _release_if_closed(order)
        current_domain.repository_for(Order).add(order)

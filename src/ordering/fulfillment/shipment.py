"""Shipment booking and tracking.

A shipment is booked with the carrier once an order has been placed. The
carrier call happens after the order is committed and after the placing
caller has released its locks. When it fails the failure is logged and
the order stays valid without a shipment reference, to be booked again
out of band.
"""

from functools import partial

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle as handle_event

from ordering.domain import ordering
from ordering.fulfillment.carrier import get_carrier
from ordering.locks import order_key, registry
from ordering.order.events import OrderPlaced
from ordering.order.lookup import get_order
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class AttachShipment:
    order_id = Identifier(required=True)
    shipment_id = String(required=True, max_length=255)
    carrier = String(required=True, max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)


@ordering.command(part_of="Order")
class RecordTrackingStatus:
    order_id = Identifier(required=True)
    tracking_status = String(required=True, max_length=100)


@ordering.command_handler(part_of=Order)
class ShipmentHandler:
    @handle(AttachShipment)
    def attach_shipment(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id)
        order.attach_shipment(
            shipment_id=command.shipment_id,
            carrier=command.carrier,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
        )
        repo.add(order)

    @handle(RecordTrackingStatus)
    def record_tracking_status(self, command):
        order = get_order(command.order_id)
        if order.update_tracking(command.tracking_status):
            current_domain.repository_for(Order).add(order)


def book_shipment(order_id):
    """Ask the carrier for a shipment and attach it. Returns False on failure."""
    order = get_order(order_id)
    if order.shipment_id:
        return True

    try:
        receipt = get_carrier().create_shipment(order)
    except Exception:
        logger.exception("Shipment creation failed", order_id=str(order_id), order_number=order.order_number)
        return False

    with registry.hold(order_key(order_id)):
        current_domain.process(
            AttachShipment(
                order_id=str(order_id),
                shipment_id=receipt.external_id,
                carrier=receipt.carrier,
                tracking_number=receipt.tracking_reference,
                tracking_url=receipt.tracking_url,
            ),
            asynchronous=False,
        )
    logger.info(
        "Shipment booked",
        order_id=str(order_id),
        shipment_id=receipt.external_id,
        carrier=receipt.carrier,
    )
    return True


def refresh_tracking(order_id):
    """Fetch the carrier's latest status for an order's shipment."""
    order = get_order(order_id)
    if not order.tracking_number:
        return order

    tracking_status = get_carrier().get_tracking(order.tracking_number)
    with registry.hold(order_key(order_id)):
        current_domain.process(
            RecordTrackingStatus(order_id=str(order_id), tracking_status=tracking_status),
            asynchronous=False,
        )
    return get_order(order_id)


@ordering.event_handler(part_of=Order)
class ShipmentBookingEventHandler:
    """Books a shipment for every newly placed order."""

    @handle_event(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        registry.after_release(partial(book_shipment, event.order_id))

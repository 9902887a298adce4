"""Public order tracking.

Owners and administrators may look an order up by id (or order number)
alone. Anyone else has to present the order's tracking token. Every
refusal is reported as ``OrderNotFound`` so an unauthorized caller cannot
tell an existing order from a missing one.
"""

from dataclasses import dataclass, field
from datetime import datetime

import structlog

from ordering.errors import OrderNotFound
from ordering.order.lookup import resolve_order
from ordering.order.numbering import tokens_match

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Viewer:
    customer_id: str | None = None
    is_admin: bool = False


ANONYMOUS = Viewer()


@dataclass(frozen=True)
class TimelineView:
    status: str
    message: str
    actor: str
    occurred_at: datetime


@dataclass(frozen=True)
class ShipmentView:
    shipment_id: str
    carrier: str
    tracking_number: str | None
    tracking_url: str | None
    tracking_status: str | None


@dataclass(frozen=True)
class TrackingView:
    order_id: str
    order_number: str
    status: str
    payment_status: str
    timeline: list[TimelineView] = field(default_factory=list)
    shipment: ShipmentView | None = None
    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None


def _may_view(order, viewer, token):
    if viewer.is_admin:
        return True
    if viewer.customer_id and str(viewer.customer_id) == str(order.customer_id):
        return True
    return tokens_match(order.tracking_token, token)


def tracking_view(order) -> TrackingView:
    shipment = None
    if order.shipment_id:
        shipment = ShipmentView(
            shipment_id=order.shipment_id,
            carrier=order.carrier,
            tracking_number=order.tracking_number,
            tracking_url=order.tracking_url,
            tracking_status=order.tracking_status,
        )

    return TrackingView(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        payment_status=order.payment_status,
        timeline=[
            TimelineView(
                status=entry.status,
                message=entry.message,
                actor=entry.actor,
                occurred_at=entry.occurred_at,
            )
            for entry in order.timeline_entries()
        ],
        shipment=shipment,
        estimated_delivery=order.estimated_delivery,
        actual_delivery=order.actual_delivery,
    )


def track_order(reference, viewer: Viewer = ANONYMOUS, token: str | None = None) -> TrackingView:
    order = resolve_order(reference)
    if not _may_view(order, viewer, token):
        logger.info("Tracking lookup refused", reference=str(reference))
        raise OrderNotFound(str(reference))
    return tracking_view(order)

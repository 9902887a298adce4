"""Domain events raised by the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    payment_method = String(required=True)
    items = Text(required=True)  # JSON array of line item snapshots
    total = Integer(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    actor = String(required=True)
    confirmed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderProcessing:
    __version__ = 1

    order_id = Identifier(required=True)
    actor = String(required=True)
    started_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    actor = String(required=True)
    estimated_delivery = DateTime()
    shipped_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    actor = String(required=True)
    delivered_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    actor = String(required=True)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderReturned:
    __version__ = 1

    order_id = Identifier(required=True)
    actor = String(required=True)
    reason = String(max_length=500)
    returned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentOrderRecorded:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    provider_order_id = String(required=True)
    amount = Integer(required=True)


@ordering.event(part_of="Order")
class PaymentReceived:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    provider_payment_id = String(required=True)
    channel = String(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    payment_method = String(required=True)
    provider_payment_id = String()
    reason = String(max_length=500)
    failed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ShipmentCreated:
    __version__ = 1

    order_id = Identifier(required=True)
    shipment_id = String(required=True)
    carrier = String(required=True)
    tracking_number = String()
    tracking_url = String()


@ordering.event(part_of="Order")
class TrackingUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    tracking_status = String(required=True)
    updated_at = DateTime(required=True)

"""Order aggregate — the durable record created from a cart.

Line items are immutable snapshots of the catalog at placement time.
Monetary values are integer minor units. Status only changes through
``_transition``, which validates the move against the lifecycle table,
applies the delivery-date side effects, appends exactly one timeline
entry and raises exactly one event.

State machine:
    pending → confirmed → processing → shipped → delivered
    pending | confirmed | processing → cancelled
    shipped | delivered → returned
"""

import json
import os
from datetime import UTC, datetime, timedelta
from enum import Enum

import structlog
from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, ValueObject

from ordering.domain import ordering
from ordering.errors import CannotCancel, IllegalTransition, WrongPaymentMethod
from ordering.inventory.stock import stock_id_for
from ordering.order.events import (
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderPlaced,
    OrderProcessing,
    OrderReturned,
    OrderShipped,
    PaymentFailed,
    PaymentOrderRecorded,
    PaymentReceived,
    ShipmentCreated,
    TrackingUpdated,
)
from ordering.order.numbering import new_tracking_token, next_order_number

logger = structlog.get_logger(__name__)


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class PaymentMethod(Enum):
    RAZORPAY = "razorpay"
    STRIPE = "stripe"
    COD = "cod"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Actor(Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SYSTEM = "system"


ONLINE_PAYMENT_METHODS = frozenset({PaymentMethod.RAZORPAY, PaymentMethod.STRIPE})

_VALID_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.RETURNED: set(),
}

_CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Entering one of these puts every line item back on the shelf.
STOCK_RELEASING_STATES = frozenset({OrderStatus.CANCELLED, OrderStatus.RETURNED})


def allowed_transitions(status: OrderStatus) -> set[OrderStatus]:
    return set(_VALID_TRANSITIONS[status])


def estimated_delivery_days() -> int:
    return int(os.getenv("ESTIMATED_DELIVERY_DAYS", "7"))


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    recipient_name = String(required=True, max_length=255)
    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)
    email = String(max_length=254)

    @invariant.post
    def must_have_contact_channel(self):
        if not self.phone and not self.email:
            raise ValidationError({"shipping_address": ["A phone number or email is required"]})


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Pricing breakdown in minor units. The total always balances."""

    subtotal = Integer(default=0, min_value=0)
    shipping = Integer(default=0, min_value=0)
    tax = Integer(default=0, min_value=0)
    discount = Integer(default=0, min_value=0)
    total = Integer(default=0, min_value=0)
    currency = String(max_length=3, default="INR")

    @invariant.post
    def total_must_balance(self):
        expected = self.subtotal + self.shipping + self.tax - self.discount
        if self.total != expected:
            raise ValidationError({"total": [f"Total {self.total} does not equal breakdown {expected}"]})

    @classmethod
    def compute(cls, subtotal, shipping=0, tax=0, discount=0, currency="INR"):
        if discount > subtotal + shipping + tax:
            raise ValidationError({"discount": ["Discount cannot exceed the order amount"]})
        return cls(
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            discount=discount,
            total=subtotal + shipping + tax - discount,
            currency=currency,
        )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    item_id = Identifier(required=True)
    variant = String(required=True, max_length=100)
    name = String(required=True, max_length=255)
    unit_price = Integer(required=True, min_value=0)
    quantity = Integer(required=True, min_value=1)
    image = String(max_length=500)
    position = Integer(required=True)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity

    @property
    def stock_id(self) -> str:
        return stock_id_for(self.item_id, self.variant)


@ordering.entity(part_of="Order")
class TimelineEntry:
    sequence = Integer(required=True)
    status = String(required=True, max_length=20)
    message = String(required=True, max_length=1000)
    actor = String(required=True, max_length=20)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Order Aggregate
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=30)
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    shipping_address = ValueObject(ShippingAddress)
    discount_code = String(max_length=50)

    # Payment descriptor
    payment_method = String(choices=PaymentMethod, required=True)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    provider_order_id = String(max_length=255)
    provider_payment_id = String(max_length=255)
    paid_at = DateTime()

    timeline = HasMany(TimelineEntry)
    cancellation_reason = String(max_length=500)
    tracking_token = String(max_length=64)

    # Shipment reference, supplied by the carrier
    shipment_id = String(max_length=255)
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)
    tracking_status = String(max_length=100)

    estimated_delivery = DateTime()
    actual_delivery = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def cancellation_reason_only_when_cancelled(self):
        if self.cancellation_reason and self.status != OrderStatus.CANCELLED.value:
            raise ValidationError({"cancellation_reason": ["Only cancelled orders carry a cancellation reason"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, lines, pricing, shipping_address, payment_method, discount_code=None, order_id=None):
        """Create a pending order from resolved line snapshots.

        ``lines`` holds dicts with item_id, variant, name, unit_price,
        quantity and image, in the order they were requested.
        """
        if not lines:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        now = datetime.now(UTC)
        attributes = {
            "order_number": next_order_number(),
            "customer_id": customer_id,
            "status": OrderStatus.PENDING.value,
            "items": [OrderItem(position=index, **line) for index, line in enumerate(lines, start=1)],
            "pricing": pricing,
            "shipping_address": shipping_address,
            "discount_code": discount_code,
            "payment_method": payment_method,
            "payment_status": PaymentStatus.PENDING.value,
            "tracking_token": new_tracking_token(),
            "created_at": now,
            "updated_at": now,
        }
        if order_id:
            attributes["id"] = order_id
        order = cls(**attributes)

        order._append_timeline(OrderStatus.PENDING, "Order placed", Actor.CUSTOMER.value, now)
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                payment_method=payment_method,
                items=json.dumps(lines),
                total=pricing.total,
                currency=pricing.currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Read helpers
    # -------------------------------------------------------------------
    def line_items(self):
        return sorted(self.items, key=lambda item: item.position)

    def timeline_entries(self):
        """Timeline in the order entries were appended."""
        return sorted(self.timeline, key=lambda entry: entry.sequence)

    def stock_lines(self):
        return [(item.stock_id, item.quantity) for item in self.line_items()]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID.value

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    # -------------------------------------------------------------------
    # Timeline and transitions
    # -------------------------------------------------------------------
    def _append_timeline(self, status, message, actor, at=None):
        at = at or datetime.now(UTC)
        sequence = max((entry.sequence for entry in self.timeline), default=0) + 1
        self.add_timeline(
            TimelineEntry(
                sequence=sequence,
                status=status.value if isinstance(status, OrderStatus) else status,
                message=message,
                actor=actor,
                occurred_at=at,
            )
        )
        self.updated_at = at

    def _transition(self, target: OrderStatus, actor: str, message: str, reason: str | None = None):
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise IllegalTransition(current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value

        if target == OrderStatus.SHIPPED and self.estimated_delivery is None:
            self.estimated_delivery = now + timedelta(days=estimated_delivery_days())
        elif target == OrderStatus.DELIVERED:
            self.actual_delivery = now
        elif target == OrderStatus.CANCELLED:
            self.cancellation_reason = reason or message

        self._append_timeline(target, message, actor, now)
        self.raise_(self._transition_event(target, actor, now, reason))

        logger.info(
            "Order status changed",
            order_id=str(self.id),
            order_number=self.order_number,
            from_status=current.value,
            to_status=target.value,
            actor=actor,
        )

    def _transition_event(self, target, actor, at, reason):
        order_id = str(self.id)
        if target == OrderStatus.CONFIRMED:
            return OrderConfirmed(order_id=order_id, actor=actor, confirmed_at=at)
        if target == OrderStatus.PROCESSING:
            return OrderProcessing(order_id=order_id, actor=actor, started_at=at)
        if target == OrderStatus.SHIPPED:
            return OrderShipped(
                order_id=order_id,
                actor=actor,
                estimated_delivery=self.estimated_delivery,
                shipped_at=at,
            )
        if target == OrderStatus.DELIVERED:
            return OrderDelivered(order_id=order_id, actor=actor, delivered_at=at)
        if target == OrderStatus.CANCELLED:
            return OrderCancelled(order_id=order_id, actor=actor, reason=self.cancellation_reason, cancelled_at=at)
        return OrderReturned(order_id=order_id, actor=actor, reason=reason, returned_at=at)

    def transition_to(self, target: OrderStatus, actor: str, note: str | None = None):
        """Move to ``target`` along any legal edge of the lifecycle table.

        Customers asking for ``cancelled`` go through the customer
        cancellation rule instead.
        """
        if target == OrderStatus.CANCELLED:
            self.cancel(actor, note)
            return

        self._transition(target, actor, note or f"Order {target.value}")

    def cancel(self, actor: str, reason: str | None = None):
        current = OrderStatus(self.status)
        if actor == Actor.CUSTOMER.value and current not in _CUSTOMER_CANCELLABLE:
            raise CannotCancel(current.value)
        if OrderStatus.CANCELLED not in _VALID_TRANSITIONS[current]:
            raise CannotCancel(current.value)

        reason = reason or f"Cancelled by {actor}"
        self._transition(OrderStatus.CANCELLED, actor, f"Order cancelled: {reason}", reason=reason)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def require_online_payment(self, method=None):
        current = PaymentMethod(self.payment_method)
        if current not in ONLINE_PAYMENT_METHODS:
            raise WrongPaymentMethod("online", current.value)
        if method is not None and method != current.value:
            raise WrongPaymentMethod(current.value, method)

    def record_provider_order(self, provider_order_id):
        self.require_online_payment()
        self.provider_order_id = provider_order_id
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PaymentOrderRecorded(
                order_id=str(self.id),
                payment_method=self.payment_method,
                provider_order_id=provider_order_id,
                amount=self.pricing.total,
            )
        )

    def mark_paid(self, provider_payment_id, method, channel, actor=Actor.SYSTEM.value) -> bool:
        """Record a confirmed payment. Returns False when already paid.

        A pending order moves to confirmed. Orders that already moved on
        keep their status and only gain a timeline note.
        """
        self.require_online_payment(method)

        if self.is_paid:
            logger.info(
                "Payment already recorded, ignoring",
                order_id=str(self.id),
                provider_payment_id=provider_payment_id,
                channel=channel,
            )
            return False

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.provider_payment_id = provider_payment_id
        self.paid_at = now
        self.raise_(
            PaymentReceived(
                order_id=str(self.id),
                payment_method=self.payment_method,
                provider_payment_id=provider_payment_id,
                channel=channel,
                paid_at=now,
            )
        )

        current = OrderStatus(self.status)
        if current == OrderStatus.PENDING:
            self._transition(OrderStatus.CONFIRMED, actor, f"Payment received via {channel}, order confirmed")
        else:
            if current in STOCK_RELEASING_STATES:
                logger.warning(
                    "Payment received for closed order",
                    order_id=str(self.id),
                    status=current.value,
                    provider_payment_id=provider_payment_id,
                )
            self._append_timeline(current, f"Payment received via {channel}", actor, now)
        return True

    def mark_payment_failed(self, provider_payment_id, method, reason) -> bool:
        """Record a failed payment attempt. The order stays retryable."""
        self.require_online_payment(method)

        if self.is_paid:
            return False
        if self.payment_status == PaymentStatus.FAILED.value and self.provider_payment_id == provider_payment_id:
            return False

        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.FAILED.value
        self.provider_payment_id = provider_payment_id
        self._append_timeline(self.status, f"Payment failed: {reason}", Actor.SYSTEM.value, now)
        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                payment_method=self.payment_method,
                provider_payment_id=provider_payment_id,
                reason=reason,
                failed_at=now,
            )
        )
        return True

    def confirm_cash_on_delivery(self, actor=Actor.ADMIN.value) -> bool:
        """Confirm a COD order. Payment stays pending until collected."""
        if self.payment_method != PaymentMethod.COD.value:
            raise WrongPaymentMethod(PaymentMethod.COD.value, self.payment_method)

        current = OrderStatus(self.status)
        if current != OrderStatus.PENDING and not self.is_terminal:
            return False

        self._transition(OrderStatus.CONFIRMED, actor, "Cash on delivery order confirmed")
        return True

    # -------------------------------------------------------------------
    # Shipment
    # -------------------------------------------------------------------
    def attach_shipment(self, shipment_id, carrier, tracking_number=None, tracking_url=None):
        self.shipment_id = shipment_id
        self.carrier = carrier
        self.tracking_number = tracking_number
        self.tracking_url = tracking_url
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ShipmentCreated(
                order_id=str(self.id),
                shipment_id=shipment_id,
                carrier=carrier,
                tracking_number=tracking_number,
                tracking_url=tracking_url,
            )
        )

    def update_tracking(self, tracking_status) -> bool:
        if tracking_status == self.tracking_status:
            return False

        self.tracking_status = tracking_status
        self.updated_at = datetime.now(UTC)
        self.raise_(
            TrackingUpdated(
                order_id=str(self.id),
                tracking_status=tracking_status,
                updated_at=self.updated_at,
            )
        )
        return True

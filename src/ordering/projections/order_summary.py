"""Order summary — listing view for customers and administrators."""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
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
from ordering.order.order import Order

PAGE_SIZE = 100


@ordering.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    status = String(required=True)
    payment_method = String(required=True)
    payment_status = String(default="pending")
    total = Integer(default=0)
    currency = String(default="INR")
    placed_at = DateTime()
    updated_at = DateTime()


@ordering.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                order_number=event.order_number,
                customer_id=event.customer_id,
                status="pending",
                payment_method=event.payment_method,
                total=event.total,
                currency=event.currency,
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    def _update(self, order_id, updated_at=None, **changes):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get(order_id)
        for field, value in changes.items():
            setattr(summary, field, value)
        if updated_at:
            summary.updated_at = updated_at
        repo.add(summary)

    @on(OrderConfirmed)
    def on_order_confirmed(self, event):
        self._update(event.order_id, event.confirmed_at, status="confirmed")

    @on(OrderProcessing)
    def on_order_processing(self, event):
        self._update(event.order_id, event.started_at, status="processing")

    @on(OrderShipped)
    def on_order_shipped(self, event):
        self._update(event.order_id, event.shipped_at, status="shipped")

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._update(event.order_id, event.delivered_at, status="delivered")

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        self._update(event.order_id, event.cancelled_at, status="cancelled")

    @on(OrderReturned)
    def on_order_returned(self, event):
        self._update(event.order_id, event.returned_at, status="returned")

    @on(PaymentReceived)
    def on_payment_received(self, event):
        self._update(event.order_id, event.paid_at, payment_status="paid")

    @on(PaymentFailed)
    def on_payment_failed(self, event):
        self._update(event.order_id, event.failed_at, payment_status="failed")


def list_orders(customer_id=None, status=None, payment_status=None):
    """Summaries matching the given filters, newest first."""
    filters = {}
    if customer_id:
        filters["customer_id"] = customer_id
    if status:
        filters["status"] = status
    if payment_status:
        filters["payment_status"] = payment_status

    query = current_domain.repository_for(OrderSummary)._dao.query
    if filters:
        query = query.filter(**filters)
    query = query.order_by("-order_number").limit(PAGE_SIZE)

    summaries = []
    while True:
        page = query.offset(len(summaries)).all()
        summaries.extend(page.items)
        if not page.has_next:
            return summaries

"""Order placement, line snapshots and the pricing breakdown."""

import re

import pytest
from ordering.order.events import OrderPlaced
from ordering.order.order import Order, OrderPricing, OrderStatus, PaymentStatus, ShippingAddress
from protean.exceptions import ValidationError

ADDRESS = {
    "recipient_name": "Asha Rao",
    "line1": "12 MG Road",
    "city": "Bengaluru",
    "postal_code": "560001",
    "country": "IN",
    "email": "asha@example.com",
}

LINES = [
    {"item_id": "item-tee", "variant": "M", "name": "Cotton Tee", "unit_price": 2999, "quantity": 2, "image": None},
    {
        "item_id": "item-mug",
        "variant": "std",
        "name": "Stoneware Mug",
        "unit_price": 899,
        "quantity": 1,
        "image": "https://cdn.example.com/mug.png",
    },
]


def _place(**overrides):
    attributes = {
        "customer_id": "cust-001",
        "lines": LINES,
        "pricing": OrderPricing.compute(subtotal=6897, shipping=100, tax=50),
        "shipping_address": ShippingAddress(**ADDRESS),
        "payment_method": "razorpay",
    }
    attributes.update(overrides)
    return Order.place(**attributes)


class TestOrderPlacement:
    def test_new_order_is_pending_and_unpaid(self):
        order = _place()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert not order.is_paid

    def test_lines_keep_requested_order(self):
        order = _place()
        assert [(item.item_id, item.variant) for item in order.line_items()] == [
            ("item-tee", "M"),
            ("item-mug", "std"),
        ]
        assert order.line_items()[0].line_total == 5998

    def test_stock_lines_use_variant_ids(self):
        order = _place()
        assert order.stock_lines() == [("item-tee::M", 2), ("item-mug::std", 1)]

    def test_first_timeline_entry(self):
        order = _place()
        [entry] = order.timeline_entries()
        assert entry.status == "pending"
        assert entry.actor == "customer"
        assert entry.message == "Order placed"

    def test_order_number_format(self):
        order = _place()
        assert re.fullmatch(r"ORD-\d{13}[0-9A-F]{6}", order.order_number)

    def test_order_numbers_are_unique(self):
        assert _place().order_number != _place().order_number

    def test_tracking_token_is_issued(self):
        order = _place()
        assert order.tracking_token
        assert order.tracking_token != _place().tracking_token

    def test_explicit_order_id_is_used(self):
        order = _place(order_id="3f6c5a0e-0000-4000-8000-000000000001")
        assert str(order.id) == "3f6c5a0e-0000-4000-8000-000000000001"

    def test_order_placed_event(self):
        order = _place()
        [event] = order._events
        assert isinstance(event, OrderPlaced)
        assert event.order_number == order.order_number
        assert event.total == 7047
        assert event.currency == "INR"

    def test_empty_order_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _place(lines=[])
        assert "items" in exc_info.value.messages


class TestOrderPricing:
    def test_compute_balances(self):
        pricing = OrderPricing.compute(subtotal=5998, shipping=200, tax=100, discount=500)
        assert pricing.total == 5798

    def test_unbalanced_total_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            OrderPricing(subtotal=5998, shipping=0, tax=0, discount=0, total=6000)
        assert "total" in exc_info.value.messages

    def test_discount_cannot_exceed_amount(self):
        with pytest.raises(ValidationError) as exc_info:
            OrderPricing.compute(subtotal=1000, shipping=100, discount=1200)
        assert "discount" in exc_info.value.messages

    def test_discount_may_equal_amount(self):
        assert OrderPricing.compute(subtotal=1000, discount=1000).total == 0

    def test_negative_amounts_are_rejected(self):
        with pytest.raises(ValidationError):
            OrderPricing.compute(subtotal=-1)

    def test_default_currency(self):
        assert OrderPricing.compute(subtotal=10).currency == "INR"


class TestShippingAddress:
    def test_requires_a_contact_channel(self):
        details = {key: value for key, value in ADDRESS.items() if key != "email"}
        with pytest.raises(ValidationError) as exc_info:
            ShippingAddress(**details)
        assert "shipping_address" in exc_info.value.messages

    def test_phone_alone_is_enough(self):
        details = {key: value for key, value in ADDRESS.items() if key != "email"}
        address = ShippingAddress(phone="+919800000000", **details)
        assert address.phone == "+919800000000"

    def test_required_fields(self):
        with pytest.raises(ValidationError):
            ShippingAddress(recipient_name="Asha Rao", email="asha@example.com")

"""Application tests for order placement via the service facade."""

import pytest
from ordering import services
from ordering.cart.cart import CartStatus, ShoppingCart
from ordering.errors import InsufficientStock, InvalidDiscount, PriceMismatch, VariantUnavailable
from ordering.order.order import OrderStatus, PaymentStatus
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from structlog.testing import capture_logs


class TestPlaceOrder:
    def test_recomputes_total_and_reserves_stock(self, place_order):
        order = place_order(expected_subtotal=5998, expected_total=5998)

        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.pricing.subtotal == 5998
        assert order.pricing.total == 5998
        assert services.stock_level("item-tee", "M") == 8

    def test_line_items_snapshot_catalog(self, place_order, catalog):
        order = place_order(items=[{"item_id": "item-mug", "variant": "std", "quantity": 1}])
        catalog.register("item-mug", "std", 1299, name="Stoneware Mug v2")

        [item] = services.fetch_order(order.id).line_items()
        assert item.unit_price == 899
        assert item.name == "Stoneware Mug"
        assert item.image == "https://cdn.example.com/mug.png"

    def test_catalog_is_asked_for_every_line(self, place_order, catalog):
        place_order(
            items=[
                {"item_id": "item-tee", "variant": "M", "quantity": 1},
                {"item_id": "item-mug", "variant": "std", "quantity": 1},
            ]
        )
        assert [(call["item_id"], call["variant"]) for call in catalog.calls] == [
            ("item-tee", "M"),
            ("item-mug", "std"),
        ]

    def test_order_is_retrievable(self, place_order):
        order = place_order()
        fetched = services.fetch_order(order.id)

        assert fetched.order_number == order.order_number
        assert [entry.message for entry in fetched.timeline_entries()] == ["Order placed"]

    def test_shipping_and_tax_are_added(self, place_order):
        order = place_order(shipping=4900, tax=1080, expected_total=11978)
        assert order.pricing.total == 11978

    def test_currency_comes_from_configuration(self, place_order, monkeypatch):
        monkeypatch.setenv("ORDER_CURRENCY", "USD")
        assert place_order().pricing.currency == "USD"


class TestAtomicReservation:
    def test_shortfall_on_second_line_releases_first(self, place_order):
        with pytest.raises(InsufficientStock) as exc_info:
            place_order(
                items=[
                    {"item_id": "item-tee", "variant": "M", "quantity": 2},
                    {"item_id": "item-tee", "variant": "L", "quantity": 2},
                ]
            )

        assert exc_info.value.stock_id == "item-tee::L"
        assert exc_info.value.shortfall == 1
        assert services.stock_level("item-tee", "M") == 10
        assert services.stock_level("item-tee", "L") == 1
        assert services.list_orders() == []

    def test_unstocked_variant(self, place_order, catalog):
        catalog.register("item-cap", "free", 499)
        with pytest.raises(InsufficientStock):
            place_order(items=[{"item_id": "item-cap", "variant": "free", "quantity": 1}])

    def test_discontinued_variant(self, place_order, catalog):
        catalog.withdraw("item-mug", "std")

        with pytest.raises(VariantUnavailable) as exc_info:
            place_order(
                items=[
                    {"item_id": "item-tee", "variant": "M", "quantity": 1},
                    {"item_id": "item-mug", "variant": "std", "quantity": 1},
                ]
            )

        assert exc_info.value.variant == "std"
        assert services.stock_level("item-tee", "M") == 10
        assert services.stock_level("item-mug", "std") == 5

    def test_zero_quantity_is_rejected(self, place_order):
        with pytest.raises(ValidationError):
            place_order(items=[{"item_id": "item-tee", "variant": "M", "quantity": 0}])

    def test_empty_item_list_is_rejected(self, place_order):
        with pytest.raises(ValidationError):
            place_order(items=[])


class TestPriceValidation:
    def test_stale_subtotal_is_rejected(self, place_order):
        with pytest.raises(PriceMismatch) as exc_info:
            place_order(expected_subtotal=5000)

        assert exc_info.value.field == "subtotal"
        assert exc_info.value.expected == 5998
        assert services.stock_level("item-tee", "M") == 10

    def test_one_minor_unit_is_tolerated(self, place_order):
        order = place_order(expected_subtotal=5999, expected_total=5997)
        assert order.pricing.total == 5998

    def test_stale_total_is_rejected(self, place_order):
        with pytest.raises(PriceMismatch) as exc_info:
            place_order(shipping=100, expected_total=5998)
        assert exc_info.value.field == "total"


class TestDiscounts:
    def test_valid_code_applies(self, place_order):
        services.create_discount("WELCOME10", "flat", 500)

        order = place_order(discount=500, discount_code="welcome10")

        assert order.discount_code == "WELCOME10"
        assert order.pricing.discount == 500
        assert order.pricing.total == 5498

    def test_unknown_code(self, place_order):
        with pytest.raises(InvalidDiscount) as exc_info:
            place_order(discount=500, discount_code="NOPE")

        assert exc_info.value.reason == "does not exist"
        assert services.stock_level("item-tee", "M") == 10

    def test_inactive_code(self, place_order):
        services.create_discount("OLD", "flat", 500, is_active=False)
        with pytest.raises(InvalidDiscount) as exc_info:
            place_order(discount=500, discount_code="OLD")
        assert exc_info.value.reason == "is not active"

    def test_deactivated_code_is_refused(self, place_order):
        services.create_discount("WELCOME10", "flat", 500)
        earlier = place_order(discount=500, discount_code="WELCOME10")

        services.deactivate_discount(" welcome10 ")

        with pytest.raises(InvalidDiscount) as exc_info:
            place_order(discount=500, discount_code="WELCOME10")
        assert exc_info.value.reason == "is not active"
        assert services.fetch_order(earlier.id).pricing.discount == 500

    def test_deactivating_unknown_code(self):
        with pytest.raises(ObjectNotFoundError):
            services.deactivate_discount("NOPE")

    def test_amount_without_code(self, place_order):
        with pytest.raises(ValidationError) as exc_info:
            place_order(discount=500)
        assert "discount_code" in exc_info.value.messages

    def test_discount_larger_than_order(self, place_order):
        services.create_discount("HUGE", "flat", 10000)
        with pytest.raises(ValidationError):
            place_order(discount=10000, discount_code="HUGE")
        assert services.stock_level("item-tee", "M") == 10


class TestPlaceOrderFromCart:
    def _cart(self, customer_id="cust-001"):
        cart_id = services.create_cart(customer_id)
        services.add_to_cart(cart_id, "item-tee", "M", 1, 2999)
        services.add_to_cart(cart_id, "item-mug", "std", 2, 899)
        return cart_id

    def test_cart_lines_become_order_lines(self, stocked, address):
        cart_id = self._cart()

        order = services.create_order(
            customer_id="cust-001",
            cart_id=cart_id,
            shipping_address=address,
            payment_method="cod",
        )

        assert [(item.item_id, item.quantity) for item in order.line_items()] == [
            ("item-tee", 1),
            ("item-mug", 2),
        ]
        assert order.pricing.subtotal == 2999 + 2 * 899
        assert services.stock_level("item-mug", "std") == 3

    def test_cart_is_cleared(self, stocked, address):
        cart_id = self._cart()

        services.create_order(customer_id="cust-001", cart_id=cart_id, shipping_address=address, payment_method="cod")

        cart = current_domain.repository_for(ShoppingCart).get(cart_id)
        assert cart.items == []
        assert cart.status == CartStatus.CONVERTED.value

    def test_failed_order_keeps_cart(self, stocked, address):
        cart_id = self._cart()
        services.add_to_cart(cart_id, "item-tee", "L", 5, 2999)

        with pytest.raises(InsufficientStock):
            services.create_order(
                customer_id="cust-001", cart_id=cart_id, shipping_address=address, payment_method="cod"
            )

        cart = current_domain.repository_for(ShoppingCart).get(cart_id)
        assert len(cart.items) == 3
        assert cart.status == CartStatus.ACTIVE.value

    def test_someone_elses_cart(self, stocked, address):
        cart_id = self._cart(customer_id="cust-002")
        with pytest.raises(ValidationError) as exc_info:
            services.create_order(
                customer_id="cust-001", cart_id=cart_id, shipping_address=address, payment_method="cod"
            )
        assert "cart_id" in exc_info.value.messages


class TestPlacementSideEffects:
    def test_shipment_is_booked(self, place_order, carrier):
        order = services.fetch_order(place_order().id)

        assert order.shipment_id.startswith("ship-")
        assert order.carrier == "fake-carrier"
        assert order.tracking_number.startswith("FAKE-")
        assert carrier.calls[0]["method"] == "create_shipment"

    def test_carrier_failure_does_not_block_order(self, place_order, carrier):
        carrier.configure(should_succeed=False)

        with capture_logs() as logs:
            order = place_order()

        fetched = services.fetch_order(order.id)
        assert fetched.status == OrderStatus.PENDING.value
        assert fetched.shipment_id is None
        assert any(entry["event"] == "Shipment creation failed" for entry in logs)

    def test_customer_is_notified(self, place_order, dispatcher):
        order = place_order()
        assert dispatcher.kinds_for(order.id) == ["order.created"]

    def test_summary_is_projected(self, place_order):
        order = place_order()
        [summary] = services.list_orders(customer_id="cust-001")
        assert summary.order_number == order.order_number
        assert summary.total == 5998
        assert summary.status == "pending"

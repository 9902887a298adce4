"""Order placement: command and handler.

Placement runs as one unit of work: resolve every line against the
catalog, reserve stock line by line, validate the submitted prices,
persist the order and clear the cart. Any error raised along the way
discards the whole unit, so no reservation survives a failed placement.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.catalog import get_catalog
from ordering.discount.discount import validate_discount
from ordering.domain import ordering
from ordering.errors import PriceMismatch, VariantUnavailable
from ordering.inventory.ledger import reserve_lines
from ordering.inventory.stock import stock_id_for
from ordering.order.order import Order, OrderPricing, PaymentMethod, ShippingAddress

logger = structlog.get_logger(__name__)

# Submitted amounts may differ from recomputed ones by at most one minor unit.
PRICE_TOLERANCE = 1


@ordering.command(part_of="Order")
class PlaceOrder:
    order_id = Identifier()
    customer_id = Identifier(required=True)
    cart_id = Identifier()
    items = Text()  # JSON array of {item_id, variant, quantity}, for re-orders
    shipping_address = Text(required=True)  # JSON object
    payment_method = String(required=True, choices=PaymentMethod)
    shipping = Integer(default=0, min_value=0)
    tax = Integer(default=0, min_value=0)
    discount = Integer(default=0, min_value=0)
    discount_code = String(max_length=50)
    expected_subtotal = Integer()
    expected_total = Integer()
    currency = String(max_length=3, default="INR")


def requested_lines(cart=None, items=None):
    """Normalise a cart or an explicit JSON item list into request lines."""
    if cart is not None:
        lines = [
            {"item_id": str(line.item_id), "variant": line.variant, "quantity": line.quantity}
            for line in cart.lines()
        ]
    else:
        raw = json.loads(items) if isinstance(items, str) else (items or [])
        lines = [
            {"item_id": str(line["item_id"]), "variant": str(line["variant"]), "quantity": int(line["quantity"])}
            for line in raw
        ]

    if not lines:
        raise ValidationError({"items": ["Cannot place an order without items"]})
    for line in lines:
        if line["quantity"] < 1:
            raise ValidationError({"items": [f"Quantity for {line['item_id']} must be at least 1"]})
    return lines


def _check_amount(field, recomputed, submitted):
    if submitted is not None and abs(recomputed - submitted) > PRICE_TOLERANCE:
        raise PriceMismatch(field, expected=recomputed, actual=submitted)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart = None
        if command.cart_id:
            cart = current_domain.repository_for(ShoppingCart).get(command.cart_id)
            if str(cart.customer_id) != str(command.customer_id):
                raise ValidationError({"cart_id": ["Cart does not belong to this customer"]})
        elif not command.items:
            raise ValidationError({"items": ["Either a cart or an item list is required"]})

        requested = requested_lines(cart=cart, items=command.items)

        catalog = get_catalog()
        lines = []
        for line in requested:
            resolution = catalog.resolve_variant(line["item_id"], line["variant"])
            if not resolution.exists:
                raise VariantUnavailable(line["item_id"], line["variant"])
            lines.append(
                {
                    "item_id": line["item_id"],
                    "variant": line["variant"],
                    "name": resolution.name or line["item_id"],
                    "unit_price": resolution.unit_price,
                    "quantity": line["quantity"],
                    "image": resolution.image,
                }
            )

        reserve_lines([(stock_id_for(line["item_id"], line["variant"]), line["quantity"]) for line in lines])

        subtotal = sum(line["unit_price"] * line["quantity"] for line in lines)
        _check_amount("subtotal", subtotal, command.expected_subtotal)

        discount_code = None
        if command.discount_code:
            discount_code = validate_discount(command.discount_code).code
        elif command.discount:
            raise ValidationError({"discount_code": ["A discount amount requires a discount code"]})

        pricing = OrderPricing.compute(
            subtotal=subtotal,
            shipping=command.shipping or 0,
            tax=command.tax or 0,
            discount=command.discount or 0,
            currency=command.currency or "INR",
        )
        _check_amount("total", pricing.total, command.expected_total)

        order = Order.place(
            customer_id=command.customer_id,
            lines=lines,
            pricing=pricing,
            shipping_address=ShippingAddress(**json.loads(command.shipping_address)),
            payment_method=command.payment_method,
            discount_code=discount_code,
            order_id=command.order_id,
        )
        current_domain.repository_for(Order).add(order)

        if cart is not None:
            cart.clear(order.id)
            current_domain.repository_for(ShoppingCart).add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(command.customer_id),
            total=pricing.total,
            payment_method=command.payment_method,
        )
        return str(order.id)

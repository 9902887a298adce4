"""Service facade — the operations callers use.

Each operation takes the locks it needs from the process-wide registry and
then processes one command. Locks are always requested through a single
``hold`` call per level (cart, then order and stock), which keeps the
acquisition order global and deadlock free. Calls to payment providers
and carriers never run while a lock is held.
"""

import json
import os
from uuid import uuid4

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.management import AddToCart, CreateCart, RemoveFromCart
from ordering.discount.discount import CreateDiscount, DeactivateDiscount
from ordering.fulfillment import shipment
from ordering.inventory.ledger import RegisterStock, ReleaseStock, ReserveStock
from ordering.inventory.stock import StockItem, stock_id_for
from ordering.locks import cart_key, order_key, registry, stock_key
from ordering.order.creation import PlaceOrder, requested_lines
from ordering.order.lookup import get_order
from ordering.order.order import STOCK_RELEASING_STATES, Order, OrderStatus, PaymentMethod
from ordering.order.status import CancelOrder, TransitionOrderStatus
from ordering.payment.confirmation import ClientSignature, CODConfirmation, WebhookAck
from ordering.payment.gateway.port import ProviderOrder
from ordering.payment.reconciler import reconciler
from ordering.projections.order_summary import list_orders as _list_orders
from ordering.tracking import ANONYMOUS, TrackingView, Viewer
from ordering.tracking import track_order as _track_order


def _process(command):
    return current_domain.process(command, asynchronous=False)


def default_currency() -> str:
    return os.getenv("ORDER_CURRENCY", "INR")


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
def register_stock(item_id, variant, quantity) -> str:
    stock_id = stock_id_for(item_id, variant)
    with registry.hold(stock_key(stock_id)):
        return _process(RegisterStock(item_id=item_id, variant=variant, quantity=quantity))


def reserve_stock(stock_id, quantity) -> int:
    with registry.hold(stock_key(stock_id)):
        return _process(ReserveStock(stock_id=stock_id, quantity=quantity))


def release_stock(stock_id, quantity) -> int:
    with registry.hold(stock_key(stock_id)):
        return _process(ReleaseStock(stock_id=stock_id, quantity=quantity))


def stock_level(item_id, variant) -> int:
    try:
        return current_domain.repository_for(StockItem).get(stock_id_for(item_id, variant)).on_hand
    except ObjectNotFoundError:
        return 0


# ---------------------------------------------------------------------------
# Cart and discounts
# ---------------------------------------------------------------------------
def create_cart(customer_id) -> str:
    return _process(CreateCart(customer_id=customer_id))


def add_to_cart(cart_id, item_id, variant, quantity, unit_price) -> ShoppingCart:
    with registry.hold(cart_key(cart_id)):
        _process(
            AddToCart(cart_id=cart_id, item_id=item_id, variant=variant, quantity=quantity, unit_price=unit_price)
        )
    return current_domain.repository_for(ShoppingCart).get(cart_id)


def remove_from_cart(cart_id, item_id, variant) -> ShoppingCart:
    with registry.hold(cart_key(cart_id)):
        _process(RemoveFromCart(cart_id=cart_id, item_id=item_id, variant=variant))
    return current_domain.repository_for(ShoppingCart).get(cart_id)


def create_discount(code, discount_type, value, is_active=True, expires_at=None) -> str:
    return _process(
        CreateDiscount(
            code=code,
            discount_type=discount_type,
            value=value,
            is_active=is_active,
            expires_at=expires_at,
        )
    )


def deactivate_discount(code) -> None:
    """Withdraw a code; orders already placed with it keep their discount."""
    _process(DeactivateDiscount(code=code))


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
def create_order(
    customer_id,
    shipping_address: dict,
    payment_method: str,
    cart_id=None,
    items=None,
    shipping=0,
    tax=0,
    discount=0,
    discount_code=None,
    expected_subtotal=None,
    expected_total=None,
) -> Order:
    """Place an order from a cart, or from an explicit item list for re-orders.

    ``items`` is a list of ``{"item_id", "variant", "quantity"}`` dicts.
    Amounts are integer minor units.
    """
    order_id = str(uuid4())
    items_json = json.dumps(items) if items is not None else None
    command = PlaceOrder(
        order_id=order_id,
        customer_id=customer_id,
        cart_id=cart_id,
        items=items_json,
        shipping_address=json.dumps(shipping_address),
        payment_method=payment_method,
        shipping=shipping,
        tax=tax,
        discount=discount,
        discount_code=discount_code,
        expected_subtotal=expected_subtotal,
        expected_total=expected_total,
        currency=default_currency(),
    )

    cart_keys = [cart_key(cart_id)] if cart_id else []
    with registry.hold(*cart_keys):
        if cart_id:
            cart = current_domain.repository_for(ShoppingCart).get(cart_id)
            lines = requested_lines(cart=cart)
        else:
            lines = requested_lines(items=items_json)

        stock_keys = [stock_key(stock_id_for(line["item_id"], line["variant"])) for line in lines]
        with registry.hold(order_key(order_id), *stock_keys):
            _process(command)

    return get_order(order_id)


def fetch_order(order_id) -> Order:
    return get_order(order_id)


def _locked_status_change(order_id, command, releases_stock):
    order = get_order(order_id)
    keys = [order_key(order.id)]
    if releases_stock:
        keys.extend(stock_key(stock_id) for stock_id, _ in order.stock_lines())
    with registry.hold(*keys):
        _process(command)
    return get_order(order_id)


def cancel_order(order_id, actor, reason=None) -> Order:
    return _locked_status_change(
        order_id,
        CancelOrder(order_id=str(order_id), actor=actor, reason=reason),
        releases_stock=True,
    )


def transition_status(order_id, new_status, actor, note=None) -> Order:
    try:
        target = OrderStatus(new_status)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status {new_status}"]}) from None
    return _locked_status_change(
        order_id,
        TransitionOrderStatus(order_id=str(order_id), status=target.value, actor=actor, note=note),
        releases_stock=target in STOCK_RELEASING_STATES,
    )


def list_orders(customer_id=None, status=None, payment_status=None):
    return _list_orders(customer_id=customer_id, status=status, payment_status=payment_status)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
def initiate_payment(order_id) -> ProviderOrder:
    return reconciler.initiate(order_id)


def confirm_payment_client(order_id, provider_payment_id, signature, customer_id=None) -> Order:
    return reconciler.reconcile(
        ClientSignature(
            order_id=str(order_id),
            provider_payment_id=provider_payment_id,
            signature=signature,
            customer_id=customer_id,
        )
    )


def handle_provider_webhook(method, raw_payload: bytes, signature_header: str) -> WebhookAck:
    return reconciler.handle_webhook(method, raw_payload, signature_header)


def confirm_cod(order_id, actor="admin") -> Order:
    return reconciler.reconcile(CODConfirmation(order_id=str(order_id), actor=actor))


def payment_status(order_id) -> dict:
    order = get_order(order_id)
    return {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "payment_method": order.payment_method,
        "payment_status": order.payment_status,
        "order_status": order.status,
        "provider_order_id": order.provider_order_id,
        "provider_payment_id": order.provider_payment_id,
        "amount": order.pricing.total,
        "currency": order.pricing.currency,
        "paid_at": order.paid_at,
    }


def available_payment_methods() -> list[dict]:
    return [
        {"method": PaymentMethod.RAZORPAY.value, "name": "Razorpay", "online": True},
        {"method": PaymentMethod.STRIPE.value, "name": "Stripe", "online": True},
        {"method": PaymentMethod.COD.value, "name": "Cash on Delivery", "online": False},
    ]


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
def track_order(reference, viewer: Viewer = ANONYMOUS, token=None) -> TrackingView:
    return _track_order(reference, viewer=viewer, token=token)


def refresh_tracking(order_id) -> Order:
    return shipment.refresh_tracking(order_id)

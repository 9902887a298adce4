"""FastAPI routes for the Ordering API: catalog, stock, carts, orders and payments.

Authentication happens upstream; the gateway forwards the caller's
identity in the ``X-Customer-Id`` and ``X-Role`` headers.
"""

from dataclasses import asdict

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from protean.utils.globals import current_domain

from ordering import services
from ordering.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartIdResponse,
    CartLineSchema,
    CartResponse,
    CatalogVariantRequest,
    CatalogVariantResponse,
    ClientConfirmationRequest,
    CreateCartRequest,
    CreateOrderRequest,
    OrderCreatedResponse,
    OrderItemSchema,
    OrderResponse,
    OrderSummarySchema,
    PaymentMethodSchema,
    PaymentStatusResponse,
    PricingSchema,
    ProviderOrderResponse,
    RegisterStockRequest,
    ShipmentSchema,
    StockLevelResponse,
    TimelineEntrySchema,
    TrackingResponse,
    TransitionStatusRequest,
    WebhookAckResponse,
)
from ordering.cart.cart import ShoppingCart
from ordering.catalog import get_catalog
from ordering.catalog.memory import InMemoryCatalog
from ordering.errors import InvalidSignature, ProviderUnavailable
from ordering.order.order import ONLINE_PAYMENT_METHODS
from ordering.payment.gateway import get_gateway
from ordering.tracking import Viewer


def _viewer(customer_id: str | None, role: str | None) -> Viewer:
    return Viewer(customer_id=customer_id, is_admin=(role == "admin"))


def _require_identity(viewer: Viewer) -> None:
    if not viewer.is_admin and not viewer.customer_id:
        raise HTTPException(status_code=401, detail="Authentication required")


def _require_admin(viewer: Viewer) -> None:
    _require_identity(viewer)
    if not viewer.is_admin:
        raise HTTPException(status_code=403, detail="Admin role required")


def _acting_as(order_id: str, viewer: Viewer) -> str:
    """Timeline actor for a caller acting on an order: its owner or an admin.

    Anyone else gets the same NotFound a missing order would.
    """
    _require_identity(viewer)
    if viewer.is_admin:
        return "admin"
    services.track_order(order_id, viewer=viewer)
    return "customer"


def _shipment(order) -> ShipmentSchema | None:
    if not order.shipment_id:
        return None
    return ShipmentSchema(
        shipment_id=order.shipment_id,
        carrier=order.carrier,
        tracking_number=order.tracking_number,
        tracking_url=order.tracking_url,
        tracking_status=order.tracking_status,
    )


def _order_response(order) -> OrderResponse:
    pricing = order.pricing
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        items=[
            OrderItemSchema(
                item_id=str(item.item_id),
                variant=item.variant,
                name=item.name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                image=item.image,
            )
            for item in order.line_items()
        ],
        pricing=PricingSchema(
            subtotal=pricing.subtotal,
            shipping=pricing.shipping,
            tax=pricing.tax,
            discount=pricing.discount,
            total=pricing.total,
            currency=pricing.currency,
        ),
        timeline=[
            TimelineEntrySchema(
                status=entry.status,
                message=entry.message,
                actor=entry.actor,
                occurred_at=entry.occurred_at,
            )
            for entry in order.timeline_entries()
        ],
        cancellation_reason=order.cancellation_reason,
        shipment=_shipment(order),
        estimated_delivery=order.estimated_delivery,
        actual_delivery=order.actual_delivery,
    )


# ---------------------------------------------------------------------------
# Catalog Router
# ---------------------------------------------------------------------------
catalog_router = APIRouter(prefix="/catalog", tags=["catalog"])


def _seedable_catalog() -> InMemoryCatalog:
    catalog = get_catalog()
    if not isinstance(catalog, InMemoryCatalog):
        raise HTTPException(status_code=409, detail="Catalog is served by an external service")
    return catalog


def _variant_response(item_id: str, variant: str) -> CatalogVariantResponse:
    resolution = get_catalog().resolve_variant(item_id, variant)
    return CatalogVariantResponse(item_id=item_id, variant=variant, **asdict(resolution))


@catalog_router.put("/{item_id}/{variant}", response_model=CatalogVariantResponse)
def register_variant(
    item_id: str,
    variant: str,
    body: CatalogVariantRequest,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> CatalogVariantResponse:
    """Add or reprice a variant in the in-memory catalog."""
    _require_admin(_viewer(x_customer_id, x_role))
    _seedable_catalog().register(item_id, variant, body.unit_price, name=body.name, image=body.image)
    return _variant_response(item_id, variant)


@catalog_router.delete("/{item_id}/{variant}", status_code=204)
def withdraw_variant(
    item_id: str,
    variant: str,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> None:
    _require_admin(_viewer(x_customer_id, x_role))
    _seedable_catalog().withdraw(item_id, variant)


@catalog_router.get("/{item_id}/{variant}", response_model=CatalogVariantResponse)
def get_variant(item_id: str, variant: str) -> CatalogVariantResponse:
    try:
        return _variant_response(item_id, variant)
    except ProviderUnavailable as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Stock Router
# ---------------------------------------------------------------------------
stock_router = APIRouter(prefix="/stock", tags=["stock"])


@stock_router.post("", status_code=201, response_model=StockLevelResponse)
def register_stock(body: RegisterStockRequest) -> StockLevelResponse:
    """Add stock for a variant, creating its ledger entry if needed."""
    services.register_stock(body.item_id, body.variant, body.quantity)
    return StockLevelResponse(
        item_id=body.item_id,
        variant=body.variant,
        on_hand=services.stock_level(body.item_id, body.variant),
    )


@stock_router.get("/{item_id}/{variant}", response_model=StockLevelResponse)
def get_stock(item_id: str, variant: str) -> StockLevelResponse:
    return StockLevelResponse(item_id=item_id, variant=variant, on_hand=services.stock_level(item_id, variant))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


def _cart_response(cart) -> CartResponse:
    return CartResponse(
        cart_id=str(cart.id),
        customer_id=str(cart.customer_id),
        status=cart.status,
        items=[
            CartLineSchema(
                item_id=str(line.item_id),
                variant=line.variant,
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
            for line in cart.lines()
        ],
    )


@cart_router.post("", status_code=201, response_model=CartIdResponse)
def create_cart(body: CreateCartRequest) -> CartIdResponse:
    return CartIdResponse(cart_id=services.create_cart(body.customer_id))


@cart_router.get("/{cart_id}", response_model=CartResponse)
def get_cart(cart_id: str) -> CartResponse:
    return _cart_response(current_domain.repository_for(ShoppingCart).get(cart_id))


@cart_router.post("/{cart_id}/items", response_model=CartResponse)
def add_to_cart(cart_id: str, body: AddToCartRequest) -> CartResponse:
    cart = services.add_to_cart(cart_id, body.item_id, body.variant, body.quantity, body.unit_price)
    return _cart_response(cart)


@cart_router.delete("/{cart_id}/items/{item_id}/{variant}", response_model=CartResponse)
def remove_from_cart(cart_id: str, item_id: str, variant: str) -> CartResponse:
    return _cart_response(services.remove_from_cart(cart_id, item_id, variant))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderCreatedResponse)
def create_order(body: CreateOrderRequest) -> OrderCreatedResponse:
    """Place an order from a cart or an explicit item list."""
    try:
        order = services.create_order(
            customer_id=body.customer_id,
            cart_id=body.cart_id,
            items=[item.model_dump() for item in body.items] if body.items is not None else None,
            shipping_address=body.shipping_address.model_dump(),
            payment_method=body.payment_method,
            shipping=body.shipping,
            tax=body.tax,
            discount=body.discount,
            discount_code=body.discount_code,
            expected_subtotal=body.expected_subtotal,
            expected_total=body.expected_total,
        )
    except ProviderUnavailable as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return OrderCreatedResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        tracking_token=order.tracking_token,
        total=order.pricing.total,
    )


@order_router.get("", response_model=list[OrderSummarySchema])
def list_orders(
    status: str | None = None,
    payment_status: str | None = None,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> list[OrderSummarySchema]:
    """Customers see their own orders; admins see everything."""
    viewer = _viewer(x_customer_id, x_role)
    _require_identity(viewer)

    customer_id = None if viewer.is_admin else viewer.customer_id
    summaries = services.list_orders(customer_id=customer_id, status=status, payment_status=payment_status)
    return [
        OrderSummarySchema(
            order_id=str(summary.order_id),
            order_number=summary.order_number,
            customer_id=str(summary.customer_id),
            status=summary.status,
            payment_method=summary.payment_method,
            payment_status=summary.payment_status,
            total=summary.total,
            currency=summary.currency,
            placed_at=summary.placed_at,
        )
        for summary in summaries
    ]


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> OrderResponse:
    # Same authorization rule as tracking, without the token path
    services.track_order(order_id, viewer=_viewer(x_customer_id, x_role))
    return _order_response(services.fetch_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> OrderResponse:
    """Owners may cancel while the order is pending or confirmed; admins from any cancellable state."""
    actor = _acting_as(order_id, _viewer(x_customer_id, x_role))
    return _order_response(services.cancel_order(order_id, actor=actor, reason=body.reason))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
def transition_status(
    order_id: str,
    body: TransitionStatusRequest,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> OrderResponse:
    _require_admin(_viewer(x_customer_id, x_role))
    return _order_response(services.transition_status(order_id, body.status, actor="admin", note=body.note))


@order_router.get("/{reference}/tracking", response_model=TrackingResponse)
def track_order(
    reference: str,
    token: str | None = None,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> TrackingResponse:
    """Public tracking by order id or order number."""
    view = services.track_order(reference, viewer=_viewer(x_customer_id, x_role), token=token)
    return TrackingResponse(
        order_id=view.order_id,
        order_number=view.order_number,
        status=view.status,
        payment_status=view.payment_status,
        timeline=[TimelineEntrySchema(**asdict(entry)) for entry in view.timeline],
        shipment=ShipmentSchema(**asdict(view.shipment)) if view.shipment else None,
        estimated_delivery=view.estimated_delivery,
        actual_delivery=view.actual_delivery,
    )


@order_router.post("/{order_id}/tracking/refresh", response_model=OrderResponse)
def refresh_tracking(
    order_id: str,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> OrderResponse:
    _acting_as(order_id, _viewer(x_customer_id, x_role))
    try:
        order = services.refresh_tracking(order_id)
    except ProviderUnavailable as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _order_response(order)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.get("/methods", response_model=list[PaymentMethodSchema])
def payment_methods() -> list[PaymentMethodSchema]:
    return [PaymentMethodSchema(**method) for method in services.available_payment_methods()]


@payment_router.post("/webhooks/{method}", response_model=WebhookAckResponse)
async def provider_webhook(method: str, request: Request) -> WebhookAckResponse:
    """Receive a provider webhook. The raw body is what the provider signed."""
    if method not in {m.value for m in ONLINE_PAYMENT_METHODS}:
        raise HTTPException(status_code=404, detail=f"Unknown payment provider {method}")

    payload = await request.body()
    signature = request.headers.get(get_gateway(method).signature_header, "")
    try:
        ack = await run_in_threadpool(services.handle_provider_webhook, method, payload, signature)
    except InvalidSignature as exc:
        raise HTTPException(status_code=401, detail="Invalid webhook signature") from exc
    return WebhookAckResponse(status=ack.status, event_type=ack.event_type, order_id=ack.order_id)


@payment_router.post("/{order_id}/initiate", response_model=ProviderOrderResponse)
def initiate_payment(
    order_id: str,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> ProviderOrderResponse:
    _acting_as(order_id, _viewer(x_customer_id, x_role))
    try:
        provider_order = services.initiate_payment(order_id)
    except ProviderUnavailable as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return ProviderOrderResponse(
        provider_order_id=provider_order.provider_order_id,
        amount=provider_order.amount,
        currency=provider_order.currency,
        client_secret=provider_order.client_secret,
    )


@payment_router.post("/{order_id}/confirm", response_model=OrderResponse)
def confirm_payment(
    order_id: str,
    body: ClientConfirmationRequest,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> OrderResponse:
    """Client-reported confirmation after the provider's checkout completes."""
    viewer = _viewer(x_customer_id, x_role)
    _require_identity(viewer)
    try:
        order = services.confirm_payment_client(
            order_id,
            provider_payment_id=body.provider_payment_id,
            signature=body.signature,
            customer_id=None if viewer.is_admin else viewer.customer_id,
        )
    except ProviderUnavailable as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _order_response(order)


@payment_router.post("/{order_id}/cod/confirm", response_model=OrderResponse)
def confirm_cod(
    order_id: str,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> OrderResponse:
    _require_admin(_viewer(x_customer_id, x_role))
    return _order_response(services.confirm_cod(order_id, actor="admin"))


@payment_router.get("/{order_id}/status", response_model=PaymentStatusResponse)
def payment_status(
    order_id: str,
    x_customer_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> PaymentStatusResponse:
    _acting_as(order_id, _viewer(x_customer_id, x_role))
    return PaymentStatusResponse(**services.payment_status(order_id))

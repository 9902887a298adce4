"""Pydantic request/response schemas for the Ordering API.

These are external contracts, separate from the internal protean commands.
All amounts are integer minor units (paise, cents).
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class ShippingAddressSchema(BaseModel):
    recipient_name: str
    line1: str
    line2: str | None = None
    city: str
    state: str | None = None
    postal_code: str
    country: str
    phone: str | None = None
    email: str | None = None


class ItemRequestSchema(BaseModel):
    item_id: str
    variant: str
    quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
class CatalogVariantRequest(BaseModel):
    unit_price: int = Field(ge=0)
    name: str = ""
    image: str | None = None


class CatalogVariantResponse(BaseModel):
    item_id: str
    variant: str
    exists: bool
    unit_price: int
    name: str
    image: str | None = None


# ---------------------------------------------------------------------------
# Stock and cart
# ---------------------------------------------------------------------------
class RegisterStockRequest(BaseModel):
    item_id: str
    variant: str
    quantity: int = Field(ge=0)


class StockLevelResponse(BaseModel):
    item_id: str
    variant: str
    on_hand: int


class CreateCartRequest(BaseModel):
    customer_id: str


class CartIdResponse(BaseModel):
    cart_id: str


class AddToCartRequest(BaseModel):
    item_id: str
    variant: str
    quantity: int = Field(ge=1)
    unit_price: int = Field(ge=0)


class CartLineSchema(BaseModel):
    item_id: str
    variant: str
    quantity: int
    unit_price: int


class CartResponse(BaseModel):
    cart_id: str
    customer_id: str
    status: str
    items: list[CartLineSchema]


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    customer_id: str
    cart_id: str | None = None
    items: list[ItemRequestSchema] | None = None
    shipping_address: ShippingAddressSchema
    payment_method: str
    shipping: int = Field(default=0, ge=0)
    tax: int = Field(default=0, ge=0)
    discount: int = Field(default=0, ge=0)
    discount_code: str | None = None
    expected_subtotal: int | None = None
    expected_total: int | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "cart_id": "cart-001",
                    "shipping_address": {
                        "recipient_name": "Asha Rao",
                        "line1": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "KA",
                        "postal_code": "560001",
                        "country": "IN",
                        "phone": "+919800000000",
                    },
                    "payment_method": "razorpay",
                    "shipping": 0,
                    "tax": 0,
                    "expected_subtotal": 5998,
                }
            ]
        }
    }


class OrderCreatedResponse(BaseModel):
    order_id: str
    order_number: str
    tracking_token: str
    total: int


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class TransitionStatusRequest(BaseModel):
    status: str
    note: str | None = None


class OrderItemSchema(BaseModel):
    item_id: str
    variant: str
    name: str
    unit_price: int
    quantity: int
    image: str | None = None


class PricingSchema(BaseModel):
    subtotal: int
    shipping: int
    tax: int
    discount: int
    total: int
    currency: str


class TimelineEntrySchema(BaseModel):
    status: str
    message: str
    actor: str
    occurred_at: datetime


class ShipmentSchema(BaseModel):
    shipment_id: str
    carrier: str
    tracking_number: str | None = None
    tracking_url: str | None = None
    tracking_status: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_method: str
    payment_status: str
    items: list[OrderItemSchema]
    pricing: PricingSchema
    timeline: list[TimelineEntrySchema]
    cancellation_reason: str | None = None
    shipment: ShipmentSchema | None = None
    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None


class OrderSummarySchema(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_method: str
    payment_status: str
    total: int
    currency: str
    placed_at: datetime | None = None


class TrackingResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_status: str
    timeline: list[TimelineEntrySchema]
    shipment: ShipmentSchema | None = None
    estimated_delivery: datetime | None = None
    actual_delivery: datetime | None = None


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class ProviderOrderResponse(BaseModel):
    provider_order_id: str
    amount: int
    currency: str
    client_secret: str | None = None


class ClientConfirmationRequest(BaseModel):
    provider_payment_id: str
    signature: str = ""


class WebhookAckResponse(BaseModel):
    status: str
    event_type: str
    order_id: str | None = None


class PaymentStatusResponse(BaseModel):
    order_id: str
    order_number: str
    payment_method: str
    payment_status: str
    order_status: str
    provider_order_id: str | None = None
    provider_payment_id: str | None = None
    amount: int
    currency: str
    paid_at: datetime | None = None


class PaymentMethodSchema(BaseModel):
    method: str
    name: str
    online: bool

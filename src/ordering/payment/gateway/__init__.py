"""Payment gateway factory.

Provides get_gateway() / set_gateway() per payment method. Adapters are
built lazily from environment credentials:
- RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET, RAZORPAY_WEBHOOK_SECRET
- STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
"""

import os

from ordering.payment.gateway.port import PaymentGateway
from ordering.payment.gateway.razorpay import RazorpayGateway
from ordering.payment.gateway.stripe import StripeGateway

_gateways: dict[str, PaymentGateway] = {}


def _build(method: str) -> PaymentGateway:
    if method == "razorpay":
        return RazorpayGateway(
            key_id=os.environ.get("RAZORPAY_KEY_ID", ""),
            key_secret=os.environ.get("RAZORPAY_KEY_SECRET", ""),
            webhook_secret=os.environ.get("RAZORPAY_WEBHOOK_SECRET", ""),
        )
    if method == "stripe":
        return StripeGateway(
            secret_key=os.environ.get("STRIPE_SECRET_KEY", ""),
            webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET", ""),
        )
    raise ValueError(f"No payment gateway for method {method!r}")


def get_gateway(method: str) -> PaymentGateway:
    """Return the gateway for an online payment method."""
    if method not in _gateways:
        _gateways[method] = _build(method)
    return _gateways[method]


def set_gateway(method: str, gateway: PaymentGateway) -> None:
    """Override the gateway for a method (useful for tests)."""
    _gateways[method] = gateway


def reset_gateways() -> None:
    _gateways.clear()

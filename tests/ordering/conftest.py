import hashlib
import hmac
import json
import time

import httpx
import pytest
import stripe as stripe_sdk
from ordering import services
from ordering.catalog import reset_catalog, set_catalog
from ordering.catalog.memory import InMemoryCatalog
from ordering.fulfillment.carrier import reset_carrier, set_carrier
from ordering.fulfillment.carrier.fake import FakeCarrier
from ordering.notification.dispatcher import reset_dispatcher, set_dispatcher
from ordering.notification.dispatcher.fake import FakeDispatcher
from ordering.payment.gateway import reset_gateways, set_gateway
from ordering.payment.gateway.razorpay import RazorpayGateway
from ordering.payment.gateway.stripe import StripeGateway
from protean.integrations.pytest import DomainFixture

TEE_PRICE = 2999
MUG_PRICE = 899


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        from protean import current_domain

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
class FakeRazorpayAPI:
    """Answers Razorpay's order endpoint the way the live API does."""

    def __init__(self):
        self.requests: list[dict] = []
        self.fail = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(503, json={"error": {"description": "Service unavailable"}})
        body = json.loads(request.content)
        self.requests.append(body)
        return httpx.Response(
            200,
            json={
                "id": f"order_rzp{len(self.requests):04d}",
                "amount": body["amount"],
                "currency": body["currency"],
                "receipt": body["receipt"],
                "status": "created",
            },
        )


class FakePaymentIntents:
    """PaymentIntent create and retrieve, with per-intent statuses."""

    def __init__(self):
        self.created: list[dict] = []
        self.statuses: dict[str, str] = {}

    def create(self, api_key=None, **params):
        self.created.append(params)
        intent_id = f"pi_{len(self.created):04d}"
        self.statuses.setdefault(intent_id, "requires_payment_method")
        return {
            "id": intent_id,
            "object": "payment_intent",
            "amount": params["amount"],
            "currency": params["currency"],
            "client_secret": f"{intent_id}_secret_test",
            "status": self.statuses[intent_id],
        }

    def retrieve(self, intent_id, api_key=None):
        if intent_id not in self.statuses:
            raise stripe_sdk.InvalidRequestError(f"No such payment_intent: '{intent_id}'", "intent")
        return {"id": intent_id, "object": "payment_intent", "status": self.statuses[intent_id]}


class FakeStripeSDK:
    """Stands in for the ``stripe`` module: fake PaymentIntents, real webhook verification."""

    Webhook = stripe_sdk.Webhook

    def __init__(self, payment_intents):
        self.PaymentIntent = payment_intents


@pytest.fixture()
def razorpay_api():
    return FakeRazorpayAPI()


@pytest.fixture()
def stripe_api():
    return FakePaymentIntents()


@pytest.fixture()
def razorpay(razorpay_api):
    base_url = "https://api.razorpay.test/v1"
    return RazorpayGateway(
        key_id="rzp_test_key",
        key_secret="rzp_test_secret",
        webhook_secret="rzp_webhook_secret",
        client=httpx.Client(base_url=base_url, transport=httpx.MockTransport(razorpay_api)),
    )


@pytest.fixture()
def stripe(stripe_api):
    return StripeGateway(
        secret_key="sk_test_key",
        webhook_secret="whsec_test",
        stripe_client=FakeStripeSDK(stripe_api),
    )


@pytest.fixture()
def stripe_signature():
    """Build a Stripe-Signature header the way Stripe signs webhook deliveries."""

    def _sign(payload: bytes, secret="whsec_test", timestamp=None):
        timestamp = timestamp or int(time.time())
        digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
        return f"t={timestamp},v1={digest}"

    return _sign


@pytest.fixture()
def catalog():
    catalog = InMemoryCatalog()
    catalog.register("item-tee", "M", TEE_PRICE, name="Cotton Tee")
    catalog.register("item-tee", "L", TEE_PRICE, name="Cotton Tee")
    catalog.register("item-mug", "std", MUG_PRICE, name="Stoneware Mug", image="https://cdn.example.com/mug.png")
    return catalog


@pytest.fixture()
def carrier():
    return FakeCarrier()


@pytest.fixture()
def dispatcher():
    return FakeDispatcher()


@pytest.fixture(autouse=True)
def adapters(catalog, carrier, dispatcher, razorpay, stripe):
    set_catalog(catalog)
    set_carrier(carrier)
    set_dispatcher(dispatcher)
    set_gateway("razorpay", razorpay)
    set_gateway("stripe", stripe)
    yield
    reset_catalog()
    reset_carrier()
    reset_dispatcher()
    reset_gateways()


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@pytest.fixture()
def address():
    return {
        "recipient_name": "Asha Rao",
        "line1": "12 MG Road",
        "city": "Bengaluru",
        "state": "KA",
        "postal_code": "560001",
        "country": "IN",
        "phone": "+919800000000",
    }


@pytest.fixture()
def stocked():
    """Tee M: 10, Tee L: 1, Mug: 5."""
    services.register_stock("item-tee", "M", 10)
    services.register_stock("item-tee", "L", 1)
    services.register_stock("item-mug", "std", 5)


@pytest.fixture()
def place_order(stocked, address):
    def _place(payment_method="razorpay", items=None, customer_id="cust-001", **kwargs):
        if items is None:
            items = [{"item_id": "item-tee", "variant": "M", "quantity": 2}]
        return services.create_order(
            customer_id=customer_id,
            shipping_address=address,
            payment_method=payment_method,
            items=items,
            **kwargs,
        )

    return _place

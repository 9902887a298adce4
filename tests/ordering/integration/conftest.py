import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from ordering.api.routes import cart_router, catalog_router, order_router, payment_router, stock_router
from ordering.domain import ordering
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(catalog_router)
    app.include_router(stock_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(payment_router)
    register_exception_handlers(app)

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        with ordering.domain_context():
            return await call_next(request)

    return TestClient(app)


@pytest.fixture()
def order_payload(address):
    def _payload(**overrides):
        payload = {
            "customer_id": "cust-api-001",
            "items": [{"item_id": "item-tee", "variant": "M", "quantity": 2}],
            "shipping_address": address,
            "payment_method": "razorpay",
            "expected_subtotal": 5998,
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture()
def created_order(client, stocked, order_payload):
    def _create(**overrides):
        response = client.post("/orders", json=order_payload(**overrides))
        assert response.status_code == 201
        return response.json()

    return _create

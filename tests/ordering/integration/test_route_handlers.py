"""Routes that call services, providers or the carrier must not block the event loop."""

import inspect

import pytest
from fastapi.routing import APIRoute
from ordering.api.routes import cart_router, catalog_router, order_router, payment_router, stock_router

ROUTES = [
    route
    for router in (catalog_router, stock_router, cart_router, order_router, payment_router)
    for route in router.routes
    if isinstance(route, APIRoute)
]


@pytest.mark.parametrize("route", ROUTES, ids=lambda route: f"{sorted(route.methods)[0]} {route.path}")
def test_blocking_routes_run_in_threadpool(route):
    if route.name == "provider_webhook":
        # Awaits the raw body, then hands the service call to the threadpool
        assert inspect.iscoroutinefunction(route.endpoint)
    else:
        assert not inspect.iscoroutinefunction(route.endpoint)

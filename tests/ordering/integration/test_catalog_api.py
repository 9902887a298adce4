"""Integration tests for catalog seeding and catalog outages."""

import httpx
from ordering.catalog import set_catalog
from ordering.catalog.http import HttpCatalog
from ordering.catalog.memory import InMemoryCatalog

ADMIN = {"X-Role": "admin"}


class TestCatalogSeedingAPI:
    def test_seeded_variant_can_be_ordered(self, client, order_payload):
        set_catalog(InMemoryCatalog())
        client.post("/stock", json={"item_id": "item-cap", "variant": "one-size", "quantity": 4})

        response = client.put(
            "/catalog/item-cap/one-size",
            json={"unit_price": 1299, "name": "Canvas Cap"},
            headers=ADMIN,
        )
        assert response.status_code == 200
        assert response.json()["exists"] is True

        items = [{"item_id": "item-cap", "variant": "one-size", "quantity": 2}]
        order = client.post("/orders", json=order_payload(items=items, expected_subtotal=2598))

        assert order.status_code == 201
        assert order.json()["total"] == 2598

    def test_lookup(self, client):
        response = client.get("/catalog/item-mug/std")
        assert response.json()["unit_price"] == 899
        assert response.json()["name"] == "Stoneware Mug"

    def test_withdrawn_variant_cannot_be_ordered(self, client, stocked, order_payload):
        assert client.delete("/catalog/item-tee/M", headers=ADMIN).status_code == 204

        assert client.get("/catalog/item-tee/M").json()["exists"] is False
        assert client.post("/orders", json=order_payload()).status_code == 400

    def test_seeding_requires_admin(self, client):
        response = client.put(
            "/catalog/item-cap/one-size",
            json={"unit_price": 1},
            headers={"X-Customer-Id": "cust-api-001"},
        )
        assert response.status_code == 403
        assert client.put("/catalog/item-cap/one-size", json={"unit_price": 1}).status_code == 401


class TestExternalCatalogAPI:
    def _external(self, handler):
        client = httpx.Client(base_url="https://catalog.test/v1", transport=httpx.MockTransport(handler))
        set_catalog(HttpCatalog(client=client))

    def test_external_catalog_is_not_seedable(self, client):
        self._external(lambda request: httpx.Response(404))
        response = client.put("/catalog/item-cap/one-size", json={"unit_price": 1299}, headers=ADMIN)
        assert response.status_code == 409

    def test_catalog_outage_stops_placement(self, client, stocked, order_payload):
        self._external(lambda request: httpx.Response(503))

        response = client.post("/orders", json=order_payload())

        assert response.status_code == 502
        assert client.get("/stock/item-tee/M").json()["on_hand"] == 10

"""Shiprocket carrier adapter.

Authenticates with account credentials and keeps the bearer token in a
``TokenCache``; a 401 from the API invalidates it and the call is retried
once with a fresh token.
"""

from datetime import timedelta
from decimal import Decimal

import httpx
import structlog

from ordering.errors import ProviderUnavailable
from ordering.fulfillment.carrier.port import CarrierPort, ShipmentReceipt
from ordering.fulfillment.carrier.token_cache import TokenCache

logger = structlog.get_logger(__name__)

TRACKING_URL = "https://shiprocket.co/tracking/{reference}"


def _major_units(amount: int) -> str:
    return str(Decimal(amount) / 100)


class ShiprocketCarrier(CarrierPort):
    name = "shiprocket"

    def __init__(
        self,
        email: str,
        password: str,
        base_url: str = "https://apiv2.shiprocket.in/v1/external",
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        token_ttl: timedelta = timedelta(days=9),
        pickup_location: str = "Primary",
    ):
        self.email = email
        self.password = password
        self.pickup_location = pickup_location
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self.tokens = TokenCache(self._login, ttl=token_ttl)

    def _login(self) -> str:
        try:
            response = self._client.post("/auth/login", json={"email": self.email, "password": self.password})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise ProviderUnavailable(self.name, f"authentication failed: {exc}") from exc
        return response.json()["token"]

    def _request(self, method: str, path: str, **kwargs) -> dict:
        for attempt in (1, 2):
            headers = {"Authorization": f"Bearer {self.tokens.get()}"}
            try:
                response = self._client.request(method, path, headers=headers, **kwargs)
                if response.status_code == 401 and attempt == 1:
                    logger.info("Shiprocket token rejected, refreshing")
                    self.tokens.invalidate()
                    continue
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise ProviderUnavailable(self.name, str(exc)) from exc
            return response.json()
        raise ProviderUnavailable(self.name, "token refresh did not succeed")

    def _shipment_payload(self, order) -> dict:
        address = order.shipping_address
        return {
            "order_id": order.order_number,
            "order_date": order.created_at.strftime("%Y-%m-%d %H:%M"),
            "pickup_location": self.pickup_location,
            "billing_customer_name": address.recipient_name,
            "billing_last_name": "",
            "billing_address": address.line1,
            "billing_address_2": address.line2 or "",
            "billing_city": address.city,
            "billing_pincode": address.postal_code,
            "billing_state": address.state or "",
            "billing_country": address.country,
            "billing_email": address.email or "",
            "billing_phone": address.phone or "",
            "shipping_is_billing": True,
            "order_items": [
                {
                    "name": item.name,
                    "sku": item.stock_id,
                    "units": item.quantity,
                    "selling_price": _major_units(item.unit_price),
                }
                for item in order.line_items()
            ],
            "payment_method": "COD" if order.payment_method == "cod" else "Prepaid",
            "sub_total": _major_units(order.pricing.subtotal),
            "shipping_charges": _major_units(order.pricing.shipping),
            "total_discount": _major_units(order.pricing.discount),
            "length": 10,
            "breadth": 10,
            "height": 10,
            "weight": 0.5,
        }

    def create_shipment(self, order) -> ShipmentReceipt:
        body = self._request("POST", "/orders/create/adhoc", json=self._shipment_payload(order))
        awb = body.get("awb_code") or None
        reference = awb or str(body.get("shipment_id", ""))
        return ShipmentReceipt(
            external_id=str(body["shipment_id"]),
            carrier=self.name,
            tracking_reference=reference,
            tracking_url=TRACKING_URL.format(reference=reference) if awb else None,
        )

    def get_tracking(self, tracking_reference: str) -> str:
        body = self._request("GET", f"/courier/track/awb/{tracking_reference}")
        tracks = body.get("tracking_data", {}).get("shipment_track") or []
        if not tracks:
            return "Awaiting pickup"
        return tracks[0].get("current_status") or "Unknown"

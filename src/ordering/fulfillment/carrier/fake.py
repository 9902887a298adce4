"""Fake carrier adapter — deterministic carrier for testing and development."""

from uuid import uuid4

from ordering.errors import ProviderUnavailable
from ordering.fulfillment.carrier.port import CarrierPort, ShipmentReceipt


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.tracking_status = "In Transit"
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def create_shipment(self, order) -> ShipmentReceipt:
        self.calls.append({"method": "create_shipment", "order_id": str(order.id)})
        if not self.should_succeed:
            raise ProviderUnavailable("fake-carrier", self.failure_reason)

        reference = f"FAKE-{uuid4().hex[:12].upper()}"
        return ShipmentReceipt(
            external_id=f"ship-{uuid4().hex[:8]}",
            carrier="fake-carrier",
            tracking_reference=reference,
            tracking_url=f"https://fake-carrier.example.com/track/{reference}",
        )

    def get_tracking(self, tracking_reference: str) -> str:
        self.calls.append({"method": "get_tracking", "tracking_reference": tracking_reference})
        if not self.should_succeed:
            raise ProviderUnavailable("fake-carrier", self.failure_reason)
        return self.tracking_status

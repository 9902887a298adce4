"""Carrier port — abstract interface for shipping carrier integrations.

The ordering code programs against the port; adapters are swapped via the
CARRIER_ADAPTER environment variable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ShipmentReceipt:
    external_id: str
    carrier: str
    tracking_reference: str | None = None
    tracking_url: str | None = None


class CarrierPort(ABC):
    @abstractmethod
    def create_shipment(self, order) -> ShipmentReceipt:
        """Book a shipment for ``order``.

        Raises ``ProviderUnavailable`` when the carrier cannot be reached
        or refuses the booking.
        """
        ...

    @abstractmethod
    def get_tracking(self, tracking_reference: str) -> str:
        """Return the carrier's latest status text for a shipment."""
        ...

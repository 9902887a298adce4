"""Catalog lookup port.

Order placement asks the catalog for the current price and availability of
each requested variant. The catalog itself lives outside this service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class VariantResolution:
    """Current catalog state of one variant. Prices are in minor units."""

    exists: bool
    unit_price: int = 0
    name: str = ""
    image: str | None = None


class CatalogPort(ABC):
    @abstractmethod
    def resolve_variant(self, item_id: str, variant: str) -> VariantResolution:
        """Resolve price and availability for ``variant`` of ``item_id``."""
        ...

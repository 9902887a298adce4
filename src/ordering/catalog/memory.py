"""In-memory catalog for development and testing."""

from ordering.catalog.port import CatalogPort, VariantResolution


class InMemoryCatalog(CatalogPort):
    def __init__(self) -> None:
        self._variants: dict[tuple[str, str], VariantResolution] = {}
        self.calls: list[dict] = []

    def register(self, item_id, variant, unit_price, name="", image=None) -> None:
        self._variants[(str(item_id), str(variant))] = VariantResolution(
            exists=True,
            unit_price=unit_price,
            name=name or str(item_id),
            image=image,
        )

    def withdraw(self, item_id, variant) -> None:
        """Remove a variant, as when it is discontinued."""
        self._variants.pop((str(item_id), str(variant)), None)

    def resolve_variant(self, item_id: str, variant: str) -> VariantResolution:
        self.calls.append({"method": "resolve_variant", "item_id": item_id, "variant": variant})
        return self._variants.get((str(item_id), str(variant)), VariantResolution(exists=False))

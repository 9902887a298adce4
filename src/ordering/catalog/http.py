"""Catalog service adapter.

Looks variants up with ``GET {base_url}/items/{item_id}/variants/{variant}``.
A 404 means the variant does not exist; any other failure means the
catalog cannot be reached and placement stops before stock is touched.
"""

import httpx
import structlog

from ordering.catalog.port import CatalogPort, VariantResolution
from ordering.errors import ProviderUnavailable

logger = structlog.get_logger(__name__)


class HttpCatalog(CatalogPort):
    name = "catalog"

    def __init__(
        self,
        base_url: str = "",
        api_key: str = "",
        client: httpx.Client | None = None,
        timeout: float = 5.0,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.Client(base_url=base_url, headers=headers, timeout=timeout)

    def resolve_variant(self, item_id: str, variant: str) -> VariantResolution:
        try:
            response = self._client.get(f"/items/{item_id}/variants/{variant}")
            if response.status_code == 404:
                return VariantResolution(exists=False)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Catalog lookup failed", item_id=item_id, variant=variant, error=str(exc))
            raise ProviderUnavailable(self.name, str(exc)) from exc

        body = response.json()
        if not body.get("available", True):
            return VariantResolution(exists=False)
        return VariantResolution(
            exists=True,
            unit_price=int(body["unit_price"]),
            name=body.get("name") or str(item_id),
            image=body.get("image"),
        )

"""Catalog factory.

Provides get_catalog() / set_catalog() so the catalog source can be swapped.
CATALOG_ADAPTER selects it:
- ``memory`` (default): an in-memory catalog, filled through ``PUT /catalog``
- ``http``: the catalog service at CATALOG_URL, with optional CATALOG_API_KEY
"""

import os

from ordering.catalog.memory import InMemoryCatalog
from ordering.catalog.port import CatalogPort

_current_catalog: CatalogPort | None = None


def get_catalog() -> CatalogPort:
    """Return the configured catalog (singleton)."""
    global _current_catalog
    if _current_catalog is None:
        adapter = os.environ.get("CATALOG_ADAPTER", "memory")
        if adapter == "memory":
            _current_catalog = InMemoryCatalog()
        elif adapter == "http":
            from ordering.catalog.http import HttpCatalog

            _current_catalog = HttpCatalog(
                base_url=os.environ.get("CATALOG_URL", ""),
                api_key=os.environ.get("CATALOG_API_KEY", ""),
            )
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _current_catalog


def set_catalog(catalog: CatalogPort) -> None:
    global _current_catalog
    _current_catalog = catalog


def reset_catalog() -> None:
    global _current_catalog
    _current_catalog = None

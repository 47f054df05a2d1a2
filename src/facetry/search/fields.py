"""Search field lookup."""

from __future__ import annotations

from typing import Optional

from facetry.config import CatalogConfig, SearchFieldConfig
from facetry.exceptions import ConfigurationGap

# User parameter keys that are never turned into query terms
RESERVED_KEYS = frozenset(
    {
        "search_field",
        "f",
        "page",
        "per_page",
        "rows",
        "sort",
        "qt",
        "facet.field",
        "facets",
        "facet.page",
        "facet.sort",
    }
)


class SearchFieldResolver:
    """Resolve a `search_field` parameter to its configuration."""

    def __init__(self, catalog: CatalogConfig) -> None:
        self._catalog = catalog

    def resolve(self, key: Optional[str]) -> Optional[SearchFieldConfig]:
        """Return the search field for `key`, or None when it is not configured."""
        try:
            return self._catalog.search_field(key)
        except ConfigurationGap:
            return None

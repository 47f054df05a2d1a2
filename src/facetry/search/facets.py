"""Facet limits and facet value pagination.

Facet fields are requested with one value more than will be displayed, so the
caller can tell whether a "more" link is needed without a second request.
`FacetLimitResolver` reverses that over-fetch when reading a response back.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Optional

from facetry.config import CatalogConfig
from facetry.engine.response import FacetItem, SearchResponse
from facetry.exceptions import ConfigurationGap

DEFAULT_FACET_LIMIT = 10


class FacetLimitResolver:
    """Compute the number of values to show for a facet field."""

    def __init__(self, catalog: CatalogConfig) -> None:
        self._catalog = catalog

    def limit_for(self, facet_field: str, prior_response: Optional[SearchResponse] = None) -> Optional[int]:
        """Look up the facet limit for `facet_field`.

        Without a prior response this is the configured limit (the default
        limit when configured as True). With one, the limit Solr echoed back is
        used instead, minus the extra value added when requesting. Returns None
        when no explicit limit applies.
        """
        try:
            facet = self._catalog.facet_field(facet_field)
        except ConfigurationGap:
            return None

        echoed = None
        if prior_response is not None:
            echoed = prior_response.facet_by_field_name(facet.field or facet_field)

        if facet.limit and echoed is not None:
            if echoed.limit is None:
                # nothing was sent, infer from config
                return None if facet.limit is True else facet.limit
            if echoed.limit == -1:
                # -1 is solr-speak for unlimited
                return None
            return echoed.limit - 1
        if facet.limit:
            return DEFAULT_FACET_LIMIT if facet.limit is True else facet.limit
        return None


class FacetPaginator:
    """One page of values for a single facet field."""

    request_keys = {"sort": "facet.sort", "page": "facet.page"}

    def __init__(
        self,
        items: Iterable[FacetItem],
        *,
        field: Optional[str] = None,
        offset: Optional[int] = 0,
        limit: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> None:
        self.field = field
        self.offset = int(offset or 0)
        self.limit = limit
        self._all_items: List[FacetItem] = list(items)
        # Solr's own default: count order when limited, index order otherwise
        if sort is None:
            sort = "count" if limit is not None and limit > 0 else "index"
        self.sort = sort

    @classmethod
    def from_response(cls, response: SearchResponse, facet_field: str) -> "FacetPaginator":
        facet = response.facet_by_field_name(facet_field)
        if facet is None and response.facets:
            facet = response.facets[0]
        echoed_limit = response.param(f"f.{facet_field}.facet.limit")
        limit = int(echoed_limit) - 1 if echoed_limit not in (None, "") else None
        return cls(
            facet.items if facet is not None else [],
            field=facet_field,
            offset=response.param(f"f.{facet_field}.facet.offset"),
            limit=limit,
            sort=response.param(f"f.{facet_field}.facet.sort") or response.param("facet.sort"),
        )

    @property
    def items(self) -> List[FacetItem]:
        if self.limit is None or self.limit < 0:
            return list(self._all_items)
        return self._all_items[: self.limit]

    def __iter__(self) -> Iterator[FacetItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    @property
    def current_page(self) -> int:
        if not self.limit or self.limit < 0:
            return 1
        return self.offset // self.limit + 1

    @property
    def has_previous(self) -> bool:
        return self.offset > 0

    @property
    def has_next(self) -> bool:
        return self.limit is not None and self.limit >= 0 and len(self._all_items) > self.limit

    def _page_params(self, page: int) -> Dict[str, Any]:
        return {self.request_keys["page"]: page, self.request_keys["sort"]: self.sort}

    def next_page_params(self) -> Optional[Dict[str, Any]]:
        return self._page_params(self.current_page + 1) if self.has_next else None

    def prev_page_params(self) -> Optional[Dict[str, Any]]:
        return self._page_params(self.current_page - 1) if self.has_previous else None

    def params_for_resort(self, sort: str) -> Dict[str, Any]:
        """Parameters for re-sorting the facet list; paging restarts at page 1."""
        return {self.request_keys["page"]: 1, self.request_keys["sort"]: sort}

"""Catalog search tools for FastMCP.

Thin wrappers over `SearchService`; blocking Solr calls run in a worker
thread so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP

from facetry.engine.response import FacetField, GroupResponse, SolrDocument
from facetry.search.facets import FacetPaginator
from facetry.search.results import shape_results


def _serialize_document(doc: Optional[SolrDocument]) -> Optional[Dict[str, Any]]:
    return doc.to_dict() if doc is not None else None


def _serialize_facet(facet: FacetField) -> Dict[str, Any]:
    return {
        "name": facet.name,
        "items": [{"value": i.value, "hits": i.hits} for i in facet.items],
    }


def _serialize_group(group: GroupResponse) -> Dict[str, Any]:
    return {
        "key": group.key,
        "matches": group.matches,
        "groups": [
            {
                "value": g.value,
                "total": g.total,
                "documents": [d.to_dict() for d in g.documents],
            }
            for g in group.groups
        ],
    }


def _serialize_paginator(paginator: FacetPaginator) -> Dict[str, Any]:
    return {
        "field": paginator.field,
        "items": [{"value": i.value, "hits": i.hits} for i in paginator],
        "page": paginator.current_page,
        "sort": paginator.sort,
        "has_next": paginator.has_next,
        "has_previous": paginator.has_previous,
    }


def register_catalog_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register catalog tools on the given FastMCP instance.

    The `get_state` callable should return an object with attribute `search`
    holding a `SearchService`.
    """

    def _service(state_obj: Any) -> Any:
        service = getattr(state_obj, "search", None)
        if service is None:
            raise RuntimeError("Search is not configured. Set FACETRY_SOLR__URL.")
        return service

    def _user_params(
        q: Optional[str],
        search_field: Optional[str],
        f: Optional[Dict[str, List[str]]],
        page: Optional[int],
        per_page: Optional[int],
        sort: Optional[str],
    ) -> Dict[str, Any]:
        params = {
            "q": q,
            "search_field": search_field,
            "f": f,
            "page": page,
            "per_page": per_page,
            "sort": sort,
        }
        return {k: v for k, v in params.items() if v is not None}

    @mcp.tool
    async def catalog_search(
        q: Optional[str] = None,
        search_field: Optional[str] = None,
        f: Optional[Dict[str, List[str]]] = None,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Search the catalog.

        Parameters
        ----------
        q: str | None
            Free-text query.
        search_field: str | None
            Configured search field key (e.g., "title").
        f: dict | None
            Selected facet values, field -> list of values.
        page, per_page: int | None
            1-based page and page size.
        sort: str | None
            Sort key or raw Solr sort expression.
        """
        service = _service(get_state())
        params = _user_params(q, search_field, f, page, per_page, sort)
        response = await asyncio.to_thread(service.query, params)
        shaped, documents = shape_results(response, service.catalog.group)
        out: Dict[str, Any] = {
            "total": response.total,
            "documents": [d.to_dict() for d in documents],
            "facets": [_serialize_facet(fct) for fct in response.facets],
        }
        if isinstance(shaped, GroupResponse):
            out["grouped"] = _serialize_group(shaped)
        return out

    @mcp.tool
    async def catalog_document(document_id: str) -> Dict[str, Any]:
        """Fetch one document by its unique key."""
        service = _service(get_state())
        _response, document = await asyncio.to_thread(service.document_by_id, document_id)
        return document.to_dict()

    @mcp.tool
    async def catalog_facet(
        field: str,
        q: Optional[str] = None,
        search_field: Optional[str] = None,
        f: Optional[Dict[str, List[str]]] = None,
        facet_page: int = 1,
        facet_sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Page through the values of one facet field within a search."""
        service = _service(get_state())
        params = _user_params(q, search_field, f, None, None, None)
        params[FacetPaginator.request_keys["page"]] = facet_page
        if facet_sort:
            params[FacetPaginator.request_keys["sort"]] = facet_sort
        paginator = await asyncio.to_thread(service.facet_pagination, field, params)
        return _serialize_paginator(paginator)

    @mcp.tool
    async def catalog_neighbors(
        index: int,
        q: Optional[str] = None,
        search_field: Optional[str] = None,
        f: Optional[Dict[str, List[str]]] = None,
        sort: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Previous and next documents around 1-based position `index` of a search."""
        service = _service(get_state())
        params = _user_params(q, search_field, f, None, None, sort)
        prev_doc, next_doc = await asyncio.to_thread(service.neighbors, index, params)
        return {"previous": _serialize_document(prev_doc), "next": _serialize_document(next_doc)}

"""Shaping of search responses for display."""

from __future__ import annotations

from typing import List, Optional, Tuple, Union

from facetry.engine.response import GroupResponse, SearchResponse, SolrDocument

Shaped = Tuple[Union[SearchResponse, GroupResponse], List[SolrDocument]]


def shape_results(response: SearchResponse, group_field: Optional[str] = None) -> Shaped:
    """Return the response (or its group) and the flat document list.

    Grouped responses come back with an empty document list; documents then
    live in the groups.
    """
    if response.is_grouped and group_field:
        group = response.group_by(group_field)
        if group is not None:
            return group, []
    if response.is_grouped and len(response.grouped) == 1:
        return response.grouped[0], []
    return response, list(response.documents)

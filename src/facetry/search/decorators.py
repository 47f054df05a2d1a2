"""Query stages that copy user parameters into a `QueryRelation`.

Each stage takes `(context, relation, user_params)`, mutates the relation in
place and returns nothing. Stages never raise on bad user input: blank values
are skipped and unparseable numbers are treated as absent.

Solr parameters come from a number of places. From lowest precedence to
highest:
  1. General defaults in the catalog configuration
  2. Defaults for the search field named by `search_field`
  3. Certain parameters taken directly from the user request
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from facetry.query.relation import QueryRelation
from facetry.search.fields import RESERVED_KEYS
from facetry.search.registry import StageContext, StageRegistry

logger = logging.getLogger(__name__)

DEFAULT_STAGES = (
    "add_query",
    "add_filters",
    "add_facetting",
    "add_field_projections",
    "add_paging",
    "add_sorting",
    "dedupe_group_and_facet",
)

PAGING_FALLBACK_ROWS = 10

default_registry = StageRegistry()


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return not value
    return False


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _to_int(value: Any) -> Optional[int]:
    if _blank(value):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _included(flag: Optional[bool], global_default: bool) -> bool:
    return flag is True or (flag is None and global_default)


@default_registry.register("add_query")
def add_query(ctx: StageContext, relation: QueryRelation, user_params: Mapping[str, Any]) -> None:
    """Put the user query into `q`, honoring the selected search field."""
    params = dict(user_params)

    # legacy: a user qt is passed through, but the search field's qt wins
    if not _blank(params.get("qt")):
        relation.set_request_handler(str(params["qt"]))

    search_field = ctx.search_fields.resolve(params.pop("search_field", None))
    if search_field is not None and search_field.qt:
        relation.set_request_handler(search_field.qt)

    if search_field is not None and search_field.local_parameters:
        target = search_field.field or search_field.key
        relation.configure_field(target, search_field.local_parameters)
        if not _blank(params.get("q")):
            relation.add_query_term(target, params["q"])
        return

    for key, value in params.items():
        if key in RESERVED_KEYS or _blank(value):
            continue
        relation.add_query_term(key, value)


@default_registry.register("add_filters")
def add_filters(ctx: StageContext, relation: QueryRelation, user_params: Mapping[str, Any]) -> None:
    """Map selected facet values under `f` to `fq` clauses."""
    selected = user_params.get("f")
    if not selected:
        return
    for facet_field, value_list in selected.items():
        for value in _as_list(value_list):
            if _blank(value):
                continue
            relation.add_filter(facet_field, value)


@default_registry.register("add_facetting")
def add_facetting(ctx: StageContext, relation: QueryRelation, user_params: Mapping[str, Any]) -> None:
    """Request facet counts, one value over the display limit for "more" detection."""
    # Legacy: raw facet.field / facets params, single values or lists
    if "facet.field" in user_params or "facets" in user_params:
        legacy: List[str] = []
        for value in _as_list(user_params.get("facet.field")) + _as_list(user_params.get("facets")):
            if not _blank(value) and str(value) not in legacy:
                legacy.append(str(value))
        for facet in legacy:
            relation.add_facet_request(facet)

    catalog = ctx.catalog
    for name, facet in catalog.facet_fields.items():
        if not _included(facet.include_in_request, catalog.add_facet_fields_to_solr_request):
            continue
        opts: dict = {}
        if facet.ex:
            opts["ex"] = facet.ex
        if facet.pivot:
            opts["pivot"] = ",".join(facet.pivot)
        elif facet.query:
            opts["query"] = facet.query
        if facet.sort:
            opts["sort"] = facet.sort
        if facet.params:
            opts.update(facet.params)
        limit = ctx.facet_limits.limit_for(name, ctx.prior_response)
        if limit is not None:
            opts["limit"] = limit + 1
        relation.add_facet_request(facet.field or name, opts)


@default_registry.register("add_field_projections")
def add_field_projections(
    ctx: StageContext, relation: QueryRelation, user_params: Mapping[str, Any]
) -> None:
    catalog = ctx.catalog
    include_default = catalog.add_field_configuration_to_solr_request
    for name, field in catalog.show_fields.items():
        if _included(field.include_in_request, include_default):
            relation.add_select_field(field.field or name, field.solr_params)

    for name, field in catalog.index_fields.items():
        if not _included(field.include_in_request, include_default):
            continue
        if field.highlight:
            relation.add_highlight_field(field.field or name)
        relation.add_select_field(field.field or name, field.solr_params)


@default_registry.register("add_paging")
def add_paging(ctx: StageContext, relation: QueryRelation, user_params: Mapping[str, Any]) -> None:
    """Translate `rows` / `per_page` / `page` into Solr `rows` and `start`."""
    catalog = ctx.catalog
    limit = _to_int(user_params.get("rows"))
    if limit is None:
        limit = _to_int(user_params.get("per_page"))
    if limit is None:
        limit = relation.limit if relation.limit is not None else catalog.default_per_page

    # ensure we don't exceed the max page size
    if limit is not None and limit > catalog.max_per_page:
        limit = catalog.max_per_page

    page = _to_int(user_params.get("page"))
    if page is not None:
        if limit is None:
            logger.warning(
                "Solr rows parameter not set (by the user, configuration, or default "
                "solr parameters); using %d rows by default",
                PAGING_FALLBACK_ROWS,
            )
            limit = PAGING_FALLBACK_ROWS
        relation.set_offset(limit * (page - 1) if page > 0 else 0)

    if limit is not None:
        relation.set_limit(min(limit, catalog.max_per_page))


@default_registry.register("add_sorting")
def add_sorting(ctx: StageContext, relation: QueryRelation, user_params: Mapping[str, Any]) -> None:
    catalog = ctx.catalog
    sort = user_params.get("sort")
    if _blank(sort):
        default = catalog.default_sort_field
        if default is not None and default.sort.strip():
            relation.add_sort(default.sort)
        return

    named = catalog.sort_fields.get(str(sort))
    if named is not None:
        if named.sort.strip():
            relation.add_sort(named.sort)
        return

    # just pass the expression through
    relation.add_sort(str(sort))


@default_registry.register("dedupe_group_and_facet")
def dedupe_group_and_facet(
    ctx: StageContext, relation: QueryRelation, user_params: Mapping[str, Any]
) -> None:
    """Drop grouping when the user filtered on the group field (full results for a group)."""
    group = ctx.catalog.group
    selected = user_params.get("f") or {}
    if group and group in selected:
        relation.exclude_category("group")

"""High-level search operations over one catalog.

Every public method builds its own relation, runs exactly one request and
interprets exactly one response.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from facetry.config import CatalogConfig
from facetry.engine.executor import Executor
from facetry.engine.response import SearchResponse, SolrDocument
from facetry.exceptions import ConfigurationGap, DocumentNotFound
from facetry.query.relation import STAR, QueryRelation
from facetry.search.decorators import DEFAULT_STAGES
from facetry.search.facets import FacetLimitResolver, FacetPaginator
from facetry.search.pipeline import DecoratorPipeline
from facetry.search.registry import StageContext, StageRegistry
from facetry.search.results import Shaped, shape_results

DEFAULT_FACET_LIST_LIMIT = 20
OPENSEARCH_ROWS = 10


class SearchService:
    def __init__(
        self,
        catalog: CatalogConfig,
        executor: Executor,
        *,
        stage_names: Iterable[str] = DEFAULT_STAGES,
        registry: Optional[StageRegistry] = None,
    ) -> None:
        self.catalog = catalog
        self.executor = executor
        self.stage_names = tuple(stage_names)
        self.registry = registry
        self.facet_limits = FacetLimitResolver(catalog)

    # ----- relation building -----

    def pipeline(self, prior_response: Optional[SearchResponse] = None) -> DecoratorPipeline:
        context = StageContext.for_catalog(self.catalog, prior_response)
        return DecoratorPipeline(context, self.stage_names, registry=self.registry)

    def relation_for_params(
        self,
        user_params: Optional[Mapping[str, Any]] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
        *,
        prior_response: Optional[SearchResponse] = None,
    ) -> QueryRelation:
        """Build a relation; `extra_params` take precedence over `user_params`."""
        merged: Dict[str, Any] = dict(user_params or {})
        merged.update(extra_params or {})
        return self.pipeline(prior_response).build(merged)

    def facet_limit_for(
        self, facet_field: str, prior_response: Optional[SearchResponse] = None
    ) -> Optional[int]:
        return self.facet_limits.limit_for(facet_field, prior_response)

    # ----- searching -----

    def query(
        self,
        user_params: Optional[Mapping[str, Any]] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
        customize: Optional[Callable[[QueryRelation], None]] = None,
    ) -> SearchResponse:
        """Run a search; `customize` may adjust the relation before it is sent."""
        relation = self.relation_for_params(user_params, extra_params)
        if customize is not None:
            customize(relation)
        return self.executor.execute(relation)

    def search_results(
        self,
        user_params: Optional[Mapping[str, Any]] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> Shaped:
        """Run a search and return `(response_or_group, documents)`."""
        response = self.query(user_params, extra_params)
        return shape_results(response, self.catalog.group)

    # ----- documents -----

    def document_relation(self, doc_id: str) -> QueryRelation:
        relation = QueryRelation(max_per_page=self.catalog.max_per_page)
        relation.add_query_term(self.catalog.unique_key, doc_id)
        relation.set_request_handler(self.catalog.document_request_handler)
        relation.set_endpoint(self.catalog.document_solr_path)
        return relation

    def document_by_id(
        self, doc_id: str, stage_names: Iterable[str] = ()
    ) -> Tuple[SearchResponse, SolrDocument]:
        """Fetch one document by its unique key.

        `stage_names` are extra pipeline stages applied (with no user
        parameters) to the document request, e.g. ``("add_field_projections",)``.
        Raises `DocumentNotFound` when nothing matches.
        """
        relation = self.document_relation(doc_id)
        self.pipeline().with_stages(stage_names).apply(relation, {})
        response = self.executor.execute(relation)
        if response.is_empty:
            raise DocumentNotFound(doc_id)
        return response, response.documents[0]

    def documents_by_ids(
        self, ids: Iterable[str], extra_params: Optional[Mapping[str, Any]] = None
    ) -> Tuple[SearchResponse, List[SolrDocument]]:
        return self.documents_by_field_values(self.catalog.unique_key, ids, extra_params)

    def documents_by_field_values(
        self,
        field: str,
        values: Any,
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[SearchResponse, List[SolrDocument]]:
        """Fetch documents whose `field` matches any of `values`.

        An empty value list matches nothing. Facet and spellcheck directives
        are dropped; this serves document lookups, not result display.
        """
        relation = self.relation_for_params(extra_params)
        if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
            values = [values]
        values = list(values)

        if not values:
            relation.match_nothing()
        else:
            relation.add_filter(field, values[0])
            for value in values[1:]:
                relation.add_or_filter(field, value)
            # every match is wanted, regardless of the display page size
            relation.set_limit(len(values), clamp=False)

        # need boolean syntax for OR
        relation.set_default_parser("lucene")
        relation.exclude_category("select")
        relation.add_select_field(STAR)
        relation.exclude_category("facet")
        relation.exclude_category("spellcheck")

        response = self.executor.execute(relation)
        return response, list(response.documents)

    def neighbors(
        self,
        index: int,
        user_params: Optional[Mapping[str, Any]] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[Optional[SolrDocument], Optional[SolrDocument]]:
        """Return the documents before and after 1-based position `index` in a search.

        Either side is None at the edges of the result set.
        """
        relation = self.relation_for_params(user_params, extra_params)
        position = index - 1
        if position > 0:
            relation.set_offset(position - 1)  # get one before
            relation.set_limit(3)  # and one after
        else:
            relation.set_offset(0)  # there is no previous doc
            relation.set_limit(2)  # but there should be one after
        relation.exclude_category("select")
        relation.add_select_field(STAR)
        relation.exclude_category("facet")

        documents = self.executor.execute(relation).documents

        prev_doc = documents[0] if position > 0 and documents else None
        next_slot = 2 if position > 0 else 1
        next_doc = documents[next_slot] if len(documents) > next_slot else None
        return prev_doc, next_doc

    # ----- facets -----

    def _solr_field(self, facet_field: str) -> str:
        try:
            return self.catalog.facet_field(facet_field).field or facet_field
        except ConfigurationGap:
            return facet_field

    def facet_opts_for(self, expr: str, relation: Optional[QueryRelation] = None) -> Dict[str, Any]:
        relation = relation or self.pipeline().default_relation()
        return relation.facet_options(expr)

    def default_facet_opts(self, relation: Optional[QueryRelation] = None) -> Dict[str, Any]:
        return self.facet_opts_for(STAR, relation)

    def facet_on(
        self,
        facet_field: str,
        user_params: Optional[Mapping[str, Any]] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> QueryRelation:
        """Build a request for one page of values of a single facet field.

        Paging and sort come from the `facet.page` / `facet.sort` params. One
        value more than the page size is requested.
        """
        params = dict(user_params or {})
        relation = self.relation_for_params(params, extra_params)

        default_limit = self.default_facet_opts().get("limit")
        if self.catalog.facet_list_limit:
            limit = int(self.catalog.facet_list_limit)
        elif default_limit:
            limit = int(default_limit)
        else:
            limit = DEFAULT_FACET_LIST_LIMIT

        try:
            page = int(params.get(FacetPaginator.request_keys["page"], 1))
        except (TypeError, ValueError):
            page = 1
        facet_opts: Dict[str, Any] = {
            "limit": limit + 1,
            "offset": (max(page, 1) - 1) * limit,
        }
        sort = params.get(FacetPaginator.request_keys["sort"])
        if sort:
            facet_opts["sort"] = sort

        solr_field = self._solr_field(facet_field)
        for name in list(relation.facet_requests):
            if name not in (STAR, solr_field):
                relation.remove_facet_request(name)
        relation.add_facet_request(solr_field, facet_opts)
        relation.set_limit(0)
        return relation

    def facet_field_response(
        self,
        facet_field: str,
        user_params: Optional[Mapping[str, Any]] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> SearchResponse:
        return self.executor.execute(self.facet_on(facet_field, user_params, extra_params))

    def facet_pagination(
        self,
        facet_field: str,
        user_params: Optional[Mapping[str, Any]] = None,
        extra_params: Optional[Mapping[str, Any]] = None,
    ) -> FacetPaginator:
        """Paginate through a single facet field's values."""
        response = self.facet_field_response(facet_field, user_params, extra_params)
        solr_field = self._solr_field(facet_field)
        return FacetPaginator.from_response(response, solr_field)

    # ----- opensearch -----

    def opensearch_response(
        self, field: Optional[str] = None, user_params: Optional[Mapping[str, Any]] = None
    ) -> List[Any]:
        """Return ``[q, [value of field for each document]]`` for suggestion clients."""
        field = field or self.catalog.opensearch_title_field or self.catalog.unique_key
        params = dict(user_params or {})
        relation = self.relation_for_params(params)
        relation.set_limit(OPENSEARCH_ROWS)
        relation.exclude_category("select")
        relation.add_select_field(field)
        relation.exclude_category("facet")
        response = self.executor.execute(relation)
        values = []
        for doc in response.documents:
            value = doc.first(field)
            values.append("" if value is None else str(value))
        return [params.get("q"), values]

"""Mutable representation of one outbound Solr request.

A `QueryRelation` is assembled by the query stages, frozen when it is handed
to the executor, and rendered into an ordered list of Solr parameters with
`to_params()`. Rendering is deterministic: the same mutations in the same
order always produce the same parameter list.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Literal, Optional, Tuple

from facetry.exceptions import RelationFrozenError
from facetry.query.quoting import lucene_escape, param_quote

Params = List[Tuple[str, str]]

CATEGORIES = ("facet", "group", "spellcheck", "highlight", "sort", "select")

# Keys of facet options that are not rendered as f.<field>.facet.<key>
_FACET_STRUCTURAL = ("ex", "pivot", "query")

STAR = "*"


@dataclass(slots=True)
class QueryTerm:
    """A piece of the `q` parameter; `field` is None for bare user text."""

    field: Optional[str]
    value: str


@dataclass(slots=True)
class Filter:
    """A single `fq` clause.

    OR filters join the clause added right before them.
    """

    field: str
    value: str
    conjunction: Literal["AND", "OR"] = "AND"
    negated: bool = False


@dataclass(slots=True)
class SortClause:
    key: str
    direction: Optional[str] = None

    def render(self) -> str:
        return f"{self.key} {self.direction}" if self.direction else self.key


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _local_params(options: Dict[str, Any], parser: Optional[str] = None) -> str:
    inner = " ".join(f"{k}={param_quote(_render_value(v))}" for k, v in options.items())
    if parser:
        inner = f"{parser} {inner}"
    return "{!" + inner + "}"


class QueryRelation:
    """Outbound search request under construction."""

    def __init__(self, *, max_per_page: int = 100) -> None:
        self.max_per_page = max_per_page
        self.query_terms: List[QueryTerm] = []
        # Local params attached to query terms on a given field
        self.field_configs: Dict[str, Dict[str, Any]] = {}
        self.filters: List[Filter] = []
        self.facet_requests: Dict[str, Dict[str, Any]] = {}
        self.selected_fields: Dict[str, Dict[str, Any]] = {}
        self.highlight_fields: List[str] = []
        self.sort: List[SortClause] = []
        self.offset: Optional[int] = None
        self.limit: Optional[int] = None
        self.request_handler: Optional[str] = None
        self.default_parser: Optional[str] = None
        self.endpoint: Optional[str] = None
        self.group_field: Optional[str] = None
        self.local_parameters: Dict[str, Any] = {}
        self._frozen = False

    # ----- lifecycle -----

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> "QueryRelation":
        self._frozen = True
        return self

    def copy(self) -> "QueryRelation":
        """Return an unfrozen deep copy."""
        clone = copy.deepcopy(self)
        clone._frozen = False
        return clone

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RelationFrozenError("Relation was already submitted and can no longer change")

    # ----- query -----

    def set_query(self, text: Optional[str]) -> None:
        self._check_mutable()
        self.query_terms = [] if text is None else [QueryTerm(None, str(text))]

    def add_query_term(self, field: Optional[str], value: Any) -> None:
        self._check_mutable()
        if field == "q":
            field = None
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            if v is None:
                continue
            self.query_terms.append(QueryTerm(field, str(v)))

    def configure_field(self, field: str, local_params: Dict[str, Any]) -> None:
        """Attach local params to query terms on `field`; the first write wins."""
        self._check_mutable()
        if field not in self.field_configs:
            self.field_configs[field] = dict(local_params)

    @property
    def query(self) -> Optional[str]:
        if not self.query_terms:
            return None
        return " AND ".join(self._render_term(t) for t in self.query_terms)

    def _render_term(self, term: QueryTerm) -> str:
        if term.field is None:
            return term.value
        if term.field in self.field_configs:
            return _local_params(self.field_configs[term.field]) + term.value
        return f"{term.field}:{param_quote(term.value)}"

    # ----- filters -----

    def add_filter(self, field: str, value: Any) -> None:
        self._check_mutable()
        self.filters.append(Filter(field, str(value)))

    def add_or_filter(self, field: str, value: Any) -> None:
        self._check_mutable()
        if not self.filters:
            self.filters.append(Filter(field, str(value)))
            return
        self.filters.append(Filter(field, str(value), conjunction="OR"))

    def match_nothing(self) -> None:
        self._check_mutable()
        self.filters.append(Filter(STAR, STAR, negated=True))

    def _filter_groups(self) -> List[List[Filter]]:
        groups: List[List[Filter]] = []
        for f in self.filters:
            if f.conjunction == "OR" and groups:
                groups[-1].append(f)
            else:
                groups.append([f])
        return groups

    @staticmethod
    def _render_filter_group(group: List[Filter]) -> str:
        head = group[0]
        if head.negated:
            return f"-{head.field}:{head.value}"
        if len(group) == 1:
            # term parser takes the value verbatim, no escaping needed
            return _local_params({"f": head.field}, parser="term") + head.value
        if all(f.field == head.field for f in group):
            joined = " OR ".join(lucene_escape(f.value) for f in group)
            return f"{head.field}:({joined})"
        return "(" + " OR ".join(f"{f.field}:{lucene_escape(f.value)}" for f in group) + ")"

    # ----- facets -----

    def add_facet_request(self, field: str, options: Optional[Dict[str, Any]] = None) -> None:
        """Request facet counts for `field`, merging options into any earlier request."""
        self._check_mutable()
        existing = self.facet_requests.setdefault(field, {})
        existing.update(options or {})

    def remove_facet_request(self, field: str) -> None:
        self._check_mutable()
        self.facet_requests.pop(field, None)

    def facet_options(self, field: str) -> Dict[str, Any]:
        return dict(self.facet_requests.get(field, {}))

    # ----- projections -----

    def add_select_field(self, field: str, options: Optional[Dict[str, Any]] = None) -> None:
        self._check_mutable()
        existing = self.selected_fields.setdefault(field, {})
        existing.update(options or {})

    def add_highlight_field(self, field: str) -> None:
        self._check_mutable()
        if field not in self.highlight_fields:
            self.highlight_fields.append(field)

    # ----- paging / sorting -----

    def set_offset(self, n: int) -> None:
        self._check_mutable()
        self.offset = max(0, int(n))

    def set_limit(self, n: int, *, clamp: bool = True) -> None:
        """Set `rows`; clamped to `max_per_page` unless `clamp` is False."""
        self._check_mutable()
        n = max(0, int(n))
        self.limit = min(n, self.max_per_page) if clamp else n

    def add_sort(self, key: str, direction: Optional[str] = None) -> None:
        """Append a sort key; without a direction the key is a raw sort expression."""
        self._check_mutable()
        self.sort.append(SortClause(key, direction))

    # ----- misc -----

    def set_request_handler(self, qt: Optional[str]) -> None:
        self._check_mutable()
        self.request_handler = qt

    def set_default_parser(self, def_type: Optional[str]) -> None:
        self._check_mutable()
        self.default_parser = def_type

    def set_endpoint(self, path: Optional[str]) -> None:
        self._check_mutable()
        self.endpoint = path

    def set_group(self, field: Optional[str]) -> None:
        self._check_mutable()
        self.group_field = field

    def set_local_parameter(self, key: str, value: Any) -> None:
        self._check_mutable()
        self.local_parameters[key] = value

    def exclude_category(self, category: str) -> None:
        """Drop every setting belonging to `category` (see CATEGORIES)."""
        self._check_mutable()
        if category not in CATEGORIES:
            raise ValueError(f"Unknown relation category: {category!r}")
        if category == "facet":
            self.facet_requests.clear()
        elif category == "group":
            self.group_field = None
        elif category == "highlight":
            self.highlight_fields.clear()
        elif category == "sort":
            self.sort.clear()
        elif category == "select":
            self.selected_fields.clear()
        prefix = {"highlight": "hl", "select": "fl"}.get(category, category)
        for key in list(self.local_parameters):
            if _belongs_to(key, prefix):
                del self.local_parameters[key]

    # ----- rendering -----

    def to_params(self) -> Params:
        """Render the relation as an ordered list of Solr (name, value) pairs."""
        params: Params = []
        q = self.query
        if q is not None:
            params.append(("q", q))
        for group in self._filter_groups():
            params.append(("fq", self._render_filter_group(group)))
        params.extend(self._facet_params())
        if self.selected_fields:
            params.append(("fl", ",".join(self.selected_fields)))
            for field, opts in self.selected_fields.items():
                for k, v in opts.items():
                    params.append((f"f.{field}.{k}", _render_value(v)))
        if self.highlight_fields:
            params.append(("hl", "true"))
            params.append(("hl.fl", ",".join(self.highlight_fields)))
        if self.sort:
            params.append(("sort", ", ".join(s.render() for s in self.sort)))
        if self.limit is not None:
            params.append(("rows", str(self.limit)))
        if self.offset is not None:
            params.append(("start", str(self.offset)))
        if self.request_handler:
            params.append(("qt", self.request_handler))
        if self.default_parser:
            params.append(("defType", self.default_parser))
        if self.group_field:
            params.append(("group", "true"))
            params.append(("group.field", self.group_field))
        for key, value in self.local_parameters.items():
            for v in _as_list(value):
                params.append((key, _render_value(v)))
        return params

    def _facet_params(self) -> Params:
        if not self.facet_requests:
            return []
        params: Params = [("facet", "true")]
        for field, opts in self.facet_requests.items():
            if field == STAR:
                for k, v in opts.items():
                    params.append((f"facet.{k}", _render_value(v)))
                continue
            prefix = "{!ex=" + str(opts["ex"]) + "}" if opts.get("ex") else ""
            if opts.get("pivot"):
                params.append(("facet.pivot", prefix + str(opts["pivot"])))
            elif opts.get("query"):
                for clause in _query_clauses(opts["query"]):
                    params.append(("facet.query", prefix + clause))
            else:
                params.append(("facet.field", prefix + field))
            for k, v in opts.items():
                if k in _FACET_STRUCTURAL or v is None:
                    continue
                params.append((f"f.{field}.facet.{k}", _render_value(v)))
        return params

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"QueryRelation({self.to_params()!r})"


def _belongs_to(key: str, prefix: str) -> bool:
    if key == prefix or key.startswith(prefix + "."):
        return True
    # per-field overrides such as f.title.facet.limit
    return key.startswith("f.") and f".{prefix}." in key


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _query_clauses(query: Any) -> Iterable[str]:
    if isinstance(query, dict):
        return [str(v.get("fq", "")) if isinstance(v, dict) else str(v) for v in query.values()]
    if isinstance(query, (list, tuple)):
        return [str(v) for v in query]
    return [str(query)]

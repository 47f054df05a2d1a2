"""Typed views over a raw Solr JSON response.

The response keeps the echoed request parameters (`responseHeader.params`)
because facet limits, offsets and sorts actually applied by Solr are read
back from there.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional


class SolrDocument(Mapping[str, Any]):
    """Read-only field -> value(s) mapping for one returned document."""

    def __init__(self, source: Dict[str, Any]) -> None:
        self._source = dict(source)

    def __getitem__(self, key: str) -> Any:
        return self._source[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._source)

    def __len__(self) -> int:
        return len(self._source)

    def first(self, key: str) -> Any:
        """Return the first value of a possibly multi-valued field."""
        value = self._source.get(key)
        if isinstance(value, list):
            return value[0] if value else None
        return value

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._source)

    def __repr__(self) -> str:
        return f"SolrDocument({self._source!r})"


@dataclass(slots=True)
class FacetItem:
    value: str
    hits: int


@dataclass(slots=True)
class FacetField:
    """Facet counts for one field plus the paging options Solr applied."""

    name: str
    items: List[FacetItem] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    sort: Optional[str] = None


@dataclass(slots=True)
class Group:
    value: Any
    total: int
    documents: List[SolrDocument] = field(default_factory=list)


@dataclass(slots=True)
class GroupResponse:
    """Grouped results for one `group.field`."""

    key: str
    matches: int = 0
    groups: List[Group] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.groups)


def _last(value: Any) -> Any:
    if isinstance(value, list):
        return value[-1] if value else None
    return value


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def _pairs(raw: Any) -> List[FacetItem]:
    # json.nl=flat (default), json.nl=map and json.nl=arrarr
    if isinstance(raw, dict):
        return [FacetItem(str(k), int(v)) for k, v in raw.items()]
    items: List[FacetItem] = []
    if raw and isinstance(raw[0], list):
        for value, hits in raw:
            items.append(FacetItem(str(value), int(hits)))
        return items
    for i in range(0, len(raw or []) - 1, 2):
        items.append(FacetItem(str(raw[i]), int(raw[i + 1])))
    return items


class SearchResponse:
    """A parsed Solr response."""

    def __init__(self, data: Dict[str, Any]) -> None:
        self.data = data
        header = data.get("responseHeader") or {}
        self.params: Dict[str, Any] = dict(header.get("params") or {})
        body = data.get("response") or {}
        self.total: int = int(body.get("numFound", 0))
        self.start: int = int(body.get("start", 0))
        self.documents: List[SolrDocument] = [SolrDocument(d) for d in body.get("docs") or []]
        counts = data.get("facet_counts") or {}
        self.facets: List[FacetField] = [
            self._facet_field(name, raw) for name, raw in (counts.get("facet_fields") or {}).items()
        ]
        self.facet_queries: Dict[str, int] = dict(counts.get("facet_queries") or {})
        self.facet_pivots: Dict[str, Any] = dict(counts.get("facet_pivot") or {})
        self.grouped: List[GroupResponse] = [
            self._group_response(key, raw) for key, raw in (data.get("grouped") or {}).items()
        ]

    def param(self, key: str) -> Any:
        """Return an echoed request parameter (last value when repeated)."""
        return _last(self.params.get(key))

    def _facet_field(self, name: str, raw: Any) -> FacetField:
        return FacetField(
            name=name,
            items=_pairs(raw),
            limit=_as_int(self.param(f"f.{name}.facet.limit") or self.param("facet.limit")),
            offset=_as_int(self.param(f"f.{name}.facet.offset") or self.param("facet.offset")),
            sort=self.param(f"f.{name}.facet.sort") or self.param("facet.sort"),
        )

    @staticmethod
    def _group_response(key: str, raw: Dict[str, Any]) -> GroupResponse:
        groups = []
        for g in raw.get("groups") or []:
            doclist = g.get("doclist") or {}
            groups.append(
                Group(
                    value=g.get("groupValue"),
                    total=int(doclist.get("numFound", 0)),
                    documents=[SolrDocument(d) for d in doclist.get("docs") or []],
                )
            )
        return GroupResponse(key=key, matches=int(raw.get("matches", 0)), groups=groups)

    @property
    def is_grouped(self) -> bool:
        return bool(self.grouped)

    def group_by(self, key: str) -> Optional[GroupResponse]:
        return next((g for g in self.grouped if g.key == key), None)

    def facet_by_field_name(self, name: str) -> Optional[FacetField]:
        return next((f for f in self.facets if f.name == name), None)

    def __iter__(self) -> Iterator[SolrDocument]:
        return iter(self.documents)

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def is_empty(self) -> bool:
        return not self.documents

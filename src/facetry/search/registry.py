"""Name -> implementation registry for query stages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from facetry.config import CatalogConfig
from facetry.engine.response import SearchResponse
from facetry.exceptions import PipelineConfigError
from facetry.query.relation import QueryRelation
from facetry.search.facets import FacetLimitResolver
from facetry.search.fields import SearchFieldResolver


@dataclass
class StageContext:
    """Everything a stage may read besides the relation and user parameters."""

    catalog: CatalogConfig
    search_fields: SearchFieldResolver
    facet_limits: FacetLimitResolver
    # Response being refined, if any; facet limits are read back from it
    prior_response: Optional[SearchResponse] = None

    @classmethod
    def for_catalog(
        cls, catalog: CatalogConfig, prior_response: Optional[SearchResponse] = None
    ) -> "StageContext":
        return cls(
            catalog=catalog,
            search_fields=SearchFieldResolver(catalog),
            facet_limits=FacetLimitResolver(catalog),
            prior_response=prior_response,
        )


StageFunc = Callable[[StageContext, QueryRelation, Mapping[str, Any]], None]


class StageRegistry:
    """Maps stage names to stage functions."""

    def __init__(self, stages: Optional[Dict[str, StageFunc]] = None) -> None:
        self._stages: Dict[str, StageFunc] = dict(stages or {})

    def register(self, name: str, func: Optional[StageFunc] = None) -> Any:
        """Register `func` under `name`; usable as a decorator when `func` is omitted."""
        if func is not None:
            self._stages[name] = func
            return func

        def decorator(f: StageFunc) -> StageFunc:
            self._stages[name] = f
            return f

        return decorator

    def get(self, name: str) -> StageFunc:
        try:
            return self._stages[name]
        except KeyError:
            raise PipelineConfigError(name) from None

    def copy(self) -> "StageRegistry":
        return StageRegistry(self._stages)

    def __contains__(self, name: object) -> bool:
        return name in self._stages

    def __iter__(self) -> Iterator[str]:
        return iter(self._stages)

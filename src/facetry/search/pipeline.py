"""Ordered, configurable list of query stages.

Stage names are resolved against a `StageRegistry` once, when the pipeline is
constructed, so a misspelled stage fails fast instead of at query time.
Integrators change behavior by registering new stages and passing a different
name list:

    registry = default_registry.copy()
    registry.register("add_spellcheck", add_spellcheck)
    pipeline = DecoratorPipeline(context, DEFAULT_STAGES + ("add_spellcheck",), registry=registry)
"""

from __future__ import annotations

from functools import partial
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

from facetry.query.relation import STAR, QueryRelation
from facetry.search.decorators import DEFAULT_STAGES, _as_list, default_registry
from facetry.search.registry import StageContext, StageRegistry

Stage = Callable[[QueryRelation, Mapping[str, Any]], None]

# Default catalog params that map onto structured relation fields
_STRUCTURED_DEFAULTS = ("rows", "start", "qt", "defType")


class DecoratorPipeline:
    """Builds a `QueryRelation` from user parameters by running stages in order."""

    def __init__(
        self,
        context: StageContext,
        stage_names: Iterable[str] = DEFAULT_STAGES,
        *,
        registry: Optional[StageRegistry] = None,
    ) -> None:
        self.context = context
        self.registry = registry or default_registry
        self.stage_names: Tuple[str, ...] = tuple(stage_names)
        self._stages: List[Tuple[str, Stage]] = [
            (name, partial(self.registry.get(name), context)) for name in self.stage_names
        ]

    def with_stages(self, stage_names: Iterable[str]) -> "DecoratorPipeline":
        """Return a pipeline over the same context and registry with another stage list."""
        return DecoratorPipeline(self.context, stage_names, registry=self.registry)

    def default_relation(self) -> QueryRelation:
        """A relation carrying only the catalog's defaults."""
        catalog = self.context.catalog
        relation = QueryRelation(max_per_page=catalog.max_per_page)
        defaults = dict(catalog.default_params)
        if defaults.get("rows") is not None:
            relation.set_limit(int(defaults["rows"]))
        if defaults.get("start") is not None:
            relation.set_offset(int(defaults["start"]))
        relation.set_request_handler(defaults.get("qt") or catalog.qt)
        relation.set_default_parser(defaults.get("defType"))
        for key, value in defaults.items():
            if key in _STRUCTURED_DEFAULTS or key == "facet":
                continue
            if key == "fl":
                for field in _as_list(value):
                    for name in str(field).split(","):
                        if name.strip():
                            relation.add_select_field(name.strip())
            elif key == "facet.field":
                for field in _as_list(value):
                    relation.add_facet_request(str(field))
            elif key.startswith("facet."):
                # global facet options, e.g. facet.limit / facet.mincount
                relation.add_facet_request(STAR, {key[len("facet.") :]: value})
            else:
                relation.set_local_parameter(key, value)
        if catalog.group:
            relation.set_group(catalog.group)
        return relation

    def apply(self, relation: QueryRelation, user_params: Mapping[str, Any]) -> QueryRelation:
        for _name, stage in self._stages:
            stage(relation, user_params)
        return relation

    def build(self, user_params: Optional[Mapping[str, Any]] = None) -> QueryRelation:
        """Run every stage against a fresh default relation."""
        return self.apply(self.default_relation(), user_params or {})

import logging
from typing import Any, Callable, Dict, Mapping

import pytest

from facetry.config import CatalogConfig
from facetry.engine.response import SearchResponse
from facetry.exceptions import PipelineConfigError
from facetry.query.relation import QueryRelation
from facetry.search.decorators import DEFAULT_STAGES, default_registry
from facetry.search.pipeline import DecoratorPipeline
from facetry.search.registry import StageContext

# ---------- Helpers ----------


def build(catalog: CatalogConfig, params: Dict[str, Any], **kwargs: Any) -> QueryRelation:
    return DecoratorPipeline(StageContext.for_catalog(catalog, **kwargs)).build(params)


def values_for(relation: QueryRelation, key: str) -> list:
    return [v for k, v in relation.to_params() if k == key]


# ---------- add_query ----------


def test_search_field_local_params_scope_the_query(catalog: CatalogConfig) -> None:
    rel = build(catalog, {"q": "history", "search_field": "title"})
    assert rel.query == "{!qf=$title_qf pf=$title_pf}history"
    assert rel.field_configs["title"] == {"qf": "$title_qf", "pf": "$title_pf"}


def test_search_field_local_params_do_not_override_existing_field_config(
    catalog: CatalogConfig,
) -> None:
    pipeline = DecoratorPipeline(StageContext.for_catalog(catalog))
    rel = pipeline.default_relation()
    rel.configure_field("title", {"qf": "custom_qf"})
    pipeline.apply(rel, {"q": "history", "search_field": "title"})
    assert rel.query == "{!qf=custom_qf}history"


def test_search_field_qt_wins_over_user_qt(catalog: CatalogConfig) -> None:
    rel = build(catalog, {"q": "twain", "search_field": "author", "qt": "mine"})
    assert rel.request_handler == "author_search"
    rel = build(catalog, {"q": "twain", "qt": "mine"})
    assert rel.request_handler == "mine"


def test_passthrough_turns_remaining_params_into_terms(catalog: CatalogConfig) -> None:
    rel = build(
        catalog,
        {
            "q": "dogs",
            "search_field": "all_fields",
            "author": "Twain",
            "page": "2",
            "sort": "year",
            "f": {"format": ["Book"]},
        },
    )
    assert rel.query == "dogs AND author:Twain"
    assert values_for(rel, "fq") == ["{!term f=format}Book"]


# ---------- add_filters ----------


def test_filters_skip_blank_values_and_keep_duplicates(catalog: CatalogConfig) -> None:
    rel = build(catalog, {"f": {"format": ["Book", "", "Book"], "language_facet": "English"}})
    assert values_for(rel, "fq") == [
        "{!term f=format}Book",
        "{!term f=format}Book",
        "{!term f=language_facet}English",
    ]


# ---------- add_facetting ----------


def test_configured_facets_request_one_extra_value(catalog: CatalogConfig) -> None:
    params = build(catalog, {}).to_params()
    assert ("f.format.facet.limit", "6") in params
    assert ("f.language_facet.facet.limit", "11") in params
    assert ("f.language_facet.facet.sort", "index") in params
    assert ("facet.field", "{!ex=subject}subject_topic_facet") in params
    assert not any(k == "f.subject_topic_facet.facet.limit" for k, _ in params)
    assert ("facet.pivot", "format,language_facet") in params
    assert not any("hidden_facet" in v or "hidden_facet" in k for k, v in params)


def test_facet_inclusion_follows_global_default(make_catalog: Callable[..., CatalogConfig]) -> None:
    included = make_catalog(facet_fields={"genre": {}}, add_facet_fields_to_solr_request=True)
    excluded = make_catalog(facet_fields={"genre": {}})
    assert values_for(build(included, {}), "facet.field") == ["genre"]
    assert values_for(build(excluded, {}), "facet.field") == []


def test_legacy_facet_params_are_merged_once(make_catalog: Callable[..., CatalogConfig]) -> None:
    cat = make_catalog(facet_fields={})
    rel = build(cat, {"facet.field": ["a", "b"], "facets": "a"})
    assert values_for(rel, "facet.field") == ["a", "b"]


def test_facet_limit_is_read_back_from_prior_response(catalog: CatalogConfig) -> None:
    prior = SearchResponse(
        {
            "responseHeader": {"params": {"f.format.facet.limit": "21"}},
            "facet_counts": {"facet_fields": {"format": ["Book", 3]}},
        }
    )
    rel = build(catalog, {}, prior_response=prior)
    assert ("f.format.facet.limit", "21") in rel.to_params()


# ---------- add_field_projections ----------


def test_field_projections_and_highlighting(catalog: CatalogConfig) -> None:
    params = build(catalog, {}).to_params()
    assert ("fl", "title_display,format") in params
    assert ("hl.fl", "title_display") in params
    assert ("f.format.hl.alternateField", "title_display") in params


# ---------- add_paging ----------


def test_per_page_and_page_compute_offset(catalog: CatalogConfig) -> None:
    rel = build(catalog, {"per_page": "5", "page": "3"})
    assert rel.limit == 5
    assert rel.offset == 10


def test_page_without_any_limit_falls_back_to_ten(
    make_catalog: Callable[..., CatalogConfig], caplog: pytest.LogCaptureFixture
) -> None:
    cat = make_catalog(per_page=[])
    with caplog.at_level(logging.WARNING, logger="facetry.search.decorators"):
        rel = build(cat, {"page": "2"})
    assert rel.limit == 10
    assert rel.offset == 10
    assert any("using 10 rows" in r.getMessage() for r in caplog.records)


def test_rows_takes_precedence_over_per_page(catalog: CatalogConfig) -> None:
    rel = build(catalog, {"rows": "7", "per_page": "5"})
    assert rel.limit == 7


def test_limits_are_clamped_to_max_per_page(make_catalog: Callable[..., CatalogConfig]) -> None:
    cat = make_catalog()
    rel = build(cat, {"per_page": "500", "page": "2"})
    assert rel.limit == 100
    assert rel.offset == 100

    big_default = make_catalog(per_page=[500])
    assert build(big_default, {}).limit == 100


def test_configured_default_page_size(catalog: CatalogConfig) -> None:
    rel = build(catalog, {})
    assert rel.limit == 10
    assert rel.offset is None


def test_page_zero_and_garbage_pages(catalog: CatalogConfig) -> None:
    assert build(catalog, {"page": "0"}).offset == 0
    assert build(catalog, {"page": "abc"}).offset is None


# ---------- add_sorting ----------


def test_sorting(catalog: CatalogConfig, make_catalog: Callable[..., CatalogConfig]) -> None:
    assert values_for(build(catalog, {}), "sort") == ["score desc, pub_date_sort desc"]
    assert values_for(build(catalog, {"sort": "year"}), "sort") == ["pub_date_sort desc"]
    assert values_for(build(catalog, {"sort": "title_sort asc"}), "sort") == ["title_sort asc"]
    blank = make_catalog(sort_fields={"none": {"sort": ""}})
    assert values_for(build(blank, {}), "sort") == []


# ---------- dedupe_group_and_facet ----------


def test_grouping_dropped_when_filtering_on_group_field(
    make_catalog: Callable[..., CatalogConfig],
) -> None:
    cat = make_catalog(group="format")
    assert values_for(build(cat, {}), "group.field") == ["format"]
    rel = build(cat, {"f": {"format": ["Book"]}})
    assert rel.group_field is None
    assert values_for(rel, "group") == []


# ---------- pipeline configuration ----------


def test_same_inputs_give_identical_params(catalog: CatalogConfig) -> None:
    params = {"q": "dogs", "f": {"format": ["Book", "Video"]}, "per_page": "20", "page": "2"}
    assert build(catalog, params).to_params() == build(catalog, dict(params)).to_params()


def test_unknown_stage_name_fails_at_construction(catalog: CatalogConfig) -> None:
    with pytest.raises(PipelineConfigError):
        DecoratorPipeline(StageContext.for_catalog(catalog), DEFAULT_STAGES + ("add_magic",))


def test_custom_stage_and_reordering(catalog: CatalogConfig) -> None:
    registry = default_registry.copy()

    @registry.register("add_spellcheck")
    def add_spellcheck(ctx: StageContext, relation: QueryRelation, params: Mapping[str, Any]) -> None:
        relation.set_local_parameter("spellcheck.q", params.get("q"))

    pipeline = DecoratorPipeline(
        StageContext.for_catalog(catalog), DEFAULT_STAGES + ("add_spellcheck",), registry=registry
    )
    rel = pipeline.build({"q": "dogs"})
    assert ("spellcheck.q", "dogs") in rel.to_params()
    assert "add_spellcheck" not in default_registry

    without_paging = pipeline.with_stages(s for s in DEFAULT_STAGES if s != "add_paging")
    assert without_paging.build({"per_page": "5"}).limit is None


def test_default_params_seed_the_relation(make_catalog: Callable[..., CatalogConfig]) -> None:
    cat = make_catalog(
        default_params={"rows": 25, "qt": "search", "facet.mincount": 1, "spellcheck": "true"},
    )
    rel = build(cat, {})
    params = rel.to_params()
    assert rel.limit == 25
    assert ("qt", "search") in params
    assert ("facet.mincount", "1") in params
    assert ("spellcheck", "true") in params


def test_default_field_list_becomes_selected_fields(make_catalog: Callable[..., CatalogConfig]) -> None:
    cat = make_catalog(default_params={"fl": "id, score"}, show_fields={}, index_fields={})
    rel = build(cat, {})
    assert list(rel.selected_fields) == ["id", "score"]
    assert values_for(rel, "fl") == ["id,score"]

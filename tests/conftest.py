from typing import Any, Callable, Dict

import pytest

from facetry.config import CatalogConfig


def _catalog_data() -> Dict[str, Any]:
    return {
        "per_page": [10, 20, 50],
        "max_per_page": 100,
        "search_fields": {
            "all_fields": {"label": "All Fields"},
            "title": {
                "label": "Title",
                "local_parameters": {"qf": "$title_qf", "pf": "$title_pf"},
            },
            "author": {
                "label": "Author",
                "local_parameters": {"qf": "$author_qf"},
                "qt": "author_search",
            },
        },
        "facet_fields": {
            "format": {"label": "Format", "limit": 5, "include_in_request": True},
            "language_facet": {"limit": True, "sort": "index", "include_in_request": True},
            "subject_topic_facet": {"ex": "subject", "include_in_request": True},
            "example_pivot_field": {
                "pivot": ["format", "language_facet"],
                "include_in_request": True,
            },
            "hidden_facet": {"limit": 3, "include_in_request": False},
        },
        "show_fields": {
            "title_display": {"include_in_request": True},
            "author_display": {},
        },
        "index_fields": {
            "title_display": {"include_in_request": True, "highlight": True},
            "format": {
                "include_in_request": True,
                "solr_params": {"hl.alternateField": "title_display"},
            },
        },
        "sort_fields": {
            "relevance": {"sort": "score desc, pub_date_sort desc", "default": True},
            "year": {"sort": "pub_date_sort desc"},
        },
    }


@pytest.fixture
def make_catalog() -> Callable[..., CatalogConfig]:
    """Build a catalog configuration, overriding top-level keys as needed."""

    def _make(**overrides: Any) -> CatalogConfig:
        data = _catalog_data()
        data.update(overrides)
        return CatalogConfig(**data)

    return _make


@pytest.fixture
def catalog(make_catalog: Callable[..., CatalogConfig]) -> CatalogConfig:
    return make_catalog()

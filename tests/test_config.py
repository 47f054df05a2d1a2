import pytest

from facetry.config import CatalogConfig, Settings
from facetry.exceptions import ConfigurationGap


def test_settings_read_nested_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FACETRY_SOLR__URL", "http://solr.internal:8983/solr/books")
    monkeypatch.setenv("FACETRY_APP__LOG_LEVEL", "debug")
    monkeypatch.setenv("FACETRY_CATALOG__PER_PAGE", "[5, 25]")
    monkeypatch.setenv("FACETRY_CATALOG__FACET_FIELDS", '{"format": {"limit": 7}}')

    settings = Settings(_env_file=None)  # type: ignore[call-arg]

    assert settings.solr.url == "http://solr.internal:8983/solr/books"
    assert settings.app.log_level == "debug"
    assert settings.catalog.default_per_page == 5
    assert settings.catalog.facet_field("format").limit == 7


def test_entries_default_key_and_field_to_mapping_key() -> None:
    catalog = CatalogConfig(
        search_fields={"title": {}, "subject": {"field": "subject_t"}},
        facet_fields={"format": {}},
        sort_fields={"year": {"sort": "pub_date_sort desc"}},
    )
    assert catalog.search_field("title").key == "title"
    assert catalog.search_field("title").field == "title"
    assert catalog.search_field("subject").field == "subject_t"
    assert catalog.facet_field("format").field == "format"
    assert catalog.sort_fields["year"].key == "year"


def test_unknown_keys_raise_configuration_gap() -> None:
    catalog = CatalogConfig()
    with pytest.raises(ConfigurationGap) as excinfo:
        catalog.facet_field("nope")
    assert excinfo.value.kind == "facet field"
    with pytest.raises(ConfigurationGap):
        catalog.search_field(None)


def test_default_sort_field() -> None:
    catalog = CatalogConfig(
        sort_fields={
            "year": {"sort": "pub_date_sort desc"},
            "title": {"sort": "title_sort asc", "default": True},
        }
    )
    assert catalog.default_sort_field is not None
    assert catalog.default_sort_field.key == "title"
    assert CatalogConfig(sort_fields={"year": {"sort": "x"}}).default_sort_field.key == "year"
    assert CatalogConfig().default_sort_field is None

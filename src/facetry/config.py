from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from facetry.exceptions import ConfigurationGap


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "Facetry"
    env: str = "development"
    log_level: str = "INFO"
    # Log raw Solr responses at DEBUG level
    verbose_logging: bool = False
    # Transport settings for FastMCP: "stdio" (default), "http", or "sse"
    transport: Literal["stdio", "http", "sse"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


class SolrConfig(BaseModel):
    """Search engine connection values."""

    url: str = "http://127.0.0.1:8983/solr/blacklight-core"
    timeout: float = 30.0
    verify_ssl: bool = True
    username: Optional[str] = None
    password: Optional[str] = None


class SearchFieldConfig(BaseModel):
    """A user-selectable search field, e.g. "title" or "all_fields"."""

    key: str = ""
    label: Optional[str] = None
    # Target field (or synonym group) the local parameters are configured on
    field: Optional[str] = None
    # Query parser local params, e.g. {"qf": "$title_qf", "pf": "$title_pf"}
    local_parameters: Optional[Dict[str, str]] = None
    qt: Optional[str] = None


class FacetFieldConfig(BaseModel):
    """Facet field configuration."""

    key: str = ""
    field: Optional[str] = None
    label: Optional[str] = None
    # True means "use the default facet limit"
    limit: Union[bool, int, None] = None
    sort: Optional[str] = None
    pivot: Optional[List[str]] = None
    # Ad-hoc facet queries, keyed by value label
    query: Optional[Dict[str, str]] = None
    ex: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    include_in_request: Optional[bool] = None


class DisplayFieldConfig(BaseModel):
    """Show/index page field configuration."""

    key: str = ""
    field: Optional[str] = None
    label: Optional[str] = None
    highlight: bool = False
    include_in_request: Optional[bool] = None
    # Per-field engine options, sent as f.<field>.<name>
    solr_params: Optional[Dict[str, Any]] = None


class SortFieldConfig(BaseModel):
    """Named sort option, e.g. "relevance" -> "score desc, pub_date_sort desc"."""

    key: str = ""
    label: Optional[str] = None
    sort: str = ""
    default: bool = False


class CatalogConfig(BaseModel):
    """Search behavior for one catalog: fields, facets, sorting and paging."""

    unique_key: str = "id"
    solr_path: str = "select"
    document_solr_path: Optional[str] = None
    # Default request handler (qt); None leaves it to the Solr path
    qt: Optional[str] = None
    document_request_handler: str = "document"
    # Sent with every search before any user input is applied
    default_params: Dict[str, Any] = {}

    per_page: List[int] = [10, 20, 50, 100]
    max_per_page: int = 100
    facet_list_limit: Optional[int] = None

    search_fields: Dict[str, SearchFieldConfig] = {}
    facet_fields: Dict[str, FacetFieldConfig] = {}
    show_fields: Dict[str, DisplayFieldConfig] = {}
    index_fields: Dict[str, DisplayFieldConfig] = {}
    sort_fields: Dict[str, SortFieldConfig] = {}

    add_facet_fields_to_solr_request: bool = False
    add_field_configuration_to_solr_request: bool = False

    # Field the results are grouped on, when grouping is enabled
    group: Optional[str] = None
    opensearch_title_field: Optional[str] = None

    @model_validator(mode="after")
    def _fill_keys(self) -> "CatalogConfig":
        # Entries default their key and field to the mapping key
        for table in (self.search_fields, self.facet_fields, self.show_fields, self.index_fields):
            for name, entry in table.items():
                entry.key = entry.key or name
                if getattr(entry, "field", None) is None:
                    entry.field = name
        for name, entry in self.sort_fields.items():
            entry.key = entry.key or name
        return self

    def search_field(self, key: Optional[str]) -> SearchFieldConfig:
        if key is None or key not in self.search_fields:
            raise ConfigurationGap("search field", key)
        return self.search_fields[key]

    def facet_field(self, key: Optional[str]) -> FacetFieldConfig:
        if key is None or key not in self.facet_fields:
            raise ConfigurationGap("facet field", key)
        return self.facet_fields[key]

    @property
    def default_sort_field(self) -> Optional[SortFieldConfig]:
        for entry in self.sort_fields.values():
            if entry.default:
                return entry
        return next(iter(self.sort_fields.values()), None)

    @property
    def default_per_page(self) -> Optional[int]:
        return self.per_page[0] if self.per_page else None


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="FACETRY_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    solr: SolrConfig = SolrConfig()
    catalog: CatalogConfig = CatalogConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    return Settings()  # type: ignore[call-arg]

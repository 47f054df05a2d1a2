"""Custom exception hierarchy for Facetry.

These exceptions allow callers to discriminate error categories
and handle them appropriately while preserving the original context.
"""

from __future__ import annotations

from typing import Optional


class FacetryError(Exception):
    """Base class for all Facetry exceptions."""


class ConfigurationGap(FacetryError):
    """Raised when a search-field or facet-field key has no configuration.

    Lookups that can fall back to default behavior catch this locally.
    """

    def __init__(self, kind: str, key: Optional[str]) -> None:
        super().__init__(f"No {kind} configured for key {key!r}")
        self.kind = kind
        self.key = key


class PipelineConfigError(FacetryError):
    """Raised when a configured pipeline stage name has no implementation."""

    def __init__(self, name: str) -> None:
        super().__init__(f"No query stage registered under the name {name!r}")
        self.name = name


class RelationFrozenError(FacetryError):
    """Raised when a relation is mutated after it was submitted for execution."""


class SearchEngineUnavailable(FacetryError):
    """Raised when the search engine cannot be reached."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Unable to connect to Solr instance at {url}")
        self.url = url


class DocumentNotFound(FacetryError):
    """Raised when a lookup by document id returns no documents."""

    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document not found: {document_id!r}")
        self.document_id = document_id

"""Facetry MCP server entrypoint using FastMCP.

Exposes catalog search tools built atop the Solr search service.
Run with:
  - poetry run facetry-mcp
  - or: python -m facetry.mcp.server (ensure PYTHONPATH includes ./src)
"""
from __future__ import annotations

import logging
from typing import Optional

from fastmcp import FastMCP

from facetry.config import Settings, load_settings
from facetry.engine.connection import SolrConnection
from facetry.engine.executor import Executor
from facetry.mcp.tools import register_catalog_tools
from facetry.search.service import SearchService


class AppState:
    """Application state shared by MCP tools."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.connection: Optional[SolrConnection] = None
        self.search: Optional[SearchService] = None

    def init_search(self) -> None:
        """Create the Solr connection and search service from configuration."""
        if self.settings.solr.url:
            self.connection = SolrConnection.from_config(self.settings.solr)
            executor = Executor(
                self.connection,
                default_path=self.settings.catalog.solr_path,
                verbose=self.settings.app.verbose_logging,
            )
            self.search = SearchService(self.settings.catalog, executor)
        else:
            self.connection = None
            self.search = None

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()


# Global state and server instance
_state: Optional[AppState] = None
mcp = FastMCP("Facetry MCP Server")


# ----- Tools -----

@mcp.tool
def health() -> str:
    """Simple health check tool."""
    return "ok"


# ----- Entrypoint -----

def main() -> None:
    """Initialize state and run the MCP server."""
    global _state
    settings = load_settings()
    logging.basicConfig(
        level=settings.app.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _state = AppState(settings)
    _state.init_search()
    # Register tools
    register_catalog_tools(mcp, get_state=lambda: _state)
    # Choose transport based on configuration: stdio (default), http, or sse
    transport = settings.app.transport
    try:
        if transport in ("http", "sse"):
            mcp.run(transport=transport, host=settings.app.host, port=settings.app.port)
        else:
            mcp.run()
    finally:
        _state.close()


if __name__ == "__main__":  # pragma: no cover
    main()

"""Tool registration modules for the Facetry MCP server."""

from .catalog import register_catalog_tools

__all__ = [
    "register_catalog_tools",
]

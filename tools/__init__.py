"""MCP tool servers for firmware base-address recovery."""

from .pointer_extractor import mcp as pointer_mcp
from .string_extractor import mcp as string_mcp
from .base_address_search import mcp as base_address_mcp

__all__ = [
    "pointer_mcp",
    "string_mcp",
    "base_address_mcp",
]

"""
String Extractor MCP Server
───────────────────────────
Collects C strings from a flat firmware image:
  • printable ASCII runs (0x20 – 0x7E) that end on a NUL byte
  • at least ``min_length`` characters long
  • keyed by the file offset of their first character
A printable run interrupted by any other byte is discarded, and a run that
is still open when the image ends is dropped as well: there is no implicit
terminator at end of buffer.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from fastmcp import FastMCP

from core.config import DEFAULT_MIN_STRING_LENGTH, SearchConfig
from core.models import StringTable
from core.utils import load_image

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# MCP server
# ---------------------------------------------------------------------------

mcp = FastMCP("string-extractor")

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

# Each maximal printable run is matched exactly once; whether it is kept
# depends on its length and on the byte right after it.
_PRINTABLE_RE = re.compile(rb"[\x20-\x7E]+")


def extract_strings(
    data: bytes,
    min_length: int = DEFAULT_MIN_STRING_LENGTH,
) -> StringTable:
    """Return every NUL-terminated printable run of *min_length* or more bytes."""
    if min_length < 1:
        raise ValueError(f"min_length must be >= 1, got {min_length}")

    entries = {
        m.start(): m.group()
        for m in _PRINTABLE_RE.finditer(data)
        if m.end() - m.start() >= min_length and data[m.end():m.end() + 1] == b"\x00"
    }

    logger.debug("Number of strings: %d", len(entries))
    return StringTable(entries=entries, min_length=min_length)


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


def scan_strings_impl(file_path: str) -> dict[str, Any]:
    """Build the string table for a firmware file (plain callable)."""
    config = SearchConfig.from_env()
    image = load_image(file_path)
    table = extract_strings(image.data, config.min_string_length)
    return {"image": image.to_dict(), "strings": table.to_dict()}


@mcp.tool()
def scan_strings(file_path: str) -> dict[str, Any]:
    """List the NUL-terminated ASCII strings of a raw firmware image.

    Returns the number of strings found and the first few, each with its
    file offset.
    """
    return scan_strings_impl(file_path)


# ---------------------------------------------------------------------------
# Standalone
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run()

"""
Pointer Extractor MCP Server
────────────────────────────
Treats every aligned 32-bit word of a flat firmware image as a candidate
absolute pointer and counts how often each value occurs:
  • words are read back to back from offset 0, never overlapping
  • the trailing 1-3 bytes that do not fill a word are ignored
  • byte order is little-endian unless configured otherwise
"""

from __future__ import annotations

import logging
import struct
from collections import Counter
from typing import Any

from fastmcp import FastMCP

from core.config import SearchConfig
from core.models import Endianness, PointerTable
from core.utils import load_image

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# MCP server
# ---------------------------------------------------------------------------

mcp = FastMCP("pointer-extractor")

WORD_SIZE = 4

# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def extract_pointers(
    data: bytes,
    endianness: Endianness | str = Endianness.LITTLE,
) -> PointerTable:
    """Count every non-overlapping 4-byte word in *data*."""
    endianness = Endianness(endianness)
    word_count = len(data) // WORD_SIZE
    words = memoryview(data)[: word_count * WORD_SIZE]
    fmt = endianness.struct_prefix + "I"

    counts = Counter(value for (value,) in struct.iter_unpack(fmt, words))

    logger.debug("Number of pointers: %d (%d words)", len(counts), word_count)
    return PointerTable(counts=dict(counts), word_count=word_count, endianness=endianness)


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


def scan_pointers_impl(file_path: str) -> dict[str, Any]:
    """Build the pointer table for a firmware file (plain callable)."""
    config = SearchConfig.from_env()
    image = load_image(file_path)
    table = extract_pointers(image.data, config.endianness)
    return {"image": image.to_dict(), "pointers": table.to_dict()}


@mcp.tool()
def scan_pointers(file_path: str) -> dict[str, Any]:
    """Count every aligned 32-bit word in a raw firmware image.

    Returns the number of words, the number of distinct values and the
    most frequent values (likely pointer targets or padding).
    """
    return scan_pointers_impl(file_path)


# ---------------------------------------------------------------------------
# Standalone
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run()

from __future__ import annotations

"""
Orchestrator Agent
──────────────────
Hands a firmware image to an LLM that calls the base-address tools via
Agno's tool-use mechanism and explains the ranked candidates to a human
operator.
"""

import json
import os
from agno.agent import Agent

# ---------------------------------------------------------------------------
# Import the *underlying* tool functions.
# @mcp.tool() wraps them in objects Agno cannot build a tool schema from,
# so they are re-exposed below as plain, typed functions.
# ---------------------------------------------------------------------------

from tools.pointer_extractor import scan_pointers_impl as _scan_pointers
from tools.string_extractor import scan_strings_impl as _scan_strings
from tools.base_address_search import find_base_address_impl as _find_base_address

# ---------------------------------------------------------------------------
# Plain wrapper functions with explicit signatures for Agno
# ---------------------------------------------------------------------------


def scan_pointers(file_path: str) -> str:
    """Count every aligned 32-bit word in a raw firmware image.

    Returns JSON with the word count, the number of distinct values and
    the most frequent values.
    """
    return json.dumps(_scan_pointers(file_path=file_path), indent=2)


def scan_strings(file_path: str) -> str:
    """List the NUL-terminated ASCII strings of a raw firmware image.

    Returns JSON with the string count and the first strings with their
    file offsets.
    """
    return json.dumps(_scan_strings(file_path=file_path), indent=2)


def find_base_address(file_path: str) -> str:
    """Rank load base address candidates for a raw firmware image.

    Returns JSON with the best candidates (address, match count, five by default),
    table sizes and warnings about the input.
    """
    return json.dumps(_find_base_address(file_path=file_path), indent=2)


# ---------------------------------------------------------------------------
# System prompt
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """\
You are an embedded reverse engineer. You have access to real firmware
analysis tools that you MUST call to inspect files.  NEVER fabricate, guess,
or simulate tool outputs.

## CRITICAL RULES
- You MUST actually call each tool function; do NOT simulate or guess results.
- ONLY report addresses and counts that appear in the real tool output.
- If every candidate has zero matches, say that no base address was recovered.
- The ranking is statistical; do not claim a candidate is correct.

## Workflow
1. Call `find_base_address(file_path)` to get the ranked candidates.
2. Call `scan_strings(file_path)` and `scan_pointers(file_path)` if you
   need to explain why the ranking looks the way it does.
3. Produce a short report based EXCLUSIVELY on tool results:
   - Most likely base address and how far ahead of the runner-up it is
   - Warnings raised by the tools
   - Suggested disassembler load address and next steps
"""

# ---------------------------------------------------------------------------
# Gemini model import
# ---------------------------------------------------------------------------

GeminiChat = None
try:
    from agno.models.google import Gemini as GeminiChat
except ImportError:
    try:
        from agno.models.google import GoogleChat as GeminiChat
    except ImportError:
        pass


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def create_orchestrator() -> Agent:
    """Return a Gemini-only Agno orchestrator."""

    if GeminiChat is None:
        raise RuntimeError(
            "Gemini model integration not installed. "
            "Install with: pip install 'agno[google]'"
        )

    google_key = os.getenv("GOOGLE_API_KEY")
    if not google_key:
        raise RuntimeError("GOOGLE_API_KEY environment variable not set.")

    model = GeminiChat(
        id="gemini-2.5-flash",
        api_key=google_key,
    )

    return Agent(
        name="firmware-base-address-orchestrator",
        model=model,
        instructions=SYSTEM_PROMPT,
        tools=[
            find_base_address,
            scan_strings,
            scan_pointers,
        ],
        markdown=True,
    )

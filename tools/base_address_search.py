"""
Base Address Finder MCP Server
──────────────────────────────
Correlates the pointer table with the string table to rank load-address
guesses for a raw firmware image:
  • every candidate base in ``range(0, ceiling, step)`` is scored
  • a candidate's score is the number of pointer occurrences equal to
    ``string_offset + candidate``, counted with multiplicity
  • only the ``top_k`` best candidates are retained (bounded min-heap)

The result is a best-effort ranking; nothing here checks that a candidate
is plausible for the target architecture.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from typing import Any, Iterable

from fastmcp import FastMCP

from core.config import (
    DEFAULT_SEARCH_CEILING,
    DEFAULT_SEARCH_STEP,
    DEFAULT_TOP_K,
    SearchConfig,
)
from core.models import (
    BaseAddressReport,
    Candidate,
    FirmwareImage,
    ImageFormat,
    PointerTable,
    StringTable,
)
from core.utils import load_image
from tools.pointer_extractor import extract_pointers
from tools.string_extractor import extract_strings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# MCP server
# ---------------------------------------------------------------------------

mcp = FastMCP("base-address-finder")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

U32_MAX = 0xFFFF_FFFF
HIGH_ENTROPY_THRESHOLD = 7.5  # packed / encrypted images rarely correlate

# ---------------------------------------------------------------------------
# Top-K retention
# ---------------------------------------------------------------------------


class TopKCandidates:
    """Fixed-capacity min-heap of the best-scoring candidates seen so far.

    Once full, a new candidate only evicts the current minimum when its
    score is strictly greater, so among equal scores the one offered first
    is kept. That tie-break carries no meaning.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._heap: list[tuple[int, int]] = []  # (matches, address)

    def __len__(self) -> int:
        return len(self._heap)

    def offer(self, candidate: Candidate) -> bool:
        """Insert *candidate* if it belongs in the top K. Returns True if kept."""
        item = (candidate.matches, candidate.address)
        if len(self._heap) < self.capacity:
            heapq.heappush(self._heap, item)
            return True
        if candidate.matches > self._heap[0][0]:
            heapq.heapreplace(self._heap, item)
            return True
        return False

    def lowest(self) -> Candidate | None:
        if not self._heap:
            return None
        matches, address = self._heap[0]
        return Candidate(address=address, matches=matches)

    def ranked(self) -> list[Candidate]:
        """Retained candidates, highest score first."""
        ordered = sorted(self._heap, key=lambda item: (-item[0], item[1]))
        return [Candidate(address=a, matches=m) for m, a in ordered]


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def candidate_addresses(ceiling: int, step: int) -> range:
    return range(0, ceiling, step)


def score_candidate(pointers: PointerTable, strings: StringTable, address: int) -> int:
    """Pointer occurrences that hit a string once the image is based at *address*."""
    max_offset = U32_MAX - address
    score = 0
    for offset in strings.offsets():
        if offset > max_offset:
            continue
        score += pointers.get((offset + address) & U32_MAX)
    return score


def prefer_direct_scoring(pointer_count: int, candidate_count: int, step: int) -> bool:
    """True when per-candidate lookups cost no more than the residue buckets.

    Direct scoring visits ``candidates * strings`` entries; bucketing visits
    about ``pointers / min(step, pointers)`` entries per string.
    """
    if pointer_count == 0:
        return False
    return candidate_count * min(step, pointer_count) <= pointer_count


def correlate(
    pointers: PointerTable,
    strings: StringTable,
    ceiling: int,
    step: int,
) -> dict[int, int]:
    """Score every candidate in ``range(0, ceiling, step)`` in one pass.

    Gives the same numbers as calling :func:`score_candidate` for each
    candidate, without touching every (candidate, string) pair: a pointer
    ``p`` can only hit string ``o`` at base ``p - o``, and that base is a
    multiple of *step* only when ``p`` and ``o`` agree modulo *step*.
    Candidates that score nothing are absent from the result.

    When the candidate range is small next to the buckets a string would
    visit, each candidate is scored directly instead.
    """
    candidates = candidate_addresses(ceiling, step)
    if prefer_direct_scoring(len(pointers), len(candidates), step):
        scores = (
            (address, score_candidate(pointers, strings, address))
            for address in candidates
        )
        return {address: score for address, score in scores if score}

    buckets: dict[int, list[tuple[int, int]]] = defaultdict(list)
    for value, count in pointers.items():
        buckets[value % step].append((value, count))

    scores: dict[int, int] = defaultdict(int)
    for offset in strings.offsets():
        for value, count in buckets.get(offset % step, ()):
            base = value - offset
            if 0 <= base < ceiling:
                scores[base] += count
    return dict(scores)


def rank(scored: Iterable[Candidate], top_k: int) -> list[Candidate]:
    """Keep the *top_k* best of *scored* and return them best first."""
    retained = TopKCandidates(top_k)
    for candidate in scored:
        retained.offer(candidate)
    return retained.ranked()


def search(
    pointers: PointerTable,
    strings: StringTable,
    ceiling: int = DEFAULT_SEARCH_CEILING,
    step: int = DEFAULT_SEARCH_STEP,
    top_k: int = DEFAULT_TOP_K,
) -> list[Candidate]:
    """Rank base-address candidates by pointer/string correlation.

    Every candidate in ``range(0, ceiling, step)`` is offered to the top-K
    structure in ascending order, including those that score zero.
    """
    if step < 1:
        raise ValueError(f"step must be >= 1, got {step}")
    scores = correlate(pointers, strings, ceiling, step)
    return rank(
        (
            Candidate(address=address, matches=scores.get(address, 0))
            for address in candidate_addresses(ceiling, step)
        ),
        top_k,
    )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


def run_analysis(image: FirmwareImage, config: SearchConfig | None = None) -> BaseAddressReport:
    """load -> pointers -> strings -> search, returned as a structured report."""
    config = config or SearchConfig()
    report = BaseAddressReport(image=image, config=config.to_dict())

    pointers = extract_pointers(image.data, config.endianness)
    report.pointer_count = len(pointers)

    strings = extract_strings(image.data, config.min_string_length)
    report.string_count = len(strings)

    logger.debug(
        "Searching %d candidates against %d strings",
        config.candidate_count, len(strings),
    )
    report.candidates = search(
        pointers,
        strings,
        ceiling=config.search_ceiling,
        step=config.search_step,
        top_k=config.top_k,
    )

    _check_inputs(report)
    return report


def _check_inputs(report: BaseAddressReport) -> None:
    image = report.image
    if image.format != ImageFormat.RAW:
        hint = (
            f" (header declares 0x{image.declared_base:08X})"
            if image.declared_base is not None else ""
        )
        report.warn(f"Input looks like a {image.format.value} file, not a raw dump{hint}.")
    if image.entropy >= HIGH_ENTROPY_THRESHOLD:
        report.warn(
            f"Image entropy is {image.entropy:.2f}; it is probably compressed "
            f"or encrypted and the ranking is unreliable."
        )
    if report.string_count == 0:
        report.warn("No null-terminated strings found; every candidate scores 0.")
    elif report.best is not None and report.best.matches == 0:
        report.warn("No pointer matched any string at any candidate base.")


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


def find_base_address_impl(file_path: str) -> dict[str, Any]:
    """Rank base-address candidates for a firmware file (plain callable)."""
    config = SearchConfig.from_env()
    image = load_image(file_path)
    return run_analysis(image, config).to_dict()


@mcp.tool()
def find_base_address(file_path: str) -> dict[str, Any]:
    """Guess the load base address of a raw firmware image.

    Returns the ranked candidates (address and match count), the size of
    the pointer and string tables, and warnings about the input.
    """
    return find_base_address_impl(file_path)


# ---------------------------------------------------------------------------
# Standalone
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run()

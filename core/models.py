"""Shared data models used across the extraction stages, the search and the MCP tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ImageFormat(str, Enum):
    RAW = "RAW"
    PE = "PE"
    ELF = "ELF"


class Endianness(str, Enum):
    LITTLE = "little"
    BIG = "big"

    @property
    def struct_prefix(self) -> str:
        return "<" if self is Endianness.LITTLE else ">"


# ---------------------------------------------------------------------------
# Image
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FirmwareImage:
    """A firmware file held entirely in memory. ``data`` is never mutated."""

    path: str
    size: int
    data: bytes = field(repr=False)
    format: ImageFormat = ImageFormat.RAW
    md5: str = ""
    sha256: str = ""
    entropy: float = 0.0
    declared_base: int | None = None  # only for PE / ELF inputs

    def __len__(self) -> int:
        return len(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "size": self.size,
            "buffer_size": len(self.data),
            "format": self.format.value,
            "md5": self.md5,
            "sha256": self.sha256,
            "entropy": round(self.entropy, 3),
            "declared_base": (
                f"0x{self.declared_base:08X}" if self.declared_base is not None else None
            ),
        }


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

@dataclass
class PointerTable:
    """Occurrence count of every aligned 32-bit word value in an image."""

    counts: dict[int, int] = field(default_factory=dict)
    word_count: int = 0
    endianness: Endianness = Endianness.LITTLE

    def __len__(self) -> int:
        return len(self.counts)

    def __contains__(self, value: int) -> bool:
        return value in self.counts

    def get(self, value: int) -> int:
        return self.counts.get(value, 0)

    def items(self):
        return self.counts.items()

    def total(self) -> int:
        return sum(self.counts.values())

    def most_common(self, n: int = 10) -> list[tuple[int, int]]:
        return sorted(self.counts.items(), key=lambda kv: (-kv[1], kv[0]))[:n]

    def to_dict(self, sample: int = 10) -> dict[str, Any]:
        return {
            "endianness": self.endianness.value,
            "word_count": self.word_count,
            "distinct_values": len(self.counts),
            "most_common": [
                {"value": f"0x{v:08X}", "count": c} for v, c in self.most_common(sample)
            ],
        }


@dataclass
class StringTable:
    """Null-terminated printable runs keyed by their file offset."""

    entries: dict[int, bytes] = field(default_factory=dict)
    min_length: int = 6

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, offset: int) -> bool:
        return offset in self.entries

    def __getitem__(self, offset: int) -> bytes:
        return self.entries[offset]

    def offsets(self) -> Iterator[int]:
        return iter(self.entries)

    def items(self):
        return self.entries.items()

    def to_dict(self, sample: int = 10) -> dict[str, Any]:
        first = sorted(self.entries.items())[:sample]
        return {
            "min_length": self.min_length,
            "count": len(self.entries),
            "first": [
                {"offset": f"0x{o:08X}", "text": s.decode("ascii")} for o, s in first
            ],
        }


# ---------------------------------------------------------------------------
# Search results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Candidate:
    """A base-address guess and the number of pointer hits supporting it."""

    address: int
    matches: int

    def to_dict(self) -> dict[str, Any]:
        return {"address": f"0x{self.address:08X}", "matches": self.matches}


@dataclass
class BaseAddressReport:
    """Aggregated output of one analysis run."""

    image: FirmwareImage
    config: dict[str, Any]
    pointer_count: int = 0
    string_count: int = 0
    candidates: list[Candidate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    # convenience ----------------------------------------------------------

    @property
    def best(self) -> Candidate | None:
        return self.candidates[0] if self.candidates else None

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "image": self.image.to_dict(),
            "config": dict(self.config),
            "pointer_count": self.pointer_count,
            "string_count": self.string_count,
            "candidates": [c.to_dict() for c in self.candidates],
            "warnings": list(self.warnings),
        }

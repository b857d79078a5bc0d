"""Utility helpers: image loading, format detection, hashing, entropy."""

from __future__ import annotations

import hashlib
import logging
import math
from io import BytesIO
from pathlib import Path
from collections import Counter

from .models import FirmwareImage, ImageFormat

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_IMAGE_SIZE = 100_000_000  # bytes

PE_MAGIC = b"MZ"
ELF_MAGIC = b"\x7fELF"


class AllocationError(MemoryError):
    """Raised when an image is too large to be held in memory."""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_file(path: str) -> Path:
    """Ensure *path* exists, is a regular file, and is within the size limit.

    Returns the resolved ``Path`` on success. Raises ``FileNotFoundError``,
    ``ValueError`` for anything that is not a regular file, and
    ``AllocationError`` when the file exceeds ``MAX_IMAGE_SIZE``.
    """
    p = Path(path).resolve()
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    if not p.is_file():
        raise ValueError(f"Not a regular file: {p}")
    size = p.stat().st_size
    if size > MAX_IMAGE_SIZE:
        raise AllocationError(
            f"File too large ({size} bytes). Limit is {MAX_IMAGE_SIZE} bytes."
        )
    return p


def detect_format(data: bytes) -> ImageFormat:
    """Detect container format from magic bytes; anything else is a raw dump."""
    if data[:2] == PE_MAGIC:
        return ImageFormat.PE
    if data[:4] == ELF_MAGIC:
        return ImageFormat.ELF
    return ImageFormat.RAW


def compute_hashes(data: bytes) -> tuple[str, str]:
    """Return (md5, sha256) hex digests."""
    return (
        hashlib.md5(data).hexdigest(),
        hashlib.sha256(data).hexdigest(),
    )


def shannon_entropy(data: bytes) -> float:
    """Calculate Shannon entropy of *data* (0.0 – 8.0 for byte data)."""
    if not data:
        return 0.0
    counts = Counter(data)
    length = len(data)
    return -sum(
        (c / length) * math.log2(c / length)
        for c in counts.values()
        if c
    )


def load_image(path: str) -> FirmwareImage:
    """Read a firmware image from disk and return a populated ``FirmwareImage``.

    The whole file is read in one go. Errors are not recovered here:
    ``FileNotFoundError``, ``PermissionError`` and ``AllocationError``
    reach the caller unchanged.
    """
    p = validate_file(path)
    size = p.stat().st_size
    with p.open("rb") as f:
        data = f.read(MAX_IMAGE_SIZE + 1)
    if len(data) > MAX_IMAGE_SIZE:
        # grew between stat() and read()
        raise AllocationError(
            f"File too large (> {MAX_IMAGE_SIZE} bytes). Limit is {MAX_IMAGE_SIZE} bytes."
        )

    fmt = detect_format(data)
    md5, sha256 = compute_hashes(data)
    image = FirmwareImage(
        path=str(p),
        size=size,
        data=data,
        format=fmt,
        md5=md5,
        sha256=sha256,
        entropy=shannon_entropy(data),
        declared_base=declared_base(data, fmt),
    )
    logger.debug("Loaded %s (%d bytes, %s)", image.path, len(data), fmt.value)
    return image


def declared_base(data: bytes, fmt: ImageFormat) -> int | None:
    """Return the load address a PE / ELF header declares, if it parses."""
    if fmt == ImageFormat.PE:
        return _pe_image_base(data)
    if fmt == ImageFormat.ELF:
        return _elf_load_base(data)
    return None


# ---------------------------------------------------------------------------
# Format-specific parsers (private)
# ---------------------------------------------------------------------------


def _pe_image_base(data: bytes) -> int | None:
    try:
        import pefile

        pe = pefile.PE(data=data, fast_load=True)
        base = pe.OPTIONAL_HEADER.ImageBase
        pe.close()
        return base
    except Exception as exc:
        # "MZ" is a common accident in raw dumps
        logger.debug("PE header did not parse: %s", exc)
        return None


def _elf_load_base(data: bytes) -> int | None:
    try:
        from elftools.elf.elffile import ELFFile

        elf = ELFFile(BytesIO(data))
        loads = [
            seg["p_vaddr"]
            for seg in elf.iter_segments()
            if seg["p_type"] == "PT_LOAD"
        ]
        return min(loads) if loads else None
    except Exception as exc:
        logger.debug("ELF header did not parse: %s", exc)
        return None

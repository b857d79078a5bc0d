"""Core data models, configuration and loading helpers for base-address recovery."""

from .models import (
    BaseAddressReport,
    Candidate,
    Endianness,
    FirmwareImage,
    ImageFormat,
    PointerTable,
    StringTable,
)
from .config import SearchConfig
from .utils import AllocationError, load_image, detect_format, compute_hashes, validate_file

__all__ = [
    "BaseAddressReport",
    "Candidate",
    "Endianness",
    "FirmwareImage",
    "ImageFormat",
    "PointerTable",
    "StringTable",
    "SearchConfig",
    "AllocationError",
    "load_image",
    "detect_format",
    "compute_hashes",
    "validate_file",
]

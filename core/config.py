"""Search parameters, read from the environment the same way ``DEBUG`` is."""

from __future__ import annotations

import os
from dataclasses import dataclass, asdict
from typing import Any, Mapping

from .models import Endianness

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_MIN_STRING_LENGTH = 6
DEFAULT_SEARCH_CEILING = 0xFFFF_0000
DEFAULT_SEARCH_STEP = 0x10_000
DEFAULT_TOP_K = 5

ADDRESS_SPACE = 1 << 32

ENV_PREFIX = "BASEFIND_"


@dataclass(frozen=True)
class SearchConfig:
    min_string_length: int = DEFAULT_MIN_STRING_LENGTH
    search_ceiling: int = DEFAULT_SEARCH_CEILING
    search_step: int = DEFAULT_SEARCH_STEP
    top_k: int = DEFAULT_TOP_K
    endianness: Endianness = Endianness.LITTLE

    def __post_init__(self) -> None:
        if self.min_string_length < 1:
            raise ValueError(
                f"min_string_length must be >= 1, got {self.min_string_length}"
            )
        if self.search_step < 1:
            raise ValueError(f"search_step must be >= 1, got {self.search_step}")
        if not 0 <= self.search_ceiling <= ADDRESS_SPACE:
            raise ValueError(
                f"search_ceiling must be within [0, 0x{ADDRESS_SPACE:X}], "
                f"got 0x{self.search_ceiling:X}"
            )
        if self.top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {self.top_k}")
        # accept plain strings for endianness
        object.__setattr__(self, "endianness", Endianness(self.endianness))

    @property
    def candidate_count(self) -> int:
        return len(range(0, self.search_ceiling, self.search_step))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SearchConfig:
        """Build a config from ``BASEFIND_*`` variables, falling back to defaults.

        Integer values may be written in decimal or with a ``0x`` prefix.
        """
        env = os.environ if environ is None else environ

        def _int(name: str, default: int) -> int:
            raw = env.get(ENV_PREFIX + name)
            if raw is None or not raw.strip():
                return default
            try:
                return int(raw.strip(), 0)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}{name} is not an integer: {raw!r}") from None

        endian = env.get(ENV_PREFIX + "ENDIAN", Endianness.LITTLE.value).strip().lower()
        if endian not in {e.value for e in Endianness}:
            raise ValueError(f"{ENV_PREFIX}ENDIAN must be 'little' or 'big', got {endian!r}")

        return cls(
            min_string_length=_int("MIN_STRING_LENGTH", DEFAULT_MIN_STRING_LENGTH),
            search_ceiling=_int("SEARCH_CEILING", DEFAULT_SEARCH_CEILING),
            search_step=_int("SEARCH_STEP", DEFAULT_SEARCH_STEP),
            top_k=_int("TOP_K", DEFAULT_TOP_K),
            endianness=Endianness(endian),
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["endianness"] = self.endianness.value
        d["search_ceiling"] = f"0x{self.search_ceiling:08X}"
        d["search_step"] = f"0x{self.search_step:X}"
        return d

"""Decoder limits and denylist extension points.

Every tunable bound used by the pipeline lives on DecoderConfig. Values can be
overridden through DUMP_DECODER_* environment variables (the CLI loads a .env
file first, so a project-local .env works too).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import FrozenSet, Mapping, Optional

from loguru import logger

from .denylist import DEFAULT_DENYLIST, Denylist

ENV_PREFIX = "DUMP_DECODER_"


@dataclass(frozen=True)
class DecoderConfig:
    """Limits applied to a single decode call."""
    hex_dump_length: int = 1024
    hex_row_width: int = 16
    max_strings_length: int = 25000
    min_string_run: int = 4
    strings_scan_bytes: int = 16 * 1024 * 1024
    module_scan_bytes: int = 256 * 1024
    max_modules: int = 100
    max_stack_frames: int = 20
    stack_region_limit: int = 64 * 1024
    time_budget: float = 30.0
    minidump_threshold: int = 5 * 1024 * 1024
    extra_fake_codes: FrozenSet[int] = field(default_factory=frozenset)
    extra_fake_modules: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def denylist(self) -> Denylist:
        if not self.extra_fake_codes and not self.extra_fake_modules:
            return DEFAULT_DENYLIST
        return DEFAULT_DENYLIST.extend(self.extra_fake_codes, self.extra_fake_modules)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DecoderConfig":
        """Build a config from DUMP_DECODER_* variables.

        Numeric limits use the upper-cased field name, e.g.
        DUMP_DECODER_MAX_STRINGS_LENGTH=10000. Denylist additions are
        comma-separated: DUMP_DECODER_EXTRA_FAKE_CODES=0xDEAD,0xBEEF and
        DUMP_DECODER_EXTRA_FAKE_MODULES=bogus.sys,junk.dll.
        """
        env = os.environ if environ is None else environ
        overrides = {}

        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            try:
                if f.name == "extra_fake_codes":
                    overrides[f.name] = frozenset(
                        int(part.strip(), 0) for part in raw.split(",") if part.strip()
                    )
                elif f.name == "extra_fake_modules":
                    overrides[f.name] = frozenset(
                        part.strip().lower() for part in raw.split(",") if part.strip()
                    )
                elif f.name == "time_budget":
                    overrides[f.name] = float(raw)
                else:
                    overrides[f.name] = int(raw, 0)
            except ValueError:
                logger.warning(f"Ignoring invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}")

        return cls(**overrides)


def categorize_size(size: int, threshold: int = DecoderConfig.minidump_threshold) -> str:
    """Size-derived upload category: 'minidump' below the threshold, else 'kernel'."""
    return "minidump" if size < threshold else "kernel"

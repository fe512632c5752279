"""Error types raised by the crash dump decoder.

None of these abort a decode: the pipeline catches them at stage boundaries
and records what was lost, so the caller always gets a CrashData back.
"""
from __future__ import annotations

from typing import Any, Optional

from .models import RejectedValue


class DecoderError(Exception):
    """Base class for all decoder errors."""


class UnrecognizedFormat(DecoderError):
    """The buffer signature matches no known dump layout."""

    def __init__(self, signature: bytes):
        self.signature = signature
        super().__init__(f"Unrecognized dump signature: {signature!r}")


class TruncatedBufferError(DecoderError):
    """A declared field would read past the end of the buffer."""

    def __init__(self, field: str, offset: int, width: int, size: int):
        self.field = field
        self.offset = offset
        self.width = width
        self.size = size
        super().__init__(
            f"Field '{field}' at 0x{offset:X} (+{width}) exceeds buffer of {size} bytes"
        )


class InvalidatedField(DecoderError):
    """A value was read but rejected by the validation filter."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"{field}={value!r} rejected: {reason}")

    def as_record(self) -> RejectedValue:
        return RejectedValue(field=self.field, value=self.value, reason=self.reason)


class DecodeTimeout(DecoderError):
    """Decoding did not finish inside the wall-clock budget."""

    def __init__(self, budget: float, label: Optional[str] = None):
        self.budget = budget
        self.label = label
        target = f" for {label}" if label else ""
        super().__init__(f"Decode{target} exceeded {budget:.1f}s time budget")

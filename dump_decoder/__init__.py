"""Crash Dump Decoder package.

Turns the raw bytes of a Windows crash dump into validated, structured data:
- Format detection for MDMP minidumps and PAGEDU64 / PAGEDUMP kernel dumps
- Header field extraction from static per-format offset tables
- Bug check code and parameters, exception, system facts
- Driver/module name recovery (pattern scan and minidump module list)
- Best-effort stack frame reconstruction
- Anti-hallucination filtering of fabricated codes and module names
- Hex dump and string evidence, plain-text and JSON reports
"""
from .config import DecoderConfig, categorize_size
from .decoder import decode, decode_many, decode_with_deadline
from .denylist import DEFAULT_DENYLIST, Denylist
from .errors import (
    DecodeTimeout,
    DecoderError,
    InvalidatedField,
    TruncatedBufferError,
    UnrecognizedFormat,
)
from .models import (
    BugCheckRecord,
    CrashData,
    DumpFormat,
    FieldError,
    ModuleName,
    ModuleRange,
    Provenance,
    RejectedValue,
    StackFrame,
    StackRegion,
    Verdict,
)
from .report import ReportValues, format_report, parse_report_values
from .signatures import detect_format

__all__ = [
    # Pipeline
    "decode",
    "decode_many",
    "decode_with_deadline",
    "detect_format",
    "format_report",
    "parse_report_values",
    "ReportValues",
    # Configuration
    "DecoderConfig",
    "categorize_size",
    "Denylist",
    "DEFAULT_DENYLIST",
    # Data model
    "BugCheckRecord",
    "CrashData",
    "DumpFormat",
    "FieldError",
    "ModuleName",
    "ModuleRange",
    "Provenance",
    "RejectedValue",
    "StackFrame",
    "StackRegion",
    "Verdict",
    # Errors
    "DecoderError",
    "DecodeTimeout",
    "InvalidatedField",
    "TruncatedBufferError",
    "UnrecognizedFormat",
]

__version__ = "1.0.0"

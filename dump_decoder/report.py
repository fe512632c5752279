"""CrashData assembly and the plain-text report.

format_report is a pure presentation transform: everything it prints is
already in the CrashData. Numbers are printed in hexadecimal with fixed
widths so parse_report_values can read them back.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .codes import bug_check_guidance
from .models import (
    BugCheckRecord,
    CrashData,
    DumpFormat,
    FieldError,
    ModuleName,
    RejectedValue,
    StackFrame,
    Verdict,
)

RULE = "=" * 70
SUBRULE = "-" * 40

_CODE_LINE = re.compile(r'^\s*Code:\s*0x([0-9A-Fa-f]+)\s*$', re.MULTILINE)
_RAW_LINE = re.compile(r'^\s*Raw Value:\s*0x([0-9A-Fa-f]+) \(NOT CONFIRMED\)\s*$', re.MULTILINE)
_STATUS_LINE = re.compile(r'^\s*Status:\s*([A-Z_]+)\s*$', re.MULTILINE)
_PARAM_LINE = re.compile(
    r'^\s*Parameter ([1-4]):\s*0x([0-9A-Fa-f]+)(?: \(UNVERIFIED\))?\s*$', re.MULTILINE
)


class ReportValues(NamedTuple):
    """Bug-check values read back from a report."""
    code: Optional[int]
    parameters: Tuple[int, ...]
    status: Optional[str]

    @property
    def confirmed(self) -> bool:
        return self.status == Verdict.VERIFIED.value


def assemble(
    fmt: DumpFormat,
    size: int,
    *,
    category: Optional[str] = None,
    bug_check: Optional[BugCheckRecord] = None,
    system: Optional[Dict[str, Any]] = None,
    modules: Sequence[ModuleName] = (),
    rejected_modules: Sequence[RejectedValue] = (),
    stack_frames: Sequence[StackFrame] = (),
    hex_dump: str = "",
    extracted_strings: str = "",
    field_errors: Sequence[FieldError] = (),
    validation_issues: Sequence[str] = (),
    foreign_format: Optional[str] = None,
) -> CrashData:
    """Combine stage outputs into one immutable CrashData.

    For Unknown formats only the format-independent parts (modules and
    evidence) are kept, whatever else is passed in.
    """
    if fmt is DumpFormat.UNKNOWN:
        return CrashData(
            format=fmt,
            size=size,
            category=category,
            modules=tuple(modules),
            rejected_modules=tuple(rejected_modules),
            hex_dump=hex_dump,
            extracted_strings=extracted_strings,
            field_errors=tuple(field_errors),
            foreign_format=foreign_format,
        )

    system = system or {}
    return CrashData(
        format=fmt,
        size=size,
        category=category,
        bug_check=bug_check,
        architecture=system.get('architecture'),
        pointer_width=system.get('pointer_width'),
        processor_count=system.get('processor_count'),
        windows_version=system.get('windows_version'),
        dump_type=system.get('dump_type'),
        timestamp=system.get('timestamp'),
        exception_code=system.get('exception_code'),
        exception_name=system.get('exception_name'),
        exception_address=system.get('exception_address'),
        faulting_module=system.get('faulting_module'),
        modules=tuple(modules),
        rejected_modules=tuple(rejected_modules),
        stack_frames=tuple(stack_frames),
        hex_dump=hex_dump,
        extracted_strings=extracted_strings,
        field_errors=tuple(field_errors),
        validation_issues=tuple(validation_issues),
    )


# ============================================================================
# TEXT REPORT
# ============================================================================

def _section(lines: List[str], title: str) -> None:
    lines.append(title)
    lines.append(SUBRULE)


def _bug_check_lines(lines: List[str], record: Optional[BugCheckRecord]) -> None:
    _section(lines, "BUG CHECK:")
    if record is None:
        lines.append("  Not present in this dump")
        lines.append("")
        return

    if record.confirmed:
        lines.append(f"  Code: 0x{record.code:08X}")
        lines.append(f"  Name: {record.name}")
        lines.append(f"  Status: {record.verdict.value}")
    else:
        # Never rendered as a confirmed finding.
        lines.append(f"  Raw Value: 0x{record.code:08X} (NOT CONFIRMED)")
        lines.append(f"  Status: {record.verdict.value}")
        if record.reason:
            lines.append(f"  Reason: {record.reason}")
    lines.append("")

    _section(lines, "PARAMETERS:")
    marker = "" if record.confirmed else " (UNVERIFIED)"
    for i, value in enumerate(record.parameters, 1):
        lines.append(f"  Parameter {i}: 0x{value:016X}{marker}")
    lines.append("")


def _crash_time(timestamp: int) -> Optional[str]:
    try:
        when = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None
    return f"{when:%Y-%m-%d %H:%M:%S} UTC"


def format_report(data: CrashData) -> str:
    """Deterministic text rendering of a CrashData."""
    lines = [RULE, "CRASH DUMP DECODE REPORT", RULE, ""]

    lines.append(f"Format: {data.format.value}")
    lines.append(f"Size: {data.size} bytes")
    if data.category:
        lines.append(f"Category: {data.category}")
    if data.foreign_format:
        lines.append(f"Detected File Type: {data.foreign_format} (not a crash dump)")
    lines.append("")

    if data.format is not DumpFormat.UNKNOWN:
        _bug_check_lines(lines, data.bug_check)

        if data.exception_code is not None or data.exception_address is not None:
            _section(lines, "EXCEPTION:")
            if data.exception_code is not None:
                lines.append(f"  Exception Code: 0x{data.exception_code:08X}")
                lines.append(f"  Name: {data.exception_name}")
            if data.exception_address is not None:
                digits = (data.pointer_width or 8) * 2
                lines.append(f"  Exception Address: 0x{data.exception_address:0{digits}X}")
            if data.faulting_module:
                lines.append(f"  Faulting Module: {data.faulting_module}")
            lines.append("")

        _section(lines, "SYSTEM INFORMATION:")
        lines.append(f"  Architecture: {data.architecture or 'Unknown'}")
        if data.pointer_width:
            lines.append(f"  Pointer Width: {data.pointer_width * 8}-bit")
        if data.processor_count is not None:
            lines.append(f"  Processors: {data.processor_count}")
        if data.windows_version:
            lines.append(f"  Windows Version: {data.windows_version}")
        if data.dump_type:
            lines.append(f"  Dump Type: {data.dump_type}")
        if data.timestamp:
            when = _crash_time(data.timestamp) or f"unrepresentable ({data.timestamp})"
            lines.append(f"  Crash Time: {when}")
        lines.append("")

    _section(lines, "DRIVERS:")
    if data.modules:
        for mod in data.modules:
            tags = [mod.provenance.value]
            if mod.system:
                tags.append("system")
            lines.append(f"  {mod.name} ({', '.join(tags)})")
    else:
        lines.append("  None recovered")
    lines.append("")

    if data.format is not DumpFormat.UNKNOWN:
        _section(lines, "STACK TRACE:")
        if data.stack_frames:
            width = data.pointer_width or 8
            for i, frame in enumerate(data.stack_frames):
                lines.append(f"  #{i:02d} {frame.describe(width)}")
        else:
            lines.append("  No stack region in this dump")
        lines.append("")

    if data.bug_check is not None and data.bug_check.confirmed:
        guidance = bug_check_guidance(data.bug_check.code)
        if guidance:
            _section(lines, "GUIDANCE:")
            lines.append(f"  {guidance['explanation']}")
            lines.append("  Likely causes:")
            for cause in guidance['causes']:
                lines.append(f"    - {cause}")
            lines.append("  Suggested actions:")
            for action in guidance['solutions']:
                lines.append(f"    - {action}")
            lines.append("")

    if data.rejected_modules:
        _section(lines, "REJECTED VALUES:")
        for rejected in data.rejected_modules:
            lines.append(f"  {rejected.field}: {rejected.value} ({rejected.reason})")
        lines.append("")

    if data.field_errors or data.validation_issues:
        _section(lines, "DATA QUALITY:")
        for err in data.field_errors:
            lines.append(f"  Missing {err.field}: {err.reason}")
        for issue in data.validation_issues:
            lines.append(f"  {issue}")
        lines.append("")

    lines.append(RULE)
    return '\n'.join(lines)


def parse_report_values(text: str) -> ReportValues:
    """Read the bug-check code, parameters and status back from a report.

    The code comes from the ``Code:`` line of a confirmed record or the
    ``Raw Value:`` line of an unconfirmed one; check ``status`` (or
    ``confirmed``) before treating it as the stop code. Returns
    ReportValues(None, (), None) when the report has no bug check.
    """
    match = _CODE_LINE.search(text) or _RAW_LINE.search(text)
    if match is None:
        return ReportValues(None, (), None)
    status = _STATUS_LINE.search(text)
    params = sorted((int(n), int(v, 16)) for n, v in _PARAM_LINE.findall(text))
    return ReportValues(
        code=int(match.group(1), 16),
        parameters=tuple(v for _, v in params),
        status=status.group(1) if status else None,
    )

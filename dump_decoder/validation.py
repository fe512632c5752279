"""Anti-hallucination filter.

Marks values as verified, implausible or rejected. It never substitutes a
"corrected" value: a bad code stays in the record with its verdict and
reason so the report and the caller can flag or omit it.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from .codes import BUG_CHECK_NAMES
from .denylist import DEFAULT_DENYLIST, Denylist
from .errors import InvalidatedField
from .models import BugCheckRecord, ModuleName, ModuleRange, RejectedValue, Verdict

PLAUSIBLE_CODE_MIN = 0x1
PLAUSIBLE_CODE_MAX = 0xFFFF
MAX_PROCESSORS = 2048
MAX_IRQL = 31


@dataclass(frozen=True)
class ValidationResult:
    bug_check: Optional[BugCheckRecord]
    modules: Tuple[ModuleName, ...]
    rejected_modules: Tuple[RejectedValue, ...]
    issues: Tuple[str, ...]


def validate_bug_check(record: Optional[BugCheckRecord],
                       denylist: Denylist = DEFAULT_DENYLIST) -> Optional[BugCheckRecord]:
    """Return a copy of the record carrying its verdict."""
    if record is None:
        return None

    code = record.code
    if denylist.rejects_code(code):
        err = InvalidatedField(
            'bug_check_code', code,
            "known fabricated bug-check code",
        )
        logger.warning(f"Rejected fake bug check code 0x{code:X}")
        return replace(record, verdict=Verdict.REJECTED, reason=err.reason)

    if code in BUG_CHECK_NAMES:
        return replace(record, verdict=Verdict.VERIFIED, reason=None)

    if not PLAUSIBLE_CODE_MIN <= code <= PLAUSIBLE_CODE_MAX:
        logger.warning(f"Bug check code 0x{code:08X} outside plausible range")
        return replace(
            record,
            verdict=Verdict.IMPLAUSIBLE,
            reason=(f"code 0x{code:08X} is outside 0x{PLAUSIBLE_CODE_MIN:X}-0x{PLAUSIBLE_CODE_MAX:X} "
                    "and is not a known stop code"),
        )

    return replace(record, verdict=Verdict.VERIFIED, reason=None)


def validate_modules(modules: Sequence[ModuleName],
                     denylist: Denylist = DEFAULT_DENYLIST
                     ) -> Tuple[Tuple[ModuleName, ...], Tuple[RejectedValue, ...]]:
    """Split names into accepted and rejected; rejected names never pass through."""
    accepted: List[ModuleName] = []
    rejected: List[RejectedValue] = []
    for mod in modules:
        if denylist.rejects_module(mod.name):
            err = InvalidatedField('module', mod.name, "known fabricated module name")
            logger.warning(str(err))
            rejected.append(err.as_record())
        else:
            accepted.append(mod if mod.live else replace(mod, live=True))
    return tuple(accepted), tuple(rejected)


def check_numeric_fields(system: Dict[str, Any]) -> List[str]:
    """Range checks on header facts. Findings are reported, values are kept."""
    issues = []

    count = system.get('processor_count')
    if count is not None and not 1 <= count <= MAX_PROCESSORS:
        issues.append(f"Processor count {count} outside 1-{MAX_PROCESSORS}")

    raw_arch = system.get('architecture_raw')
    if raw_arch is not None and system.get('architecture') is None:
        issues.append(f"Unrecognized architecture value 0x{raw_arch:X}")

    version = system.get('windows_version')
    if version is not None and version.split('.', 1)[0] == '0':
        issues.append(f"Windows version {version} has a zero major version")

    return issues


def check_parameters(record: Optional[BugCheckRecord]) -> List[str]:
    """Per-code sanity checks on bug-check parameters."""
    if record is None or not record.confirmed:
        return []

    p1, p2, p3, p4 = record.parameters
    issues = []

    if all(p in (0xFFFFFFFF, 0xFFFFFFFFFFFFFFFF) for p in record.parameters):
        issues.append("All bug-check parameters are all-ones filler")

    if record.code == 0x1E:
        if not (0xC0000000 <= p1 <= 0xC0FFFFFF or 0x80000000 <= p1 <= 0x8000FFFF):
            issues.append(f"Parameter 1 (0x{p1:X}) of {record.name} is not an exception code")
    elif record.code in (0x0A, 0xD1):
        if p2 > MAX_IRQL:
            issues.append(f"Parameter 2 (0x{p2:X}) of {record.name} is not a valid IRQL")
    elif record.code == 0x50:
        if p2 not in (0, 1, 2, 10):
            issues.append(f"Parameter 2 (0x{p2:X}) of {record.name} is not a known access type")
    elif record.code == 0x133:
        if p1 not in (0, 1):
            issues.append(f"Parameter 1 (0x{p1:X}) of {record.name} should be 0 or 1")
    elif record.code == 0x124:
        if p1 > 0x10:
            issues.append(f"Parameter 1 (0x{p1:X}) of {record.name} is not a WHEA error source")

    return issues


def check_module_ranges(ranges: Sequence[ModuleRange]) -> List[str]:
    """Report overlapping module load ranges."""
    issues = []
    ordered = sorted(ranges, key=lambda r: r.base)
    for current, following in zip(ordered, ordered[1:]):
        if current.end > following.base:
            issues.append(
                f"Module overlap: {current.name} (0x{current.base:X}-0x{current.end:X}) "
                f"overlaps {following.name} (0x{following.base:X})"
            )
    return issues


def validate(record: Optional[BugCheckRecord],
             modules: Sequence[ModuleName],
             system: Optional[Dict[str, Any]] = None,
             ranges: Sequence[ModuleRange] = (),
             denylist: Denylist = DEFAULT_DENYLIST) -> ValidationResult:
    """Run every check over one decode's bug check, modules and header facts."""
    checked = validate_bug_check(record, denylist)
    accepted, rejected = validate_modules(modules, denylist)

    issues = check_numeric_fields(system or {})
    issues.extend(check_parameters(checked))
    issues.extend(check_module_ranges(ranges))

    return ValidationResult(
        bug_check=checked,
        modules=accepted,
        rejected_modules=rejected,
        issues=tuple(issues),
    )

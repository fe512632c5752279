"""Value objects produced by the decoder.

Everything here is a frozen dataclass holding tuples, so a CrashData can be
handed to other threads or compared for equality without copying.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ============================================================================
# ENUMERATIONS
# ============================================================================

class DumpFormat(Enum):
    """On-disk layout, decided once from the buffer signature."""
    MINIDUMP_MDMP = "MinidumpMDMP"
    KERNEL_PAGEDU64 = "KernelPagedu64"
    KERNEL_FULL = "KernelFull"
    UNKNOWN = "Unknown"


class Verdict(Enum):
    """Outcome of the anti-hallucination check for a bug-check record."""
    UNCHECKED = "UNCHECKED"
    VERIFIED = "VERIFIED"
    IMPLAUSIBLE = "IMPLAUSIBLE"
    REJECTED = "REJECTED"


class Provenance(Enum):
    """Where a module name came from."""
    SCAN = "scan"
    MODULE_LIST = "module_list"
    NONE = "none"


# ============================================================================
# FIELD-LEVEL RESULTS
# ============================================================================

@dataclass(frozen=True)
class FieldError:
    """A field that could not be read, and why."""
    field: str
    reason: str


@dataclass(frozen=True)
class RejectedValue:
    """A value that was read but refused by validation."""
    field: str
    value: Any
    reason: str


@dataclass(frozen=True)
class BugCheckRecord:
    code: int
    name: str
    parameters: Tuple[int, int, int, int]
    verdict: Verdict = Verdict.UNCHECKED
    reason: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.verdict is Verdict.VERIFIED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'code_hex': f"0x{self.code:08X}",
            'name': self.name,
            'parameters': [f"0x{p:016X}" for p in self.parameters],
            'verdict': self.verdict.value,
            'reason': self.reason,
        }


@dataclass(frozen=True)
class ModuleName:
    name: str
    provenance: Provenance = Provenance.SCAN
    live: bool = True
    offset: Optional[int] = None
    system: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'provenance': self.provenance.value,
            'live': self.live,
            'offset': self.offset,
            'system': self.system,
        }


@dataclass(frozen=True)
class ModuleRange:
    """Load address range of a module, from a minidump module list or triage driver list."""
    name: str
    base: int
    size: int

    @property
    def end(self) -> int:
        return self.base + self.size

    def contains(self, address: int) -> bool:
        return self.base <= address < self.end


@dataclass(frozen=True)
class StackRegion:
    data: bytes
    base_address: Optional[int] = None
    source: str = ""


@dataclass(frozen=True)
class StackFrame:
    address: int
    module: Optional[str] = None
    module_offset: Optional[int] = None
    slot: int = 0

    def describe(self, pointer_width: int = 8) -> str:
        digits = pointer_width * 2
        text = f"0x{self.address:0{digits}X}"
        if self.module is not None:
            text += f" {self.module}+0x{self.module_offset:X}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            'address': f"0x{self.address:016X}",
            'module': self.module,
            'module_offset': self.module_offset,
            'slot': self.slot,
        }


# ============================================================================
# TERMINAL AGGREGATE
# ============================================================================

@dataclass(frozen=True)
class CrashData:
    """Complete, validated decode of one dump buffer."""
    format: DumpFormat
    size: int
    category: Optional[str] = None
    bug_check: Optional[BugCheckRecord] = None
    architecture: Optional[str] = None
    pointer_width: Optional[int] = None
    processor_count: Optional[int] = None
    windows_version: Optional[str] = None
    dump_type: Optional[str] = None
    timestamp: Optional[int] = None
    exception_code: Optional[int] = None
    exception_name: Optional[str] = None
    exception_address: Optional[int] = None
    faulting_module: Optional[str] = None
    modules: Tuple[ModuleName, ...] = ()
    rejected_modules: Tuple[RejectedValue, ...] = ()
    stack_frames: Tuple[StackFrame, ...] = ()
    hex_dump: str = ""
    extracted_strings: str = ""
    field_errors: Tuple[FieldError, ...] = ()
    validation_issues: Tuple[str, ...] = ()
    foreign_format: Optional[str] = None

    @property
    def module_names(self) -> Tuple[str, ...]:
        return tuple(m.name for m in self.modules)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view with a fixed key order."""
        return {
            'format': self.format.value,
            'size': self.size,
            'category': self.category,
            'bug_check': self.bug_check.to_dict() if self.bug_check else None,
            'architecture': self.architecture,
            'pointer_width': self.pointer_width,
            'processor_count': self.processor_count,
            'windows_version': self.windows_version,
            'dump_type': self.dump_type,
            'timestamp': self.timestamp,
            'exception_code': f"0x{self.exception_code:08X}" if self.exception_code is not None else None,
            'exception_name': self.exception_name,
            'exception_address': (
                f"0x{self.exception_address:016X}" if self.exception_address is not None else None
            ),
            'faulting_module': self.faulting_module,
            'modules': [m.to_dict() for m in self.modules],
            'rejected_modules': [
                {'field': r.field, 'value': r.value, 'reason': r.reason}
                for r in self.rejected_modules
            ],
            'stack_frames': [f.to_dict() for f in self.stack_frames],
            'hex_dump': self.hex_dump,
            'extracted_strings': self.extracted_strings,
            'field_errors': [{'field': e.field, 'reason': e.reason} for e in self.field_errors],
            'validation_issues': list(self.validation_issues),
            'foreign_format': self.foreign_format,
        }

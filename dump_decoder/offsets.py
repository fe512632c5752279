"""Static byte-offset tables, one per dump format.

Offsets here are the single source of truth for where header fields live.
Reading the PAGEDU64 bug check at 0x80 instead of 0x38, or its parameters as
32-bit values, yields consistent but fictitious results, so parsing code never
computes an offset: supporting a new layout means adding a table.

Layouts follow DUMP_HEADER / DUMP_HEADER64, TRIAGE_DUMP and the
MINIDUMP_* stream structures from the Windows SDK.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .codes import BUGCHECK_EXCEPTION_CODE, DUMP_TYPE_TRIAGE
from .errors import UnrecognizedFormat
from .models import DumpFormat


# ============================================================================
# FIELD DESCRIPTORS
# ============================================================================

class FieldKind(Enum):
    UINT = "uint"
    ASCII = "ascii"
    FILETIME = "filetime"  # u64 100ns ticks since 1601, decoded to unix seconds


class StackLocator(Enum):
    """How the stack region for the faulting thread is found."""
    NONE = "none"
    TRIAGE = "triage"
    THREAD_LIST = "thread_list"


class MinidumpStreamType(IntEnum):
    """MINIDUMP_STREAM_TYPE values used by the tables."""
    THREAD_LIST = 3
    MODULE_LIST = 4
    MEMORY_LIST = 5
    EXCEPTION = 6
    SYSTEM_INFO = 7
    MEMORY_64_LIST = 9


# MINIDUMP_THREAD: ThreadId +0, Teb +16, Stack MINIDUMP_MEMORY_DESCRIPTOR +24
# (StartOfMemoryRange u64, DataSize u32, Rva u32), ThreadContext +40.
MINIDUMP_THREAD_SIZE = 48
MINIDUMP_THREAD_STACK_OFFSET = 24


@dataclass(frozen=True)
class FieldSpec:
    offset: int
    width: int
    kind: FieldKind = FieldKind.UINT
    stream: Optional[MinidumpStreamType] = None
    endianness: str = "little"


@dataclass(frozen=True)
class DriverEntryLayout:
    """One fixed-size entry of the triage dump's loaded-driver array."""
    size: int
    name_offset: FieldSpec  # file offset of a DUMP_STRING holding the image path
    base: FieldSpec
    image_size: FieldSpec


@dataclass(frozen=True)
class OffsetTable:
    format: DumpFormat
    fields: Mapping[str, FieldSpec]
    architectures: Mapping[int, str]
    default_pointer_width: Optional[int] = None
    # (field, value) that must match before a bug-check record is built
    bug_check_guard: Optional[Tuple[str, int]] = None
    stack_locator: StackLocator = StackLocator.NONE
    # (field, value) that must match before the triage block is read
    triage_guard: Optional[Tuple[str, int]] = None
    stack_fields: Optional[Mapping[str, FieldSpec]] = None
    driver_list_fields: Optional[Mapping[str, FieldSpec]] = None
    driver_entry: Optional[DriverEntryLayout] = None

    def has_triage_block(self, fields) -> bool:
        if self.triage_guard is None:
            return True
        guard_field, expected = self.triage_guard
        return fields.get(guard_field) == expected

    @property
    def uses_streams(self) -> bool:
        return any(spec.stream is not None for spec in self.fields.values())

    def architecture_name(self, raw: Optional[int]) -> Optional[str]:
        if raw is None:
            return None
        return self.architectures.get(raw)

    def pointer_width(self, architecture: Optional[str]) -> Optional[int]:
        if architecture in POINTER_WIDTHS:
            return POINTER_WIDTHS[architecture]
        return self.default_pointer_width


POINTER_WIDTHS = MappingProxyType({
    'x64': 8,
    'ARM64': 8,
    'IA64': 8,
    'x86': 4,
    'ARM': 4,
})

# IMAGE_FILE_MACHINE_* as stored in DUMP_HEADER.MachineImageType
MACHINE_TYPES = MappingProxyType({
    0x8664: 'x64',
    0x014C: 'x86',
    0xAA64: 'ARM64',
    0x01C4: 'ARM',
    0x0200: 'IA64',
})

# PROCESSOR_ARCHITECTURE_* as stored in MINIDUMP_SYSTEM_INFO
PROCESSOR_ARCHITECTURES = MappingProxyType({
    9: 'x64',
    0: 'x86',
    12: 'ARM64',
    5: 'ARM',
    6: 'IA64',
})


def _u32(offset: int, stream: Optional[MinidumpStreamType] = None) -> FieldSpec:
    return FieldSpec(offset, 4, stream=stream)


def _u64(offset: int, stream: Optional[MinidumpStreamType] = None) -> FieldSpec:
    return FieldSpec(offset, 8, stream=stream)


# ============================================================================
# KERNEL DUMP TABLES
# ============================================================================

# DUMP_DRIVER_ENTRY64: DriverNameOffset, then KLDR_DATA_TABLE_ENTRY at +8
# (DllBase +0x30, SizeOfImage +0x40).
DRIVER_ENTRY_64 = DriverEntryLayout(
    size=0x90,
    name_offset=_u32(0x00),
    base=_u64(0x38),
    image_size=_u32(0x48),
)

# DUMP_HEADER64 occupies 0x2000 bytes; a triage dump's TRIAGE_DUMP follows it.
PAGEDU64_TABLE = OffsetTable(
    format=DumpFormat.KERNEL_PAGEDU64,
    fields=MappingProxyType({
        'windows_version_major': _u32(0x08),
        'windows_version_minor': _u32(0x0C),
        'architecture': _u32(0x30),
        'processor_count': _u32(0x34),
        'bug_check_code': _u32(0x38),
        'param1': _u64(0x40),
        'param2': _u64(0x48),
        'param3': _u64(0x50),
        'param4': _u64(0x58),
        'exception_code': _u32(0xF00),
        'exception_address': _u64(0xF10),
        'dump_type': _u32(0xF98),
        'timestamp': FieldSpec(0xFA8, 8, FieldKind.FILETIME),
    }),
    architectures=MACHINE_TYPES,
    default_pointer_width=8,
    stack_locator=StackLocator.TRIAGE,
    triage_guard=('dump_type', DUMP_TYPE_TRIAGE),
    stack_fields=MappingProxyType({
        'stack_offset': _u32(0x2000 + 0x28),
        'stack_size': _u32(0x2000 + 0x2C),
        'stack_top': _u64(0x2000 + 0x48),
    }),
    driver_list_fields=MappingProxyType({
        'driver_list_offset': _u32(0x2000 + 0x30),
        'driver_count': _u32(0x2000 + 0x34),
    }),
    driver_entry=DRIVER_ENTRY_64,
)

# 32-bit DUMP_HEADER occupies 0x1000 bytes; parameters are ULONG here.
# No 32-bit driver entry layout is declared; only the triage stack is read.
PAGEDUMP_TABLE = OffsetTable(
    format=DumpFormat.KERNEL_FULL,
    fields=MappingProxyType({
        'windows_version_major': _u32(0x08),
        'windows_version_minor': _u32(0x0C),
        'architecture': _u32(0x20),
        'processor_count': _u32(0x24),
        'bug_check_code': _u32(0x28),
        'param1': _u32(0x2C),
        'param2': _u32(0x30),
        'param3': _u32(0x34),
        'param4': _u32(0x38),
        'exception_code': _u32(0x7D0),
        'exception_address': _u32(0x7DC),
        'dump_type': _u32(0xF88),
        'timestamp': FieldSpec(0xFC0, 8, FieldKind.FILETIME),
    }),
    architectures=MACHINE_TYPES,
    default_pointer_width=4,
    stack_locator=StackLocator.TRIAGE,
    triage_guard=('dump_type', DUMP_TYPE_TRIAGE),
    stack_fields=MappingProxyType({
        'stack_offset': _u32(0x1000 + 0x28),
        'stack_size': _u32(0x1000 + 0x2C),
        'stack_top': _u32(0x1000 + 0x48),
    }),
)


# ============================================================================
# MINIDUMP TABLE
# ============================================================================

_EXC = MinidumpStreamType.EXCEPTION
_SYS = MinidumpStreamType.SYSTEM_INFO

# Kernel minidumps record the stop as a breakpoint exception whose
# ExceptionInformation[0] is the bug-check code and [1..4] the parameters.
MDMP_TABLE = OffsetTable(
    format=DumpFormat.MINIDUMP_MDMP,
    fields=MappingProxyType({
        'timestamp': _u32(0x14),
        'architecture': FieldSpec(0, 2, stream=_SYS),
        'processor_count': FieldSpec(6, 1, stream=_SYS),
        'windows_version_major': _u32(8, _SYS),
        'windows_version_minor': _u32(12, _SYS),
        'windows_build': _u32(16, _SYS),
        'exception_thread_id': _u32(0, _EXC),
        'exception_code': _u32(8, _EXC),
        'exception_address': _u64(24, _EXC),
        'bug_check_code': _u32(40, _EXC),
        'param1': _u64(48, _EXC),
        'param2': _u64(56, _EXC),
        'param3': _u64(64, _EXC),
        'param4': _u64(72, _EXC),
    }),
    architectures=PROCESSOR_ARCHITECTURES,
    default_pointer_width=None,
    bug_check_guard=('exception_code', BUGCHECK_EXCEPTION_CODE),
    stack_locator=StackLocator.THREAD_LIST,
)


OFFSET_TABLES: Mapping[DumpFormat, OffsetTable] = MappingProxyType({
    DumpFormat.KERNEL_PAGEDU64: PAGEDU64_TABLE,
    DumpFormat.KERNEL_FULL: PAGEDUMP_TABLE,
    DumpFormat.MINIDUMP_MDMP: MDMP_TABLE,
})


def resolve_table(fmt: DumpFormat) -> Optional[OffsetTable]:
    """Return the static table for a format, or None for Unknown."""
    return OFFSET_TABLES.get(fmt)


def require_table(fmt: DumpFormat, signature: bytes = b"") -> OffsetTable:
    table = resolve_table(fmt)
    if table is None:
        raise UnrecognizedFormat(signature)
    return table

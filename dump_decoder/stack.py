"""Best-effort stack frame recovery.

The region is a raw copy of the faulting thread's stack. Each pointer-sized
slot whose value looks like a code address becomes a candidate return
address. Without unwind data this over-reports (stale return addresses and
data pointers that happen to land in code) but never invents addresses:
every frame is a value that is actually present in the dump.
"""
from __future__ import annotations

import bisect
import struct
from typing import List, Optional, Sequence, Tuple

from loguru import logger

from .fields import ExtractedFields, read_fields
from .models import ModuleRange, StackFrame, StackRegion
from .offsets import (
    MINIDUMP_THREAD_SIZE,
    MINIDUMP_THREAD_STACK_OFFSET,
    MinidumpStreamType,
    OffsetTable,
    StackLocator,
)

MAX_FRAMES = 20

KERNEL_SPACE_START_64 = 0xFFFFF80000000000
USER_SYSTEM_DLL_START_64 = 0x00007FF000000000
USER_SYSTEM_DLL_END_64 = 0x00007FFFFFFFFFFF
KERNEL_SPACE_START_32 = 0x80000000

_SLOT_CODES = {4: '<I', 8: '<Q'}


# ============================================================================
# REGION LOCATION
# ============================================================================

def _slice_region(buffer, offset: int, size: int, base: Optional[int],
                  limit: int, source: str) -> Optional[StackRegion]:
    if not size or offset >= len(buffer):
        return None
    end = min(offset + min(size, limit), len(buffer))
    if end - offset < size:
        logger.debug(f"Stack region from {source} clipped to {end - offset} of {size} bytes")
    return StackRegion(data=bytes(buffer[offset:end]), base_address=base, source=source)


def _triage_region(buffer, table: OffsetTable, limit: int) -> Optional[StackRegion]:
    values, errors = read_fields(buffer, table.stack_fields or {})
    for err in errors:
        logger.debug(f"Triage stack field unavailable: {err.field}: {err.reason}")
    offset = values.get('stack_offset')
    size = values.get('stack_size')
    if offset is None or size is None:
        return None
    return _slice_region(buffer, offset, size, values.get('stack_top'), limit, "triage")


def _thread_list_region(buffer, fields: ExtractedFields, limit: int) -> Optional[StackRegion]:
    entry = fields.streams.get(MinidumpStreamType.THREAD_LIST)
    thread_id = fields.get('exception_thread_id')
    if entry is None or thread_id is None:
        return None
    if entry.data_size < 4 or entry.rva + 4 > len(buffer):
        return None

    count, = struct.unpack('<I', bytes(buffer[entry.rva:entry.rva + 4]))
    count = min(count, (entry.data_size - 4) // MINIDUMP_THREAD_SIZE)

    for i in range(count):
        offset = entry.rva + 4 + i * MINIDUMP_THREAD_SIZE
        if offset + MINIDUMP_THREAD_SIZE > len(buffer):
            break
        tid, = struct.unpack('<I', bytes(buffer[offset:offset + 4]))
        if tid != thread_id:
            continue
        desc = offset + MINIDUMP_THREAD_STACK_OFFSET
        start, data_size, rva = struct.unpack('<QII', bytes(buffer[desc:desc + 16]))
        return _slice_region(buffer, rva, data_size, start, limit, f"thread {tid}")

    logger.debug(f"Exception thread {thread_id} not found in thread list")
    return None


def locate_stack_region(buffer, table: OffsetTable, fields: ExtractedFields,
                        limit: int = 64 * 1024) -> Optional[StackRegion]:
    """Find the faulting thread's stack bytes, or None when the dump has none."""
    if not table.has_triage_block(fields):
        return None

    if table.stack_locator is StackLocator.TRIAGE:
        return _triage_region(buffer, table, limit)
    if table.stack_locator is StackLocator.THREAD_LIST:
        return _thread_list_region(buffer, fields, limit)
    return None


# ============================================================================
# FRAME WALK
# ============================================================================

def is_plausible_return_address(value: int, pointer_width: int) -> bool:
    """Address-space heuristic used when no module range claims the value."""
    if pointer_width == 8:
        if value == 0xFFFFFFFFFFFFFFFF:
            return False
        return value >= KERNEL_SPACE_START_64 or (
            USER_SYSTEM_DLL_START_64 <= value <= USER_SYSTEM_DLL_END_64
        )
    return KERNEL_SPACE_START_32 <= value < 0xFFFFFFFF


class _RangeIndex:
    def __init__(self, ranges: Sequence[ModuleRange]):
        self._ranges = sorted(ranges, key=lambda r: r.base)
        self._bases = [r.base for r in self._ranges]

    def find(self, address: int) -> Optional[ModuleRange]:
        i = bisect.bisect_right(self._bases, address) - 1
        if i >= 0 and self._ranges[i].contains(address):
            return self._ranges[i]
        return None


def find_module(ranges: Sequence[ModuleRange], address: Optional[int]) -> Optional[ModuleRange]:
    """The range containing address, if any."""
    if not address:
        return None
    return _RangeIndex(ranges).find(address)


def reconstruct_stack(region: Optional[StackRegion], pointer_width: Optional[int],
                      ranges: Sequence[ModuleRange] = (),
                      max_frames: int = MAX_FRAMES) -> Tuple[StackFrame, ...]:
    """Walk pointer-sized slots innermost first, keeping at most max_frames."""
    if region is None or pointer_width not in _SLOT_CODES:
        return ()
    data = region.data
    if len(data) < pointer_width or max_frames <= 0:
        return ()

    code = _SLOT_CODES[pointer_width]
    index = _RangeIndex(ranges)
    frames: List[StackFrame] = []

    for slot in range(0, len(data) - pointer_width + 1, pointer_width):
        value, = struct.unpack_from(code, data, slot)
        owner = index.find(value)
        if owner is None and not is_plausible_return_address(value, pointer_width):
            continue
        frames.append(StackFrame(
            address=value,
            module=owner.name if owner else None,
            module_offset=value - owner.base if owner else None,
            slot=slot,
        ))
        if len(frames) >= max_frames:
            break

    return tuple(frames)

"""Module and driver name recovery.

Two sources feed the module set:

- the pattern scanner, which looks for ``name.sys/.dll/.exe`` tokens in a
  bounded prefix of the raw bytes (ASCII and UTF-16LE views). It has no
  ground truth, so its only guarantees are that every name matches the
  filename pattern and that no denylisted name is returned;
- a structured list with load address ranges: the MINIDUMP_MODULE_LIST
  stream read through the ``minidump`` package for minidumps, or the
  loaded-driver array of a kernel triage dump.
"""
from __future__ import annotations

import io
import ntpath
import re
import struct
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from loguru import logger
from minidump.minidumpfile import MinidumpFile

from .codes import SYSTEM_MODULES
from .denylist import DEFAULT_DENYLIST, Denylist
from .fields import read_field, read_fields
from .models import DumpFormat, ModuleName, ModuleRange, Provenance, RejectedValue
from .offsets import OffsetTable

MODULE_NAME_PATTERN = re.compile(r'[A-Za-z0-9_-]+\.(?:sys|dll|exe)', re.IGNORECASE)

# Tokens start and end at identifier boundaries, which also keeps the scan
# linear on long identifier runs.
_ASCII_TOKEN = re.compile(r'(?<![A-Za-z0-9_-])[A-Za-z0-9_-]+\.(?:sys|dll|exe)(?![A-Za-z0-9_])', re.IGNORECASE)

# UTF-16LE view: the same token as 2-byte little-endian code units.
_UTF16_TOKEN = re.compile(
    rb'(?<![A-Za-z0-9_\-]\x00)(?:[A-Za-z0-9_\-]\x00)+\.\x00(?:s\x00y\x00s|d\x00l\x00l|e\x00x\x00e)\x00'
    rb'(?![A-Za-z0-9_]\x00)',
    re.IGNORECASE,
)

# Non-printable bytes become a space, which can never be part of a token.
_PLACEHOLDER = ord(' ')
_TEXT_VIEW_TABLE = bytes(b if 0x20 <= b < 0x7F else _PLACEHOLDER for b in range(256))

MIN_NAME_LENGTH = 4
MAX_NAME_LENGTH = 64

MAX_DRIVERS = 1024
MAX_DRIVER_PATH_CHARS = 256


@dataclass(frozen=True)
class ModuleScanResult:
    modules: Tuple[ModuleName, ...] = ()
    rejected: Tuple[RejectedValue, ...] = ()
    ranges: Tuple[ModuleRange, ...] = ()


def is_plausible_module_name(name: str) -> bool:
    """Structural check applied to every candidate, whatever its source."""
    if not MIN_NAME_LENGTH <= len(name) <= MAX_NAME_LENGTH:
        return False
    if not MODULE_NAME_PATTERN.fullmatch(name):
        return False
    stem = name.rsplit('.', 1)[0]
    return any(c.isalpha() for c in stem)


def text_view(data: bytes) -> str:
    """Printable-ASCII rendering of the bytes, same length as the input."""
    return data.translate(_TEXT_VIEW_TABLE).decode('ascii')


def _candidates(data: bytes) -> List[Tuple[int, str]]:
    found = [(m.start(), m.group(0)) for m in _ASCII_TOKEN.finditer(text_view(data))]
    found.extend(
        (m.start(), m.group(0).decode('utf-16-le'))
        for m in _UTF16_TOKEN.finditer(data)
    )
    # stable sort keeps ASCII hits ahead of UTF-16 hits at the same offset
    found.sort(key=lambda item: item[0])
    return found


def scan_modules(
    buffer,
    denylist: Denylist = DEFAULT_DENYLIST,
    scan_bytes: int = 256 * 1024,
    max_modules: int = 100,
) -> ModuleScanResult:
    """Extract de-duplicated module names from the first ``scan_bytes`` bytes."""
    data = bytes(buffer[:scan_bytes])
    modules: List[ModuleName] = []
    rejected: List[RejectedValue] = []
    seen = set()

    for offset, token in _candidates(data):
        name = token.lower()
        if name in seen:
            continue
        seen.add(name)

        if not is_plausible_module_name(name):
            logger.debug(f"Skipping implausible module token {name!r} at 0x{offset:X}")
            continue
        if denylist.rejects_module(name):
            logger.warning(f"Rejected fabricated module name {name} at 0x{offset:X}")
            rejected.append(RejectedValue('module', name, "known fabricated module name"))
            continue

        modules.append(ModuleName(
            name=name,
            provenance=Provenance.SCAN,
            live=True,
            offset=offset,
            system=name in SYSTEM_MODULES,
        ))
        if len(modules) >= max_modules:
            break

    logger.debug(f"Module scan over {len(data)} bytes: {len(modules)} kept, {len(rejected)} rejected")
    return ModuleScanResult(modules=tuple(modules), rejected=tuple(rejected))


# ============================================================================
# MINIDUMP MODULE LIST
# ============================================================================

def read_module_list(buffer) -> Tuple[ModuleRange, ...]:
    """Module names and address ranges from the minidump module-list stream.

    Any parse failure is logged and yields an empty tuple: without range
    metadata the stack reconstructor simply attributes no modules.
    """
    try:
        mf = MinidumpFile.parse_buff(io.BytesIO(bytes(buffer)))
    except Exception as e:
        logger.warning(f"Could not parse minidump module list: {e}")
        return ()

    module_list = getattr(mf, 'modules', None)
    if module_list is None:
        return ()

    ranges = []
    for mod in getattr(module_list, 'modules', None) or []:
        name = ntpath.basename(getattr(mod, 'name', '') or '').lower()
        base = getattr(mod, 'baseaddress', None)
        size = getattr(mod, 'size', None)
        if not name or base is None or not size:
            continue
        ranges.append(ModuleRange(name=name, base=base, size=size))

    logger.debug(f"Minidump module list: {len(ranges)} modules")
    return tuple(ranges)


# ============================================================================
# KERNEL TRIAGE DRIVER LIST
# ============================================================================

def _read_dump_string(buffer, offset: int) -> Optional[str]:
    """DUMP_STRING: u32 character count followed by UTF-16LE text."""
    if offset <= 0 or offset + 4 > len(buffer):
        return None
    length, = struct.unpack('<I', bytes(buffer[offset:offset + 4]))
    if not 0 < length <= MAX_DRIVER_PATH_CHARS:
        return None
    start = offset + 4
    end = start + length * 2
    if end > len(buffer):
        return None
    return bytes(buffer[start:end]).decode('utf-16-le', errors='replace')


def read_driver_list(buffer, table: OffsetTable, fields=None) -> Tuple[ModuleRange, ...]:
    """Driver names and load ranges from a kernel triage dump.

    The TRIAGE_DUMP block points at an array of fixed-size driver entries,
    each naming its image path by the file offset of a DUMP_STRING. The walk
    stops at the first entry that does not fit in the buffer; entries with an
    unreadable path or an empty range are skipped.
    """
    layout = table.driver_entry
    if layout is None or not table.driver_list_fields:
        return ()
    if fields is not None and not table.has_triage_block(fields):
        return ()

    values, errors = read_fields(buffer, table.driver_list_fields)
    for err in errors:
        logger.debug(f"Driver list field unavailable: {err.field}: {err.reason}")
    offset = values.get('driver_list_offset')
    count = values.get('driver_count')
    if not offset or not count:
        return ()
    if count > MAX_DRIVERS:
        logger.warning(f"Triage block claims {count} drivers, reading the first {MAX_DRIVERS}")
        count = MAX_DRIVERS

    ranges = []
    for i in range(count):
        entry = offset + i * layout.size
        if entry + layout.size > len(buffer):
            logger.warning(f"Driver list truncated after {i} of {count} entries")
            break
        path = _read_dump_string(buffer, read_field(buffer, layout.name_offset, 'driver_name', entry))
        base = read_field(buffer, layout.base, 'driver_base', entry)
        size = read_field(buffer, layout.image_size, 'driver_size', entry)
        if path is None:
            logger.debug(f"Driver entry {i} at 0x{entry:X} has no readable path")
            continue
        name = ntpath.basename(path.rstrip('\x00')).lower()
        if not name or not base or not size:
            continue
        ranges.append(ModuleRange(name=name, base=base, size=size))

    logger.debug(f"Triage driver list: {len(ranges)} of {count} entries")
    return tuple(ranges)


def collect_modules(
    buffer,
    fmt: DumpFormat,
    denylist: Denylist = DEFAULT_DENYLIST,
    scan_bytes: int = 256 * 1024,
    max_modules: int = 100,
    ranges: Optional[Tuple[ModuleRange, ...]] = None,
    table: Optional[OffsetTable] = None,
    fields=None,
) -> ModuleScanResult:
    """Listed module names followed by scanned names.

    The list is the minidump module list for MDMP buffers and the triage
    driver list when the kernel table declares one.
    """
    scanned = scan_modules(buffer, denylist, scan_bytes, max_modules)
    if ranges is None:
        if fmt is DumpFormat.MINIDUMP_MDMP:
            ranges = read_module_list(buffer)
        elif table is not None:
            ranges = read_driver_list(buffer, table, fields)
        else:
            ranges = ()

    modules: List[ModuleName] = []
    rejected: List[RejectedValue] = list(scanned.rejected)
    index: Dict[str, int] = {}

    for rng in ranges:
        if rng.name in index or not is_plausible_module_name(rng.name):
            continue
        if denylist.rejects_module(rng.name):
            if all(r.value != rng.name for r in rejected):
                rejected.append(RejectedValue('module', rng.name, "known fabricated module name"))
            continue
        index[rng.name] = len(modules)
        modules.append(ModuleName(
            name=rng.name,
            provenance=Provenance.MODULE_LIST,
            live=True,
            system=rng.name in SYSTEM_MODULES,
        ))

    for mod in scanned.modules:
        if mod.name in index:
            continue
        if len(modules) >= max_modules:
            break
        index[mod.name] = len(modules)
        modules.append(mod)

    return ModuleScanResult(modules=tuple(modules), rejected=tuple(rejected), ranges=tuple(ranges))

"""Typed reads of header fields at the offsets declared by an OffsetTable.

Every read is bounds-checked and little-endian with the width taken from the
table. A field that cannot be read is reported in ExtractedFields.errors and
left out of the values; nothing is guessed in its place.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from loguru import logger

from .codes import bug_check_name, dump_type_name, exception_name
from .errors import InvalidatedField, TruncatedBufferError
from .models import BugCheckRecord, FieldError
from .offsets import FieldKind, FieldSpec, MinidumpStreamType, OffsetTable

_UINT_CODES = {1: 'B', 2: 'H', 4: 'I', 8: 'Q'}
_ENDIAN_PREFIX = {'little': '<', 'big': '>'}

# 100ns intervals between 1601-01-01 and 1970-01-01
FILETIME_EPOCH_OFFSET = 116444736000000000
# 9999-12-31 23:59:59 UTC, the last second datetime can represent
MAX_UNIX_TIME = 253402300799

MINIDUMP_HEADER_SIZE = 32
MINIDUMP_DIRECTORY_ENTRY_SIZE = 12
MAX_STREAMS = 1024


# ============================================================================
# MINIDUMP STREAM DIRECTORY
# ============================================================================

@dataclass(frozen=True)
class StreamEntry:
    """MINIDUMP_DIRECTORY entry"""
    stream_type: int
    data_size: int
    rva: int


def read_stream_directory(buffer) -> Mapping[int, StreamEntry]:
    """Parse the MINIDUMP_DIRECTORY array. The first entry of each type wins."""
    size = len(buffer)
    if size < MINIDUMP_HEADER_SIZE:
        return MappingProxyType({})

    # DWORD NumberOfStreams at +8, RVA StreamDirectoryRva at +12
    count, directory_rva = struct.unpack('<II', bytes(buffer[8:16]))
    if count > MAX_STREAMS:
        logger.warning(f"Minidump claims {count} streams, reading the first {MAX_STREAMS}")
        count = MAX_STREAMS

    streams: Dict[int, StreamEntry] = {}
    for i in range(count):
        offset = directory_rva + i * MINIDUMP_DIRECTORY_ENTRY_SIZE
        if offset + MINIDUMP_DIRECTORY_ENTRY_SIZE > size:
            logger.warning(f"Stream directory truncated after {i} of {count} entries")
            break
        stream_type, data_size, rva = struct.unpack(
            '<III', bytes(buffer[offset:offset + MINIDUMP_DIRECTORY_ENTRY_SIZE])
        )
        if stream_type not in streams:
            streams[stream_type] = StreamEntry(stream_type, data_size, rva)

    return MappingProxyType(streams)


# ============================================================================
# FIELD READS
# ============================================================================

def read_field(buffer, spec: FieldSpec, name: str = "field", base: int = 0) -> Any:
    """Decode one field. Raises TruncatedBufferError instead of reading past the end."""
    start = base + spec.offset
    end = start + spec.width
    if start < 0 or end > len(buffer):
        raise TruncatedBufferError(name, start, spec.width, len(buffer))

    raw = bytes(buffer[start:end])
    if spec.kind is FieldKind.ASCII:
        return raw.split(b'\x00', 1)[0].decode('latin-1')

    value, = struct.unpack(_ENDIAN_PREFIX[spec.endianness] + _UINT_CODES[spec.width], raw)
    if spec.kind is FieldKind.FILETIME:
        if value <= FILETIME_EPOCH_OFFSET:
            return 0
        seconds = (value - FILETIME_EPOCH_OFFSET) // 10_000_000
        if seconds > MAX_UNIX_TIME:
            raise InvalidatedField(name, f"0x{value:016X}", "FILETIME out of range")
        return seconds
    return value


def read_fields(
    buffer,
    specs: Mapping[str, FieldSpec],
    streams: Optional[Mapping[int, StreamEntry]] = None,
) -> Tuple[Dict[str, Any], List[FieldError]]:
    values: Dict[str, Any] = {}
    errors: List[FieldError] = []
    streams = streams or {}

    for name, spec in specs.items():
        base = 0
        if spec.stream is not None:
            entry = streams.get(spec.stream)
            if entry is None:
                errors.append(FieldError(name, f"{MinidumpStreamType(spec.stream).name} stream not present"))
                continue
            if spec.offset + spec.width > entry.data_size:
                errors.append(FieldError(
                    name,
                    f"offset +0x{spec.offset:X} outside {entry.data_size}-byte "
                    f"{MinidumpStreamType(spec.stream).name} stream",
                ))
                continue
            base = entry.rva
        try:
            values[name] = read_field(buffer, spec, name, base)
        except TruncatedBufferError as e:
            logger.warning(str(e))
            errors.append(FieldError(name, str(e)))
        except InvalidatedField as e:
            logger.warning(str(e))
            errors.append(FieldError(name, e.reason))

    return values, errors


@dataclass(frozen=True)
class ExtractedFields:
    values: Mapping[str, Any]
    errors: Tuple[FieldError, ...]
    streams: Mapping[int, StreamEntry]

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


def extract_fields(buffer, table: OffsetTable) -> ExtractedFields:
    """Read every field declared by the table."""
    streams = read_stream_directory(buffer) if table.uses_streams else MappingProxyType({})
    values, errors = read_fields(buffer, table.fields, streams)
    logger.debug(f"{table.format.value}: read {len(values)} fields, {len(errors)} unavailable")
    return ExtractedFields(
        values=MappingProxyType(values),
        errors=tuple(errors),
        streams=streams,
    )


# ============================================================================
# DERIVED RECORDS
# ============================================================================

def build_bug_check(
    fields: ExtractedFields, table: OffsetTable
) -> Tuple[Optional[BugCheckRecord], Optional[FieldError]]:
    """Assemble an unchecked BugCheckRecord from extracted fields.

    Returns (record, None) on success, or (None, error) when the table's guard
    does not hold or the parameter block is incomplete. A missing code
    returns (None, None) because the extractor already reported it.
    """
    if table.bug_check_guard is not None:
        guard_field, expected = table.bug_check_guard
        actual = fields.get(guard_field)
        if actual != expected:
            shown = f"0x{actual:08X}" if isinstance(actual, int) else "absent"
            return None, FieldError(
                'bug_check_code',
                f"{guard_field} is {shown}, not 0x{expected:08X}; no bug check recorded",
            )

    code = fields.get('bug_check_code')
    if code is None:
        return None, None

    params = [fields.get(f'param{i}') for i in range(1, 5)]
    if any(p is None for p in params):
        return None, FieldError('parameters', "bug-check parameter block incomplete")

    return BugCheckRecord(code=code, name=bug_check_name(code), parameters=tuple(params)), None


def compose_windows_version(fields: ExtractedFields) -> Optional[str]:
    major = fields.get('windows_version_major')
    minor = fields.get('windows_version_minor')
    if major is None or minor is None:
        return None
    version = f"{major}.{minor}"
    build = fields.get('windows_build')
    if build is not None:
        version += f".{build}"
    return version


def describe_system(fields: ExtractedFields, table: OffsetTable) -> Dict[str, Any]:
    """Architecture, processor count, version, dump type, time and exception."""
    architecture = table.architecture_name(fields.get('architecture'))
    exception_code = fields.get('exception_code')
    dump_type = fields.get('dump_type')
    timestamp = fields.get('timestamp')
    return {
        'architecture': architecture,
        'architecture_raw': fields.get('architecture'),
        'pointer_width': table.pointer_width(architecture),
        'processor_count': fields.get('processor_count'),
        'windows_version': compose_windows_version(fields),
        'dump_type': dump_type_name(dump_type) if dump_type is not None else None,
        'timestamp': timestamp or None,
        'exception_code': exception_code or None,
        'exception_name': exception_name(exception_code) if exception_code else None,
        'exception_address': fields.get('exception_address') or None,
    }

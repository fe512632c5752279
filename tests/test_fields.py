"""Tests for header field extraction."""
import struct

import pytest

from conftest import UNIX_TIME, build_minidump, build_pagedu64, build_pagedump
from dump_decoder.errors import InvalidatedField, TruncatedBufferError
from dump_decoder.fields import (
    FILETIME_EPOCH_OFFSET,
    MAX_UNIX_TIME,
    build_bug_check,
    describe_system,
    extract_fields,
    read_field,
    read_stream_directory,
)
from dump_decoder.models import Verdict
from dump_decoder.offsets import (
    MDMP_TABLE,
    PAGEDU64_TABLE,
    PAGEDUMP_TABLE,
    FieldKind,
    FieldSpec,
    MinidumpStreamType,
)


def test_pagedu64_bug_check_at_0x38():
    """0x0A at offset 0x38 decodes as IRQL_NOT_LESS_OR_EQUAL."""
    data = build_pagedu64(bug_check=0x0A)
    fields = extract_fields(data, PAGEDU64_TABLE)
    record, error = build_bug_check(fields, PAGEDU64_TABLE)

    assert error is None
    assert record.code == 10
    assert record.name == 'IRQL_NOT_LESS_OR_EQUAL'
    assert record.verdict is Verdict.UNCHECKED


def test_pagedu64_parameters_are_64_bit():
    """Each parameter is a full u64; the high dword is not dropped."""
    params = (0x1, 0xFFFFF80000001000, 0x0000000100000002, 0xFFFFF80312345678)
    data = build_pagedu64(params=params)
    record, _ = build_bug_check(extract_fields(data, PAGEDU64_TABLE), PAGEDU64_TABLE)
    assert record.parameters == params


def test_pagedump_parameters_are_32_bit():
    data = build_pagedump(bug_check=0x50, params=(0xC0000000, 0x1, 0x80501234, 0x0))
    record, _ = build_bug_check(extract_fields(data, PAGEDUMP_TABLE), PAGEDUMP_TABLE)
    assert record.code == 0x50
    assert record.name == 'PAGE_FAULT_IN_NONPAGED_AREA'
    assert record.parameters == (0xC0000000, 0x1, 0x80501234, 0x0)


def test_read_field_refuses_to_read_past_end():
    """A field crossing the buffer end raises instead of reading garbage."""
    with pytest.raises(TruncatedBufferError) as excinfo:
        read_field(b"PAGEDU64" + bytes(4), FieldSpec(0x0C, 4), 'minor')
    err = excinfo.value
    assert err.field == 'minor'
    assert err.offset == 0x0C
    assert err.size == 12


def test_truncated_header_reports_missing_fields():
    """Fields beyond the end are listed as errors; earlier fields still decode."""
    data = build_pagedu64()[:0x60]
    fields = extract_fields(data, PAGEDU64_TABLE)

    assert fields.get('bug_check_code') == 0x0A
    assert fields.get('param4') == 0xFFFFF80312345678
    missing = {e.field for e in fields.errors}
    assert missing == {'exception_code', 'exception_address', 'dump_type', 'timestamp'}
    assert 'exception_code' not in fields.values


def test_truncated_parameter_block():
    """A cut inside the parameter block yields no record, not a partial one."""
    data = build_pagedu64()[:0x50]
    record, error = build_bug_check(extract_fields(data, PAGEDU64_TABLE), PAGEDU64_TABLE)
    assert record is None
    assert error.field == 'parameters'


def test_filetime_converted_to_unix_seconds():
    fields = extract_fields(build_pagedu64(), PAGEDU64_TABLE)
    assert fields.get('timestamp') == UNIX_TIME


def test_filetime_beyond_year_9999_is_a_field_error():
    """An all-ones FILETIME is reported as unreadable, not passed on as seconds."""
    fields = extract_fields(build_pagedu64(filetime=0xFFFFFFFFFFFFFFFF), PAGEDU64_TABLE)

    assert 'timestamp' not in fields.values
    assert {e.field: e.reason for e in fields.errors} == {'timestamp': 'FILETIME out of range'}
    assert describe_system(fields, PAGEDU64_TABLE)['timestamp'] is None


def test_filetime_range_boundary():
    spec = FieldSpec(0, 8, FieldKind.FILETIME)
    last = MAX_UNIX_TIME * 10_000_000 + FILETIME_EPOCH_OFFSET
    assert read_field(struct.pack('<Q', last), spec) == MAX_UNIX_TIME

    with pytest.raises(InvalidatedField) as excinfo:
        read_field(struct.pack('<Q', last + 10_000_000), spec, 'timestamp')
    assert excinfo.value.field == 'timestamp'


def test_exception_address_fields():
    fields = extract_fields(build_pagedu64(exception_address=0xFFFFF80450001000), PAGEDU64_TABLE)
    assert describe_system(fields, PAGEDU64_TABLE)['exception_address'] == 0xFFFFF80450001000

    system = describe_system(extract_fields(build_pagedu64(), PAGEDU64_TABLE), PAGEDU64_TABLE)
    assert system['exception_address'] is None


def test_describe_pagedu64_system():
    fields = extract_fields(build_pagedu64(processors=16, version=(15, 19041)), PAGEDU64_TABLE)
    system = describe_system(fields, PAGEDU64_TABLE)

    assert system['architecture'] == 'x64'
    assert system['pointer_width'] == 8
    assert system['processor_count'] == 16
    assert system['windows_version'] == '15.19041'
    assert system['dump_type'] == 'FULL'
    assert system['exception_code'] is None


def test_describe_pagedump_system():
    system = describe_system(extract_fields(build_pagedump(), PAGEDUMP_TABLE), PAGEDUMP_TABLE)
    assert system['architecture'] == 'x86'
    assert system['pointer_width'] == 4


def test_minidump_stream_directory():
    streams = read_stream_directory(build_minidump())
    assert set(streams) == {MinidumpStreamType.SYSTEM_INFO, MinidumpStreamType.EXCEPTION}
    assert streams[MinidumpStreamType.EXCEPTION].data_size == 168


def test_minidump_bug_check_from_exception_stream():
    """Kernel minidumps carry the stop code behind a 0x80000003 exception."""
    data = build_minidump(bug_check=0xD1, params=(0x28, 0x2, 0x0, 0xFFFFF80455551234))
    fields = extract_fields(data, MDMP_TABLE)
    record, error = build_bug_check(fields, MDMP_TABLE)

    assert error is None
    assert record.code == 0xD1
    assert record.name == 'DRIVER_IRQL_NOT_LESS_OR_EQUAL'
    assert record.parameters[3] == 0xFFFFF80455551234


def test_minidump_user_exception_has_no_bug_check():
    """An ordinary access violation is not read as a stop code."""
    data = build_minidump(exception_code=0xC0000005, bug_check=0x1234)
    fields = extract_fields(data, MDMP_TABLE)
    record, error = build_bug_check(fields, MDMP_TABLE)

    assert record is None
    assert error.field == 'bug_check_code'
    assert '0xC0000005' in error.reason

    system = describe_system(fields, MDMP_TABLE)
    assert system['exception_code'] == 0xC0000005
    assert system['exception_name'] == 'ACCESS_VIOLATION'


def test_minidump_system_info():
    fields = extract_fields(build_minidump(architecture=9, processors=12), MDMP_TABLE)
    system = describe_system(fields, MDMP_TABLE)
    assert system['architecture'] == 'x64'
    assert system['pointer_width'] == 8
    assert system['processor_count'] == 12
    assert system['windows_version'] == '10.0.19045'
    assert system['timestamp'] == UNIX_TIME


def test_minidump_missing_exception_stream():
    """Absent streams are reported per field."""
    fields = extract_fields(build_minidump(include_exception=False), MDMP_TABLE)
    reasons = {e.field: e.reason for e in fields.errors}
    assert 'EXCEPTION stream not present' in reasons['bug_check_code']
    assert fields.get('processor_count') == 4

"""Synthetic dump builders shared by the test modules."""
import os
import struct
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dump_decoder import modules  # noqa: E402

# 2021-01-01 00:00:00 UTC
UNIX_TIME = 1609459200
FILETIME = UNIX_TIME * 10_000_000 + 116444736000000000


def _put(buf: bytearray, offset: int, fmt: str, *values) -> None:
    struct.pack_into(fmt, buf, offset, *values)


def build_pagedu64(
    bug_check=0x0A,
    params=(0x10, 0x2, 0x0, 0xFFFFF80312345678),
    machine=0x8664,
    processors=8,
    version=(15, 19041),
    dump_type=1,
    exception_code=0,
    exception_address=0,
    filetime=FILETIME,
    size=0x3000,
    stack=None,
    drivers=None,
    payload=b"",
    payload_offset=0x2400,
) -> bytes:
    """PAGEDU64 header.

    ``stack`` is a list of u64 slots placed in a triage block; ``drivers`` is
    a list of (path, base, size) written as the triage driver list. Both are
    only read back when ``dump_type`` is 4.
    """
    buf = bytearray(size)
    buf[0:8] = b"PAGEDU64"
    _put(buf, 0x08, "<II", *version)
    _put(buf, 0x30, "<II", machine, processors)
    _put(buf, 0x38, "<I", bug_check)
    _put(buf, 0x40, "<QQQQ", *params)
    _put(buf, 0xF00, "<I", exception_code)
    _put(buf, 0xF10, "<Q", exception_address)
    _put(buf, 0xF98, "<I", dump_type)
    _put(buf, 0xFA8, "<Q", filetime)
    if stack is not None:
        stack_offset = 0x2100
        raw = struct.pack(f"<{len(stack)}Q", *stack)
        _put(buf, 0x2000 + 0x28, "<II", stack_offset, len(raw))
        _put(buf, 0x2000 + 0x48, "<Q", 0xFFFFD000DEAD0000)
        buf[stack_offset:stack_offset + len(raw)] = raw
    if drivers:
        _put_driver_list(buf, drivers)
    if payload:
        buf[payload_offset:payload_offset + len(payload)] = payload
    return bytes(buf)


def _put_driver_list(buf, drivers, list_offset=0x2600, pool=0x2A00):
    """DUMP_DRIVER_ENTRY64 array plus a DUMP_STRING pool for the paths."""
    _put(buf, 0x2000 + 0x30, "<II", list_offset, len(drivers))
    _put(buf, 0x2000 + 0x38, "<I", pool)
    for i, (path, base, image_size) in enumerate(drivers):
        entry = list_offset + i * 0x90
        _put(buf, entry, "<I", pool)
        _put(buf, entry + 0x38, "<Q", base)
        _put(buf, entry + 0x48, "<I", image_size)
        text = path.encode("utf-16-le") + b"\x00\x00"
        _put(buf, pool, "<I", len(path))
        buf[pool + 4:pool + 4 + len(text)] = text
        pool += (4 + len(text) + 7) & ~7


def build_pagedump(
    bug_check=0x50,
    params=(0xC0000000, 0x0, 0x80501234, 0x0),
    machine=0x014C,
    processors=2,
    version=(15, 2600),
    dump_type=1,
    size=0x2000,
    stack=None,
) -> bytes:
    """32-bit PAGEDUMP header. ``stack`` is a list of u32 slots in a triage block."""
    buf = bytearray(size)
    buf[0:8] = b"PAGEDUMP"
    _put(buf, 0x08, "<II", *version)
    _put(buf, 0x20, "<II", machine, processors)
    _put(buf, 0x28, "<I", bug_check)
    _put(buf, 0x2C, "<IIII", *params)
    _put(buf, 0xF88, "<I", dump_type)
    _put(buf, 0xFC0, "<Q", FILETIME)
    if stack is not None:
        stack_offset = 0x1100
        raw = struct.pack(f"<{len(stack)}I", *stack)
        _put(buf, 0x1000 + 0x28, "<II", stack_offset, len(raw))
        _put(buf, 0x1000 + 0x48, "<I", 0x8F000000)
        buf[stack_offset:stack_offset + len(raw)] = raw
    return bytes(buf)


def build_minidump(
    exception_code=0x80000003,
    bug_check=0xD1,
    params=(0x28, 0x2, 0x0, 0xFFFFF80455551234),
    architecture=9,
    processors=4,
    version=(10, 0, 19045),
    thread_id=7,
    stack=None,
    include_exception=True,
    payload=b"",
) -> bytes:
    """MDMP with SystemInfo, Exception and (optionally) ThreadList streams."""
    sysinfo = bytearray(56)
    _put(sysinfo, 0, "<H", architecture)
    _put(sysinfo, 6, "<B", processors)
    _put(sysinfo, 8, "<III", *version)

    exception = bytearray(168)
    _put(exception, 0, "<I", thread_id)
    _put(exception, 8, "<I", exception_code)
    _put(exception, 40, "<Q", bug_check)
    _put(exception, 48, "<QQQQ", *params)

    streams = [(7, bytes(sysinfo))]
    if include_exception:
        streams.append((6, bytes(exception)))

    stack_raw = b""
    if stack is not None:
        stack_raw = struct.pack(f"<{len(stack)}Q", *stack)
        # thread list: count + one MINIDUMP_THREAD, stack RVA patched below
        streams.append((3, bytes(4 + 48)))

    header_size = 32
    directory_size = 12 * len(streams)
    offset = header_size + directory_size
    layout = []
    for stream_type, data in streams:
        layout.append((stream_type, data, offset))
        offset += len(data)
    stack_rva = offset

    buf = bytearray(offset + len(stack_raw))
    buf[0:4] = b"MDMP"
    _put(buf, 4, "<I", 0xA793)
    _put(buf, 8, "<II", len(streams), header_size)
    _put(buf, 0x14, "<I", UNIX_TIME)
    for i, (stream_type, data, rva) in enumerate(layout):
        _put(buf, header_size + i * 12, "<III", stream_type, len(data), rva)
        buf[rva:rva + len(data)] = data
        if stream_type == 3:
            _put(buf, rva, "<I", 1)
            _put(buf, rva + 4, "<I", thread_id)
            _put(buf, rva + 4 + 24, "<QII", 0x000000C0FFEE0000, len(stack_raw), stack_rva)
    buf[stack_rva:] = stack_raw
    return bytes(buf) + payload


@pytest.fixture
def no_module_list(monkeypatch):
    """Keep the minidump library out of format-level tests."""
    monkeypatch.setattr(modules, "read_module_list", lambda buffer: ())


@pytest.fixture
def pagedu64_dump():
    return build_pagedu64()


@pytest.fixture
def pagedump_dump():
    return build_pagedump()


@pytest.fixture
def minidump_dump():
    return build_minidump()

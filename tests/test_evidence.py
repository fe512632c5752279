"""Tests for hex dump and string evidence."""
from dump_decoder.evidence import extract_strings, hex_dump, iter_strings


def test_hex_dump_rows():
    data = b"PAGEDU64" + bytes(range(8)) + b"ABC"
    lines = hex_dump(data).splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("00000000  50 41 47 45 44 55 36 34 00 01")
    assert lines[0].endswith("|PAGEDU64........|")
    assert lines[1].startswith("00000010  41 42 43")
    assert lines[1].endswith("|ABC|")


def test_hex_dump_is_bounded():
    assert len(hex_dump(bytes(4096)).splitlines()) == 1024 // 16
    assert len(hex_dump(bytes(4096), length=64, width=32).splitlines()) == 2
    assert hex_dump(b"") == ""


def test_extract_strings_ascii_and_utf16():
    """Both plain and wide-character runs are collected in offset order."""
    data = b"\x00\x01HelloWorld\x00\xff" + "WideText".encode('utf-16-le') + b"\x00\x00abc\x00"
    text = extract_strings(data)
    assert text.splitlines() == ['HelloWorld', 'WideText']


def test_iter_strings_offsets():
    data = b"\x00\x00first\x00\x00second"
    assert list(iter_strings(data)) == [(2, 'first'), (9, 'second')]


def test_extract_strings_is_capped():
    """The string evidence never exceeds 25000 characters."""
    data = b"\x00".join(b"string_number_%06d" % i for i in range(10000))
    text = extract_strings(data)
    assert len(text) == 25000

    assert len(extract_strings(data, max_length=100)) == 100


def test_min_run():
    data = b"\x00ab\x00abcd\x00abcdefgh\x00"
    assert extract_strings(data).splitlines() == ['abcd', 'abcdefgh']
    assert extract_strings(data, min_run=6).splitlines() == ['abcdefgh']


def test_string_scan_is_bounded():
    """Runs past ``scan_bytes`` are never searched, however large the buffer."""
    data = b"\x00early_string\x00" + bytes(64) + b"late_string\x00"
    assert extract_strings(data).splitlines() == ['early_string', 'late_string']
    assert extract_strings(data, scan_bytes=32).splitlines() == ['early_string']
    assert list(iter_strings(data, scan_bytes=4)) == []


def test_decode_uses_configured_string_bound():
    from conftest import build_pagedu64
    from dump_decoder.config import DecoderConfig
    from dump_decoder.decoder import decode

    buffer = build_pagedu64(payload=b"\x00beyond_the_bound\x00")
    assert 'beyond_the_bound' in decode(buffer).extracted_strings
    limited = decode(buffer, config=DecoderConfig(strings_scan_bytes=0x2000))
    assert 'beyond_the_bound' not in limited.extracted_strings
    assert 'PAGEDU64' in limited.extracted_strings

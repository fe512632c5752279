"""Raw byte evidence for human or AI review: a hex dump and extracted strings."""
from __future__ import annotations

import heapq
import re
from typing import Iterator, List, Tuple

HEX_DUMP_LENGTH = 1024
HEX_ROW_WIDTH = 16
MAX_STRINGS_LENGTH = 25000
MIN_STRING_RUN = 4
STRINGS_SCAN_BYTES = 16 * 1024 * 1024


def hex_dump(buffer, length: int = HEX_DUMP_LENGTH, width: int = HEX_ROW_WIDTH) -> str:
    """Offset, hex bytes and printable-ASCII gutter for the first ``length`` bytes."""
    data = bytes(buffer[:length])
    lines = []
    for row in range(0, len(data), width):
        chunk = data[row:row + width]
        hex_part = ' '.join(f"{b:02X}" for b in chunk).ljust(width * 3 - 1)
        ascii_part = ''.join(chr(b) if 0x20 <= b < 0x7F else '.' for b in chunk)
        lines.append(f"{row:08X}  {hex_part}  |{ascii_part}|")
    return '\n'.join(lines)


def _run_patterns(min_run: int) -> Tuple["re.Pattern[bytes]", "re.Pattern[bytes]"]:
    ascii_run = re.compile(rb'[\x20-\x7e]{%d,}' % min_run)
    utf16_run = re.compile(rb'(?:[\x20-\x7e]\x00){%d,}' % min_run)
    return ascii_run, utf16_run


def iter_strings(buffer, min_run: int = MIN_STRING_RUN,
                 scan_bytes: int = STRINGS_SCAN_BYTES) -> Iterator[Tuple[int, str]]:
    """Yield (offset, text) for ASCII and UTF-16LE runs in the first ``scan_bytes``, in offset order."""
    data = bytes(buffer[:scan_bytes])
    ascii_run, utf16_run = _run_patterns(min_run)
    ascii_hits = ((m.start(), m.group(0).decode('ascii')) for m in ascii_run.finditer(data))
    utf16_hits = ((m.start(), m.group(0).decode('utf-16-le')) for m in utf16_run.finditer(data))
    return heapq.merge(ascii_hits, utf16_hits, key=lambda hit: hit[0])


def extract_strings(buffer, max_length: int = MAX_STRINGS_LENGTH,
                    min_run: int = MIN_STRING_RUN,
                    scan_bytes: int = STRINGS_SCAN_BYTES) -> str:
    """Newline-joined string runs, cut at exactly ``max_length`` characters."""
    parts: List[str] = []
    total = 0
    for _, text in iter_strings(buffer, min_run, scan_bytes):
        parts.append(text)
        total += len(text) + 1
        if total >= max_length:
            break
    return '\n'.join(parts)[:max_length]

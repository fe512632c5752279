"""Dump format detection from the leading signature bytes."""
from __future__ import annotations

import struct
from typing import Optional, Tuple

from loguru import logger

from .models import DumpFormat

SIGNATURE_LENGTH = 8

MINIDUMP_SIGNATURE = 0x504D444D  # 'MDMP' read as little-endian u32

# Full 8-byte prefixes of kernel DUMP_HEADER / DUMP_HEADER64.
KERNEL_SIGNATURES = {
    "PAGEDU64": DumpFormat.KERNEL_PAGEDU64,
    "PAGEDUMP": DumpFormat.KERNEL_FULL,
}

# Payloads people upload by mistake, checked only when nothing above matches.
FOREIGN_SIGNATURES: Tuple[Tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "PNG image"),
    (b"\xff\xd8\xff", "JPEG image"),
    (b"GIF87a", "GIF image"),
    (b"GIF89a", "GIF image"),
    (b"%PDF", "PDF document"),
    (b"PK\x03\x04", "ZIP archive"),
    (b"\x1f\x8b", "gzip archive"),
    (b"7z\xbc\xaf\x27\x1c", "7-Zip archive"),
    (b"Rar!\x1a\x07", "RAR archive"),
    (b"MZ", "Windows executable"),
)


def detect_format(buffer) -> DumpFormat:
    """Classify the buffer by its first 8 bytes. Never raises."""
    if buffer is None or len(buffer) < SIGNATURE_LENGTH:
        logger.debug("Buffer shorter than signature, treating as Unknown")
        return DumpFormat.UNKNOWN

    head = bytes(buffer[:SIGNATURE_LENGTH]).decode("latin-1")

    fmt = KERNEL_SIGNATURES.get(head)
    if fmt is not None:
        return fmt

    if struct.unpack_from("<I", bytes(buffer[:4]))[0] == MINIDUMP_SIGNATURE:
        return DumpFormat.MINIDUMP_MDMP

    logger.debug(f"No dump signature matched: {head!r}")
    return DumpFormat.UNKNOWN


def identify_foreign_format(buffer) -> Optional[str]:
    """Name a common non-dump file type, or None."""
    if buffer is None or len(buffer) == 0:
        return None
    head = bytes(buffer[:SIGNATURE_LENGTH])
    for magic, label in FOREIGN_SIGNATURES:
        if head.startswith(magic):
            return label
    return None

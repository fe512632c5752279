"""Decoder pipeline: buffer in, validated CrashData out.

decode() is synchronous, pure and keeps no state between calls, so separate
buffers can be decoded from separate threads (decode_many). The 30 second
processing budget is enforced around a whole call by decode_with_deadline.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from .config import DecoderConfig, categorize_size
from .errors import DecodeTimeout, UnrecognizedFormat
from .evidence import extract_strings, hex_dump
from .fields import build_bug_check, describe_system, extract_fields
from .models import CrashData, DumpFormat
from .modules import collect_modules
from .offsets import require_table
from .report import assemble
from .signatures import SIGNATURE_LENGTH, detect_format, identify_foreign_format
from .stack import find_module, locate_stack_region, reconstruct_stack
from .validation import validate

DEFAULT_CONFIG = DecoderConfig()


def decode(buffer, category: Optional[str] = None,
           config: Optional[DecoderConfig] = None) -> CrashData:
    """Decode one dump buffer.

    Args:
        buffer: Raw dump bytes (bytes, bytearray, memoryview or mmap)
        category: Upstream size category ('minidump' or 'kernel'); derived
            from the buffer size when not given. Informational only: the
            format always comes from the signature.
        config: Limits and denylist additions

    Returns:
        CrashData. Never raises for malformed input.
    """
    config = config or DEFAULT_CONFIG
    denylist = config.denylist
    if buffer is None:
        buffer = b""
    size = len(buffer)
    category = category or categorize_size(size, config.minidump_threshold)

    dump_hex = hex_dump(buffer, config.hex_dump_length, config.hex_row_width)
    strings = extract_strings(buffer, config.max_strings_length, config.min_string_run,
                              config.strings_scan_bytes)

    if size < SIGNATURE_LENGTH:
        logger.info(f"Buffer of {size} bytes is too short for a signature, evidence only")
        return assemble(DumpFormat.UNKNOWN, size, category=category,
                        hex_dump=dump_hex, extracted_strings=strings)

    fmt = detect_format(buffer)
    logger.info(f"Detected format {fmt.value} ({size} bytes, category {category})")

    try:
        table = require_table(fmt, bytes(buffer[:SIGNATURE_LENGTH]))
    except UnrecognizedFormat as e:
        logger.info(f"{e}; falling back to format-independent extraction")
        scan = collect_modules(buffer, fmt, denylist, config.module_scan_bytes, config.max_modules)
        accepted = validate(None, scan.modules, denylist=denylist)
        return assemble(
            fmt, size,
            category=category,
            modules=accepted.modules,
            rejected_modules=scan.rejected + accepted.rejected_modules,
            hex_dump=dump_hex,
            extracted_strings=strings,
            foreign_format=identify_foreign_format(buffer),
        )

    fields = extract_fields(buffer, table)
    record, bug_check_error = build_bug_check(fields, table)
    system = describe_system(fields, table)

    scan = collect_modules(buffer, fmt, denylist, config.module_scan_bytes, config.max_modules,
                           table=table, fields=fields)

    # fabricated names never own an address
    attributable = tuple(r for r in scan.ranges if not denylist.rejects_module(r.name))
    faulting = find_module(attributable, system.get('exception_address'))
    if faulting is not None:
        system['faulting_module'] = faulting.name

    region = locate_stack_region(buffer, table, fields, config.stack_region_limit)
    frames = reconstruct_stack(region, system['pointer_width'], attributable, config.max_stack_frames)

    result = validate(record, scan.modules, system, scan.ranges, denylist)

    field_errors = list(fields.errors)
    if bug_check_error is not None:
        field_errors.append(bug_check_error)

    if result.bug_check is not None:
        summary = f"bug check 0x{result.bug_check.code:08X} {result.bug_check.verdict.value}"
    else:
        summary = "no bug check"
    if system.get('faulting_module'):
        summary += f" in {system['faulting_module']}"
    logger.info(f"{fmt.value}: {summary}, {len(result.modules)} modules, {len(frames)} frames")

    return assemble(
        fmt, size,
        category=category,
        bug_check=result.bug_check,
        system=system,
        modules=result.modules,
        rejected_modules=scan.rejected + result.rejected_modules,
        stack_frames=frames,
        hex_dump=dump_hex,
        extracted_strings=strings,
        field_errors=field_errors,
        validation_issues=result.issues,
    )


def decode_with_deadline(buffer, category: Optional[str] = None,
                         config: Optional[DecoderConfig] = None,
                         budget: Optional[float] = None,
                         label: Optional[str] = None) -> CrashData:
    """Run decode() under a wall-clock budget.

    The decode runs on a daemon thread; if it has not finished when the
    budget expires, DecodeTimeout is raised and the thread is abandoned.
    """
    config = config or DEFAULT_CONFIG
    budget = config.time_budget if budget is None else budget
    outcome: Dict[str, Any] = {}

    def run():
        try:
            outcome['result'] = decode(buffer, category, config)
        except Exception as e:
            outcome['error'] = e

    started = time.monotonic()
    worker = threading.Thread(target=run, name="dump-decode", daemon=True)
    worker.start()
    worker.join(timeout=budget)

    if worker.is_alive():
        logger.warning(f"Decode{' of ' + label if label else ''} still running after {budget:.1f}s, abandoning")
        raise DecodeTimeout(budget, label)
    if 'error' in outcome:
        raise outcome['error']

    logger.debug(f"Decode finished in {time.monotonic() - started:.2f}s")
    return outcome['result']


def decode_many(buffers: Sequence, category: Optional[str] = None,
                config: Optional[DecoderConfig] = None,
                max_workers: int = 4) -> List[CrashData]:
    """Decode independent buffers in parallel. Results keep input order."""
    results: List[Optional[CrashData]] = [None] * len(buffers)
    if not buffers:
        return []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(decode, buf, category, config): i
            for i, buf in enumerate(buffers)
        }
        for future in as_completed(future_to_index):
            results[future_to_index[future]] = future.result()

    return results

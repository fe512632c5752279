#!/usr/bin/env python3
"""
Crash Dump Decoder - Main Entry Point

Command-line front end for decoding Windows crash dumps.
"""

import json
import os
import sys
import argparse
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

# Load .env before reading DUMP_DECODER_* settings
load_dotenv()

from dump_decoder import (  # noqa: E402
    DecodeTimeout,
    DecoderConfig,
    decode_many,
    decode_with_deadline,
    format_report,
)


def _configure_logging(verbose: bool) -> None:
    level = "DEBUG" if verbose else os.environ.get("DUMP_DECODER_LOG_LEVEL", "WARNING")
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format="{time:HH:mm:ss} | {level: <8} | {message}")


def _read_dump(path: str) -> bytes:
    return Path(path).read_bytes()


def _emit(text: str, output: str = None) -> None:
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text)
            if not text.endswith('\n'):
                f.write('\n')
        print(f"Results saved to: {output}")
    else:
        print(text)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Crash Dump Decoder - Structured decoding of Windows crash dumps',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Decode a dump to a text report
  %(prog)s decode MEMORY.DMP

  # Full decode as JSON
  %(prog)s json 101824-12345-01.dmp -o result.json

  # Raw evidence only
  %(prog)s hexdump crash.dmp
  %(prog)s strings crash.dmp

  # Decode several dumps in parallel
  %(prog)s batch a.dmp b.dmp c.dmp

Settings can also come from DUMP_DECODER_* variables or a .env file.
        """
    )

    parser.add_argument(
        'command',
        choices=['decode', 'json', 'hexdump', 'strings', 'batch', 'test'],
        help='Command to execute'
    )

    parser.add_argument(
        'dump_files',
        nargs='*',
        help='Path(s) to crash dump file(s) (.dmp)'
    )

    parser.add_argument(
        '--output',
        '-o',
        help='Output file for results (default: console)'
    )

    parser.add_argument(
        '--verbose',
        '-v',
        action='store_true',
        help='Show debug logging on stderr'
    )

    parser.add_argument(
        '--workers',
        type=int,
        default=4,
        help='Parallel decodes for the batch command (default: 4)'
    )

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == 'test':
        print("Running test suite...")
        import pytest
        return pytest.main(['tests/', '-v'])

    if not args.dump_files:
        parser.error(f"{args.command} command requires dump_file argument")

    config = DecoderConfig.from_env()

    if args.command == 'batch':
        try:
            buffers = [_read_dump(path) for path in args.dump_files]
        except OSError as e:
            print(f"Error: could not read dump: {e}", file=sys.stderr)
            return 1

        results = decode_many(buffers, config=config, max_workers=args.workers)
        sections = []
        for path, data in zip(args.dump_files, results):
            sections.append(f"### {path}")
            sections.append(format_report(data))
            sections.append("")
        _emit('\n'.join(sections), args.output)
        return 0

    if len(args.dump_files) > 1:
        parser.error(f"{args.command} command takes a single dump_file (use batch for several)")

    path = args.dump_files[0]
    try:
        buffer = _read_dump(path)
    except OSError as e:
        print(f"Error: could not read dump: {e}", file=sys.stderr)
        return 1

    try:
        data = decode_with_deadline(buffer, config=config, label=path)
    except DecodeTimeout as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == 'decode':
        _emit(format_report(data), args.output)
    elif args.command == 'json':
        _emit(json.dumps(data.to_dict(), indent=2), args.output)
    elif args.command == 'hexdump':
        _emit(data.hex_dump, args.output)
    elif args.command == 'strings':
        _emit(data.extracted_strings, args.output)

    return 0


if __name__ == '__main__':
    sys.exit(main())

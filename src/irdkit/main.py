#!/usr/bin/env python3
"""
CLI for resolving PS3 disc keys and comparing IRD records.

    irdkit key   <iso|dir> [-k HEX] [-f KEYFILE] [-l GETKEY_LOG] [-b LAYERBREAK] [-r]
    irdkit hash  <iso>
    irdkit info  <iso>
    irdkit diff  <record.json> <record.json>
"""
from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from .constants import DEFAULT_LAYERBREAK, REDUMP_BASE_URL, REQUEST_TIMEOUT, RedumpEndpoints
from .differ import NOTHING_TO_COMPARE, compare
from .errors import IrdKitError
from .identity import compute_identity
from .ird_record import load_record
from .iso import find_iso_files, read_disc_info
from .redump import RedumpClient
from .resolver import KeyResolver, ResolverHints

log = logging.getLogger(__name__)


def init_logging(verbose: bool, log_dir: Optional[pathlib.Path] = None):
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    formatter = logging.Formatter("[%(asctime)s][%(levelname)s] %(message)s")
    # stderr, so --json output on stdout stays parseable
    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)
    logger.addHandler(ch)
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_dir / "irdkit.log", maxBytes=5_000_000, backupCount=3)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(formatter)
        logger.addHandler(fh)


def _emit_json(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_key(args) -> int:
    target = pathlib.Path(args.path)
    if target.is_dir():
        isos = find_iso_files(target, recurse=args.recurse)
        if not isos:
            log.warning("No ISO files found in %s", target)
    elif target.is_file():
        isos = [target]
    else:
        log.error("Not a valid ISO file or directory: %s", target)
        return 1

    hints = ResolverHints(
        explicit_hex_key=args.key,
        key_file_path=pathlib.Path(args.key_file) if args.key_file else None,
        getkey_log_path=pathlib.Path(args.getkey_log) if args.getkey_log else None,
    )
    endpoints = RedumpEndpoints(base_url=args.redump_url)
    failures = 0
    results = []
    with RedumpClient(endpoints=endpoints, timeout=args.timeout) as client:
        resolver = KeyResolver(lookup=client, progress=args.progress)
        for iso in isos:
            try:
                candidate = resolver.resolve(iso, hints, layerbreak=args.layerbreak)
            except IrdKitError as exc:
                log.error("[FAIL] %s: %s", iso, exc)
                failures += 1
                continue
            if not candidate.is_valid:
                failures += 1
            results.append(candidate)

    if args.json:
        _emit_json([c.as_dict() for c in results])
    else:
        for c in results:
            flag = "" if c.is_valid else "  (INVALID LENGTH)"
            print(f"{c.iso_path}: {c.hex} [{c.source.value}]{flag}")
    return 1 if failures else 0


def cmd_hash(args) -> int:
    try:
        ident = compute_identity(args.iso, progress=args.progress)
    except IrdKitError as exc:
        log.error("[FAIL] %s: %s", args.iso, exc)
        return 1
    if args.json:
        _emit_json(ident.as_dict())
    else:
        print(f"CRC32: {ident.crc32}")
        print(f"SHA1:  {ident.sha1}")
        print(f"Size:  {ident.size}")
    return 0


def cmd_info(args) -> int:
    try:
        info = read_disc_info(args.iso)
    except IrdKitError as exc:
        log.error("[FAIL] %s", exc)
        return 1
    if args.json:
        _emit_json(info.as_dict())
    else:
        print(f"Volume ID: {info.volume_id}")
        print(f"Size:      {info.size}")
        for name, size in info.as_dict()["files"].items():
            print(f"{name}: {'not found' if size is None else f'{size} bytes'}")
    return 0


def cmd_diff(args) -> int:
    try:
        a = load_record(args.first)
        b = load_record(args.second)
        result = compare(a, b)
    except IrdKitError as exc:
        log.error("[FAIL] %s", exc)
        return 1

    if args.json:
        _emit_json({
            "same_source": result.same_source,
            "entries": [e.as_dict() for e in result],
        })
    elif result.same_source:
        print(NOTHING_TO_COMPARE)
    else:
        for entry in result:
            print(entry)
    return 0


# ============================================================================
# ARGUMENTS
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="irdkit", description="PS3 disc key resolution and IRD comparison.")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--log-dir", default=None, help="Also write a rotating log file here")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("key", help="Resolve the disc key of an ISO, or of every ISO in a directory")
    p.add_argument("path", help="Path to an ISO file, or directory of ISO files")
    p.add_argument("-k", "--key", help="Hexadecimal representation of the disc key")
    p.add_argument("-f", "--key-file", help="Path to a redump .key file")
    p.add_argument("-l", "--getkey-log", help="Path to a .getkey.log file")
    p.add_argument("-b", "--layerbreak", type=int, default=None,
                   help=f"Layerbreak value in bytes, passed through (BD-Video hybrid discs use {DEFAULT_LAYERBREAK})")
    p.add_argument("-r", "--recurse", action="store_true", help="Recurse through all subdirectories")
    p.add_argument("--redump-url", default=REDUMP_BASE_URL)
    p.add_argument("--timeout", type=float, default=REQUEST_TIMEOUT)
    p.add_argument("--progress", action="store_true", help="Show hashing progress")
    p.add_argument("-j", "--json", action="store_true")
    p.set_defaults(func=cmd_key)

    p = sub.add_parser("hash", help="Print CRC32 and SHA1 of a disc image")
    p.add_argument("iso")
    p.add_argument("--progress", action="store_true")
    p.add_argument("-j", "--json", action="store_true")
    p.set_defaults(func=cmd_hash)

    p = sub.add_parser("info", help="Check an ISO and list its PS3 marker files")
    p.add_argument("iso")
    p.add_argument("-j", "--json", action="store_true")
    p.set_defaults(func=cmd_info)

    p = sub.add_parser("diff", help="Compare two IRD records (JSON form)")
    p.add_argument("first")
    p.add_argument("second")
    p.add_argument("-j", "--json", action="store_true")
    p.set_defaults(func=cmd_diff)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_logging(args.verbose, pathlib.Path(args.log_dir) if args.log_dir else None)
    return args.func(args)


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()

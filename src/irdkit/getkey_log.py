# src/irdkit/getkey_log.py
"""
Reader for `.getkey.log` files written by the PS3 GetKey dumping tool.

Only the fields the key resolver and an IRD encoder need are pulled out;
the rest of the log is ignored.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .constants import KEY_LENGTH
from .errors import GetKeyLogError, SourceNotFound

log = logging.getLogger(__name__)

SUCCESS_MARKER = "get_dec_key succeeded!"

_DISC_KEY_RE = re.compile(r"^\s*disc_key\s*=\s*([0-9A-Fa-f]+)\s*$", re.MULTILINE)
_DISC_ID_RE = re.compile(r"^\s*disc_id\s*=\s*([0-9A-Fa-fXx]+)\s*$", re.MULTILINE)
_HEX_LINE_RE = re.compile(r"^[0-9A-Fa-f\s]+$")


@dataclass(frozen=True)
class GetKeyLog:
    disc_key: bytes
    disc_id: Optional[str] = None
    pic: Optional[bytes] = None


def _read_pic(lines: list[str]) -> Optional[bytes]:
    for i, line in enumerate(lines):
        if line.strip() != "PIC:":
            continue
        digits = []
        for pic_line in lines[i + 1:]:
            if not pic_line.strip() or not _HEX_LINE_RE.match(pic_line):
                break
            digits.append("".join(pic_line.split()))
        try:
            return bytes.fromhex("".join(digits)) or None
        except ValueError:
            return None
    return None


def read_getkey_log(path: Union[str, Path]) -> GetKeyLog:
    path = Path(path)
    if not path.is_file():
        raise SourceNotFound(f"GetKey log not found: {path}")
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise GetKeyLogError(f"{path}: {exc}") from exc

    if SUCCESS_MARKER not in text:
        raise GetKeyLogError(f"{path}: GetKey did not report a successful key dump")

    m = _DISC_KEY_RE.search(text)
    if not m:
        raise GetKeyLogError(f"{path}: no disc_key entry")
    disc_key = bytes.fromhex(m.group(1)) if len(m.group(1)) % 2 == 0 else b""
    if len(disc_key) != KEY_LENGTH:
        raise GetKeyLogError(f"{path}: disc_key is not {KEY_LENGTH} bytes")

    id_match = _DISC_ID_RE.search(text)
    parsed = GetKeyLog(
        disc_key=disc_key,
        disc_id=id_match.group(1).upper() if id_match else None,
        pic=_read_pic(text.splitlines()),
    )
    log.debug("Read disc key from %s", path)
    return parsed


def parse_getkey_log(path: Union[str, Path]) -> bytes:
    """Disc key from a GetKey log. Default log parser of the key resolver."""
    return read_getkey_log(path).disc_key

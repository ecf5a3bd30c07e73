# src/irdkit/identity.py
from __future__ import annotations

import hashlib
import logging
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional, Union

from tqdm import tqdm

from .constants import HASH_CHUNK_SIZE
from .errors import InvalidDiscImage

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

# ────────────────────────────────────────────────────────────────
# Streaming digests
# ────────────────────────────────────────────────────────────────

def _iter_chunks(stream: BinaryIO, total: Optional[int], desc: str, progress: bool) -> Iterator[bytes]:
    with tqdm(total=total, unit="B", unit_scale=True, desc=desc, disable=not progress, leave=False) as bar:
        while True:
            chunk = stream.read(HASH_CHUNK_SIZE)
            if not chunk:
                break
            bar.update(len(chunk))
            yield chunk


def crc32(stream: BinaryIO, *, total: Optional[int] = None, progress: bool = False) -> bytes:
    """
    CRC32 of everything left in *stream*, as 4 big-endian bytes.

    The little-endian digest is reversed before use, so the hex form matches
    what redump.org lists for a disc.
    """
    value = 0
    for chunk in _iter_chunks(stream, total, "CRC32", progress):
        value = zlib.crc32(chunk, value)
    return (value & 0xFFFFFFFF).to_bytes(4, "big")


def sha1(stream: BinaryIO, *, total: Optional[int] = None, progress: bool = False) -> bytes:
    """SHA1 of everything left in *stream* (20 bytes)."""
    h = hashlib.sha1()
    for chunk in _iter_chunks(stream, total, "SHA1", progress):
        h.update(chunk)
    return h.digest()


def _digest_file(path: PathLike, digest: Callable[..., bytes], progress: bool) -> str:
    path = Path(path)
    try:
        with open(path, "rb") as f:
            value = digest(f, total=path.stat().st_size, progress=progress)
    except OSError as exc:
        raise InvalidDiscImage(f"cannot read {path}: {exc}") from exc
    return value.hex()


def crc32_hex(path: PathLike, progress: bool = False) -> str:
    return _digest_file(path, crc32, progress)


def sha1_hex(path: PathLike, progress: bool = False) -> str:
    return _digest_file(path, sha1, progress)


# ────────────────────────────────────────────────────────────────
# Disc identity
# ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DiscIdentity:
    crc32: str
    sha1: str
    size: int

    def as_dict(self) -> dict:
        return {"crc32": self.crc32, "sha1": self.sha1, "size": self.size}


def compute_identity(path: PathLike, progress: bool = False) -> DiscIdentity:
    """Hash the whole image twice, once per digest. Nothing is cached."""
    path = Path(path)
    log.debug("Computing disc identity of %s", path)
    return DiscIdentity(
        crc32=crc32_hex(path, progress),
        sha1=sha1_hex(path, progress),
        size=path.stat().st_size,
    )

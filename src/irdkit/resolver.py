# src/irdkit/resolver.py
"""
Disc key resolution.

A key is taken from the first source that yields a valid 16-byte key:

    1. explicit hex key            (-k)
    2. redump .key file            (-f)
    3. GetKey log                  (-l)
    4. <image>.key next to the image
    5. <image>.getkey.log next to the image
    6. redump.org lookup by CRC32, then SHA1 when CRC32 is ambiguous

Each step carries its own failure policy. A rejected key from a SKIP step
falls through to the next source; an ABORT step (the GetKey log readers)
ends the resolution with its error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple, Union

from .constants import GETKEY_LOG_SUFFIX, KEY_FILE_SUFFIX, KEY_LENGTH
from .errors import (
    GetKeyLogError, InvalidKeyFormat, IrdKitError,
    LookupAmbiguous, LookupNotFound, SourceNotFound,
)
from .getkey_log import parse_getkey_log
from .identity import crc32_hex, sha1_hex
from .iso import sidecar_path

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ────────────────────────────────────────────────────────────────
# Types
# ────────────────────────────────────────────────────────────────

class KeySource(str, Enum):
    EXPLICIT_HEX = "explicit-hex"
    KEY_FILE = "key-file"
    GETKEY_LOG = "getkey-log"
    SIDECAR_KEY_FILE = "sidecar-key-file"
    SIDECAR_GETKEY_LOG = "sidecar-getkey-log"
    REMOTE_LOOKUP = "remote-lookup"


class FailurePolicy(Enum):
    SKIP = "skip"    # log the rejected key and try the next source
    ABORT = "abort"  # the rejection ends this resolution


@dataclass(frozen=True)
class ResolverHints:
    explicit_hex_key: Optional[str] = None
    key_file_path: Optional[Path] = None
    getkey_log_path: Optional[Path] = None


@dataclass(frozen=True)
class KeyCandidate:
    key: bytes
    source: KeySource
    iso_path: Path
    layerbreak: Optional[int] = None

    @property
    def is_valid(self) -> bool:
        return len(self.key) == KEY_LENGTH

    @property
    def hex(self) -> str:
        return self.key.hex().upper()

    def as_dict(self) -> dict:
        return {
            "iso": str(self.iso_path),
            "key": self.hex,
            "source": self.source.value,
            "valid": self.is_valid,
            "layerbreak": self.layerbreak,
        }


class KeyLookup(Protocol):
    def query_by_hash(self, hash_hex: str) -> List[int]: ...

    def fetch_key(self, disc_id: int) -> bytes: ...


LogParser = Callable[[Path], bytes]
# Returns None when the source is not there at all.
KeyLoader = Callable[[Path, ResolverHints], Optional[bytes]]


@dataclass(frozen=True)
class ResolutionStep:
    source: KeySource
    load: KeyLoader
    on_failure: FailurePolicy
    check_length: bool = True


# ────────────────────────────────────────────────────────────────
# Key validation helpers
# ────────────────────────────────────────────────────────────────

def decode_hex_key(value: str) -> bytes:
    value = value.strip()
    if any(c.isspace() for c in value):
        raise InvalidKeyFormat(f"hex key must not contain whitespace: {value!r}")
    try:
        key = bytes.fromhex(value)
    except ValueError as exc:
        raise InvalidKeyFormat(f"not a hexadecimal key: {value!r}") from exc
    return validate_key(key)


def validate_key(key: bytes) -> bytes:
    if len(key) != KEY_LENGTH:
        raise InvalidKeyFormat(f"key is {len(key)} bytes, expected {KEY_LENGTH}")
    return key


def read_key_file(path: PathLike) -> bytes:
    path = Path(path)
    try:
        return path.read_bytes()
    except FileNotFoundError as exc:
        raise SourceNotFound(f"key file not found: {path}") from exc
    except OSError as exc:
        raise IrdKitError(f"cannot read key file {path}: {exc}") from exc


# ────────────────────────────────────────────────────────────────
# Resolver
# ────────────────────────────────────────────────────────────────

class KeyResolver:
    def __init__(
        self,
        lookup: Optional[KeyLookup] = None,
        log_parser: LogParser = parse_getkey_log,
        progress: bool = False,
    ):
        if lookup is None:
            from .redump import RedumpClient
            lookup = RedumpClient()
        self.lookup = lookup
        self.log_parser = log_parser
        self.progress = progress

    def steps(self) -> Tuple[ResolutionStep, ...]:
        return (
            ResolutionStep(KeySource.EXPLICIT_HEX, self._explicit_hex, FailurePolicy.SKIP),
            ResolutionStep(KeySource.KEY_FILE, self._key_file, FailurePolicy.SKIP),
            ResolutionStep(KeySource.GETKEY_LOG, self._getkey_log, FailurePolicy.ABORT),
            ResolutionStep(KeySource.SIDECAR_KEY_FILE, self._sidecar_key_file, FailurePolicy.SKIP),
            ResolutionStep(KeySource.SIDECAR_GETKEY_LOG, self._sidecar_getkey_log, FailurePolicy.ABORT),
            ResolutionStep(KeySource.REMOTE_LOOKUP, self._remote_lookup, FailurePolicy.ABORT, check_length=False),
        )

    def resolve(
        self,
        iso_path: PathLike,
        hints: Optional[ResolverHints] = None,
        layerbreak: Optional[int] = None,
    ) -> KeyCandidate:
        iso_path = Path(iso_path)
        hints = hints or ResolverHints()
        if not iso_path.is_file():
            raise SourceNotFound(f"{iso_path} is not a valid file")
        log.info("Reading %s", iso_path)

        for step in self.steps():
            try:
                key = step.load(iso_path, hints)
                if key is None:
                    continue
                if step.check_length:
                    validate_key(key)
            except (InvalidKeyFormat, GetKeyLogError) as exc:
                if step.on_failure is FailurePolicy.ABORT:
                    raise
                log.warning("Ignoring %s key for %s: %s", step.source.value, iso_path.name, exc)
                continue

            candidate = KeyCandidate(key=key, source=step.source, iso_path=iso_path, layerbreak=layerbreak)
            log.info("Key for %s from %s: %s", iso_path.name, step.source.value, candidate.hex)
            return candidate

        # The remote step never returns None, so this is only hit by custom step lists.
        raise LookupNotFound(f"no key source produced a key for {iso_path}")

    # ---- local sources ----

    def _explicit_hex(self, iso_path: Path, hints: ResolverHints) -> Optional[bytes]:
        if hints.explicit_hex_key is None:
            return None
        return decode_hex_key(hints.explicit_hex_key)

    def _key_file(self, iso_path: Path, hints: ResolverHints) -> Optional[bytes]:
        if hints.key_file_path is None:
            return None
        return read_key_file(hints.key_file_path)

    def _getkey_log(self, iso_path: Path, hints: ResolverHints) -> Optional[bytes]:
        if hints.getkey_log_path is None:
            return None
        path = Path(hints.getkey_log_path)
        if not path.is_file():
            raise SourceNotFound(f"GetKey log not found: {path}")
        return self.log_parser(path)

    def _sidecar_key_file(self, iso_path: Path, hints: ResolverHints) -> Optional[bytes]:
        path = sidecar_path(iso_path, KEY_FILE_SUFFIX)
        if not path.is_file():
            return None
        log.debug("Found sidecar key file %s", path)
        return read_key_file(path)

    def _sidecar_getkey_log(self, iso_path: Path, hints: ResolverHints) -> Optional[bytes]:
        path = sidecar_path(iso_path, GETKEY_LOG_SUFFIX)
        if not path.is_file():
            return None
        log.debug("Found sidecar GetKey log %s", path)
        return self.log_parser(path)

    # ---- redump.org ----

    def _pick_disc(self, ids: List[int], iso_path: Path) -> int:
        if not ids:
            raise LookupNotFound(f"{iso_path.name} not found in redump, cannot automatically retrieve key")
        return ids[0]

    def _remote_lookup(self, iso_path: Path, hints: ResolverHints) -> bytes:
        log.info("No key provided... Searching for key on redump.org...")
        ids = self.lookup.query_by_hash(crc32_hex(iso_path, self.progress))
        if len(ids) > 1:
            log.info("CRC32 matches %d discs, retrying with SHA1", len(ids))
            ids = self.lookup.query_by_hash(sha1_hex(iso_path, self.progress))
            if len(ids) > 1:
                raise LookupAmbiguous(
                    f"{iso_path.name} matches {len(ids)} redump discs; "
                    "search redump.org and run again with an explicit key"
                )
        disc_id = self._pick_disc(ids, iso_path)

        key = self.lookup.fetch_key(disc_id)
        if len(key) != KEY_LENGTH:
            log.warning("Invalid key obtained from redump (disc %d, %d bytes)", disc_id, len(key))
        return key


def resolve_key(
    iso_path: PathLike,
    hints: Optional[ResolverHints] = None,
    layerbreak: Optional[int] = None,
    lookup: Optional[KeyLookup] = None,
) -> KeyCandidate:
    return KeyResolver(lookup=lookup).resolve(iso_path, hints, layerbreak)

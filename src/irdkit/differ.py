# src/irdkit/differ.py
from __future__ import annotations

import gzip
import logging
import zlib
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

from .errors import CorruptBlob
from .ird_record import IRDRecord

log = logging.getLogger(__name__)

NOTHING_TO_COMPARE = "Both inputs are the same file, nothing to compare"


@dataclass(frozen=True)
class DiffEntry:
    label: str
    left: str
    right: Optional[str] = None  # None for derived metrics and summaries

    def __str__(self) -> str:
        if self.right is None:
            return f"{self.label}: {self.left}"
        return f"{self.label}: {self.left} vs {self.right}"

    def as_dict(self) -> dict:
        return {"label": self.label, "left": self.left, "right": self.right}


@dataclass
class DiffResult:
    entries: List[DiffEntry] = field(default_factory=list)
    same_source: bool = False

    def __iter__(self) -> Iterator[DiffEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────

def _dec(value: int) -> str:
    return str(value)


def _hex(value: int) -> str:
    return f"0x{value:X}"


def decompress_blob(name: str, blob: bytes) -> bytes:
    try:
        return gzip.decompress(blob)
    except (OSError, EOFError, zlib.error) as exc:
        raise CorruptBlob(f"{name} is not a valid gzip stream: {exc}") from exc


def byte_difference(a: bytes, b: bytes) -> int:
    """
    Length difference plus mismatching positions over the common prefix.
    Not an edit distance: one inserted byte shifts and counts everything after it.
    """
    return abs(len(a) - len(b)) + sum(x != y for x, y in zip(a, b))


# (label, attribute, formatter); strings are compared and printed as-is
SCALAR_FIELDS: Tuple[Tuple[str, str, Callable], ...] = (
    ("Version", "version", _dec),
    ("Title ID", "title_id", str),
    ("Title", "title", str),
    ("System Version", "system_version", str),
    ("Disc Version", "disc_version", str),
    ("App Version", "app_version", str),
    ("Extra Config", "extra_config", _hex),
    ("Attachments", "attachments", _hex),
    ("UID", "uid", _hex),
)

BLOB_FIELDS = (("Header", "header"), ("Footer", "footer"))

FIXED_FIELDS = (("Data1 Key", "data1_key"), ("Data2 Key", "data2_key"), ("PIC", "pic"))


# ────────────────────────────────────────────────────────────────
# Field checks
# ────────────────────────────────────────────────────────────────

def _diff_scalars(a: IRDRecord, b: IRDRecord) -> List[DiffEntry]:
    out = []
    for label, attr, fmt in SCALAR_FIELDS:
        va, vb = getattr(a, attr), getattr(b, attr)
        if va != vb:
            out.append(DiffEntry(label, fmt(va), fmt(vb)))
    return out


def _diff_blobs(a: IRDRecord, b: IRDRecord) -> List[DiffEntry]:
    out = []
    for label, attr in BLOB_FIELDS:
        da = decompress_blob(f"{label} of first record", getattr(a, attr))
        db = decompress_blob(f"{label} of second record", getattr(b, attr))
        if len(da) != len(db):
            out.append(DiffEntry(f"{label} Length", _dec(len(da)), _dec(len(db))))
        n = byte_difference(da, db)
        if n:
            out.append(DiffEntry(label, f"differs by {n} bytes"))
    return out


def _diff_regions(a: IRDRecord, b: IRDRecord) -> List[DiffEntry]:
    out = []
    if a.region_count != b.region_count:
        out.append(DiffEntry("Region Count", _dec(a.region_count), _dec(b.region_count)))
    n = min(a.region_count, b.region_count, len(a.region_hashes), len(b.region_hashes))
    for i in range(n):
        if a.region_hashes[i] != b.region_hashes[i]:
            out.append(DiffEntry(f"Region {i} Hash", a.region_hashes[i].hex(), b.region_hashes[i].hex()))
    return out


def _diff_files(a: IRDRecord, b: IRDRecord) -> List[DiffEntry]:
    out = []
    if a.file_count != b.file_count:
        out.append(DiffEntry("File Count", _dec(a.file_count), _dec(b.file_count)))

    map_a, map_b = a.file_map(), b.file_map()
    missing_in_b: List[int] = []
    missing_in_a: List[int] = []

    for offset, hash_a in map_a.items():
        hash_b = map_b.get(offset)
        if hash_b is None:
            missing_in_b.append(offset)
        elif hash_a != hash_b:
            out.append(DiffEntry(f"File {offset} Hash", hash_a.hex(), hash_b.hex()))
    for offset in map_b:
        if offset not in map_a:
            missing_in_a.append(offset)

    # Emitted even when empty; output consumers rely on both lines being present.
    out.append(DiffEntry("Files missing in B", ", ".join(map(str, missing_in_b))))
    out.append(DiffEntry("Files missing in A", ", ".join(map(str, missing_in_a))))
    return out


def _diff_fixed(a: IRDRecord, b: IRDRecord) -> List[DiffEntry]:
    out = []
    for label, attr in FIXED_FIELDS:
        va, vb = getattr(a, attr), getattr(b, attr)
        if va != vb:
            out.append(DiffEntry(label, va.hex(), vb.hex()))
    return out


# ────────────────────────────────────────────────────────────────
# Public API
# ────────────────────────────────────────────────────────────────

def diff_records(a: IRDRecord, b: IRDRecord) -> List[DiffEntry]:
    """
    Every check runs; each contributes at most one entry per field.
    A corrupt header/footer raises CorruptBlob and no entries are returned,
    even when the two records are otherwise equal.
    Records with equal content (source path aside) give an empty list.
    """
    blob_entries = _diff_blobs(a, b)
    if a == b:
        return []
    entries: List[DiffEntry] = []
    entries += _diff_scalars(a, b)
    entries += blob_entries
    entries += _diff_regions(a, b)
    entries += _diff_files(a, b)
    entries += _diff_fixed(a, b)
    return entries


def same_source(a: IRDRecord, b: IRDRecord) -> bool:
    if a.source_path is None or b.source_path is None:
        return False
    return a.source_path.resolve() == b.source_path.resolve()


def compare(a: IRDRecord, b: IRDRecord) -> DiffResult:
    if same_source(a, b):
        log.info(NOTHING_TO_COMPARE)
        return DiffResult(same_source=True)
    entries = diff_records(a, b)
    log.debug("%d differences between %s and %s", len(entries), a.source_path, b.source_path)
    return DiffResult(entries=entries)

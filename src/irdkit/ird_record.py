# src/irdkit/ird_record.py
"""
IRD record value type.

The binary IRD codec lives outside irdkit. Decoded records reach this
package either as `IRDRecord` objects or as the JSON document produced by
`IRDRecord.to_dict()`; `load_record()` reads the latter.
"""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from .errors import RecordFormatError, SourceNotFound


@dataclass(frozen=True)
class FileEntry:
    offset: int   # sector offset of the file on disc
    hash: bytes   # MD5 of the file contents


@dataclass(frozen=True)
class IRDRecord:
    version: int
    title_id: str
    title: str
    system_version: str
    disc_version: str
    app_version: str
    header: bytes                      # gzip compressed
    footer: bytes                      # gzip compressed
    region_count: int
    region_hashes: Tuple[bytes, ...]
    file_count: int
    files: Tuple[FileEntry, ...]
    extra_config: int = 0
    attachments: int = 0
    uid: int = 0
    data1_key: bytes = b""
    data2_key: bytes = b""
    pic: bytes = b""
    source_path: Optional[Path] = field(default=None, compare=False)

    @property
    def file_keys(self) -> Tuple[int, ...]:
        return tuple(f.offset for f in self.files)

    @property
    def file_hashes(self) -> Tuple[bytes, ...]:
        return tuple(f.hash for f in self.files)

    def file_map(self) -> Dict[int, bytes]:
        """Offset -> hash. With duplicate offsets the first entry wins."""
        mapping: Dict[int, bytes] = {}
        for entry in self.files:
            mapping.setdefault(entry.offset, entry.hash)
        return mapping

    def with_source(self, path: Union[str, Path]) -> "IRDRecord":
        return replace(self, source_path=Path(path))

    # ────────────────────────────────────────────────────────────
    # JSON interchange
    # ────────────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "title_id": self.title_id,
            "title": self.title,
            "system_version": self.system_version,
            "disc_version": self.disc_version,
            "app_version": self.app_version,
            "header": base64.b64encode(self.header).decode("ascii"),
            "footer": base64.b64encode(self.footer).decode("ascii"),
            "region_count": self.region_count,
            "region_hashes": [h.hex() for h in self.region_hashes],
            "file_count": self.file_count,
            "files": [{"offset": f.offset, "hash": f.hash.hex()} for f in self.files],
            "extra_config": self.extra_config,
            "attachments": self.attachments,
            "uid": self.uid,
            "data1_key": self.data1_key.hex(),
            "data2_key": self.data2_key.hex(),
            "pic": self.pic.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source_path: Optional[Path] = None) -> "IRDRecord":
        try:
            region_hashes = tuple(_unhex(h) for h in data["region_hashes"])
            files = tuple(FileEntry(int(f["offset"]), _unhex(f["hash"])) for f in data["files"])
            return cls(
                version=int(data["version"]),
                title_id=str(data["title_id"]),
                title=str(data["title"]),
                system_version=str(data["system_version"]),
                disc_version=str(data["disc_version"]),
                app_version=str(data["app_version"]),
                header=_unb64(data["header"]),
                footer=_unb64(data["footer"]),
                region_count=int(data.get("region_count", len(region_hashes))),
                region_hashes=region_hashes,
                file_count=int(data.get("file_count", len(files))),
                files=files,
                extra_config=int(data.get("extra_config", 0)),
                attachments=int(data.get("attachments", 0)),
                uid=int(data.get("uid", 0)),
                data1_key=_unhex(data.get("data1_key", "")),
                data2_key=_unhex(data.get("data2_key", "")),
                pic=_unhex(data.get("pic", "")),
                source_path=source_path,
            )
        except KeyError as exc:
            raise RecordFormatError(f"IRD record is missing field {exc}") from exc
        except (TypeError, ValueError) as exc:
            raise RecordFormatError(f"IRD record has an invalid value: {exc}") from exc


def _unhex(value: str) -> bytes:
    return bytes.fromhex(value)


def _unb64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"bad base64 blob: {exc}") from exc


def make_files(offsets: Iterable[int], hashes: Iterable[bytes]) -> Tuple[FileEntry, ...]:
    """Pair parallel offset/hash sequences. Lengths must match."""
    offsets, hashes = list(offsets), list(hashes)
    if len(offsets) != len(hashes):
        raise RecordFormatError(f"{len(offsets)} file offsets but {len(hashes)} file hashes")
    return tuple(FileEntry(o, h) for o, h in zip(offsets, hashes))


def load_record(path: Union[str, Path]) -> IRDRecord:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SourceNotFound(f"IRD record not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise RecordFormatError(f"{path}: {exc}") from exc
    if not isinstance(data, dict):
        raise RecordFormatError(f"{path}: expected a JSON object")
    return IRDRecord.from_dict(data, source_path=path)

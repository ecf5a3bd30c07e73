# src/irdkit/iso.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import pycdlib
from pycdlib.pycdlibexception import PyCdlibException

from .constants import PS3_DISC_SFB, PS3_PARAM_SFO
from .errors import InvalidDiscImage

log = logging.getLogger(__name__)

PathLike = Union[str, Path]


# ────────────────────────────────────────────────────────────────
# Image access
# ────────────────────────────────────────────────────────────────

@contextmanager
def open_disc_image(path: PathLike) -> Iterator[pycdlib.PyCdlib]:
    """
    Open *path* read-only as an ISO9660 image.
    Raises InvalidDiscImage when pycdlib cannot make sense of it.
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidDiscImage(f"{path} is not a valid file")

    iso = pycdlib.PyCdlib()
    try:
        iso.open(str(path), mode="rb")
    except (PyCdlibException, OSError) as exc:
        raise InvalidDiscImage(f"{path}: not a valid ISO file ({exc})") from exc
    try:
        yield iso
    finally:
        iso.close()


def detect_iso(path: PathLike) -> bool:
    try:
        with open_disc_image(path):
            return True
    except InvalidDiscImage:
        return False


def _record_size(iso: pycdlib.PyCdlib, iso_path: str) -> Optional[int]:
    """Size of a file on the image, or None. Tries with and without ';1'."""
    candidates = [iso_path, iso_path.split(";")[0]]
    for candidate in candidates:
        try:
            return iso.get_record(iso_path=candidate).get_data_length()
        except PyCdlibException:
            continue
    return None


@dataclass
class DiscInfo:
    path: Path
    volume_id: str
    size: int
    files: Dict[str, Optional[int]] = field(default_factory=dict)

    @property
    def is_ps3_disc(self) -> bool:
        return self.files.get(PS3_DISC_SFB) is not None

    def as_dict(self) -> dict:
        return {
            "path": str(self.path),
            "volume_id": self.volume_id,
            "size": self.size,
            "files": {name.split(";")[0]: size for name, size in self.files.items()},
        }


def read_disc_info(path: PathLike) -> DiscInfo:
    """Volume id and the PS3 marker files present on the image (not parsed)."""
    path = Path(path)
    with open_disc_image(path) as iso:
        volume_id = iso.pvd.volume_identifier.decode("ascii", "replace").strip()
        files = {name: _record_size(iso, name) for name in (PS3_DISC_SFB, PS3_PARAM_SFO)}

    for name, size in files.items():
        if size is None:
            log.warning("%s: %s not found", path.name, name.split(";")[0])
    return DiscInfo(path=path, volume_id=volume_id, size=path.stat().st_size, files=files)


# ────────────────────────────────────────────────────────────────
# Filesystem helpers
# ────────────────────────────────────────────────────────────────

def sidecar_path(iso_path: PathLike, suffix: str) -> Path:
    """`game.iso` + `.getkey.log` -> `game.getkey.log`."""
    return Path(iso_path).with_suffix(suffix)


def find_iso_files(directory: PathLike, recurse: bool = False) -> List[Path]:
    directory = Path(directory)
    pattern = "**/*" if recurse else "*"
    if recurse:
        log.info("Recursively searching for ISOs in %s", directory)
    else:
        log.info("Searching for ISOs in %s", directory)
    return sorted(p for p in directory.glob(pattern) if p.is_file() and p.suffix.lower() == ".iso")

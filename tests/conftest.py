import gzip
from typing import Dict, List

import pytest

from irdkit.ird_record import FileEntry, IRDRecord


class FakeLookup:
    """In-memory stand-in for the redump.org client."""

    def __init__(self, results: Dict[str, List[int]], keys: Dict[int, bytes]):
        self.results = results
        self.keys = keys
        self.queries: List[str] = []
        self.fetched: List[int] = []

    def query_by_hash(self, hash_hex):
        self.queries.append(hash_hex)
        return list(self.results.get(hash_hex, []))

    def fetch_key(self, disc_id):
        self.fetched.append(disc_id)
        return self.keys[disc_id]


def make_record(**overrides) -> IRDRecord:
    fields = dict(
        version=9,
        title_id="BLES00001",
        title="Test Disc",
        system_version="3.41",
        disc_version="01.00",
        app_version="01.00",
        header=gzip.compress(b"H" * 64),
        footer=gzip.compress(b"F" * 32),
        region_count=2,
        region_hashes=(b"\x00" * 16, b"\x01" * 16),
        file_count=2,
        files=(FileEntry(10, b"\xaa" * 16), FileEntry(20, b"\xbb" * 16)),
        extra_config=0,
        attachments=0,
        uid=0x12345678,
        data1_key=b"\x11" * 16,
        data2_key=b"\x22" * 16,
        pic=b"\x33" * 115,
    )
    fields.update(overrides)
    return IRDRecord(**fields)


@pytest.fixture
def iso_file(tmp_path):
    path = tmp_path / "game.iso"
    path.write_bytes(bytes(range(256)) * 64)
    return path

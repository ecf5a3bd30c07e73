import json

import pytest

from conftest import make_record
from irdkit.errors import RecordFormatError, SourceNotFound
from irdkit.ird_record import FileEntry, IRDRecord, load_record, make_files


def test_file_views_stay_parallel():
    rec = make_record(files=(FileEntry(10, b"a"), FileEntry(20, b"b")))
    assert rec.file_keys == (10, 20)
    assert rec.file_hashes == (b"a", b"b")
    assert rec.file_map() == {10: b"a", 20: b"b"}


def test_make_files_rejects_length_mismatch():
    assert make_files([1, 2], [b"x", b"y"]) == (FileEntry(1, b"x"), FileEntry(2, b"y"))
    with pytest.raises(RecordFormatError):
        make_files([1, 2], [b"x"])


def test_source_path_ignored_by_equality(tmp_path):
    assert make_record().with_source(tmp_path / "a") == make_record()


def test_load_record(tmp_path):
    path = tmp_path / "a.json"
    path.write_text(json.dumps(make_record().to_dict()))
    rec = load_record(path)
    assert rec == make_record()
    assert rec.source_path == path


def test_load_record_missing_field(tmp_path):
    data = make_record().to_dict()
    del data["title_id"]
    path = tmp_path / "a.json"
    path.write_text(json.dumps(data))
    with pytest.raises(RecordFormatError, match="title_id"):
        load_record(path)


def test_load_record_bad_hex(tmp_path):
    data = make_record().to_dict()
    data["data1_key"] = "xyz"
    with pytest.raises(RecordFormatError):
        IRDRecord.from_dict(data)


def test_load_record_missing_file(tmp_path):
    with pytest.raises(SourceNotFound):
        load_record(tmp_path / "missing.json")


def test_load_record_not_json(tmp_path):
    path = tmp_path / "a.json"
    path.write_text("{not json")
    with pytest.raises(RecordFormatError):
        load_record(path)

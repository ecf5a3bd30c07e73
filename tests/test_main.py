import json

import pytest

from conftest import make_record
from irdkit import main as cli

KEY_HEX = "00112233445566778899AABBCCDDEEFF"


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, "init_logging", lambda verbose, log_dir=None: None)


def _write_record(path, **overrides):
    path.write_text(json.dumps(make_record(**overrides).to_dict()))
    return path


def test_key_with_explicit_hex(iso_file, capsys):
    assert cli.main(["key", str(iso_file), "-k", KEY_HEX, "--json"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out == [{
        "iso": str(iso_file),
        "key": KEY_HEX,
        "source": "explicit-hex",
        "valid": True,
        "layerbreak": None,
    }]


def test_key_directory_uses_sidecars(tmp_path, capsys):
    for name in ("a", "b"):
        (tmp_path / f"{name}.iso").write_bytes(b"\x00" * 32)
        (tmp_path / f"{name}.key").write_bytes(bytes.fromhex(KEY_HEX))
    assert cli.main(["key", str(tmp_path)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    assert all(line.endswith(f"{KEY_HEX} [sidecar-key-file]") for line in lines)


def test_key_missing_path(tmp_path):
    assert cli.main(["key", str(tmp_path / "missing.iso")]) == 1


def test_key_failure_sets_exit_status(iso_file, tmp_path):
    assert cli.main(["key", str(iso_file), "-f", str(tmp_path / "missing.key")]) == 1


def test_hash(iso_file, capsys):
    assert cli.main(["hash", str(iso_file), "--json"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert set(out) == {"crc32", "sha1", "size"}
    assert len(out["crc32"]) == 8


def test_diff_text(tmp_path, capsys):
    a = _write_record(tmp_path / "a.json")
    b = _write_record(tmp_path / "b.json", version=7)
    assert cli.main(["diff", str(a), str(b)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Version: 9 vs 7"
    assert "Files missing in B: " in out


def test_diff_same_file(tmp_path, capsys):
    a = _write_record(tmp_path / "a.json")
    assert cli.main(["diff", str(a), str(a)]) == 0
    assert capsys.readouterr().out.strip() == cli.NOTHING_TO_COMPARE


def test_diff_json_identical_content(tmp_path, capsys):
    a = _write_record(tmp_path / "a.json")
    b = _write_record(tmp_path / "b.json")
    assert cli.main(["diff", str(a), str(b), "--json"]) == 0
    assert json.loads(capsys.readouterr().out) == {"same_source": False, "entries": []}


def test_diff_corrupt_header(tmp_path):
    a = _write_record(tmp_path / "a.json")
    b = _write_record(tmp_path / "b.json", header=b"broken", version=1)
    assert cli.main(["diff", str(a), str(b)]) == 1


def _failing_crc32(stream, **kwargs):
    raise OSError(5, "Input/output error")


def test_key_read_error_fails_one_image_not_the_batch(tmp_path, monkeypatch, capsys):
    (tmp_path / "a.iso").write_bytes(b"\x00" * 32)
    (tmp_path / "b.iso").write_bytes(b"\x00" * 32)
    (tmp_path / "b.key").write_bytes(bytes.fromhex(KEY_HEX))
    monkeypatch.setattr("irdkit.identity.crc32", _failing_crc32)

    assert cli.main(["key", str(tmp_path)]) == 1
    lines = capsys.readouterr().out.splitlines()
    assert lines == [f"{tmp_path / 'b.iso'}: {KEY_HEX} [sidecar-key-file]"]


def test_hash_read_error(iso_file, monkeypatch):
    monkeypatch.setattr("irdkit.identity.crc32", _failing_crc32)
    assert cli.main(["hash", str(iso_file)]) == 1


def test_key_help_shows_default_layerbreak(capsys):
    with pytest.raises(SystemExit):
        cli.main(["key", "--help"])
    assert "12219392" in capsys.readouterr().out

import asyncio
import json

import pytest

from holdsnap.adapters import snapshot_json
from holdsnap.adapters.snapshot_json import JSONSnapshotWriter, write_json_atomic

A = "0x" + "aa" * 20


def test_writer_persists_mapping(tmp_path):
    w = JSONSnapshotWriter(str(tmp_path / "out"))
    path = asyncio.run(w.write("tok", {A: "123456789012345678901234567890"}))
    assert path.endswith("tok-balances.json")
    with open(path) as f:
        assert json.load(f) == {A: "123456789012345678901234567890"}
    assert not (tmp_path / "out" / "tok-balances.json.tmp").exists()


def test_failed_write_leaves_previous_file_intact(tmp_path, monkeypatch):
    path = tmp_path / "tok-balances.json"
    write_json_atomic(str(path), {A: "1"})

    def boom(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(snapshot_json.json, "dump", boom)
    with pytest.raises(OSError):
        write_json_atomic(str(path), {A: "2"})
    assert json.loads(path.read_text()) == {A: "1"}
    assert not (tmp_path / "tok-balances.json.tmp").exists()

from __future__ import annotations
import os, json, asyncio
from typing import Any, Mapping

from ..domain.value_types import Address
from ..ports.storage import SnapshotSink


def write_json_atomic(path: str, doc: Any, *, indent: int | None = None) -> None:
    """tmp file + os.replace: readers see the old file or the whole new one."""
    tmp = path + ".tmp"
    separators = None if indent is not None else (",", ":")
    try:
        with open(tmp, "w") as f:
            json.dump(doc, f, indent=indent, separators=separators)
            f.flush(); os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise


class JSONSnapshotWriter(SnapshotSink):
    def __init__(self, out_dir: str = ".") -> None:
        self.out_dir = out_dir
        os.makedirs(self.out_dir, exist_ok=True)

    def _path(self, name: str) -> str:
        return os.path.join(self.out_dir, f"{name}-balances.json")

    async def write(self, name: str, balances: Mapping[Address, str]) -> str:
        path = self._path(name)
        await asyncio.to_thread(write_json_atomic, path, dict(balances))
        return path

# holdsnap/ports/storage.py
from __future__ import annotations

from typing import Mapping, Protocol
from ..domain.models import ChunkRec
from ..domain.value_types import Address


class SnapshotSink(Protocol):
    """Port for persisting one token's finished holder -> balance mapping."""

    async def write(self, name: str, balances: Mapping[Address, str]) -> str:
        """Persist all-or-nothing; return where the artifact lives."""


class ManifestSink(Protocol):
    """Port for appending per-range scan status records (e.g., JSONL manifest)."""

    async def append(self, rec: ChunkRec) -> None:
        """Append a manifest record atomically (callers handle ordering/locking)."""

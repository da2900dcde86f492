from __future__ import annotations
from dataclasses import dataclass, field
from .value_types import Address, Status, TokenStatus

@dataclass(slots=True, frozen=True)
class BlockRange:
    start: int
    end: int
    def span(self) -> int: return self.end - self.start + 1

@dataclass(slots=True, frozen=True)
class TransferEvent:
    sender: Address
    receiver: Address

@dataclass(slots=True, frozen=True)
class ReserveState:
    reserve0: int
    reserve1: int

    def pick(self, index: int) -> int:
        if index not in (0, 1):
            raise ValueError(f"reserve index must be 0 or 1, got {index}")
        return self.reserve1 if index == 1 else self.reserve0

@dataclass(slots=True, frozen=True)
class PoolState:
    reserves: ReserveState
    total_supply: int

@dataclass(slots=True, frozen=True)
class TokenTarget:
    address: Address
    name: str

@dataclass(slots=True, frozen=True)
class ChunkRec:
    from_block: int
    to_block: int
    status: Status
    error: str | None = None
    logs: int = 0
    holders: int = 0
    updated_at: float = 0.0

@dataclass(slots=True, frozen=True)
class ScanResult:
    holders: frozenset[Address]
    ok: list[ChunkRec]
    failed: list[ChunkRec]

    def failed_ranges(self) -> list[BlockRange]:
        return [BlockRange(r.from_block, r.to_block) for r in self.failed]

@dataclass(slots=True)
class TokenReport:
    token: TokenTarget
    status: TokenStatus
    holders: int = 0                   # non-zero entries written
    path: str | None = None
    error: str | None = None
    unavailable: dict[Address, str] = field(default_factory=dict)   # holder -> domain error

@dataclass(slots=True)
class RunReport:
    scan: ScanResult
    tokens: list[TokenReport]

    @property
    def tokens_written(self) -> int:
        return sum(1 for t in self.tokens if t.status == "written")

    @property
    def tokens_failed(self) -> int:
        return sum(1 for t in self.tokens if t.status == "failed")

from __future__ import annotations

from .models import BlockRange


class SnapshotError(Exception):
    """Base class for every failure the snapshot engine reports."""


class TransportError(SnapshotError):
    """Node unreachable or answered with a non-2xx status."""


class ParseError(SnapshotError):
    """A value from the node (or a file) is not the shape we expect."""


class RPCError(SnapshotError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, code: int | None, message: str) -> None:
        super().__init__(f"RPC error code={code} message={message}")
        self.code = code
        self.message = message


class DomainError(SnapshotError):
    """A derived computation is undefined for the queried state."""


class ZeroTotalSupplyError(DomainError):
    pass


class ConfigError(SnapshotError):
    pass


class RangeScanError(SnapshotError):
    def __init__(self, block_range: BlockRange, cause: Exception) -> None:
        super().__init__(f"scan of blocks {block_range.start}-{block_range.end} failed: {cause}")
        self.block_range = block_range
        self.cause = cause


class BalanceQueryError(SnapshotError):
    def __init__(self, token: str, cause: Exception) -> None:
        super().__init__(f"balance query for {token} failed: {cause}")
        self.token = token
        self.cause = cause

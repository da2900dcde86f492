# holdsnap/ports/rpc.py
from __future__ import annotations

from typing import Any, Protocol, Sequence
from ..domain.value_types import Address, Topic0

RpcCall = tuple[str, list[Any]]


class RPCClient(Protocol):
    """Port defining the contract for an Ethereum JSON-RPC client."""

    async def call(self, method: str, params: list[Any]) -> Any:
        """Issue one request and return its `result`."""

    async def batch_call(self, calls: Sequence[RpcCall]) -> list[Any]:
        """Issue one batched request; element i of the result answers calls[i]."""

    async def get_logs(
        self,
        address: Address,
        topic0s: Sequence[Topic0],
        from_block: int,
        to_block: int,
    ) -> list[dict[str, Any]]:
        """Return raw logs for [from_block, to_block] inclusive."""

    async def aclose(self) -> None: ...

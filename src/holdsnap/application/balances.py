from __future__ import annotations
import logging
from typing import Sequence

from ..domain.decoding import decode_uint256, encode_balance_of
from ..domain.errors import BalanceQueryError, SnapshotError
from ..domain.value_types import Address
from ..ports.rpc import RPCClient, RpcCall

log = logging.getLogger(__name__)


def build_balance_calls(token: Address, holders: Sequence[Address], block: int) -> list[RpcCall]:
    tag = hex(block)
    return [("eth_call", [{"to": str(token), "data": encode_balance_of(h)}, tag]) for h in holders]


async def query_balances(
    rpc: RPCClient,
    token: Address,
    holders: Sequence[Address],
    block: int,
) -> list[int]:
    """
    balanceOf for every holder at `block` in ONE batched request.
    Index-aligned with `holders`; any bad element fails the whole token.
    """
    if not holders:
        return []
    log.debug("querying %d balances of %s at block %d", len(holders), token, block)
    try:
        results = await rpc.batch_call(build_balance_calls(token, holders, block))
        return [decode_uint256(r) for r in results]
    except SnapshotError as e:
        raise BalanceQueryError(token, e) from e


def nonzero_balances(holders: Sequence[Address], balances: Sequence[int]) -> dict[Address, int]:
    if len(holders) != len(balances):
        raise ValueError(f"{len(holders)} holders but {len(balances)} balances")
    return {h: b for h, b in zip(holders, balances) if b != 0}

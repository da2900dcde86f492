from __future__ import annotations
import logging
from typing import Mapping

from ..domain.decoding import GET_RESERVES_SELECTOR, TOTAL_SUPPLY_SELECTOR, decode_uint256, decode_words
from ..domain.lp import translate_lp_balances
from ..domain.models import PoolState, ReserveState
from ..domain.value_types import Address
from ..ports.rpc import RPCClient

log = logging.getLogger(__name__)


async def fetch_pool_state(rpc: RPCClient, pool: Address, block: int) -> PoolState:
    """getReserves() and totalSupply() at `block`, batched together."""
    tag = hex(block)
    reserves_raw, supply_raw = await rpc.batch_call([
        ("eth_call", [{"to": str(pool), "data": GET_RESERVES_SELECTOR}, tag]),
        ("eth_call", [{"to": str(pool), "data": TOTAL_SUPPLY_SELECTOR}, tag]),
    ])
    r0, r1 = decode_words(reserves_raw, 2)
    return PoolState(reserves=ReserveState(r0, r1), total_supply=decode_uint256(supply_raw))


async def lp_underlying_balances(
    rpc: RPCClient,
    pool: Address,
    balances: Mapping[Address, int],
    block: int,
    reserve_index: int = 1,
) -> tuple[dict[Address, int], dict[Address, str]]:
    state = await fetch_pool_state(rpc, pool, block)
    log.info("pool %s at block %d: reserve0=%d reserve1=%d totalSupply=%d",
             pool, block, state.reserves.reserve0, state.reserves.reserve1, state.total_supply)
    amounts, unavailable = translate_lp_balances(balances, state, reserve_index)
    for holder, reason in unavailable.items():
        log.error("LP share for %s unavailable: %s", holder, reason)
    return amounts, unavailable

from __future__ import annotations

from typing import Mapping

from .errors import DomainError, ZeroTotalSupplyError
from .models import PoolState
from .value_types import Address

WAD = 10**18


def pool_share(balance: int, total_supply: int) -> int:
    """Holder's fraction of the pool, 18-decimal fixed point, truncated."""
    if total_supply == 0:
        raise ZeroTotalSupplyError("pool total supply is zero at the snapshot block")
    return balance * WAD // total_supply


def underlying_amount(balance: int, total_supply: int, reserve: int) -> int:
    # multiply before dividing at each step; both divisions truncate
    return pool_share(balance, total_supply) * reserve // WAD


def translate_lp_balances(
    balances: Mapping[Address, int],
    pool: PoolState,
    reserve_index: int = 1,
) -> tuple[dict[Address, int], dict[Address, str]]:
    """
    Convert pool-token balances into amounts of one underlying reserve.
    Returns (amounts, unavailable): holders whose computation is undefined
    land in `unavailable` with the reason instead of being zeroed.
    """
    reserve = pool.reserves.pick(reserve_index)
    amounts: dict[Address, int] = {}
    unavailable: dict[Address, str] = {}
    for holder, bal in balances.items():
        if bal == 0:
            continue
        try:
            amounts[holder] = underlying_amount(bal, pool.total_supply, reserve)
        except DomainError as e:
            unavailable[holder] = str(e)
    return amounts, unavailable

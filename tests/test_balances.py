import asyncio

import pytest

from fakenode import A, B, C, D, TOKEN, FakeNode
from holdsnap.application.balances import build_balance_calls, nonzero_balances, query_balances
from holdsnap.domain.errors import BalanceQueryError, ParseError, TransportError

HOLDERS = [A, B, C, D]
BALANCES = {TOKEN: {A: 10, B: 0, C: 2**255 + 3, D: 42}}


def _query(node: FakeNode, holders=HOLDERS, block=250):
    async def go():
        rpc = node.rpc()
        try:
            return await query_balances(rpc, TOKEN, holders, block)
        finally:
            await rpc.aclose()
    return asyncio.run(go())


@pytest.mark.parametrize("order", ["keep", "reverse", "shuffle"])
def test_balances_are_index_aligned_whatever_the_response_order(order):
    node = FakeNode(balances=BALANCES, order=order)
    assert _query(node) == [10, 0, 2**255 + 3, 42]


def test_single_batch_at_target_block():
    node = FakeNode(balances=BALANCES)
    _query(node, block=250)
    assert len(node.batches) == 1
    batch = node.batches[0]
    assert len(batch) == len(HOLDERS)
    assert {r["params"][1] for r in batch} == {"0xfa"}
    assert [r["params"][0]["data"][-40:] for r in batch] == [h[2:] for h in HOLDERS]


def test_build_balance_calls_keeps_holder_order():
    calls = build_balance_calls(TOKEN, [B, A], 16)
    assert [c[0] for c in calls] == ["eth_call", "eth_call"]
    assert calls[0][1] == [{"to": TOKEN, "data": "0x70a08231" + "0" * 24 + B[2:]}, "0x10"]


def test_empty_holders_skip_the_node():
    node = FakeNode(balances=BALANCES)
    assert _query(node, holders=[]) == []
    assert node.batches == []


class _BadElementRPC:
    async def batch_call(self, calls):
        return ["0x" + "0" * 64] * (len(calls) - 1) + ["0x"]


def test_unparseable_element_fails_whole_token():
    with pytest.raises(BalanceQueryError) as ei:
        asyncio.run(query_balances(_BadElementRPC(), TOKEN, HOLDERS, 1))
    assert isinstance(ei.value.cause, ParseError)


def test_transport_failure_fails_whole_token():
    node = FakeNode(balances=BALANCES, fail_tokens={TOKEN})
    with pytest.raises(BalanceQueryError) as ei:
        _query(node)
    assert isinstance(ei.value.cause, TransportError)


def test_nonzero_balances_drops_only_zero():
    assert nonzero_balances([A, B, C], [1, 0, 5]) == {A: 1, C: 5}
    with pytest.raises(ValueError):
        nonzero_balances([A], [1, 2])

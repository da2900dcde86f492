import asyncio
import json

import pytest

from fakenode import A, B, C, CONTRACT, D, ZERO, FakeNode, topic_of
from holdsnap.adapters.manifest_jsonl import JSONLManifest
from holdsnap.adapters.rpc_httpx import HttpxRPC
from holdsnap.application.log_fetcher import fetch_transfer_events, holders_from_events
from holdsnap.application.scheduler import scan_holders
from holdsnap.domain.decoding import TRANSFER_T0
from holdsnap.domain.errors import RangeScanError
from holdsnap.domain.models import BlockRange, TransferEvent

TRANSFERS = [
    (100, ZERO, A),
    (150, A, B),
    (199, B, C),
    (200, C, A),
    (201, A, D),
    (250, D, B),
]


def _scan(node: FakeNode, creation=100, target=250, batch_size=100, **kw):
    async def go():
        rpc = node.rpc()
        try:
            return await scan_holders(
                rpc, contract=CONTRACT, topic0=TRANSFER_T0,
                creation_block=creation, target_block=target, batch_size=batch_size, **kw,
            )
        finally:
            await rpc.aclose()
    return asyncio.run(go())


def test_event_only_in_second_batch_is_found():
    node = FakeNode(transfers=[(230, A, B)])
    res = _scan(node)
    assert sorted(node.log_queries) == [(100, 200), (201, 250)]
    assert res.holders == {A, B}
    assert [(r.from_block, r.to_block) for r in res.ok] == [(100, 200), (201, 250)]
    assert res.failed == []


@pytest.mark.parametrize("batch_size", [1, 7, 50, 100, 149, 150, 10_000])
def test_holder_set_does_not_depend_on_batch_size(batch_size):
    res = _scan(FakeNode(transfers=TRANSFERS), batch_size=batch_size)
    assert res.holders == {ZERO, A, B, C, D}


def test_failed_range_is_reported_and_siblings_survive():
    node = FakeNode(transfers=[(120, A, B), (230, C, D)], fail_ranges={100})
    res = _scan(node)
    assert res.holders == {C, D}
    assert [r.from_block for r in res.failed] == [100]
    assert res.failed[0].status == "failed"
    assert "500" in res.failed[0].error
    assert res.failed_ranges() == [BlockRange(100, 200)]
    assert len(res.ok) == 1


def test_creation_after_target_scans_nothing():
    node = FakeNode(transfers=TRANSFERS)
    res = _scan(node, creation=300, target=250)
    assert res.holders == frozenset()
    assert node.log_queries == []


def test_concurrency_limit_still_covers_everything():
    res = _scan(FakeNode(transfers=TRANSFERS), batch_size=10, concurrency=2)
    assert res.holders == {ZERO, A, B, C, D}
    assert len(res.ok) == 14


def test_manifest_and_progress_callback_see_every_range(tmp_path):
    path = tmp_path / "manifests" / "run.jsonl"
    seen = []
    node = FakeNode(transfers=TRANSFERS, fail_ranges={201})
    _scan(node, manifest=JSONLManifest(str(path)), on_chunk=seen.append)
    lines = [json.loads(l) for l in path.read_text().splitlines()]
    assert sorted((l["from_block"], l["status"]) for l in lines) == [(100, "done"), (201, "failed")]
    assert len(seen) == 2


def test_fetcher_extracts_sender_and_receiver():
    node = FakeNode(transfers=[(5, A, B), (6, B, C)])

    async def go():
        rpc = node.rpc()
        try:
            return await fetch_transfer_events(rpc, CONTRACT, TRANSFER_T0, BlockRange(0, 10))
        finally:
            await rpc.aclose()

    events = asyncio.run(go())
    assert events == [TransferEvent(A, B), TransferEvent(B, C)]
    assert holders_from_events(events) == {A, B, C}


class _ShortTopicsRPC:
    async def get_logs(self, address, topic0s, from_block, to_block):
        return [{"topics": [TRANSFER_T0, topic_of(A)]}]


def test_fetcher_tags_malformed_log_with_its_range():
    rng = BlockRange(10, 20)
    with pytest.raises(RangeScanError) as ei:
        asyncio.run(fetch_transfer_events(_ShortTopicsRPC(), CONTRACT, TRANSFER_T0, rng))
    assert ei.value.block_range == rng


class _BrokenManifest:
    def __init__(self):
        self.calls = 0

    async def append(self, rec):
        self.calls += 1
        raise OSError(28, "No space left on device")


def test_manifest_write_failure_does_not_abort_scan():
    manifest = _BrokenManifest()
    seen = []
    res = _scan(FakeNode(transfers=TRANSFERS), manifest=manifest, on_chunk=seen.append)
    assert res.holders == {ZERO, A, B, C, D}
    assert res.failed == []
    assert manifest.calls == 2
    assert len(seen) == 2


async def _slow_node(reader, writer):
    # minimal keep-alive HTTP/1.1 JSON-RPC node answering every call late
    try:
        while True:
            head = await reader.readuntil(b"\r\n\r\n")
            length = 0
            for line in head.split(b"\r\n")[1:]:
                name, _, value = line.partition(b":")
                if name.strip().lower() == b"content-length":
                    length = int(value)
            body = json.loads(await reader.readexactly(length))
            await asyncio.sleep(0.6)
            out = json.dumps({"jsonrpc": "2.0", "id": body["id"], "result": []}).encode()
            writer.write(
                b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n"
                b"Content-Length: %d\r\n\r\n" % len(out) + out
            )
            await writer.drain()
    except (asyncio.IncompleteReadError, ConnectionError):
        pass
    finally:
        writer.close()


def test_ranges_queued_behind_a_saturated_pool_do_not_fail():
    async def go():
        server = await asyncio.start_server(_slow_node, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        # 8 ranges over 2 connections: the last ones wait ~1.8s for a connection
        rpc = HttpxRPC(f"http://127.0.0.1:{port}/", timeout_s=1, max_conn=2)
        try:
            return await scan_holders(
                rpc, contract=CONTRACT, topic0=TRANSFER_T0,
                creation_block=0, target_block=79, batch_size=9,
            )
        finally:
            await rpc.aclose()
            server.close()
            await server.wait_closed()

    res = asyncio.run(go())
    assert res.failed == []
    assert len(res.ok) == 8
    assert res.holders == frozenset()

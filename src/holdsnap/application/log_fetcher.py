from __future__ import annotations
from typing import Any, Iterable

from ..domain.decoding import address_from_topic
from ..domain.errors import ParseError, RangeScanError, SnapshotError
from ..domain.models import BlockRange, TransferEvent
from ..domain.value_types import Address, Topic0
from ..ports.rpc import RPCClient


def _event_from_log(rl: Any) -> TransferEvent:
    topics = rl.get("topics") if isinstance(rl, dict) else None
    if not isinstance(topics, list) or len(topics) < 3:
        raise ParseError(f"log needs signature + 2 indexed topics, got {topics!r}")
    return TransferEvent(sender=address_from_topic(topics[1]), receiver=address_from_topic(topics[2]))


async def fetch_transfer_events(
    rpc: RPCClient,
    contract: Address,
    topic0: Topic0,
    rng: BlockRange,
) -> list[TransferEvent]:
    """One eth_getLogs for `rng`; the node's filter is trusted as-is."""
    try:
        logs = await rpc.get_logs(contract, [topic0], rng.start, rng.end)
        return [_event_from_log(rl) for rl in logs]
    except SnapshotError as e:
        raise RangeScanError(rng, e) from e


def holders_from_events(events: Iterable[TransferEvent]) -> set[Address]:
    out: set[Address] = set()
    for ev in events:
        out.add(ev.sender)
        out.add(ev.receiver)
    return out

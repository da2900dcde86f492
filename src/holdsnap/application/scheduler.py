from __future__ import annotations
import asyncio, contextlib, logging, time
from typing import Callable

from ..domain.errors import RangeScanError
from ..domain.models import BlockRange, ChunkRec, ScanResult, TransferEvent
from ..domain.value_types import Address, Topic0
from ..ports.rpc import RPCClient
from ..ports.storage import ManifestSink
from .log_fetcher import fetch_transfer_events, holders_from_events
from .planning import merge_intervals, plan_ranges

log = logging.getLogger(__name__)


async def scan_holders(
    rpc: RPCClient,
    *,
    contract: Address,
    topic0: Topic0,
    creation_block: int,
    target_block: int,
    batch_size: int,
    concurrency: int | None = None,
    manifest: ManifestSink | None = None,
    on_chunk: Callable[[ChunkRec], None] | None = None,
) -> ScanResult:
    """
    Fan out one log scan per planned range, join them all, then merge.

    Best effort: a failed range is reported and excluded, it never cancels
    its siblings. Tasks only return private results; the merge below is the
    single writer of the holder set.
    """
    ranges = plan_ranges(creation_block, target_block, batch_size)
    if not ranges:
        log.info("nothing to scan: creation block %d is past target %d", creation_block, target_block)
        return ScanResult(holders=frozenset(), ok=[], failed=[])

    sem = asyncio.Semaphore(concurrency) if concurrency else None

    async def run_range(rng: BlockRange) -> tuple[ChunkRec, list[TransferEvent]]:
        async with (sem or contextlib.nullcontext()):
            try:
                events = await fetch_transfer_events(rpc, contract, topic0, rng)
            except RangeScanError as e:
                log.warning("range %d-%d failed: %s", rng.start, rng.end, e.cause)
                events = []
                rec = ChunkRec(rng.start, rng.end, "failed", error=str(e.cause), updated_at=time.time())
            else:
                rec = ChunkRec(rng.start, rng.end, "done", logs=len(events),
                               holders=len(holders_from_events(events)), updated_at=time.time())
        if manifest is not None:
            try:
                await manifest.append(rec)
            except OSError as e:
                log.warning("manifest append for range %d-%d failed: %s", rng.start, rng.end, e)
        if on_chunk is not None:
            on_chunk(rec)
        return rec, events

    log.info("scanning %d ranges over blocks %d-%d (batch size %d)",
             len(ranges), creation_block, target_block, batch_size)
    tasks = [asyncio.create_task(run_range(rng)) for rng in ranges]
    results = await asyncio.gather(*tasks)

    holders: set[Address] = set()
    ok: list[ChunkRec] = []
    failed: list[ChunkRec] = []
    for rec, events in results:
        if rec.status == "failed":
            failed.append(rec)
            continue
        holders |= holders_from_events(events)
        ok.append(rec)

    if failed:
        spans = merge_intervals([(r.from_block, r.to_block) for r in failed])
        log.warning("holder set is incomplete: %d/%d ranges failed, re-run blocks %s",
                    len(failed), len(ranges), ", ".join(f"{s}-{e}" for s, e in spans))
    log.info("found %d unique holders", len(holders))
    return ScanResult(holders=frozenset(holders), ok=ok, failed=failed)

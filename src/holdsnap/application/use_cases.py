from __future__ import annotations
import logging
from typing import Callable

from ..config import SnapshotConfig
from ..domain.decoding import TRANSFER_T0
from ..domain.errors import SnapshotError
from ..domain.models import ChunkRec, RunReport, TokenReport, TokenTarget
from ..domain.value_types import Address
from ..ports.rpc import RPCClient
from ..ports.storage import ManifestSink, SnapshotSink
from .balances import nonzero_balances, query_balances
from .lp_share import lp_underlying_balances
from .scheduler import scan_holders

log = logging.getLogger(__name__)


async def snapshot_token(
    *,
    rpc: RPCClient,
    sink: SnapshotSink,
    config: SnapshotConfig,
    token: TokenTarget,
    holders: list[Address],
) -> TokenReport:
    """Balances of one token for the frozen holder list; failures are reported, not raised."""
    block = config.block_height
    log.info("writing balances for %s (%s)", token.name, token.address)
    try:
        balances = nonzero_balances(holders, await query_balances(rpc, token.address, holders, block))
        unavailable: dict[Address, str] = {}
        if config.is_lp_token(token.address):
            balances, unavailable = await lp_underlying_balances(
                rpc, token.address, balances, block, config.lp_reserve_index,
            )
        entries = {h: str(b) for h, b in balances.items() if b != 0}
        path = await sink.write(token.name, entries)
    except (SnapshotError, OSError) as e:
        log.error("%s: no snapshot written: %s", token.name, e)
        return TokenReport(token=token, status="failed", error=str(e))
    log.info("done %s: %d holders -> %s", token.name, len(entries), path)
    return TokenReport(token=token, status="written", holders=len(entries), path=path, unavailable=unavailable)


async def take_snapshot(
    *,
    rpc: RPCClient,
    sink: SnapshotSink,
    config: SnapshotConfig,
    manifest: ManifestSink | None = None,
    on_chunk: Callable[[ChunkRec], None] | None = None,
) -> RunReport:
    """
    Scan the tracked contract once for holders, then snapshot every
    configured token at `block_height` against that same holder list.
    A failing token is reported and skipped; the rest still run.
    """
    scan = await scan_holders(
        rpc,
        contract=Address(config.contract_address),
        topic0=TRANSFER_T0,
        creation_block=config.contract_creation_block,
        target_block=config.block_height,
        batch_size=config.batch_size,
        concurrency=config.concurrency,
        manifest=manifest,
        on_chunk=on_chunk,
    )
    log.info("done capturing token holders")

    # frozen order: request ids of every balance batch map back onto this list
    holders = sorted(scan.holders)
    reports = [
        await snapshot_token(rpc=rpc, sink=sink, config=config, token=token, holders=holders)
        for token in config.tokens()
    ]
    return RunReport(scan=scan, tokens=reports)

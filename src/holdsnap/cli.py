import asyncio, time
import click
from rich.console import Console
from rich.progress import (
    Progress, BarColumn, TextColumn, TimeElapsedColumn,
    TimeRemainingColumn, MofNCompleteColumn, SpinnerColumn
)
from rich.panel import Panel
from rich.markup import escape

from .domain.errors import ConfigError, ParseError
from .domain.models import ChunkRec, RunReport

console = Console()

@click.group()
def cli():
    """holdsnap: point-in-time token holder snapshots from transfer history."""

@cli.command("snapshot")
@click.option("--config", "config_path", default="config.json", show_default=True, help="Run configuration (JSON)")
@click.option("--rpc", default="", help="RPC endpoint URL (default: $ETHEREUM_RPC_URL)")
@click.option("--out-dir", default=".", show_default=True, help="Directory for <token>-balances.json files")
@click.option("--manifest", "manifest_path", default="", help="Optional JSONL manifest of scanned ranges")
@click.option("--concurrency", type=int, default=None, help="Max in-flight log queries (default: all at once)")
@click.option("--timeout", type=int, default=20, show_default=True, help="HTTP timeout, seconds")
@click.option("--debug/--no-debug", default=False, show_default=True)
@click.option("--log-file", default="", help="Also write logs to this file")
def snapshot_cmd(config_path, rpc, out_dir, manifest_path, concurrency, timeout, debug, log_file):
    """Scan holders of the tracked contract and snapshot every configured token."""
    from .adapters.manifest_jsonl import JSONLManifest
    from .adapters.rpc_httpx import HttpxRPC
    from .adapters.snapshot_json import JSONSnapshotWriter
    from .application.planning import plan_ranges
    from .application.use_cases import take_snapshot
    from .config import load_config, rpc_url_from_env
    from .log import setup_logging

    setup_logging(debug, log_file or None)
    # config problems are fatal and must surface before any network call
    try:
        cfg = load_config(config_path)
        if concurrency is not None:
            if concurrency <= 0:
                raise ConfigError("--concurrency must be > 0")
            cfg = cfg.model_copy(update={"concurrency": concurrency})
        rpc_url = rpc or rpc_url_from_env()
    except ConfigError as e:
        raise click.ClickException(str(e))

    total_chunks = len(plan_ranges(cfg.contract_creation_block, cfg.block_height, cfg.batch_size))

    async def run() -> RunReport:
        progress = Progress(SpinnerColumn(),
                            TextColumn("[bold]scanning transfers[/]"),
                            BarColumn(),
                            MofNCompleteColumn(),
                            TextColumn("•"),
                            TimeElapsedColumn(),
                            TextColumn("→"),
                            TimeRemainingColumn(),
                            TextColumn(" • {task.description}"),
                            transient=False,
                            expand=True,
                            console=console,
                            )
        client = HttpxRPC(rpc_url, timeout_s=timeout)
        try:
            with progress:
                task = progress.add_task(
                    description=f"{cfg.contract_creation_block:,}-{cfg.block_height:,}",
                    total=total_chunks,
                )

                def advance(rec: ChunkRec) -> None:
                    progress.advance(task, 1)

                return await take_snapshot(
                    rpc=client,
                    sink=JSONSnapshotWriter(out_dir),
                    config=cfg,
                    manifest=JSONLManifest(manifest_path) if manifest_path else None,
                    on_chunk=advance,
                )
        finally:
            await client.aclose()

    t0 = time.time()
    report = asyncio.run(run())
    elapsed = time.time() - t0
    _print_summary(report, elapsed)


def _print_summary(report: RunReport, elapsed: float) -> None:
    scan = report.scan
    lines = [
        f"[bold]holders[/]: {len(scan.holders)} • {elapsed:.2f}s",
        f"[green]ranges_ok[/]={len(scan.ok)}  [red]ranges_failed[/]={len(scan.failed)}",
    ]
    for rec in scan.failed:
        lines.append(f"  [red]✗[/] blocks {rec.from_block}-{rec.to_block}: {escape(str(rec.error))}")
    lines.append(f"[green]tokens_written[/]={report.tokens_written}  [red]tokens_failed[/]={report.tokens_failed}")
    for t in report.tokens:
        if t.status == "written":
            lines.append(f"  [green]✓[/] {escape(t.token.name)}: {t.holders} holders → {escape(str(t.path))}")
        else:
            lines.append(f"  [red]✗[/] {escape(t.token.name)}: {escape(str(t.error))}")
        for holder, reason in t.unavailable.items():
            lines.append(f"    [yellow]unavailable[/] {holder}: {escape(reason)}")
    console.print(Panel("\n".join(lines), title="snapshot", expand=False))


@cli.command("convert-claims")
@click.argument("src", default="output.json")
@click.argument("dst", default="new-output.json")
def convert_claims_cmd(src, dst):
    """Rewrite hex claim amounts of a merkle-distribution file as decimal strings."""
    from .application.claims import convert_claims_file
    try:
        n = convert_claims_file(src, dst)
    except (OSError, ParseError) as e:
        raise click.ClickException(str(e))
    console.print(f"[bold]done[/]: {n} claims → {dst}")


if __name__ == "__main__":
    cli()

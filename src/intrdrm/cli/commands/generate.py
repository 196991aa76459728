"""Generation CLI commands: scheduled batches, emergency backfill and client checks.

Purpose:
    Run generation cycles from the command line. ``generate`` is the scheduled
    batch entry point, ``backfill`` runs a burst without pauses when the
    unrated queue is empty, ``check-generator`` verifies the configured client.
Fallback Semantics:
    Individual cycle failures never abort a batch; the exit code reflects the
    batch success rate (0 at or above 50%, otherwise 1).
"""

from __future__ import annotations

import logging
from typing import Annotated

import typer
from rich.table import Table

from intrdrm.cli.runtime import console, get_settings, open_client, open_gateway, run_cli_coroutine
from intrdrm.pipeline.cycle import BatchSummary
from intrdrm.pipeline.factory import build_pipeline

logger = logging.getLogger(__name__)


def _render_summary(summary: BatchSummary) -> Table:
    table = Table(show_header=True, header_style="bold cyan", title="Batch summary")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Requested", str(summary.total))
    table.add_row("Succeeded", f"[green]{summary.succeeded}[/]")
    table.add_row("Failed", f"[red]{summary.failed}[/]" if summary.failed else "0")
    table.add_row("Success rate", f"{summary.success_rate:.0%}")
    table.add_row("Duration", f"{summary.duration:.0f}s")
    for category, n in sorted(summary.failures.items(), key=lambda item: item[0].value):
        table.add_row(f"  {category.value} failures", str(n))
    return table


async def _run_batch(count: int, delay: float) -> BatchSummary:
    settings = get_settings()
    gateway = open_gateway(settings)
    client = open_client(settings)
    try:
        pipeline = build_pipeline(settings, gateway, client)
        summary = await pipeline.run_batch(count, delay)
        if await pipeline.sampler.needs_expansion():
            logger.warning("Pool utilization is above 60%; add more concepts soon")
        return summary
    finally:
        await client.close()
        await gateway.close()


def _finish(summary: BatchSummary) -> None:
    console.print(_render_summary(summary))
    if summary.degraded:
        console.print("[yellow]Success rate below 90%; check the logs for failure causes.[/]")
    if summary.exit_code != 0:
        console.print("[bold red]Batch failed: success rate below 50%.[/]")
    raise typer.Exit(code=summary.exit_code)


def generate(
    count: Annotated[int, typer.Option("--count", "-n", min=0, help="Number of connections to generate.")] = 20,
    delay: Annotated[float, typer.Option("--delay", "-d", min=0, help="Seconds to wait between generations.")] = 10.0,
) -> None:
    """Generate a batch of connections with a pause between each."""
    console.print(f"Generating [bold]{count}[/] connection(s), {delay:g}s apart")
    _finish(run_cli_coroutine(_run_batch(count, delay)))


def backfill(
    count: Annotated[int, typer.Option("--count", "-n", min=0, help="Number of connections to generate.")] = 50,
) -> None:
    """Generate connections back to back to refill an empty rating queue."""
    console.print(f"Backfilling [bold]{count}[/] connection(s)")
    _finish(run_cli_coroutine(_run_batch(count, 0.0)))


async def _check_generator() -> bool:
    settings = get_settings()
    client = open_client(settings)
    try:
        return await client.validate()
    finally:
        await client.close()


def check_generator() -> None:
    """Verify that the configured generation client is installed and usable."""
    settings = get_settings()
    if run_cli_coroutine(_check_generator()):
        console.print(f"[green]Generator '{settings.generator.provider}' is available.[/]")
        return
    console.print(f"[bold red]Generator '{settings.generator.provider}' is not available.[/]")
    raise typer.Exit(code=1)


__all__ = ["backfill", "check_generator", "generate"]

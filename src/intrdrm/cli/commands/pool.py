"""Concept pool CLI commands: seeding and statistics."""

from __future__ import annotations

import logging

from rich.table import Table

from intrdrm.cli.runtime import console, get_settings, open_gateway, run_cli_coroutine
from intrdrm.core.models import PoolStatistics
from intrdrm.db.seed import seed_concepts
from intrdrm.db.stats import build_pool_statistics

logger = logging.getLogger(__name__)


async def _seed() -> tuple[int, int]:
    gateway = open_gateway(get_settings())
    try:
        added = await seed_concepts(gateway)
        return added, await gateway.count_concepts()
    finally:
        await gateway.close()


def seed() -> None:
    """Insert the starter concept pool (existing concepts are kept)."""
    added, total = run_cli_coroutine(_seed())
    console.print(f"Added [bold green]{added}[/] concept(s); the pool now holds {total}.")


async def _stats() -> PoolStatistics:
    gateway = open_gateway(get_settings())
    try:
        return await build_pool_statistics(gateway)
    finally:
        await gateway.close()


def stats() -> None:
    """Show concept pool size and pair utilization."""
    pool = run_cli_coroutine(_stats())

    table = Table(show_header=True, header_style="bold cyan", title="Concept pool")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Concepts", str(pool.concept_count))
    table.add_row("Connections", str(pool.total_connections))
    table.add_row("Unrated", str(pool.unrated_count))
    table.add_row("Rated", str(pool.rated_count))
    table.add_row("Possible pairs", str(pool.max_possible_pairs))
    table.add_row("Utilization", f"{pool.utilization_rate:.1%}")
    console.print(table)

    if pool.needs_expansion:
        console.print("[yellow]More than 60% of possible pairs are used; add concepts.[/]")


__all__ = ["seed", "stats"]

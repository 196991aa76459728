#!/usr/bin/env python3
"""
Intrdrm Command Line Interface

Entry point for operating the generation pipeline: seeding the concept pool,
running scheduled or emergency generation batches and checking health.

Usage:
    intrdrm --help
    intrdrm [command] [options]

Examples:
    intrdrm seed
    intrdrm generate --count 20 --delay 10
    intrdrm backfill --count 50
    intrdrm health --no-notify
    intrdrm stats

Environment Variables:
    INTRDRM_CONFIG_PATH: Path to configuration file
    INTRDRM_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    INTRDRM_DB_PATH: SQLite database file
    SLACK_WEBHOOK_URL: Webhook for health alerts
"""

import logging
import sys
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler

from intrdrm import __version__
from intrdrm.cli.commands.generate import backfill, check_generator, generate
from intrdrm.cli.commands.health import health
from intrdrm.cli.commands.pool import seed, stats
from intrdrm.cli.runtime import console, state
from intrdrm.config.settings import load_settings
from intrdrm.core.exceptions import SettingsError
from intrdrm.core.utils.logging import resolve_level

# Configure logging with rich handler
logging.basicConfig(
    level=resolve_level(),
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="intrdrm",
    help="Intrdrm concept-connection generation pipeline",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]}
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose output.")] = False,
    config_path: Annotated[Optional[str], typer.Option("--config", "-c", help="Path to configuration file.")] = None,
):
    """
    Intrdrm CLI.
    """
    try:
        settings = load_settings(config_path)
    except SettingsError as e:
        logger.error("Configuration error: %s", e)
        raise typer.Exit(code=1) from e

    state["config_path"] = config_path
    state["settings"] = settings
    logging.getLogger("intrdrm").setLevel(logging.DEBUG if verbose else resolve_level(settings.log_level))
    if verbose:
        logger.debug("Verbose logging enabled")


app.command()(generate)
app.command()(backfill)
app.command("check-generator")(check_generator)
app.command()(health)
app.command()(seed)
app.command()(stats)


@app.command()
def version():
    """Display the current version of Intrdrm."""
    console.print(f"Intrdrm v[bold cyan]{__version__}[/bold cyan]")


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except Exception as e:
        logger.error("Unhandled exception: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()

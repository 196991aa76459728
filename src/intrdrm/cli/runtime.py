"""Shared state and helpers for CLI commands."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Optional

import typer
from rich.console import Console

from intrdrm.config.settings import IntrdrmSettings, load_settings
from intrdrm.db.gateway import SQLiteGateway
from intrdrm.integration.adapters.base import GenerationClient
from intrdrm.integration.adapters.factory import create_generation_client

console = Console()

# Populated by the main callback; commands fall back to loading on demand.
state: dict[str, Any] = {"settings": None, "config_path": None}


def get_settings() -> IntrdrmSettings:
    settings: Optional[IntrdrmSettings] = state["settings"]
    if settings is None:
        settings = load_settings(state["config_path"])
        state["settings"] = settings
    return settings


def open_gateway(settings: IntrdrmSettings) -> SQLiteGateway:
    return SQLiteGateway(settings.database.path, timeout=settings.database.timeout)


def open_client(settings: IntrdrmSettings) -> GenerationClient:
    return create_generation_client(settings.generator)


def run_cli_coroutine(task: Awaitable[Any]) -> Any:
    """Execute an async operation within the CLI event loop."""

    try:
        return asyncio.run(task)
    except KeyboardInterrupt as exc:  # pragma: no cover - interactive safeguard
        console.print("[red]Operation cancelled by user.[/]")
        raise typer.Exit(code=130) from exc


__all__ = ["console", "get_settings", "open_client", "open_gateway", "run_cli_coroutine", "state"]

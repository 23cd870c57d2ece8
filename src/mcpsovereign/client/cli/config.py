"""Configuration utilities for the mcpsovereign CLI.

This module provides shared helpers used across CLI commands.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, NoReturn

import click

from mcpsovereign.client.runtime import AgentRuntime, default_config_dir
from mcpsovereign.core.result import Err


def get_config_dir() -> Path:
    """Get the configuration directory for mcpsovereign.

    Returns:
        Path to ~/.mcpsovereign or equivalent.
    """
    return default_config_dir()


def load_runtime(ctx: click.Context) -> AgentRuntime:
    """Create and load the runtime from the group options.

    Honors --config-dir, --store and --api-url given to the top-level command.
    """
    options: dict[str, Any] = ctx.find_root().obj or {}
    runtime = AgentRuntime(
        config_dir=options.get("config_dir") or get_config_dir(),
        api_url=options.get("api_url"),
        store_path=options.get("store_path"),
    )
    runtime.load()
    return runtime


def fail(message: str) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def fail_with(error: Err) -> NoReturn:
    """Report an Err from the API and exit."""
    message = str(error)
    if error.billing.credits_remaining is not None:
        message += f" (credits remaining: {error.billing.credits_remaining})"
    fail(message)

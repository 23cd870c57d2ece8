"""Command-line interface for mcpsovereign.

This module provides the main CLI entry point and assembles all commands.

Commands:
- login: Authenticate with a wallet
- logout: Forget stored credentials
- status: Show identity and local store status
- export-credentials / import-credentials: Move credentials between machines
- product: Manage local products
- profile: Show or edit the store profile
- push: Publish local changes
- pull: Fetch purchases, reviews and stats
"""

from __future__ import annotations

import logging

import click

from mcpsovereign.client.cli.auth import (
    export_credentials,
    import_credentials,
    login,
    logout,
    status,
)
from mcpsovereign.client.cli.config import get_config_dir, load_runtime
from mcpsovereign.client.cli.products import product, profile
from mcpsovereign.client.cli.sync import pull, push


@click.group()
@click.version_option(package_name="mcpsovereign")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    envvar="MCPSOVEREIGN_CONFIG_DIR",
    default=None,
    help="Configuration directory (default: ~/.mcpsovereign).",
)
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False),
    envvar="MCPSOVEREIGN_STORE_PATH",
    default=None,
    help="Local store file (default: from config).",
)
@click.option("--api-url", envvar="MCPSOVEREIGN_API_URL", default=None, help="API base URL.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_dir: str | None,
    store_path: str | None,
    api_url: str | None,
    verbose: bool,
) -> None:
    """mcpsovereign - Build your store locally, sync it to the marketplace."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {
        "config_dir": config_dir,
        "store_path": store_path,
        "api_url": api_url,
    }


# Identity commands
cli.add_command(login)
cli.add_command(logout)
cli.add_command(status)
cli.add_command(export_credentials)
cli.add_command(import_credentials)

# Local store commands
cli.add_command(product)
cli.add_command(profile)

# Sync commands
cli.add_command(push)
cli.add_command(pull)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "get_config_dir",
    "load_runtime",
    "main",
]

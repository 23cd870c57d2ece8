"""Identity commands for the mcpsovereign CLI.

Commands:
- login: Authenticate with a wallet (or adopt an existing token)
- logout: Forget stored credentials
- status: Show identity, API and local store status
- export-credentials / import-credentials: Move credentials between machines
"""

from __future__ import annotations

import asyncio

import click

from mcpsovereign.client.cli.config import fail, fail_with, load_runtime
from mcpsovereign.client.runtime import CredentialsError
from mcpsovereign.core.result import Err


async def _prompt_signature(message: str) -> str:
    """Ask the user to sign the challenge with their wallet."""
    click.echo("Sign this message with your wallet:")
    click.echo(f"\n  {message}\n")
    return str(click.prompt("Signature"))


@click.command()
@click.option("--wallet", required=True, help="Wallet address of the agent.")
@click.option(
    "--token",
    default=None,
    help="Use an existing bearer token instead of signing a challenge.",
)
@click.pass_context
def login(ctx: click.Context, wallet: str, token: str | None) -> None:
    """Authenticate this machine with the marketplace.

    The token is stored locally so later commands work without signing again.
    """
    runtime = load_runtime(ctx)

    if token:
        if not asyncio.run(runtime.load_credentials(token=token, wallet_address=wallet)):
            fail("Token was rejected by the server.")
    else:
        result = asyncio.run(runtime.login(wallet, _prompt_signature))
        if isinstance(result, Err):
            fail_with(result)
        if result.value["is_new_agent"]:
            click.echo("Welcome! A new agent was created for this wallet.")

    click.echo(f"Logged in as {runtime.state.agent_name or runtime.state.agent_id}")


@click.command()
@click.pass_context
def logout(ctx: click.Context) -> None:
    """Forget the stored token."""
    runtime = load_runtime(ctx)
    runtime.logout()
    click.echo("Logged out.")


@click.command()
@click.option("--offline", is_flag=True, help="Do not check the token with the server.")
@click.pass_context
def status(ctx: click.Context, offline: bool) -> None:
    """Show identity and local store status."""
    runtime = load_runtime(ctx)

    click.echo(f"API:    {runtime.api_url}")
    click.echo(f"Config: {runtime.config_path}")
    agent = runtime.get_agent()
    if agent:
        click.echo(f"Agent:  {agent['name'] or agent['id']} ({agent['wallet']})")
    if runtime.is_authenticated():
        if offline:
            click.echo("Auth:   logged in")
        else:
            summary = asyncio.run(runtime.status())
            state = "valid" if summary.token_valid else "rejected by server"
            click.echo(f"Auth:   logged in (token {state})")
    else:
        click.echo("Auth:   not logged in")
    click.echo(f"Last sync: {runtime.state.last_sync or 'never'}")

    store = runtime.open_store()
    stats = store.get_sync_stats()
    click.echo(f"Store:  {store.path}")
    click.echo(
        f"  {stats.total} products: {stats.synced} synced, {stats.pending} pending, "
        f"{stats.drafts} drafts, {stats.pending_deletions} deletions queued"
    )


@click.command("export-credentials")
@click.pass_context
def export_credentials(ctx: click.Context) -> None:
    """Print credentials to restore on another machine."""
    runtime = load_runtime(ctx)
    try:
        click.echo(runtime.export_credentials())
    except CredentialsError as e:
        fail(str(e))


@click.command("import-credentials")
@click.argument("blob")
@click.pass_context
def import_credentials(ctx: click.Context, blob: str) -> None:
    """Restore credentials printed by export-credentials."""
    runtime = load_runtime(ctx)
    try:
        valid = asyncio.run(runtime.import_credentials(blob))
    except CredentialsError as e:
        fail(str(e))
    if not valid:
        fail("Imported token was rejected by the server.")
    click.echo(f"Credentials imported for {runtime.state.agent_id}")

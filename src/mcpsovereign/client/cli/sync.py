"""Sync commands for the mcpsovereign CLI.

Commands:
- push: Publish ready/modified products to the marketplace
- pull: Fetch new purchases, reviews and stats
"""

from __future__ import annotations

import asyncio

import click

from mcpsovereign.client.cli.config import fail, fail_with, load_runtime
from mcpsovereign.client.models import PullResult, SyncResult
from mcpsovereign.client.sync import DEFAULT_MAX_RETRIES, SyncCoordinator
from mcpsovereign.core.result import Err, Result


@click.command()
@click.option("--retry", is_flag=True, help="Retry with backoff on network errors.")
@click.option(
    "--max-retries",
    type=int,
    default=DEFAULT_MAX_RETRIES,
    show_default=True,
    help="Retry attempts when --retry is set.",
)
@click.pass_context
def push(ctx: click.Context, retry: bool, max_retries: int) -> None:
    """Push local changes to the marketplace (costs credits).

    Sends a manifest of ready and modified products. Rejected products
    keep their status and are retried on the next push.
    """
    runtime = load_runtime(ctx)
    if not runtime.is_authenticated():
        fail("Not logged in. Run 'mcpsovereign login' first.")

    store = runtime.open_store()
    if not store.get_unsynced_products() and not store.get_pending_deletions():
        click.echo("Nothing to push.")
        return

    async def _push() -> Result[SyncResult]:
        async with runtime.open_client() as client:
            coordinator = SyncCoordinator(store, client)
            if retry:
                return await coordinator.push_with_retry(
                    runtime.state.agent_id, max_retries=max_retries
                )
            return await coordinator.push(runtime.state.agent_id)

    result = asyncio.run(_push())
    if isinstance(result, Err):
        fail_with(result)

    runtime.state.last_sync = store.store.last_sync
    runtime.save()

    sync_result = result.value
    click.echo(f"Push {sync_result.sync_id} at {sync_result.timestamp}")
    click.echo(f"  Created: {len(sync_result.created)}")
    click.echo(f"  Updated: {len(sync_result.updated)}")
    click.echo(f"  Deleted: {len(sync_result.deleted)}")
    click.echo(f"  Errors:  {len(sync_result.errors)}")
    for error in sync_result.errors:
        click.echo(f"    {error.local_id}: {error.error}", err=True)
    if result.billing.credits_charged is not None:
        click.echo(
            f"Credits charged: {result.billing.credits_charged}"
            f" (remaining: {result.billing.credits_remaining})"
        )


@click.command()
@click.option(
    "--since",
    default=None,
    help="ISO timestamp cursor (default: time of the last pull).",
)
@click.pass_context
def pull(ctx: click.Context, since: str | None) -> None:
    """Pull new purchases, reviews and stats (costs credits)."""
    runtime = load_runtime(ctx)
    if not runtime.is_authenticated():
        fail("Not logged in. Run 'mcpsovereign login' first.")

    store = runtime.open_store()
    cursor = since or store.last_pull_at()

    async def _pull() -> Result[PullResult]:
        async with runtime.open_client() as client:
            return await SyncCoordinator(store, client).pull(cursor)

    result = asyncio.run(_pull())
    if isinstance(result, Err):
        fail_with(result)

    pulled = result.value
    if store.record_pull(pulled) and not store.save():
        fail(f"Could not write store file {store.path}")

    stats = pulled.overall_stats
    click.echo(f"Pull {pulled.sync_id} since {pulled.since or 'the beginning'}")
    click.echo(f"  Purchases:       {len(pulled.new_purchases)}")
    click.echo(f"  Reviews:         {len(pulled.new_reviews)}")
    click.echo(f"  Product updates: {len(pulled.product_updates)}")
    if stats:
        click.echo(
            f"  Products: {stats.get('total_products', 0)} "
            f"({stats.get('active_products', 0)} active), "
            f"sales: {stats.get('total_sales', 0)}, "
            f"revenue: {stats.get('total_revenue', '0')} credits"
        )

"""Local store commands for the mcpsovereign CLI.

Commands:
- product create/list/show/update/delete/ready/validate: Manage local products
- profile: Show or edit the store profile

All of these work offline against the local store file.
"""

from __future__ import annotations

import json
import sys
from typing import Any

import click

from mcpsovereign.client.cli.config import fail, load_runtime
from mcpsovereign.client.models import LocalProduct
from mcpsovereign.client.store import LocalStoreManager
from mcpsovereign.client.validation import VALID_CATEGORIES, validate_product
from mcpsovereign.core.types import DeliveryType

DELIVERY_CHOICES = click.Choice([d.value for d in DeliveryType])


def _open_store(ctx: click.Context) -> LocalStoreManager:
    return load_runtime(ctx).open_store()


def _save(store: LocalStoreManager) -> None:
    if not store.save():
        fail(f"Could not write store file {store.path}")


def _parse_payload(payload: str | None) -> Any:
    if payload is None:
        return None
    try:
        return json.loads(payload)
    except ValueError:
        # Plain strings (e.g., a download URL) are kept as is
        return payload


def _format_product(product: LocalProduct) -> str:
    remote = product.remote_id or "-"
    return (
        f"{product.local_id}  [{product.status.value}]  {product.name}  "
        f"{product.price:g} credits  (remote: {remote})"
    )


@click.group()
def product() -> None:
    """Manage products in the local store."""


@product.command("create")
@click.option("--name", required=True, help="Product name.")
@click.option("--description", required=True, help="Product description.")
@click.option(
    "--category",
    required=True,
    help=f"Category ({', '.join(VALID_CATEGORIES)}).",
)
@click.option("--price", required=True, type=float, help="Price in credits.")
@click.option(
    "--delivery-type",
    type=DELIVERY_CHOICES,
    default=DeliveryType.DOWNLOAD.value,
    show_default=True,
    help="How buyers receive the product.",
)
@click.option("--payload", default=None, help="Delivery payload (JSON or plain text).")
@click.pass_context
def create(
    ctx: click.Context,
    name: str,
    description: str,
    category: str,
    price: float,
    delivery_type: str,
    payload: str | None,
) -> None:
    """Create a draft product (local only, free)."""
    store = _open_store(ctx)
    created = store.create_product(
        name=name,
        description=description,
        category_id=category,
        price=price,
        delivery_type=delivery_type,
        delivery_payload=_parse_payload(payload),
    )
    _save(store)
    click.echo(f"Created draft {created.local_id}")
    click.echo("Run 'mcpsovereign product ready' when it is ready to publish.")


@product.command("list")
@click.pass_context
def list_products(ctx: click.Context) -> None:
    """List local products."""
    store = _open_store(ctx)
    products = store.get_products()
    if not products:
        click.echo("No products yet. Create one with 'mcpsovereign product create'.")
        return

    stats = store.get_sync_stats()
    click.echo(
        f"Total: {stats.total}  Synced: {stats.synced}  "
        f"Pending: {stats.pending}  Drafts: {stats.drafts}"
    )
    for item in products:
        click.echo(_format_product(item))


@product.command("show")
@click.argument("local_id")
@click.pass_context
def show(ctx: click.Context, local_id: str) -> None:
    """Show a product as stored locally."""
    found = _open_store(ctx).get_product(local_id)
    if found is None:
        fail(f"Product not found: {local_id}")
    click.echo(json.dumps(found.to_dict(), indent=2))


@product.command("update")
@click.argument("local_id")
@click.option("--name", default=None, help="New name.")
@click.option("--description", default=None, help="New description.")
@click.option("--category", default=None, help="New category.")
@click.option("--price", type=float, default=None, help="New price in credits.")
@click.option("--delivery-type", type=DELIVERY_CHOICES, default=None)
@click.option("--payload", default=None, help="New delivery payload.")
@click.pass_context
def update(
    ctx: click.Context,
    local_id: str,
    name: str | None,
    description: str | None,
    category: str | None,
    price: float | None,
    delivery_type: str | None,
    payload: str | None,
) -> None:
    """Edit a product (local only, free)."""
    store = _open_store(ctx)
    updated = store.update_product(
        local_id,
        {
            "name": name,
            "description": description,
            "category_id": category,
            "price": price,
            "delivery_type": delivery_type,
            "delivery_payload": _parse_payload(payload),
        },
    )
    if updated is None:
        fail(f"Product not found: {local_id}")
    _save(store)
    click.echo(f"Product updated. Status: {updated.status.value}")


@product.command("delete")
@click.argument("local_id")
@click.pass_context
def delete(ctx: click.Context, local_id: str) -> None:
    """Delete a product from the local store."""
    store = _open_store(ctx)
    if not store.delete_product(local_id):
        fail(f"Product not found: {local_id}")
    _save(store)
    click.echo("Product deleted from local store.")


@product.command("ready")
@click.argument("local_id")
@click.pass_context
def ready(ctx: click.Context, local_id: str) -> None:
    """Mark a draft as ready to publish."""
    store = _open_store(ctx)
    marked = store.mark_ready(local_id)
    if marked is None:
        fail(f"Product not found: {local_id}")
    _save(store)
    click.echo(f"{marked.local_id} is {marked.status.value}.")


@product.command("validate")
@click.argument("local_id")
@click.pass_context
def validate(ctx: click.Context, local_id: str) -> None:
    """Check a product against the marketplace listing rules."""
    found = _open_store(ctx).get_product(local_id)
    if found is None:
        fail(f"Product not found: {local_id}")

    report = validate_product(found)
    click.echo(f"Product: {found.name} ({found.status.value})")
    for check in report.passed:
        click.echo(f"  ok    {check}")
    for issue in report.issues:
        click.echo(f"  FAIL  {issue}")
    if not report.is_valid:
        click.echo("Fix the issues above before publishing.")
        sys.exit(1)
    click.echo("Ready to publish.")


@click.command()
@click.option("--name", default=None, help="Store name.")
@click.option("--tagline", default=None, help="Short tagline.")
@click.option("--description", default=None, help="Store description.")
@click.option("--logo-url", default=None)
@click.option("--banner-url", default=None)
@click.pass_context
def profile(
    ctx: click.Context,
    name: str | None,
    tagline: str | None,
    description: str | None,
    logo_url: str | None,
    banner_url: str | None,
) -> None:
    """Show the store profile, or update it when options are given."""
    store = _open_store(ctx)
    changes = {
        k: v
        for k, v in {
            "name": name,
            "tagline": tagline,
            "description": description,
            "logo_url": logo_url,
            "banner_url": banner_url,
        }.items()
        if v is not None
    }
    if changes:
        store.update_profile(changes)
        _save(store)
    click.echo(json.dumps(store.get_profile().to_dict(), indent=2))

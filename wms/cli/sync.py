# wms/cli/sync.py
"""
Operator commands for the Sellus sync, for use outside the web process.

    python -m wms.cli.sync retry-failed --limit 20
    python -m wms.cli.sync sync-stock 42
"""

import asyncio
import click

from wms.core.logging_config import configure_logging
from wms.services.engine import engine_session


@click.group()
def cli():
    """WMS ⇄ Sellus sync commands"""
    configure_logging()


@cli.command("retry-failed")
@click.option('--limit', type=int, default=None, help='Maximum number of failures to retry')
def retry_failed(limit):
    """Retry unresolved stock sync failures"""

    async def _retry():
        async with engine_session() as engine:
            summary = await engine.retry.retry_unresolved(limit=limit)
        print(f"Processed {summary.processed}: {summary.resolved} resolved, {summary.still_failing} still failing")
        for error in summary.errors:
            print(f"  - {error}")

    asyncio.run(_retry())


@cli.command("resolve-ids")
def resolve_ids():
    """Resolve the Sellus item id of every product that has none cached"""

    async def _resolve():
        async with engine_session() as engine:
            summary = await engine.resolver.resolve_all_pending()
        if summary.error:
            print(f"Could not resolve ids: {summary.error}")
        print(f"Resolved {summary.resolved} of {summary.total} products, {summary.failed} failed")
        for failure in summary.failures:
            print(f"  - product {failure.product_id} ({failure.article_ref or 'no ref'}): {failure.error}")

    asyncio.run(_resolve())


@cli.command("sync-stock")
@click.argument('product_id', type=int)
def sync_stock(product_id):
    """Push one product's stock to Sellus"""

    async def _sync():
        async with engine_session() as engine:
            result = await engine.stock.reconcile_stock(product_id)
        print(f"[{result.status.value}] {result.message}")
        return result

    if not asyncio.run(_sync()).ok:
        raise SystemExit(1)


@cli.command("cleanup-orders")
def cleanup_orders():
    """Delete local orders that have disappeared from Sellus"""

    async def _cleanup():
        async with engine_session() as engine:
            summary = await engine.order_import.cleanup_zombie_orders()
        print(f"[{summary.status.value}] {summary.message}")
        for order_id in summary.deleted_order_ids:
            print(f"  - deleted {order_id}")

    asyncio.run(_cleanup())


if __name__ == "__main__":
    cli()

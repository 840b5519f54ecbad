# wms/services/identifier_resolver.py
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from wms.core.enums import LedgerStatus, OutcomeStatus, SyncDirection, SyncType
from wms.core.exceptions import (
    ArticleNotFound,
    IdentifierNotResolvable,
    MissingArticleRef,
    ProductNotFoundError,
    RemoteUnavailable,
    SyncError,
)
from wms.models import Product
from wms.schemas.sellus import SellusItem
from wms.schemas.sync import BatchResolveSummary, ResolvedId, ResolveFailure, ResolveIdResult
from wms.services.sellus.client import SellusClient
from wms.services.sync_ledger import SyncLedger
from wms.stores.base import ProductStore

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class IdentifierResolver:
    """
    Maps a product's article number to the numeric item id Sellus uses in URLs.

    The numeric id is cached on the product the first time it is resolved and
    is never derived again unless explicitly cleared, so a resolved product
    costs no remote calls.
    """

    def __init__(self, client: SellusClient, products: ProductStore, ledger: SyncLedger):
        self.client = client
        self.products = products
        self.ledger = ledger

    async def fetch_catalog(self) -> Dict[str, str]:
        """
        Build the {itemNumber: id} map from the Sellus item listing.

        `/items` is tried first, `/items/full` when it fails or comes back
        empty. Item ids map to themselves as well, for products whose article
        number already is the numeric id. Two empty listings give an empty
        catalog, so every lookup in it is an ArticleNotFound.

        Raises:
            RemoteUnavailable: a listing failed on the network or with a 5xx
            SyncError: Sellus rejected the request (401, 403, 404, ...)
        """
        problems = []
        rejected = False
        unavailable = False
        for name, fetch in (("/items", self.client.get_items), ("/items/full", self.client.get_items_full)):
            result = await fetch()
            if not result.success:
                problems.append(f"{name}: {result.error}")
                if result.remote_unavailable:
                    unavailable = True
                else:
                    rejected = True
                continue

            items = SellusItem.from_list(result.data)
            catalog: Dict[str, str] = {}
            for item in items:
                if item.id:
                    catalog.setdefault(item.id, item.id)
            for item in items:
                if item.item_number and item.id:
                    catalog[item.item_number] = item.id
            if catalog:
                logger.info(f"Fetched {len(items)} Sellus items from {name}")
                return catalog
            problems.append(f"{name}: no items")

        detail = "; ".join(problems)
        if rejected:
            raise SyncError(f"Sellus rejected the item catalog request ({detail})")
        if unavailable:
            raise RemoteUnavailable(f"Could not fetch the Sellus item catalog ({detail})")
        logger.warning(f"Sellus item catalog is empty ({detail})")
        return {}

    async def _resolve_uncached(self, product: Product, catalog: Optional[Dict[str, str]] = None) -> ResolvedId:
        article_ref = (product.external_article_ref or "").strip()
        if not article_ref:
            raise MissingArticleRef(f"Product {product.id} has no Sellus article number")

        if catalog is None:
            catalog = await self.fetch_catalog()

        numeric_id = catalog.get(article_ref)
        if not numeric_id:
            raise ArticleNotFound(f"Article {article_ref} not found in Sellus", article_ref=article_ref)

        await self.products.set_resolved(product.id, numeric_id, datetime.now(timezone.utc))
        logger.info(f"Resolved product {product.id}: {article_ref} -> {numeric_id}")
        return ResolvedId(numeric_id=numeric_id, cached=False, method="catalog")

    async def resolve(self, product_id: int, record: bool = True) -> ResolvedId:
        """
        Return the product's Sellus numeric id, resolving and caching it if needed.

        Args:
            product_id: Local product id
            record: Write a ledger entry for a non-cached resolution. Workflows
                pass False since their own entry covers the attempt.

        Raises:
            ProductNotFoundError, MissingArticleRef, ArticleNotFound, RemoteUnavailable,
            SyncError (Sellus rejected the catalog request)
        """
        started = time.monotonic()
        product = None
        try:
            product = await self.products.get(product_id)
            if product is None:
                raise ProductNotFoundError(f"Product {product_id} not found")

            if product.external_numeric_id:
                return ResolvedId(numeric_id=product.external_numeric_id, cached=True, method="cache")

            resolved = await self._resolve_uncached(product)
        except Exception as e:
            if record:
                await self.ledger.record(
                    sync_type=SyncType.RESOLVE_ITEM_ID,
                    direction=SyncDirection.SELLUS_TO_WMS,
                    status=LedgerStatus.ERROR,
                    related_article_ref=product.external_article_ref if product is not None else None,
                    related_product_id=product_id,
                    error_message=str(e),
                    duration_ms=_elapsed_ms(started),
                )
            raise

        if record:
            await self.ledger.record(
                sync_type=SyncType.RESOLVE_ITEM_ID,
                direction=SyncDirection.SELLUS_TO_WMS,
                status=LedgerStatus.SUCCESS,
                related_article_ref=product.external_article_ref,
                related_product_id=product_id,
                response_payload={"numeric_id": resolved.numeric_id},
                duration_ms=_elapsed_ms(started),
            )
        return resolved

    async def resolve_product(self, product_id: int, refresh: bool = False) -> ResolveIdResult:
        """
        Standalone resolution for the trigger surface: errors become an outcome.

        With refresh the cached numeric id is dropped first and looked up again.
        """
        started = time.monotonic()
        if refresh:
            logger.info(f"Clearing cached Sellus item id of product {product_id}")
            await self.products.clear_resolved(product_id)
        try:
            resolved = await self.resolve(product_id)
        except ProductNotFoundError as e:
            return ResolveIdResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="product_not_found",
                message=str(e),
                user_message="Produkten finns inte.",
                duration_ms=_elapsed_ms(started),
            )
        except MissingArticleRef as e:
            return ResolveIdResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="missing_article_ref",
                message=str(e),
                user_message="Produkten saknar artikelnummer för Sellus.",
                duration_ms=_elapsed_ms(started),
            )
        except ArticleNotFound as e:
            return ResolveIdResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="article_not_found",
                message=str(e),
                user_message=f"Artikel {e.article_ref} hittades inte i Sellus.",
                duration_ms=_elapsed_ms(started),
            )
        except RemoteUnavailable as e:
            return ResolveIdResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="catalog_unavailable",
                message=str(e),
                user_message="Sellus svarar inte just nu. Försök igen senare.",
                duration_ms=_elapsed_ms(started),
            )
        except SyncError as e:
            return ResolveIdResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="catalog_rejected",
                message=str(e),
                user_message="Sellus nekade förfrågan. Kontrollera API-nyckeln och behörigheterna.",
                duration_ms=_elapsed_ms(started),
            )
        except Exception as e:
            logger.exception(f"Unexpected error resolving product {product_id}")
            return ResolveIdResult(
                product_id=product_id,
                status=OutcomeStatus.ERROR,
                step="unexpected",
                message=f"Unexpected error: {str(e)}",
                user_message="Ett oväntat fel inträffade.",
                duration_ms=_elapsed_ms(started),
            )

        return ResolveIdResult(
            product_id=product_id,
            status=OutcomeStatus.SUCCESS,
            step="cached" if resolved.cached else "resolved",
            message=f"Numeric id {resolved.numeric_id}",
            user_message="Sellus-id kopplat." if not resolved.cached else "Sellus-id var redan kopplat.",
            numeric_id=resolved.numeric_id,
            cached=resolved.cached,
            duration_ms=_elapsed_ms(started),
        )

    async def resolve_all_pending(self) -> BatchResolveSummary:
        """
        Resolve every product that has an article number but no numeric id.

        The catalog is fetched once for the whole batch. Writes one summary
        ledger entry.
        """
        started = time.monotonic()
        products = await self.products.unresolved_with_ref()
        summary = BatchResolveSummary(total=len(products))
        logger.info(f"Batch resolving {len(products)} products")

        if products:
            try:
                catalog = await self.fetch_catalog()
            except SyncError as e:
                logger.error(str(e))
                summary.error = str(e)
                summary.failed = len(products)
                catalog = None

            if catalog is not None:
                for product in products:
                    try:
                        await self._resolve_uncached(product, catalog)
                        summary.resolved += 1
                    except IdentifierNotResolvable as e:
                        logger.warning(f"Could not resolve product {product.id}: {str(e)}")
                        summary.failed += 1
                        summary.failures.append(
                            ResolveFailure(product_id=product.id, article_ref=product.external_article_ref, error=str(e))
                        )

        summary.duration_ms = _elapsed_ms(started)
        if summary.failed == 0:
            status = LedgerStatus.SUCCESS
        elif summary.resolved:
            status = LedgerStatus.PARTIAL_SUCCESS
        else:
            status = LedgerStatus.ERROR

        await self.ledger.record(
            sync_type=SyncType.BATCH_RESOLVE_ITEM_IDS,
            direction=SyncDirection.SELLUS_TO_WMS,
            status=status,
            response_payload={
                "total": summary.total,
                "resolved": summary.resolved,
                "failed": summary.failed,
            },
            error_message=summary.error,
            duration_ms=summary.duration_ms,
        )
        logger.info(
            f"Batch resolution complete in {summary.duration_ms}ms: "
            f"{summary.resolved} resolved, {summary.failed} failed"
        )
        return summary

    async def resolve_article_ref(self, article_ref: str) -> str:
        """
        Numeric id for a bare article number, e.g. one printed on a delivery note.

        A local product carrying the reference goes through `resolve()` so the
        cache is used and filled; otherwise Sellus is asked directly.

        Raises:
            ArticleNotFound, RemoteUnavailable, SyncError
        """
        article_ref = (article_ref or "").strip()
        if not article_ref:
            raise MissingArticleRef("No article number given")

        product = await self.products.find_by_article_ref(article_ref)
        if product is not None:
            resolved = await self.resolve(product.id, record=False)
            return resolved.numeric_id

        result = await self.client.get_item_by_number(article_ref)
        if result.success:
            if isinstance(result.data, list):
                candidates = SellusItem.from_list(result.data)
            else:
                item = SellusItem.from_payload(result.data)
                candidates = [item] if item is not None else []
            for item in candidates:
                if item.id and item.item_number in (None, article_ref):
                    return item.id

        catalog = await self.fetch_catalog()
        numeric_id = catalog.get(article_ref)
        if not numeric_id:
            raise ArticleNotFound(f"Article {article_ref} not found in Sellus", article_ref=article_ref)
        return numeric_id

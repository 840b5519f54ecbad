import pytest

from wms.core.enums import LedgerStatus, OutcomeStatus, ProductSyncStatus, SyncType
from wms.core.exceptions import ArticleNotFound, MissingArticleRef, RemoteUnavailable, SyncError


@pytest.mark.asyncio
async def test_resolves_article_ref_and_caches_numeric_id(engine, gateway, products, ledger_store):
    """Product with article ref 1201 and a catalog entry {itemNumber: 1201, id: 55}"""
    products.add(1, article_ref="1201")
    gateway.add_item("55", "1201")

    resolved = await engine.resolver.resolve(1)

    assert resolved.numeric_id == "55"
    assert resolved.cached is False
    assert products.products[1].external_numeric_id == "55"
    assert products.products[1].sync_status == ProductSyncStatus.SYNCED

    entries = ledger_store.of_type(SyncType.RESOLVE_ITEM_ID.value)
    assert len(entries) == 1
    assert entries[0].status == LedgerStatus.SUCCESS.value
    assert entries[0].related_product_id == 1


@pytest.mark.asyncio
async def test_cached_id_costs_no_remote_calls(engine, gateway, products, ledger_store):
    products.add(1, article_ref="1201")
    gateway.add_item("55", "1201")

    await engine.resolver.resolve(1)
    calls_after_first = len(gateway.calls)
    second = await engine.resolver.resolve(1)

    assert second.numeric_id == "55"
    assert second.cached is True
    assert len(gateway.calls) == calls_after_first
    assert len(ledger_store.entries) == 1


@pytest.mark.asyncio
async def test_falls_back_to_full_listing(engine, gateway, products):
    products.add(1, article_ref="1201")
    gateway.add_item("55", "1201")
    gateway.fail("GET", "/items", status_code=500)

    resolved = await engine.resolver.resolve(1)

    assert resolved.numeric_id == "55"
    assert len(gateway.calls_to("GET", "/items/full")) == 1


@pytest.mark.asyncio
async def test_article_that_already_is_a_numeric_id_resolves_to_itself(engine, gateway, products):
    products.add(1, article_ref="55")
    gateway.add_item("55", "1201")

    resolved = await engine.resolver.resolve(1)

    assert resolved.numeric_id == "55"


@pytest.mark.asyncio
async def test_unknown_article_raises_and_records_error(engine, gateway, products, ledger_store):
    products.add(1, article_ref="9999")
    gateway.add_item("55", "1201")

    with pytest.raises(ArticleNotFound) as exc_info:
        await engine.resolver.resolve(1)

    assert exc_info.value.article_ref == "9999"
    assert products.products[1].external_numeric_id is None
    assert ledger_store.entries[-1].status == LedgerStatus.ERROR.value


@pytest.mark.asyncio
async def test_missing_article_ref(engine, products):
    products.add(1, article_ref=None)

    with pytest.raises(MissingArticleRef):
        await engine.resolver.resolve(1)


@pytest.mark.asyncio
async def test_catalog_unavailable(engine, gateway, products):
    products.add(1, article_ref="1201")
    gateway.fail("GET", "/items", status_code=None, error="connection refused")
    gateway.fail("GET", "/items/full", status_code=503)

    with pytest.raises(RemoteUnavailable):
        await engine.resolver.resolve(1)


@pytest.mark.asyncio
async def test_rejected_catalog_request_is_not_reported_as_unavailable(engine, gateway, products, failures):
    products.add(1, article_ref="1201", stock=[2])
    gateway.add_item("55", "1201")
    gateway.fail("GET", "/items", status_code=401, error="Unauthorized")
    gateway.fail("GET", "/items/full", status_code=401, error="Unauthorized")

    with pytest.raises(SyncError) as exc_info:
        await engine.resolver.resolve(1)
    assert not isinstance(exc_info.value, RemoteUnavailable)

    outcome = await engine.resolver.resolve_product(1)
    assert outcome.step == "catalog_rejected"
    assert "svarar inte" not in outcome.user_message

    stock = await engine.stock.reconcile_stock(1)
    assert stock.step == "resolve_item_id"
    assert stock.failure_enqueued is True
    assert len(failures.rows) == 1


@pytest.mark.asyncio
async def test_empty_catalog_means_article_not_found(engine, gateway, products):
    products.add(1, article_ref="1201")

    with pytest.raises(ArticleNotFound):
        await engine.resolver.resolve(1)

    outcome = await engine.resolver.resolve_product(1)
    assert outcome.step == "article_not_found"
    assert len(gateway.calls_to("GET", "/items/full")) == 2


@pytest.mark.asyncio
async def test_resolve_product_reports_outcomes(engine, gateway, products):
    products.add(1, article_ref="1201")
    products.add(2, article_ref="9999")
    gateway.add_item("55", "1201")

    ok = await engine.resolver.resolve_product(1)
    missing = await engine.resolver.resolve_product(2)
    unknown = await engine.resolver.resolve_product(3)

    assert ok.status == OutcomeStatus.SUCCESS
    assert ok.step == "resolved"
    assert ok.numeric_id == "55"
    assert missing.status == OutcomeStatus.ERROR
    assert missing.step == "article_not_found"
    assert "9999" in missing.user_message
    assert unknown.step == "product_not_found"


@pytest.mark.asyncio
async def test_refresh_replaces_a_stale_cached_id(engine, gateway, products):
    products.add(1, article_ref="1201", numeric_id="41")
    gateway.add_item("55", "1201")

    cached = await engine.resolver.resolve_product(1)
    refreshed = await engine.resolver.resolve_product(1, refresh=True)

    assert (cached.numeric_id, cached.cached) == ("41", True)
    assert (refreshed.numeric_id, refreshed.cached) == ("55", False)
    assert products.products[1].external_numeric_id == "55"
    assert products.products[1].sync_status == ProductSyncStatus.SYNCED


@pytest.mark.asyncio
async def test_batch_fetches_catalog_once(engine, gateway, products, ledger_store):
    products.add(1, article_ref="1201")
    products.add(2, article_ref="1300")
    products.add(3, article_ref="9999")
    products.add(4, article_ref="1400", numeric_id="77")
    gateway.add_item("55", "1201")
    gateway.add_item("56", "1300")

    summary = await engine.resolver.resolve_all_pending()

    assert summary.total == 3
    assert summary.resolved == 2
    assert summary.failed == 1
    assert summary.failures[0].article_ref == "9999"
    assert len(gateway.calls_to("GET", "/items")) == 1

    entries = ledger_store.of_type(SyncType.BATCH_RESOLVE_ITEM_IDS.value)
    assert len(entries) == 1
    assert entries[0].status == LedgerStatus.PARTIAL_SUCCESS.value


@pytest.mark.asyncio
async def test_batch_with_catalog_down_fails_every_product(engine, gateway, products, ledger_store):
    products.add(1, article_ref="1201")
    gateway.fail("GET", "/items")
    gateway.fail("GET", "/items/full")

    summary = await engine.resolver.resolve_all_pending()

    assert summary.failed == 1
    assert summary.error is not None
    assert ledger_store.entries[-1].status == LedgerStatus.ERROR.value


@pytest.mark.asyncio
async def test_resolve_article_ref_without_local_product_uses_item_number_lookup(engine, gateway):
    gateway.add_item("55", "1201")

    numeric_id = await engine.resolver.resolve_article_ref("1201")

    assert numeric_id == "55"
    assert len(gateway.calls_to("GET", "/items/by-item-number/1201")) == 1
    assert gateway.calls_to("GET", "/items") == []

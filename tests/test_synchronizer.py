"""Tests for snapshot reconciliation, derived views and the subscription lifecycle."""
from decimal import Decimal

import pytest

from inventory_sync.models.enums import FailureReason, SyncState
from inventory_sync.models.events import ErrorEvent, SnapshotEvent
from inventory_sync.services.memory import MemoryStore
from inventory_sync.services.synchronizer import InventorySynchronizer, low_stock


def snapshot(records):
    return SnapshotEvent(path="products", records=records)


@pytest.mark.asyncio
async def test_snapshot_replace_drops_records_missing_from_new_snapshot(empty_store, make_record):
    sync = InventorySynchronizer(empty_store)
    sync.apply(snapshot({key: make_record(key) for key in ("A", "B", "C")}))
    sync.apply(snapshot({key: make_record(key) for key in ("A", "C")}))

    assert [p.id for p in sync.filtered_view()] == ["A", "C"]
    assert "B" not in sync.snapshot
    assert sync.state == SyncState.READY
    assert sync.revision == 2


@pytest.mark.asyncio
async def test_aggregate_stats_recomputed_per_snapshot(empty_store, make_record):
    sync = InventorySynchronizer(empty_store)
    sync.apply(snapshot({
        "a": make_record("a", price=10, stock=2),
        "b": make_record("b", price=5, stock=3),
    }))
    assert sync.total_inventory_value == Decimal("35")

    sync.apply(snapshot({"a": make_record("a", price=10, stock=2)}))
    assert sync.total_inventory_value == Decimal("20")

    sync.apply(snapshot({}))
    assert sync.total_inventory_value == Decimal("0")


@pytest.mark.asyncio
async def test_low_stock_filter(empty_store, make_record):
    sync = InventorySynchronizer(empty_store)
    sync.apply(snapshot({
        "a": make_record("a", stock=5),
        "b": make_record("b", stock=12),
    }))

    assert [p.id for p in sync.filtered_view(low_stock())] == ["a"]
    assert [p.id for p in sync.filtered_view(low_stock(threshold=20))] == ["a", "b"]
    assert [p.id for p in sync.filtered_view(lambda p: p.stock > 10)] == ["b"]

    view = sync.view(low_stock_only=True)
    assert [p.id for p in view.products] == ["a"]
    # totals always cover the whole collection
    assert view.stats.product_count == 2


@pytest.mark.asyncio
async def test_malformed_records_are_skipped(empty_store, make_record):
    sync = InventorySynchronizer(empty_store)
    sync.apply(snapshot({
        "good": make_record("good"),
        "bad-price": make_record("bad-price", price=-1),
        "not-an-object": "oops",
    }))
    assert list(sync.snapshot) == ["good"]


@pytest.mark.asyncio
async def test_out_of_range_price_does_not_break_the_view(empty_store, make_record):
    sync = InventorySynchronizer(empty_store)
    sync.apply(snapshot({
        "good": make_record("good", price=10, stock=2),
        "huge": make_record("huge", price=1e30, stock=1),
    }))

    view = sync.view().to_dict()
    assert [p["id"] for p in view["products"]] == ["good"]
    assert view["stats"]["totalInventoryValue"] == "20.00"


@pytest.mark.asyncio
async def test_error_event_keeps_last_good_snapshot(empty_store, make_record):
    sync = InventorySynchronizer(empty_store)
    sync.apply(snapshot({"a": make_record("a")}))
    sync.apply(ErrorEvent(path="products", reason=FailureReason.PERMISSION_DENIED, message="Permission denied"))

    assert sync.state == SyncState.ERROR
    assert sync.last_error.reason == FailureReason.PERMISSION_DENIED
    assert list(sync.snapshot) == ["a"]
    assert sync.view().error == "PERMISSION_DENIED: Permission denied"


@pytest.mark.asyncio
async def test_start_loads_initial_snapshot(store):
    sync = InventorySynchronizer(store)
    assert sync.state == SyncState.UNINITIALIZED

    await sync.start()
    assert await sync.wait_until_ready(timeout=1) == SyncState.READY
    assert [p.name for p in sync.filtered_view()] == ["Hammer", "Saw"]
    assert sync.total_inventory_value == Decimal("35")

    await sync.stop()
    assert sync.state == SyncState.CLOSED


@pytest.mark.asyncio
async def test_start_twice_keeps_a_single_subscription(store):
    async with InventorySynchronizer(store) as sync:
        await sync.wait_until_ready(timeout=1)
        await sync.start()
    assert [call for call in store.calls if call[0] == "subscribe_collection"] == [
        ("subscribe_collection", "products", None)
    ]


@pytest.mark.asyncio
async def test_remote_writes_reach_the_view(store, make_record):
    async with InventorySynchronizer(store) as sync:
        await sync.wait_until_ready(timeout=1)
        revision = sync.revision

        await store.set_by_key("products", "p-c", make_record("p-c", name="Drill", stock=1))
        await sync.wait_for_revision(revision + 1, timeout=1)
        assert "p-c" in sync.snapshot

        await store.delete_by_key("products", "p-a")
        await sync.wait_for_revision(revision + 2, timeout=1)
        assert "p-a" not in sync.snapshot


@pytest.mark.asyncio
async def test_subscription_error_then_explicit_restart(store, make_record):
    async with InventorySynchronizer(store) as sync:
        await sync.wait_until_ready(timeout=1)
        revision = sync.revision

        store.emit_error("products", FailureReason.NETWORK, "connection reset")
        await sync.wait_for_revision(revision + 1, timeout=1)
        assert sync.state == SyncState.ERROR
        assert len(sync.snapshot) == 2

        # no automatic recovery
        await store.set_by_key("products", "p-c", make_record("p-c"))
        assert "p-c" not in sync.snapshot

        await sync.restart()
        assert await sync.wait_until_ready(timeout=1) == SyncState.READY
        assert sync.last_error is None
        assert "p-c" in sync.snapshot


@pytest.mark.asyncio
async def test_subscribe_failure_moves_to_error(store):
    store.fail_next("subscribe_collection", FailureReason.PERMISSION_DENIED, "Permission denied")
    sync = InventorySynchronizer(store)
    await sync.start()

    assert await sync.wait_until_ready(timeout=1) == SyncState.ERROR
    assert sync.last_error.message == "Permission denied"
    assert sync.snapshot == {}


@pytest.mark.asyncio
async def test_events_after_stop_are_discarded(store, make_record):
    sync = InventorySynchronizer(store)
    await sync.start()
    await sync.wait_until_ready(timeout=1)
    revision = sync.revision

    await sync.stop()
    await sync.stop()
    await store.set_by_key("products", "p-c", make_record("p-c"))

    assert sync.revision == revision
    assert "p-c" not in sync.snapshot
    assert sync.state == SyncState.CLOSED


@pytest.mark.asyncio
async def test_stop_before_start_is_safe():
    sync = InventorySynchronizer(MemoryStore())
    await sync.stop()
    assert sync.state == SyncState.UNINITIALIZED


@pytest.mark.asyncio
async def test_memory_store_records_calls_only_when_asked(make_record):
    quiet = MemoryStore()
    await quiet.set_by_key("products", "p1", make_record("p1"))
    await quiet.get_by_key("products", "p1")
    assert quiet.calls == []
    assert quiet.records("products")["p1"]["nombre"] == "Widget"

    recording = MemoryStore(record_calls=True)
    await recording.get_by_key("products", "p1")
    assert recording.calls == [("get_by_key", "products", "p1")]

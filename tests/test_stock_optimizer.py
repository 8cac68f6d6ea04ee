"""Stok optimizasyonu unit testleri."""

import threading

from depo_takip.models.warehouse import ItemStatus, WarehouseItem
from depo_takip.services.stock_optimizer import Debouncer, StockOptimizer
from depo_takip.storage.memory import InMemoryStore


def _item(item_id: str, weight: float, received: str, **overrides) -> WarehouseItem:
    data = dict(
        id=item_id,
        barcode=item_id,
        material="BOPP",
        cm=70,
        mikron=20,
        current_weight=weight,
        original_weight=max(weight, 100),
        bobin_count=1,
        received_date=received,
    )
    data.update(overrides)
    return WarehouseItem(**data)


def _create_optimizer(*items: WarehouseItem) -> StockOptimizer:
    store = InMemoryStore()
    for item in items:
        store.insert_warehouse_item(item)
    return StockOptimizer(store)


class TestAvailableStock:
    """Yalnızca aynı özellikte, stokta ve ağırlığı pozitif lotlar; FIFO sırası."""

    def test_filters_and_orders_fifo(self):
        optimizer = _create_optimizer(
            _item("NEW", 30, "2025-08-20T00:00:00+00:00"),
            _item("OLD", 30, "2025-08-01T00:00:00+00:00"),
            _item("EMPTY", 0, "2025-07-01T00:00:00+00:00"),
            _item("RESERVED", 50, "2025-07-01T00:00:00+00:00", status=ItemStatus.REZERVE),
            _item("WIDE", 50, "2025-07-01T00:00:00+00:00", cm=100),
            _item("OTHER", 50, "2025-07-01T00:00:00+00:00", material="CPP"),
        )
        items = optimizer.available_stock("BOPP", 70, 20)
        assert [i.id for i in items] == ["OLD", "NEW"]


class TestSuggestion:
    def test_partial_coverage(self):
        optimizer = _create_optimizer(
            _item("A", 35, "2025-08-01T00:00:00+00:00"),
            _item("B", 25, "2025-08-02T00:00:00+00:00"),
        )
        suggestion = optimizer.suggest_optimized_quantity("BOPP", 70, 20, 100)
        assert suggestion.total_available == 60
        assert suggestion.optimized_quantity == 40
        assert suggestion.coverage_percent == 60
        assert suggestion.should_suggest is True
        assert suggestion.can_fulfill is False

    def test_zero_availability(self):
        suggestion = _create_optimizer().suggest_optimized_quantity("BOPP", 70, 20, 100)
        assert suggestion.total_available == 0
        assert suggestion.optimized_quantity == 100
        assert suggestion.coverage_percent == 0
        assert suggestion.should_suggest is False

    def test_full_coverage_not_suggested(self):
        optimizer = _create_optimizer(_item("A", 150, "2025-08-01T00:00:00+00:00"))
        suggestion = optimizer.suggest_optimized_quantity("BOPP", 70, 20, 100)
        assert suggestion.optimized_quantity == 0
        assert suggestion.coverage_percent == 100
        assert suggestion.should_suggest is False
        assert suggestion.can_fulfill is True

    def test_zero_required(self):
        optimizer = _create_optimizer(_item("A", 150, "2025-08-01T00:00:00+00:00"))
        suggestion = optimizer.suggest_optimized_quantity("BOPP", 70, 20, 0)
        assert suggestion.coverage_percent == 0

    def test_coverage_rounds_half_up(self):
        optimizer = _create_optimizer(_item("A", 1, "2025-08-01T00:00:00+00:00"))
        suggestion = optimizer.suggest_optimized_quantity("BOPP", 70, 20, 8)
        assert suggestion.coverage_percent == 13


class TestFifoAllocation:
    def test_oldest_lot_consumed_first(self):
        optimizer = _create_optimizer(
            _item("NEW", 50, "2025-08-20T00:00:00+00:00"),
            _item("OLD", 30, "2025-08-01T00:00:00+00:00"),
        )
        plan = optimizer.allocate_fifo("BOPP", 70, 20, 60)
        assert [(a.item.id, a.quantity) for a in plan] == [("OLD", 30), ("NEW", 30)]

    def test_allocation_capped_by_stock(self):
        optimizer = _create_optimizer(_item("A", 30, "2025-08-01T00:00:00+00:00"))
        plan = optimizer.allocate_fifo("BOPP", 70, 20, 100)
        assert sum(a.quantity for a in plan) == 30


class TestDebouncer:
    def test_only_last_call_runs(self):
        calls = []
        done = threading.Event()

        def record(value):
            calls.append(value)
            done.set()

        debounced = Debouncer(record, wait_seconds=0.05)
        for value in range(5):
            debounced(value)
        assert done.wait(2)
        debounced.cancel()
        assert calls == [4]

    def test_cancel(self):
        calls = []
        debounced = Debouncer(calls.append, wait_seconds=0.05)
        debounced(1)
        debounced.cancel()
        threading.Event().wait(0.15)
        assert calls == []

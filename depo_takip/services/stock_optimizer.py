"""Stok optimizasyonu - yeni sipariş öncesi mevcut stoğu önerir.

Aynı malzeme/cm/mikron özelliklerindeki "Stokta" lotlar en eskiden yeniye
(FIFO) sıralanır; önerilen sipariş miktarı ihtiyaçtan mevcut stoğun
düşülmesiyle bulunur.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from depo_takip.config import SUGGESTION_DEBOUNCE_SECONDS
from depo_takip.models.warehouse import ItemStatus, WarehouseFilters, WarehouseItem
from depo_takip.storage.base import WarehouseStore
from depo_takip.utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass
class StockSuggestion:
    required_quantity: float
    available_items: list[WarehouseItem] = field(default_factory=list)
    total_available: float = 0
    optimized_quantity: float = 0
    coverage_percent: int = 0

    @property
    def should_suggest(self) -> bool:
        """Öneri yalnızca stok ihtiyacı kısmen karşılıyorsa gösterilir."""
        return 0 < self.total_available < self.required_quantity

    @property
    def can_fulfill(self) -> bool:
        return self.total_available >= self.required_quantity


@dataclass
class Allocation:
    item: WarehouseItem
    quantity: float


class StockOptimizer:
    def __init__(self, store: WarehouseStore):
        self.store = store

    def available_stock(self, material: str, cm: float, mikron: float) -> list[WarehouseItem]:
        """Özelliklere uyan, stokta ve ağırlığı pozitif lotlar; en eski giriş önce."""
        items = self.store.list_warehouse_items(
            WarehouseFilters(materials=[material], statuses=[ItemStatus.STOKTA])
        )
        matching = [
            i for i in items
            if i.cm == cm and i.mikron == mikron and (i.current_weight or 0) > 0
        ]
        return sorted(matching, key=lambda i: i.received_date)

    def suggest_optimized_quantity(
        self,
        material: str,
        cm: float,
        mikron: float,
        required_quantity: float,
    ) -> StockSuggestion:
        items = self.available_stock(material, cm, mikron)
        total = sum(i.current_weight for i in items)
        coverage = (
            min(100, round_half_up(100 * total / required_quantity)) if required_quantity else 0
        )
        suggestion = StockSuggestion(
            required_quantity=required_quantity,
            available_items=items,
            total_available=total,
            optimized_quantity=max(0, required_quantity - total),
            coverage_percent=coverage,
        )
        logger.info(
            "Stok önerisi %s %scm %smic: ihtiyaç %.1fkg, mevcut %.1fkg (%%%d)",
            material, cm, mikron, required_quantity, total, coverage,
        )
        return suggestion

    def allocate_fifo(
        self,
        material: str,
        cm: float,
        mikron: float,
        required_quantity: float,
    ) -> list[Allocation]:
        """İhtiyacı en eski lottan başlayarak lotlara dağıtır."""
        remaining = required_quantity
        plan: list[Allocation] = []
        for item in self.available_stock(material, cm, mikron):
            if remaining <= 0:
                break
            take = min(item.current_weight, remaining)
            plan.append(Allocation(item=item, quantity=take))
            remaining -= take
        return plan


class Debouncer:
    """Art arda gelen çağrıları birleştirir; yalnızca son çağrı bekleme süresi sonunda çalışır."""

    def __init__(self, fn: Callable[..., Any], wait_seconds: float = SUGGESTION_DEBOUNCE_SECONDS):
        self.fn = fn
        self.wait_seconds = wait_seconds
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.wait_seconds, self.fn, args=args, kwargs=kwargs)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

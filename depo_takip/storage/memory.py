"""Süreç içi depo; testler ve DEPO_STORAGE=memory için."""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import fields, replace
from typing import Any, Optional

from depo_takip.errors import ConcurrentUpdateError, DuplicateItemError, NotFoundError
from depo_takip.models.order import Order
from depo_takip.models.warehouse import StockMovement, WarehouseFilters, WarehouseItem
from depo_takip.storage.base import WarehouseStore
from depo_takip.storage.locks import ResourceLock
from depo_takip.utils import iso_now

logger = logging.getLogger(__name__)

_ITEM_FIELDS = {f.name for f in fields(WarehouseItem)}
_ORDER_FIELDS = {f.name for f in fields(Order)}


def _check_patch(patch: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Bilinmeyen alan(lar): {sorted(unknown)}")


class InMemoryStore(WarehouseStore):
    """Kayıt başına kilitle korunan, kopya döndüren bellek içi depo."""

    def __init__(self) -> None:
        self._items: dict[str, WarehouseItem] = {}
        self._movements: list[StockMovement] = []
        self._orders: dict[str, Order] = {}
        self._locks = ResourceLock()

    def _hold(self, key: str):
        return self._locks.hold(key, owner=str(uuid.uuid4()))

    # --- Depo lotları ---

    def list_warehouse_items(self, filters: Optional[WarehouseFilters] = None) -> list[WarehouseItem]:
        items = [copy.deepcopy(i) for i in self._items.values()]
        if filters:
            items = [i for i in items if filters.matches(i)]
        return sorted(items, key=lambda i: i.received_date, reverse=True)

    def get_warehouse_item(self, item_id: str) -> Optional[WarehouseItem]:
        item = self._items.get(item_id)
        return copy.deepcopy(item) if item else None

    def _add_item(self, item: WarehouseItem, movement: Optional[StockMovement]) -> None:
        if item.id in self._items:
            raise DuplicateItemError(f"Lot zaten mevcut: {item.id}")
        self._items[item.id] = copy.deepcopy(item)
        if movement is not None:
            self._movements.append(copy.deepcopy(movement))

    def insert_warehouse_item(
        self,
        item: WarehouseItem,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        with self._hold(f"item:{item.id}"):
            self._add_item(item, movement)
        return copy.deepcopy(item)

    def _apply_item_patch(self, item_id: str, patch: dict[str, Any], expected_version: Optional[int]) -> WarehouseItem:
        _check_patch(patch, _ITEM_FIELDS - {"id", "version", "last_movement_date"})
        current = self._items.get(item_id)
        if current is None:
            raise NotFoundError(f"Lot bulunamadı: {item_id}")
        if expected_version is not None and current.version != expected_version:
            raise ConcurrentUpdateError(
                f"Lot {item_id} değişmiş (beklenen sürüm {expected_version}, mevcut {current.version})"
            )
        updated = replace(
            current,
            **patch,
            version=current.version + 1,
            last_movement_date=iso_now(),
        )
        self._items[item_id] = updated
        return copy.deepcopy(updated)

    def update_warehouse_item(
        self,
        item_id: str,
        patch: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> WarehouseItem:
        with self._hold(f"item:{item_id}"):
            return self._apply_item_patch(item_id, patch, expected_version)

    def delete_warehouse_item(self, item_id: str) -> bool:
        with self._hold(f"item:{item_id}"):
            return self._items.pop(item_id, None) is not None

    # --- Stok hareketleri ---

    def list_movements(self, item_id: Optional[str] = None) -> list[StockMovement]:
        movements = [
            copy.deepcopy(m)
            for m in self._movements
            if item_id is None or m.warehouse_item_id == item_id
        ]
        # Aynı zaman damgalı kayıtlarda ekleme sırası korunur
        indexed = list(enumerate(movements))
        indexed.sort(key=lambda p: (p[1].movement_date, p[0]), reverse=True)
        return [m for _, m in indexed]

    def commit_item_change(
        self,
        item_id: str,
        patch: dict[str, Any],
        expected_version: int,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        with self._hold(f"item:{item_id}"):
            updated = self._apply_item_patch(item_id, patch, expected_version)
            if movement is not None:
                self._movements.append(copy.deepcopy(movement))
            logger.debug("Lot %s sürüm %d olarak kaydedildi", item_id, updated.version)
            return updated

    # --- Siparişler ---

    def list_orders(self) -> list[Order]:
        orders = [copy.deepcopy(o) for o in self._orders.values()]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def get_order(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return copy.deepcopy(order) if order else None

    def insert_order(self, order: Order) -> Order:
        with self._hold(f"order:{order.id}"):
            if order.id in self._orders:
                raise ConcurrentUpdateError(f"Sipariş zaten mevcut: {order.id}")
            self._orders[order.id] = copy.deepcopy(order)
        return copy.deepcopy(order)

    def update_order(self, order_id: str, patch: dict[str, Any]) -> Order:
        _check_patch(patch, _ORDER_FIELDS - {"id"})
        with self._hold(f"order:{order_id}"):
            current = self._orders.get(order_id)
            if current is None:
                raise NotFoundError(f"Sipariş bulunamadı: {order_id}")
            updated = replace(current, **patch)
            self._orders[order_id] = updated
            return copy.deepcopy(updated)

    def delete_order(self, order_id: str) -> bool:
        with self._hold(f"order:{order_id}"):
            return self._orders.pop(order_id, None) is not None

    def insert_item_for_order(
        self,
        order_id: str,
        order_patch: dict[str, Any],
        item: WarehouseItem,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        _check_patch(order_patch, _ORDER_FIELDS - {"id", "warehouse_item_id"})
        # Kilit sırası: önce sipariş, sonra lot
        with self._hold(f"order:{order_id}"), self._hold(f"item:{item.id}"):
            current = self._orders.get(order_id)
            if current is None:
                raise NotFoundError(f"Sipariş bulunamadı: {order_id}")
            if current.warehouse_item_id:
                raise ConcurrentUpdateError(f"Sipariş zaten bir lota bağlı: {order_id}")
            self._add_item(item, movement)
            self._orders[order_id] = replace(current, **order_patch, warehouse_item_id=item.id)
        return copy.deepcopy(item)

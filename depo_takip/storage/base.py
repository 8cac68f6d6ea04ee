"""Depo çekirdeğinin kullandığı veri deposu arayüzü."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from depo_takip.models.order import Order
from depo_takip.models.warehouse import StockMovement, WarehouseFilters, WarehouseItem


class WarehouseStore(ABC):
    """Lot, hareket ve sipariş kayıtları için depolama sözleşmesi.

    Okuma metotları kayıt yoksa None/boş liste döndürür. Arka uç hataları
    StorageError olarak yükseltilir. Koşullu yazmalar (expected_version,
    sipariş sahiplenme) başarısız olursa ConcurrentUpdateError yükseltilir.
    """

    # --- Depo lotları ---

    @abstractmethod
    def list_warehouse_items(self, filters: Optional[WarehouseFilters] = None) -> list[WarehouseItem]:
        """Filtreye uyan lotları en yeni girişten eskiye döndürür."""

    @abstractmethod
    def get_warehouse_item(self, item_id: str) -> Optional[WarehouseItem]:
        ...

    @abstractmethod
    def insert_warehouse_item(
        self,
        item: WarehouseItem,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        """Yeni lotu (ve varsa ilk giriş hareketini) tek adımda ekler.

        Kimlik kullanımdaysa DuplicateItemError yükseltilir, hiçbir şey yazılmaz.
        """

    @abstractmethod
    def update_warehouse_item(
        self,
        item_id: str,
        patch: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> WarehouseItem:
        ...

    @abstractmethod
    def delete_warehouse_item(self, item_id: str) -> bool:
        ...

    def find_items_by_order(self, order_id: str) -> list[WarehouseItem]:
        return [i for i in self.list_warehouse_items() if i.order_id == order_id]

    # --- Stok hareketleri ---

    @abstractmethod
    def list_movements(self, item_id: Optional[str] = None) -> list[StockMovement]:
        """Hareketleri en yeniden eskiye döndürür."""

    @abstractmethod
    def commit_item_change(
        self,
        item_id: str,
        patch: dict[str, Any],
        expected_version: int,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        """Lot güncellemesini ve hareket kaydını tek atomik adımda uygular."""

    # --- Siparişler ---

    @abstractmethod
    def list_orders(self) -> list[Order]:
        ...

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def insert_order(self, order: Order) -> Order:
        ...

    @abstractmethod
    def update_order(self, order_id: str, patch: dict[str, Any]) -> Order:
        ...

    @abstractmethod
    def delete_order(self, order_id: str) -> bool:
        ...

    @abstractmethod
    def insert_item_for_order(
        self,
        order_id: str,
        order_patch: dict[str, Any],
        item: WarehouseItem,
        movement: Optional[StockMovement] = None,
    ) -> WarehouseItem:
        """Siparişi sahiplenip lotu ve ilk giriş hareketini tek atomik adımda ekler.

        Sipariş zaten bağlıysa ConcurrentUpdateError, lot kimliği kullanımdaysa
        DuplicateItemError yükseltilir; her iki durumda da hiçbir şey yazılmaz.
        """

"""Sipariş-Depo eşleştirmesi.

Teslim edilmiş bir sipariş depoya alındığında tek bir lota dönüşür.
Bir siparişe en fazla bir lot bağlanabilir; bu kural veri deposundaki
koşullu yazma ile korunur, iki eşzamanlı alma işleminden yalnızca biri kazanır.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from depo_takip.config import DEFAULT_LOCATION, LOW_STOCK_THRESHOLD_KG
from depo_takip.errors import (
    ConcurrentUpdateError,
    ConflictError,
    DuplicateItemError,
    NotFoundError,
    ValidationError,
)
from depo_takip.models.order import Order, OrderStatus, OrderWarehouseStatus, OrderWarehouseSummary
from depo_takip.models.warehouse import ItemStatus, WarehouseItem
from depo_takip.services.activity_logger import ActivityLogger
from depo_takip.services.id_generator import generate_warehouse_id
from depo_takip.services.stock_ledger import StockLedger
from depo_takip.storage.base import WarehouseStore
from depo_takip.utils import iso_now, parse_iso

logger = logging.getLogger(__name__)

UNSPECIFIED_MATERIAL = "Belirtilmemiş"
ALREADY_RECEIVED = "Bu sipariş zaten depoda kayıtlı"
MAX_ID_ATTEMPTS = 5


class OrderWarehouseReconciler:
    def __init__(
        self,
        store: WarehouseStore,
        ledger: StockLedger,
        activity_logger: Optional[ActivityLogger] = None,
        id_generator: Callable[..., str] = generate_warehouse_id,
    ):
        self.store = store
        self.ledger = ledger
        self.activity_logger = activity_logger or ActivityLogger()
        self.id_generator = id_generator

    def _linked_item(self, order_id: str) -> Optional[WarehouseItem]:
        items = self.store.find_items_by_order(order_id)
        return items[0] if items else None

    def get_status(self, order_id: str) -> OrderWarehouseStatus:
        order = self.store.get_order(order_id)
        if order is None:
            return OrderWarehouseStatus(is_in_warehouse=False, can_receive=False)

        item = self._linked_item(order_id)
        return OrderWarehouseStatus(
            is_in_warehouse=item is not None,
            can_receive=order.status == OrderStatus.DELIVERED and item is None,
            warehouse_item=item,
        )

    def receive(
        self,
        order_id: str,
        actual_weight: float,
        actual_bobin_count: int,
        location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> WarehouseItem:
        """Teslim edilmiş siparişi depoya alır ve yeni lotu döndürür.

        Toplam fiyat, birim fiyat varsa gerçek teslim ağırlığından yeniden
        hesaplanır. Sipariş güncellemesi, lot oluşturma ve ilk giriş hareketi
        tek atomik adımdır. Üretilen kod kullanımdaysa yeni kod üretilip
        tekrar denenir.
        """
        order = self.store.get_order(order_id)
        if order is None:
            raise NotFoundError("Sipariş bulunamadı")
        if order.status != OrderStatus.DELIVERED:
            raise ConflictError("Sadece teslim edilmiş siparişler depoya alınabilir")
        if order.warehouse_item_id or self._linked_item(order_id) is not None:
            raise ConflictError(ALREADY_RECEIVED)
        if actual_weight < 0 or actual_bobin_count < 0:
            raise ValidationError("Ağırlık ve bobin sayısı negatif olamaz")

        actual_total_price = order.total_price
        if order.price_per_unit and actual_weight:
            actual_total_price = order.price_per_unit * actual_weight

        existing = [i.scan_code for i in self.store.list_warehouse_items()]
        order_patch = {
            "actual_quantity": actual_weight,
            "actual_bobin_sayisi": actual_bobin_count,
            "actual_total_price": actual_total_price,
            "is_in_warehouse": True,
        }

        for attempt in range(1, MAX_ID_ATTEMPTS + 1):
            code = self.id_generator(customer_name=order.customer, existing=existing)
            item = self._new_item(order, code, actual_weight, actual_bobin_count, location, notes)
            try:
                saved = self.store.insert_item_for_order(
                    order_id, order_patch, item, self.ledger.record_initial_receipt(item)
                )
                break
            except DuplicateItemError:
                # Liste okunduktan sonra aynı kod başka bir lota verilmiş
                logger.warning(
                    "Lot kodu %s kullanımda, yeni kod üretiliyor (deneme %d/%d)",
                    code, attempt, MAX_ID_ATTEMPTS,
                )
                existing.append(code)
            except ConcurrentUpdateError as e:
                logger.warning("Sipariş %s depoya alınamadı: %s", order_id, e)
                raise ConflictError(ALREADY_RECEIVED) from e
        else:
            raise ConflictError(f"Sipariş {order_id} için boş lot kodu bulunamadı")

        logger.info("Sipariş %s depoya alındı: lot %s, %.1fkg", order_id, saved.id, actual_weight)
        self.activity_logger.order_received(
            order_id, {"warehouse_item_id": saved.id, "actual_total_price": actual_total_price}
        )
        return saved

    def _new_item(
        self,
        order: Order,
        code: str,
        actual_weight: float,
        actual_bobin_count: int,
        location: Optional[str],
        notes: Optional[str],
    ) -> WarehouseItem:
        now = iso_now()
        return WarehouseItem(
            id=code,
            barcode=code,
            order_id=order.id,
            material=order.material or UNSPECIFIED_MATERIAL,
            cm=order.cm or 0,
            mikron=order.mikron or 0,
            current_weight=actual_weight,
            original_weight=actual_weight,
            bobin_count=actual_bobin_count,
            original_bobin_count=actual_bobin_count,
            status=ItemStatus.STOKTA,
            location=location or DEFAULT_LOCATION,
            supplier=order.supplier,
            notes=notes or f"Depoya alındı - Sipariş {order.id[:8]}...",
            received_date=now,
            last_movement_date=now,
        )

    def list_receivable(self) -> list[Order]:
        """Depoya alınmayı bekleyen teslim edilmiş siparişler, en yeni teslim önce."""
        linked = {i.order_id for i in self.store.list_warehouse_items() if i.order_id}
        receivable = [
            o for o in self.store.list_orders()
            if o.status == OrderStatus.DELIVERED and o.id not in linked and not o.warehouse_item_id
        ]
        return sorted(
            receivable,
            key=lambda o: parse_iso(o.delivered_date or o.created_at),
            reverse=True,
        )

    def linked_items(self) -> list[tuple[Order, WarehouseItem]]:
        orders = {o.id: o for o in self.store.list_orders()}
        return [
            (orders[item.order_id], item)
            for item in self.store.list_warehouse_items()
            if item.order_id in orders
        ]

    def summary(self) -> OrderWarehouseSummary:
        items = self.store.list_warehouse_items()
        in_warehouse = {i.order_id for i in items if i.order_id}
        pending = [
            o for o in self.store.list_orders()
            if o.status == OrderStatus.DELIVERED and o.id not in in_warehouse
        ]
        linked = self.linked_items()
        return OrderWarehouseSummary(
            total_orders_in_warehouse=len(in_warehouse),
            pending_receival=len(pending),
            total_warehouse_value=sum(order.total_price or 0 for order, _ in linked),
            low_stock_orders=[
                (order, item) for order, item in linked
                if (item.current_weight or 0) < LOW_STOCK_THRESHOLD_KG
            ],
        )

"""Stok Defteri - lot ağırlık/bobin değişikliklerini hareket kaydıyla birlikte uygular.

Her mutasyon tek bir atomik oku-değiştir-yaz adımıdır: lot güncel haliyle
okunur, yeni değerler hesaplanır, güncelleme ve hareket kaydı sürüm koşuluyla
birlikte yazılır. Koşul tutmazsa (başka bir işlem araya girdiyse) lot yeniden
okunur ve hesap tekrarlanır.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import replace
from typing import Any, Callable, Optional

from depo_takip.config import (
    DEFAULT_LOCATION,
    INITIAL_ENTRY_NOTE,
    LOW_STOCK_THRESHOLD_KG,
    SYSTEM_OPERATOR,
)
from depo_takip.errors import ConcurrentUpdateError, ConflictError, NotFoundError, ValidationError
from depo_takip.models.warehouse import (
    ItemStatus,
    MovementKind,
    MovementMetadata,
    MovementType,
    StockMovement,
    StockType,
    WarehouseFilters,
    WarehouseItem,
    WarehouseSummary,
)
from depo_takip.services.activity_logger import ActivityLogger
from depo_takip.services.stock_validator import StockValidator, ValidationResult
from depo_takip.storage.base import WarehouseStore

logger = logging.getLogger(__name__)

EXIT_LOCATION_LABELS = {
    "matbaa-tamburlu": "Matbaa - Tamburlu",
    "matbaa-bilgili": "Matbaa - Bilgili",
    "kesim": "Kesim",
    "sevkiyat": "Sevkiyat",
}

EXIT_REASON_LABELS = {
    "satis": "Satış",
    "transfer": "Transfer",
    "hasarli": "Hasarlı",
    "uretim": "Üretim",
    "diger": "Diğer",
}

RETURN_CONDITION_LABELS = {
    "kullanilabilir": "Kullanılabilir",
    "hasarli": "Hasarlı",
    "kontrol-gerekli": "Kontrol Gerekli",
}


def _num(value: float) -> str:
    return f"{value:g}"


# Bir deneme: güncel lot -> (patch, hareket)
_Plan = Callable[[WarehouseItem], tuple[dict[str, Any], Optional[StockMovement]]]


class StockLedger:
    """Çıkış, dönüş, düzeltme ve ilk giriş işlemlerini yöneten defter."""

    def __init__(
        self,
        store: WarehouseStore,
        validator: Optional[StockValidator] = None,
        activity_logger: Optional[ActivityLogger] = None,
        max_update_attempts: int = 3,
    ):
        if max_update_attempts < 1:
            raise ValueError("max_update_attempts en az 1 olmalı")
        self.store = store
        self.validator = validator or StockValidator()
        self.activity_logger = activity_logger or ActivityLogger()
        self.max_update_attempts = max_update_attempts

    # --- Ortak mutasyon döngüsü ---

    def _mutate(self, item_id: str, operation: str, plan: _Plan) -> tuple[WarehouseItem, Optional[StockMovement]]:
        for attempt in range(1, self.max_update_attempts + 1):
            current = self.store.get_warehouse_item(item_id)
            if current is None:
                raise NotFoundError(f"Lot bulunamadı: {item_id}")

            patch, movement = plan(current)
            try:
                updated = self.store.commit_item_change(
                    item_id, patch, expected_version=current.version, movement=movement
                )
                return updated, movement
            except ConcurrentUpdateError as e:
                logger.warning(
                    "%s: lot %s eşzamanlı güncellendi (deneme %d/%d): %s",
                    operation, item_id, attempt, self.max_update_attempts, e,
                )

        raise ConflictError(
            f"Lot {item_id} üzerinde {operation} işlemi {self.max_update_attempts} denemede tamamlanamadı"
        )

    @staticmethod
    def _new_movement(item: WarehouseItem, **kwargs) -> StockMovement:
        return StockMovement(
            id=str(uuid.uuid4()),
            warehouse_item_id=item.id,
            barcode=item.scan_code,
            order_id=item.order_id,
            **kwargs,
        )

    # --- Çıkış ---

    def record_exit(
        self,
        item: WarehouseItem,
        weight_exit: float,
        bobin_exit: int,
        exit_location: str,
        operator: Optional[str] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> WarehouseItem:
        """Lottan ağırlık ve/veya bobin düşer.

        Yalnızca bobin girilmişse düşülecek ağırlık bobin başına ortalama
        ağırlıktan hesaplanır. Sonuçlar sıfırın altına inmez; lot ancak hem
        ağırlık hem bobin sıfırsa "Stok Yok" olur.
        """

        def plan(current: WarehouseItem):
            result = self.validator.validate_exit(current, weight_exit, bobin_exit, exit_location)
            if not result.is_valid:
                raise ValidationError(result.errors)

            weight_before = current.current_weight or 0
            bobin_before = current.bobin_count or 0

            total_exit = weight_exit or 0
            if bobin_exit > 0 and weight_exit == 0:
                per_coil = weight_before / bobin_before if bobin_before > 0 else 0
                total_exit = bobin_exit * per_coil

            weight_after = max(0, weight_before - total_exit)
            bobin_after = max(0, bobin_before - bobin_exit)
            status = ItemStatus.STOK_YOK if weight_after == 0 and bobin_after == 0 else ItemStatus.STOKTA

            location_label = EXIT_LOCATION_LABELS.get(exit_location, exit_location)
            text = f"Çıkış: {location_label}"
            if total_exit > 0:
                text += f" - {total_exit:.1f}kg"
            if bobin_exit > 0:
                text += f" - {bobin_exit} bobin"
            if reason:
                text += f" ({EXIT_REASON_LABELS.get(reason, reason)})"
            if notes:
                text += f" - {notes}"

            movement = self._new_movement(
                current,
                type=MovementType.CIKAN,
                quantity=weight_after - weight_before,
                operator=operator or "",
                notes=text,
                weight_before=weight_before,
                weight_after=weight_after,
                bobin_count_before=bobin_before,
                bobin_count_after=bobin_after,
                destination=location_label,
                metadata=MovementMetadata(
                    kind=MovementKind.EXIT,
                    exit_location=exit_location,
                    exit_reason=reason,
                    bobin_count=bobin_exit,
                ),
            )
            patch = {"current_weight": weight_after, "bobin_count": bobin_after, "status": status}
            return patch, movement

        updated, movement = self._mutate(item.id, "çıkış", plan)
        logger.info(
            "Çıkış kaydedildi: %s %.1fkg -> %.1fkg (%s)",
            updated.id, movement.weight_before, movement.weight_after, exit_location,
        )
        self.activity_logger.stock_exit(updated.id, {"quantity": movement.quantity, "exit_location": exit_location})
        return updated

    # --- Dönüş ---

    def validate_return(
        self,
        item: WarehouseItem,
        return_weight: float,
        return_bobin_count: int,
        condition: str,
        stock_type: StockType,
        customer_name: Optional[str] = None,
    ) -> ValidationResult:
        return self.validator.validate_return(
            item, return_weight, return_bobin_count, condition, stock_type, customer_name
        )

    def record_return(
        self,
        item: WarehouseItem,
        return_weight: float,
        return_bobin_count: int,
        condition: str,
        stock_type: StockType,
        customer_name: Optional[str] = None,
        operator: Optional[str] = None,
        notes: Optional[str] = None,
        warnings: Optional[list[str]] = None,
    ) -> WarehouseItem:
        """Dönen ürünü lota geri ekler.

        Durum her zaman "Stokta" olur ve lot ana depoya taşınır; hasar bilgisi
        durumda değil notlarda tutulur. Müşteri stoku ise müşteri adı yazılır,
        genel stokta silinir.

        Engellemeyen oran uyarıları loglanır; `warnings` listesi verilirse
        kaydedilen denemenin uyarıları bu listeye de eklenir.
        """
        stock_type = StockType(stock_type)
        advisories: list[str] = []

        def plan(current: WarehouseItem):
            result = self.validate_return(
                current, return_weight, return_bobin_count, condition, stock_type, customer_name
            )
            if not result.is_valid:
                raise ValidationError(result.errors)
            advisories[:] = result.warnings

            weight_before = current.current_weight or 0
            bobin_before = current.bobin_count or 0
            weight_after = weight_before + return_weight
            bobin_after = bobin_before + return_bobin_count

            label = RETURN_CONDITION_LABELS.get(condition, condition)
            text = f"Ürün dönüş - {DEFAULT_LOCATION} - {_num(return_weight)}kg, {return_bobin_count} bobin ({label})"
            if notes:
                text += f" - {notes}"

            if stock_type == StockType.CUSTOMER:
                item_notes = f"{customer_name} - Dönen ürün ({label})"
            else:
                item_notes = f"Genel stok - Dönen ürün ({label})"

            movement = self._new_movement(
                current,
                type=MovementType.IADE,
                quantity=return_weight,
                operator=operator or "",
                notes=text,
                weight_before=weight_before,
                weight_after=weight_after,
                bobin_count_before=bobin_before,
                bobin_count_after=bobin_after,
                destination=DEFAULT_LOCATION,
                metadata=MovementMetadata(
                    kind=MovementKind.RETURN,
                    return_condition=condition,
                    stock_type=stock_type,
                    customer_name=customer_name if stock_type == StockType.CUSTOMER else None,
                    bobin_count=return_bobin_count,
                ),
            )
            patch = {
                "current_weight": weight_after,
                "bobin_count": bobin_after,
                "status": ItemStatus.STOKTA,
                "stock_type": stock_type,
                "customer_name": customer_name if stock_type == StockType.CUSTOMER else None,
                "location": DEFAULT_LOCATION,
                "notes": item_notes,
            }
            return patch, movement

        updated, movement = self._mutate(item.id, "dönüş", plan)
        for warning in advisories:
            logger.warning("Dönüş uyarısı (%s): %s", updated.id, warning)
        if warnings is not None:
            warnings.extend(advisories)
        logger.info(
            "Dönüş kaydedildi: %s +%.1fkg, +%d bobin (%s)",
            updated.id, return_weight, return_bobin_count, condition,
        )
        self.activity_logger.stock_return(updated.id, {"quantity": movement.quantity, "condition": condition})
        return updated

    # --- Manuel düzeltme ---

    def record_adjustment(
        self,
        item: WarehouseItem,
        new_weight: float,
        new_bobin_count: int,
        location: Optional[str],
        status: ItemStatus,
        notes: Optional[str],
    ) -> WarehouseItem:
        """Lot değerlerini doğrudan yazar; ağırlık veya bobin değiştiyse hareket ekler."""
        status = ItemStatus(status)

        def plan(current: WarehouseItem):
            result = self.validator.validate_adjustment(current, new_weight, new_bobin_count)
            if not result.is_valid:
                raise ValidationError(result.errors)

            old_weight = current.current_weight or 0
            old_bobin = current.bobin_count or 0
            weight_diff = new_weight - old_weight
            bobin_diff = new_bobin_count - old_bobin

            movement = None
            if weight_diff != 0 or bobin_diff != 0:
                text = "Ürün bilgileri güncellendi"
                if weight_diff != 0:
                    text += f" - Ağırlık: {_num(old_weight)}kg → {_num(new_weight)}kg"
                if bobin_diff != 0:
                    text += f" - Bobin: {old_bobin} → {new_bobin_count}"
                movement = self._new_movement(
                    current,
                    type=MovementType.GELEN if weight_diff > 0 else MovementType.CIKAN,
                    quantity=weight_diff,
                    operator=SYSTEM_OPERATOR,
                    notes=text,
                    weight_before=old_weight,
                    weight_after=new_weight,
                    bobin_count_before=old_bobin,
                    bobin_count_after=new_bobin_count,
                    metadata=MovementMetadata(kind=MovementKind.ADJUSTMENT, bobin_count=bobin_diff),
                )

            patch = {
                "current_weight": new_weight,
                "bobin_count": new_bobin_count,
                "location": location,
                "status": status,
                "notes": notes,
            }
            return patch, movement

        updated, movement = self._mutate(item.id, "düzeltme", plan)
        if movement is None:
            logger.info("Lot %s güncellendi (miktar değişmedi)", updated.id)
        else:
            logger.info("Lot %s güncellendi: %+.1fkg", updated.id, movement.quantity)
        self.activity_logger.stock_adjusted(
            updated.id, {"quantity": movement.quantity if movement else 0, "status": status.value}
        )
        return updated

    # --- Giriş ---

    def record_initial_receipt(self, item: WarehouseItem) -> StockMovement:
        """Yeni lotun "Gelen" hareketini üretir.

        Hareket ayrı yazılmaz; lotu ekleyen yazmaya verilir, böylece lot ve ilk
        giriş hareketi ya birlikte kaydedilir ya hiç kaydedilmez.
        """
        return self._new_movement(
            item,
            type=MovementType.GELEN,
            quantity=item.original_weight,
            operator=SYSTEM_OPERATOR,
            notes=INITIAL_ENTRY_NOTE,
            weight_before=0,
            weight_after=item.original_weight,
            bobin_count_before=0,
            bobin_count_after=item.bobin_count,
            destination=item.location,
            metadata=MovementMetadata(kind=MovementKind.INITIAL, bobin_count=item.bobin_count),
        )

    def add_item(self, item: WarehouseItem) -> WarehouseItem:
        """Yeni lotu depoya ekler ve ilk giriş hareketini yazar."""
        if item.original_weight < 0 or item.current_weight < 0 or item.bobin_count < 0:
            raise ValidationError("Ağırlık ve bobin sayısı negatif olamaz")
        item = replace(
            item,
            location=item.location or DEFAULT_LOCATION,
            original_bobin_count=(
                item.bobin_count if item.original_bobin_count is None else item.original_bobin_count
            ),
            barcode=item.barcode or item.id,
        )

        saved = self.store.insert_warehouse_item(item, self.record_initial_receipt(item))
        logger.info("İlk stok girişi: %s %.1fkg", saved.id, saved.original_weight)
        self.activity_logger.warehouse_item_created(
            saved.id, {"material": saved.material, "weight": saved.original_weight}
        )
        return saved

    # --- Okuma ---

    def movement_history(self, item_id: str) -> list[StockMovement]:
        return self.store.list_movements(item_id)

    def get_warehouse_summary(self, filters: Optional[WarehouseFilters] = None) -> WarehouseSummary:
        items = self.store.list_warehouse_items(filters)
        by_status = {status.value: 0 for status in ItemStatus}
        by_status.update(Counter(i.status.value for i in items))
        by_material = Counter(i.material for i in items)
        return WarehouseSummary(
            total_items=len(items),
            total_weight=sum(i.current_weight or 0 for i in items),
            items_by_status=by_status,
            items_by_material=dict(by_material),
            low_stock_items=[i for i in items if (i.current_weight or 0) < LOW_STOCK_THRESHOLD_KG],
        )

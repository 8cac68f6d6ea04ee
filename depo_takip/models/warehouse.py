"""Depo stoğu ve stok hareketi veri modelleri."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from depo_takip.utils import iso_now, parse_iso


class ItemStatus(str, Enum):
    STOKTA = "Stokta"
    REZERVE = "Rezerve"
    STOK_YOK = "Stok Yok"
    HASARLI = "Hasarlı"


class StockType(str, Enum):
    GENERAL = "general"
    CUSTOMER = "customer"


class MovementType(str, Enum):
    GELEN = "Gelen"
    CIKAN = "Çıkan"
    IADE = "İade"


class MovementKind(str, Enum):
    INITIAL = "initial"
    EXIT = "exit"
    RETURN = "return"
    ADJUSTMENT = "adjustment"


@dataclass
class WarehouseItem:
    """Depodaki fiziksel bir lot (parti)."""

    id: str
    barcode: str
    material: str
    cm: float
    mikron: float
    current_weight: float
    original_weight: float
    bobin_count: int
    # Eski kayıtlarda yok; gerektiğinde derive_original_bobin_count ile hesaplanır
    original_bobin_count: Optional[int] = None
    status: ItemStatus = ItemStatus.STOKTA
    stock_type: StockType = StockType.GENERAL
    customer_name: Optional[str] = None
    location: Optional[str] = None
    supplier: str = ""
    order_id: Optional[str] = None
    notes: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    received_date: str = field(default_factory=iso_now)
    last_movement_date: str = field(default_factory=iso_now)
    version: int = 1

    @property
    def scan_code(self) -> str:
        """Tarayıcıya görünen kod; barkod yoksa id kullanılır."""
        return self.barcode or self.id

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["status"] = self.status.value
        record["stock_type"] = self.stock_type.value
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "WarehouseItem":
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in record.items() if k in known}
        data["status"] = ItemStatus(data.get("status", ItemStatus.STOKTA.value))
        data["stock_type"] = StockType(data.get("stock_type") or StockType.GENERAL.value)
        data["tags"] = list(data.get("tags") or [])
        data["bobin_count"] = int(data.get("bobin_count") or 0)
        if data.get("original_bobin_count") is not None:
            data["original_bobin_count"] = int(data["original_bobin_count"])
        data["version"] = int(data.get("version") or 1)
        return cls(**data)


@dataclass
class MovementMetadata:
    """Hareketin yapısal bağlamı (çıkış yeri, sebep, dönüş durumu)."""

    kind: MovementKind
    exit_location: Optional[str] = None
    exit_reason: Optional[str] = None
    return_condition: Optional[str] = None
    stock_type: Optional[StockType] = None
    customer_name: Optional[str] = None
    bobin_count: Optional[int] = None

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["kind"] = self.kind.value
        record["stock_type"] = self.stock_type.value if self.stock_type else None
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "MovementMetadata":
        data = dict(record)
        data["kind"] = MovementKind(data["kind"])
        if data.get("stock_type"):
            data["stock_type"] = StockType(data["stock_type"])
        if data.get("bobin_count") is not None:
            data["bobin_count"] = int(data["bobin_count"])
        return cls(**data)


@dataclass
class StockMovement:
    """Değiştirilemez stok defteri kaydı. quantity işaretli kg farkıdır."""

    id: str
    warehouse_item_id: str
    type: MovementType
    quantity: float
    operator: str = ""
    notes: Optional[str] = None
    barcode: str = ""
    weight_before: Optional[float] = None
    weight_after: Optional[float] = None
    bobin_count_before: Optional[int] = None
    bobin_count_after: Optional[int] = None
    destination: Optional[str] = None
    order_id: Optional[str] = None
    metadata: Optional[MovementMetadata] = None
    movement_date: str = field(default_factory=iso_now)

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["type"] = self.type.value
        record["metadata"] = self.metadata.to_record() if self.metadata else None
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "StockMovement":
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in record.items() if k in known}
        data["type"] = MovementType(data["type"])
        if data.get("metadata"):
            data["metadata"] = MovementMetadata.from_record(data["metadata"])
        return cls(**data)


@dataclass
class WarehouseFilters:
    search: Optional[str] = None
    materials: list[str] = field(default_factory=list)
    suppliers: list[str] = field(default_factory=list)
    statuses: list[ItemStatus] = field(default_factory=list)
    weight_range: Optional[tuple[float, float]] = None
    date_range: Optional[tuple[str, str]] = None

    def matches(self, item: WarehouseItem) -> bool:
        if self.search:
            term = self.search.lower()
            haystack = (item.material, item.barcode, item.supplier, item.notes or "")
            if not any(term in (value or "").lower() for value in haystack):
                return False
        if self.materials and item.material not in self.materials:
            return False
        if self.suppliers and item.supplier not in self.suppliers:
            return False
        if self.statuses and item.status not in self.statuses:
            return False
        if self.weight_range:
            low, high = self.weight_range
            if not low <= item.current_weight <= high:
                return False
        if self.date_range:
            start, end = (parse_iso(v) for v in self.date_range)
            if not start <= parse_iso(item.received_date) <= end:
                return False
        return True


@dataclass
class WarehouseSummary:
    total_items: int
    total_weight: float
    items_by_status: dict[str, int]
    items_by_material: dict[str, int]
    low_stock_items: list[WarehouseItem]

"""Sipariş veri modelleri."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Optional

from depo_takip.models.warehouse import WarehouseItem
from depo_takip.utils import iso_now


class OrderStatus(str, Enum):
    REQUESTED = "Requested"
    ORDERED = "Ordered"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURN = "Return"


@dataclass
class Order:
    id: str
    supplier: str
    status: OrderStatus = OrderStatus.REQUESTED
    requester: str = ""
    customer: Optional[str] = None
    material: Optional[str] = None
    cm: Optional[float] = None
    mikron: Optional[float] = None
    bobin_sayisi: Optional[int] = None
    quantity: Optional[float] = None
    unit: str = "kg"
    price_per_unit: Optional[float] = None
    total_price: Optional[float] = None
    currency: str = "TRY"
    created_at: str = field(default_factory=iso_now)
    delivered_date: Optional[str] = None
    notes: Optional[str] = None
    warehouse_item_id: Optional[str] = None
    is_in_warehouse: bool = False
    # Depoya alınırken girilen gerçek değerler
    actual_quantity: Optional[float] = None
    actual_bobin_sayisi: Optional[int] = None
    actual_total_price: Optional[float] = None

    def to_record(self) -> dict[str, Any]:
        record = asdict(self)
        record["status"] = self.status.value
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Order":
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in record.items() if k in known}
        data["status"] = OrderStatus(data.get("status", OrderStatus.REQUESTED.value))
        data["is_in_warehouse"] = bool(data.get("is_in_warehouse", False))
        return cls(**data)


@dataclass
class OrderWarehouseStatus:
    is_in_warehouse: bool
    can_receive: bool
    warehouse_item: Optional[WarehouseItem] = None


@dataclass
class OrderWarehouseSummary:
    total_orders_in_warehouse: int
    pending_receival: int
    total_warehouse_value: float
    low_stock_orders: list[tuple[Order, WarehouseItem]]

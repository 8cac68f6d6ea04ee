from depo_takip.models.order import (
    Order,
    OrderStatus,
    OrderWarehouseStatus,
    OrderWarehouseSummary,
)
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

__all__ = [
    "ItemStatus",
    "MovementKind",
    "MovementMetadata",
    "MovementType",
    "Order",
    "OrderStatus",
    "OrderWarehouseStatus",
    "OrderWarehouseSummary",
    "StockMovement",
    "StockType",
    "WarehouseFilters",
    "WarehouseItem",
    "WarehouseSummary",
]

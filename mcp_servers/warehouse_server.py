"""
Depo Takip MCP Server

Barkod çözümleme, stok çıkış/dönüş/düzeltme, stok önerisi ve sipariş-depo
işlemlerini MCP araçları olarak sunar.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from mcp.server import Server
from mcp.types import TextContent, Tool

from depo_takip.config import Settings
from depo_takip.errors import DepoError, NotFoundError
from depo_takip.models.warehouse import ItemStatus, StockType, WarehouseFilters, WarehouseItem
from depo_takip.services import (
    ActivityLogger,
    BarcodeResolver,
    OrderWarehouseReconciler,
    StockLedger,
    StockOptimizer,
)
from depo_takip.storage import DynamoDBStore, WarehouseStore, create_store

logger = logging.getLogger(__name__)

app = Server("depo-takip")


@dataclass
class Services:
    store: WarehouseStore
    ledger: StockLedger
    resolver: BarcodeResolver
    optimizer: StockOptimizer
    reconciler: OrderWarehouseReconciler


_services: Optional[Services] = None


def configure(store: WarehouseStore, settings: Optional[Settings] = None) -> Services:
    """Servisleri verilen depo ile kurar (testler bellek içi depo verir)."""
    global _services
    settings = settings or Settings()
    activity_table = None
    if isinstance(store, DynamoDBStore):
        activity_table = store.dynamodb.Table(settings.activity_logs_table)
    activity = ActivityLogger(activity_table)
    ledger = StockLedger(store, activity_logger=activity, max_update_attempts=settings.max_update_attempts)
    _services = Services(
        store=store,
        ledger=ledger,
        resolver=BarcodeResolver(),
        optimizer=StockOptimizer(store),
        reconciler=OrderWarehouseReconciler(store, ledger, activity_logger=activity),
    )
    return _services


def services() -> Services:
    if _services is None:
        settings = Settings.from_env()
        return configure(create_store(settings), settings)
    return _services


def _to_json(obj):
    """Decimal, Enum ve dataclass kayıtlarını JSON uyumlu yapar."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "to_record"):
        return _to_json(obj.to_record())
    if isinstance(obj, dict):
        return {k: _to_json(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_json(i) for i in obj]
    return obj


def _result(data):
    return [TextContent(type="text", text=json.dumps(_to_json(data), indent=2, ensure_ascii=False))]


def _schema(properties: Dict, required: Optional[List[str]] = None) -> Dict:
    return {"type": "object", "properties": properties, "required": required or []}


_STR = {"type": "string"}
_NUM = {"type": "number"}
_INT = {"type": "integer"}


@app.list_tools()
async def list_tools() -> List[Tool]:
    return [
        Tool(name="resolve_barcode", description="Taranan/yazılan kodu depo lotuna çözer (OCR hatalarına toleranslı)",
             inputSchema=_schema({"query": _STR}, ["query"])),
        Tool(name="get_item", description="Lot bilgisini getirir",
             inputSchema=_schema({"item_id": _STR}, ["item_id"])),
        Tool(name="list_items", description="Lotları filtreleyerek listeler",
             inputSchema=_schema({"search": _STR, "material": _STR, "status": _STR})),
        Tool(name="record_exit", description="Lottan ürün çıkışı kaydeder",
             inputSchema=_schema({"item_id": _STR, "weight_exit": _NUM, "bobin_exit": _INT,
                                  "exit_location": _STR, "operator": _STR, "reason": _STR, "notes": _STR},
                                 ["item_id", "exit_location"])),
        Tool(name="record_return", description="Dönen ürünü lota geri ekler; sonuçta lot ve engellemeyen oran uyarıları döner",
             inputSchema=_schema({"item_id": _STR, "return_weight": _NUM, "return_bobin_count": _INT,
                                  "condition": _STR, "stock_type": _STR, "customer_name": _STR,
                                  "operator": _STR, "notes": _STR},
                                 ["item_id", "condition", "stock_type"])),
        Tool(name="validate_return", description="Dönüş girdisini kaydetmeden doğrular (hata ve uyarılar)",
             inputSchema=_schema({"item_id": _STR, "return_weight": _NUM, "return_bobin_count": _INT,
                                  "condition": _STR, "stock_type": _STR, "customer_name": _STR},
                                 ["item_id", "condition", "stock_type"])),
        Tool(name="record_adjustment", description="Lot ağırlık/bobin/konum/durum bilgisini günceller",
             inputSchema=_schema({"item_id": _STR, "new_weight": _NUM, "new_bobin_count": _INT,
                                  "location": _STR, "status": _STR, "notes": _STR},
                                 ["item_id", "new_weight", "new_bobin_count", "status"])),
        Tool(name="movement_history", description="Lotun stok hareketlerini en yeniden eskiye listeler",
             inputSchema=_schema({"item_id": _STR}, ["item_id"])),
        Tool(name="suggest_order_quantity", description="Mevcut stoğa göre sipariş miktarı önerir",
             inputSchema=_schema({"material": _STR, "cm": _NUM, "mikron": _NUM, "required_quantity": _NUM},
                                 ["material", "cm", "mikron", "required_quantity"])),
        Tool(name="order_warehouse_status", description="Siparişin depo durumunu getirir",
             inputSchema=_schema({"order_id": _STR}, ["order_id"])),
        Tool(name="receive_order", description="Teslim edilmiş siparişi depoya alır",
             inputSchema=_schema({"order_id": _STR, "actual_weight": _NUM, "actual_bobin_count": _INT,
                                  "location": _STR, "notes": _STR},
                                 ["order_id", "actual_weight", "actual_bobin_count"])),
        Tool(name="list_receivable_orders", description="Depoya alınmayı bekleyen siparişleri listeler",
             inputSchema=_schema({})),
        Tool(name="order_warehouse_summary", description="Sipariş-depo özeti",
             inputSchema=_schema({})),
        Tool(name="warehouse_summary", description="Depo özeti (durum/malzeme dağılımı, düşük stok)",
             inputSchema=_schema({})),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: dict) -> List[TextContent]:
    handlers = {
        "resolve_barcode": lambda a: resolve_barcode(a["query"]),
        "get_item": lambda a: get_item(a["item_id"]),
        "list_items": lambda a: list_items(a.get("search"), a.get("material"), a.get("status")),
        "record_exit": lambda a: record_exit(**a),
        "record_return": lambda a: record_return(**a),
        "validate_return": lambda a: validate_return(**a),
        "record_adjustment": lambda a: record_adjustment(**a),
        "movement_history": lambda a: movement_history(a["item_id"]),
        "suggest_order_quantity": lambda a: suggest_order_quantity(
            a["material"], a["cm"], a["mikron"], a["required_quantity"]),
        "order_warehouse_status": lambda a: order_warehouse_status(a["order_id"]),
        "receive_order": lambda a: receive_order(**a),
        "list_receivable_orders": lambda a: list_receivable_orders(),
        "order_warehouse_summary": lambda a: order_warehouse_summary(),
        "warehouse_summary": lambda a: warehouse_summary(),
    }
    handler = handlers.get(name)
    if not handler:
        raise ValueError(f"Unknown tool: {name}")
    return _result(handler(arguments or {}))


# --- Implementation ---

def _guarded(fn):
    """Beklenen hataları {"success": False, "error": ...} olarak döndürür."""
    def wrapper(*args, **kwargs):
        try:
            return {"success": True, "data": fn(*args, **kwargs)}
        except (DepoError, ValueError) as e:
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.exception("Araç hatası [%s]", fn.__name__)
            return {"success": False, "error": str(e)}
    wrapper.__name__ = fn.__name__
    wrapper.__doc__ = fn.__doc__
    return wrapper


def _require_item(item_id: str) -> WarehouseItem:
    item = services().store.get_warehouse_item(item_id)
    if item is None:
        raise NotFoundError(f"Lot bulunamadı: {item_id}")
    return item


@_guarded
def resolve_barcode(query: str) -> Optional[Dict]:
    svc = services()
    item = svc.resolver.resolve(query, svc.store.list_warehouse_items())
    return item.to_record() if item else None


@_guarded
def get_item(item_id: str) -> Optional[Dict]:
    item = services().store.get_warehouse_item(item_id)
    return item.to_record() if item else None


@_guarded
def list_items(search: Optional[str] = None, material: Optional[str] = None,
               status: Optional[str] = None) -> List[Dict]:
    filters = WarehouseFilters(
        search=search,
        materials=[material] if material else [],
        statuses=[ItemStatus(status)] if status else [],
    )
    return [i.to_record() for i in services().store.list_warehouse_items(filters)]


@_guarded
def record_exit(item_id: str, exit_location: str, weight_exit: float = 0, bobin_exit: int = 0,
                operator: Optional[str] = None, reason: Optional[str] = None,
                notes: Optional[str] = None) -> Dict:
    item = _require_item(item_id)
    updated = services().ledger.record_exit(
        item, weight_exit, bobin_exit, exit_location, operator=operator, reason=reason, notes=notes
    )
    return updated.to_record()


@_guarded
def record_return(item_id: str, condition: str, stock_type: str, return_weight: float = 0,
                  return_bobin_count: int = 0, customer_name: Optional[str] = None,
                  operator: Optional[str] = None, notes: Optional[str] = None) -> Dict:
    item = _require_item(item_id)
    warnings: list = []
    updated = services().ledger.record_return(
        item, return_weight, return_bobin_count, condition, StockType(stock_type),
        customer_name=customer_name, operator=operator, notes=notes, warnings=warnings,
    )
    return {"item": updated.to_record(), "warnings": warnings}


@_guarded
def validate_return(item_id: str, condition: str, stock_type: str, return_weight: float = 0,
                    return_bobin_count: int = 0, customer_name: Optional[str] = None) -> Dict:
    item = _require_item(item_id)
    result = services().ledger.validate_return(
        item, return_weight, return_bobin_count, condition, StockType(stock_type), customer_name
    )
    return {"is_valid": result.is_valid, "errors": result.errors, "warnings": result.warnings}


@_guarded
def record_adjustment(item_id: str, new_weight: float, new_bobin_count: int, status: str,
                      location: Optional[str] = None, notes: Optional[str] = None) -> Dict:
    item = _require_item(item_id)
    updated = services().ledger.record_adjustment(
        item, new_weight, new_bobin_count, location, ItemStatus(status), notes
    )
    return updated.to_record()


@_guarded
def movement_history(item_id: str) -> List[Dict]:
    return [m.to_record() for m in services().ledger.movement_history(item_id)]


@_guarded
def suggest_order_quantity(material: str, cm: float, mikron: float, required_quantity: float) -> Dict:
    suggestion = services().optimizer.suggest_optimized_quantity(material, cm, mikron, required_quantity)
    return {
        "available_items": [i.to_record() for i in suggestion.available_items],
        "total_available": suggestion.total_available,
        "optimized_quantity": suggestion.optimized_quantity,
        "coverage_percent": suggestion.coverage_percent,
        "should_suggest": suggestion.should_suggest,
    }


@_guarded
def order_warehouse_status(order_id: str) -> Dict:
    status = services().reconciler.get_status(order_id)
    return {
        "is_in_warehouse": status.is_in_warehouse,
        "can_receive": status.can_receive,
        "warehouse_item": status.warehouse_item.to_record() if status.warehouse_item else None,
    }


@_guarded
def receive_order(order_id: str, actual_weight: float, actual_bobin_count: int,
                  location: Optional[str] = None, notes: Optional[str] = None) -> Dict:
    item = services().reconciler.receive(order_id, actual_weight, actual_bobin_count, location, notes)
    return item.to_record()


@_guarded
def list_receivable_orders() -> List[Dict]:
    return [o.to_record() for o in services().reconciler.list_receivable()]


@_guarded
def order_warehouse_summary() -> Dict:
    summary = services().reconciler.summary()
    return {
        "total_orders_in_warehouse": summary.total_orders_in_warehouse,
        "pending_receival": summary.pending_receival,
        "total_warehouse_value": summary.total_warehouse_value,
        "low_stock_orders": [
            {"order": order.to_record(), "warehouse_item": item.to_record()}
            for order, item in summary.low_stock_orders
        ],
    }


@_guarded
def warehouse_summary() -> Dict:
    summary = services().ledger.get_warehouse_summary()
    return {
        "total_items": summary.total_items,
        "total_weight": summary.total_weight,
        "items_by_status": summary.items_by_status,
        "items_by_material": summary.items_by_material,
        "low_stock_items": [i.to_record() for i in summary.low_stock_items],
    }


async def run():
    from mcp.server.stdio import stdio_server

    async with stdio_server() as (read, write):
        await app.run(read, write, app.create_initialization_options())


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    configure(create_store(settings), settings)
    asyncio.run(run())


if __name__ == "__main__":
    main()

from depo_takip.services.activity_logger import ActivityLogger
from depo_takip.services.barcode_resolver import BarcodeResolver
from depo_takip.services.order_reconciler import OrderWarehouseReconciler
from depo_takip.services.stock_ledger import StockLedger
from depo_takip.services.stock_optimizer import Debouncer, StockOptimizer, StockSuggestion
from depo_takip.services.stock_validator import StockValidator, ValidationResult

__all__ = [
    "ActivityLogger",
    "BarcodeResolver",
    "Debouncer",
    "OrderWarehouseReconciler",
    "StockLedger",
    "StockOptimizer",
    "StockSuggestion",
    "StockValidator",
    "ValidationResult",
]

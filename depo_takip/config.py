"""Merkezi konfigürasyon. .env dosyası bu modül import edildiğinde yüklenir."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from botocore.config import Config
from dotenv import load_dotenv

# Proje kökündeki .env dosyasını bul ve yükle
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

# --- Depo iş kuralları ---
DEFAULT_LOCATION = "Depo"
LOW_STOCK_THRESHOLD_KG = 50
AVERAGE_COIL_WEIGHT_KG = 102.4  # 512kg / 5 bobin
RETURN_RATIO_WARNING_FACTOR = 10
FUZZY_MAX_DISTANCE = 2
FUZZY_MAX_LENGTH_DIFF = 2
SYSTEM_OPERATOR = "Sistem"
INITIAL_ENTRY_NOTE = "İlk stok girişi"
SUGGESTION_DEBOUNCE_SECONDS = 0.5

BOTO_CONFIG = Config(retries={"max_attempts": 3})


@dataclass(frozen=True)
class Settings:
    aws_region: str = "us-west-2"
    table_prefix: str = ""
    max_update_attempts: int = 3
    log_level: str = "INFO"
    storage_backend: str = "dynamodb"

    @property
    def warehouse_items_table(self) -> str:
        return f"{self.table_prefix}WarehouseItems"

    @property
    def stock_movements_table(self) -> str:
        return f"{self.table_prefix}StockMovements"

    @property
    def orders_table(self) -> str:
        return f"{self.table_prefix}Orders"

    @property
    def activity_logs_table(self) -> str:
        return f"{self.table_prefix}ActivityLogs"

    @classmethod
    def from_env(cls) -> "Settings":
        attempts = int(os.environ.get("DEPO_MAX_UPDATE_ATTEMPTS", "3"))
        if attempts < 1:
            raise ValueError("DEPO_MAX_UPDATE_ATTEMPTS en az 1 olmalı")
        backend = os.environ.get("DEPO_STORAGE", "dynamodb").strip().lower()
        if backend not in ("dynamodb", "memory"):
            raise ValueError(f"Bilinmeyen depolama türü: {backend}")
        return cls(
            aws_region=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
            table_prefix=os.environ.get("DEPO_TABLE_PREFIX", ""),
            max_update_attempts=attempts,
            log_level=os.environ.get("DEPO_LOG_LEVEL", "INFO").upper(),
            storage_backend=backend,
        )

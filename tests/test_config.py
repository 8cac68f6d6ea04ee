"""Konfigürasyon unit testleri."""

import pytest

from depo_takip.config import Settings
from depo_takip.errors import ValidationError
from depo_takip.storage import InMemoryStore, create_store


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("DEPO_TABLE_PREFIX", "DEPO_MAX_UPDATE_ATTEMPTS", "DEPO_LOG_LEVEL", "DEPO_STORAGE"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("AWS_DEFAULT_REGION", "us-west-2")
        settings = Settings.from_env()
        assert settings.max_update_attempts == 3
        assert settings.storage_backend == "dynamodb"
        assert settings.warehouse_items_table == "WarehouseItems"

    def test_prefix_applied_to_tables(self, monkeypatch):
        monkeypatch.setenv("DEPO_TABLE_PREFIX", "dev_")
        settings = Settings.from_env()
        assert settings.stock_movements_table == "dev_StockMovements"
        assert settings.orders_table == "dev_Orders"
        assert settings.activity_logs_table == "dev_ActivityLogs"

    def test_invalid_attempts(self, monkeypatch):
        monkeypatch.setenv("DEPO_MAX_UPDATE_ATTEMPTS", "0")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("DEPO_STORAGE", "sqlite")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_memory_backend(self):
        assert isinstance(create_store(Settings(storage_backend="memory")), InMemoryStore)


class TestErrors:
    def test_validation_error_joins_messages(self):
        error = ValidationError(["Ağırlık negatif olamaz", "Bobin sayısı negatif olamaz"])
        assert str(error) == "Ağırlık negatif olamaz; Bobin sayısı negatif olamaz"
        assert len(error.errors) == 2

    def test_single_message(self):
        assert ValidationError("tek hata").errors == ["tek hata"]

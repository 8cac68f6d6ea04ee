"""Kullanıcı/sistem işlemlerini ActivityLogs tablosuna yazar.

Kayıt en iyi çaba ile yapılır: hiçbir hata çağıran işleme yansımaz.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Optional

from depo_takip.utils import iso_now

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Aktivite kayıtlarını loglar ve (varsa) DynamoDB tablosuna kaydeder."""

    def __init__(self, table: Optional[Any] = None, actor: str = "Sistem"):
        self.table = table
        self.actor = actor

    def log_activity(
        self,
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        logger.info("Aktivite: %s %s %s", action, resource_type, resource_id or "-")
        if self.table is None:
            return

        try:
            self.table.put_item(
                Item={
                    "log_id": str(uuid.uuid4()),
                    "action": action,
                    "resource_type": resource_type,
                    "resource_id": resource_id or "",
                    "actor": self.actor,
                    "details": json.dumps(details or {}, default=str, ensure_ascii=False),
                    "timestamp": iso_now(),
                }
            )
        except Exception as e:
            logger.warning("Aktivite loglama hatası: %s", e)

    # --- Sık kullanılan işlemler ---

    def warehouse_item_created(self, item_id: str, details: Optional[dict] = None) -> None:
        self.log_activity("create", "warehouse_item", item_id, details)

    def stock_exit(self, item_id: str, details: Optional[dict] = None) -> None:
        self.log_activity("stock_exit", "warehouse_item", item_id, details)

    def stock_return(self, item_id: str, details: Optional[dict] = None) -> None:
        self.log_activity("stock_return", "warehouse_item", item_id, details)

    def stock_adjusted(self, item_id: str, details: Optional[dict] = None) -> None:
        self.log_activity("update", "warehouse_item", item_id, details)

    def order_received(self, order_id: str, details: Optional[dict] = None) -> None:
        self.log_activity("receive", "order", order_id, details)

"""Ortak yardımcılar: zaman damgası, yuvarlama, DynamoDB sayı dönüşümleri."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


def iso_now() -> str:
    # Tüm zaman damgaları UTC ISO 8601.
    return datetime.now(timezone.utc).isoformat()


def parse_iso(value: str) -> datetime:
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def round_half_up(value: float) -> int:
    """0.5 değerlerini yukarı yuvarlar (bankacı yuvarlaması yerine)."""
    return int(math.floor(value + 0.5))


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def to_dynamo(obj: Any) -> Any:
    """float değerleri DynamoDB'nin kabul ettiği Decimal'e çevirir, None alanları atar."""
    if isinstance(obj, bool):
        return obj
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: to_dynamo(v) for k, v in obj.items() if v is not None}
    if isinstance(obj, list):
        return [to_dynamo(i) for i in obj]
    return obj


def from_dynamo(obj: Any) -> Any:
    """Decimal ve diğer tipleri Python'un yerel tiplerine çevirir."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, (list, set)):
        return [from_dynamo(i) for i in obj]
    return obj

"""Depo lotu kimlik üretimi.

Yeni biçim: DK + YYMMDD + müşteri baş harfi (genel stok için G) + 2 haneli sıra.
Eski biçim: WH + zaman damgasının son 6 hanesi + 6 rastgele karakter.
Bobin kodu: <ana kod>-C<NN>.
"""

from __future__ import annotations

import random
import re
import string
import time
from datetime import datetime
from typing import Iterable, Optional

CURRENT_PREFIX = "DK"
LEGACY_PREFIX = "WH"
GENERAL_STOCK_INITIAL = "G"

_COIL_PATTERN = re.compile(r"^([A-Z0-9]+)-C(\d+)$", re.IGNORECASE)
_BASE36 = string.digits + string.ascii_uppercase


def _customer_initial(customer_name: Optional[str]) -> str:
    name = (customer_name or "").strip()
    return name[0].upper() if name else GENERAL_STOCK_INITIAL


def generate_warehouse_id(
    customer_name: Optional[str] = None,
    now: Optional[datetime] = None,
    existing: Optional[Iterable[str]] = None,
) -> str:
    """DK<YYMMDD><baş harf><NN> kodu üretir.

    existing verilirse aynı gün/baş harf için bir sonraki boş sıra numarası
    kullanılır; verilmezse 01-99 arası rastgele sıra seçilir.
    """
    now = now or datetime.now()
    prefix = f"{CURRENT_PREFIX}{now:%y%m%d}{_customer_initial(customer_name)}"

    if existing is None:
        sequence = random.randint(1, 99)
    else:
        used = {
            int(code[len(prefix):])
            for code in existing
            if code.startswith(prefix) and code[len(prefix):].isdigit()
        }
        sequence = max(used, default=0) + 1
        if sequence > 99:
            free = sorted(set(range(1, 100)) - used)
            if not free:
                raise ValueError(f"{prefix} için günlük sıra numarası kalmadı")
            sequence = free[0]

    return f"{prefix}{sequence:02d}"


def generate_legacy_id() -> str:
    timestamp = str(int(time.time() * 1000))
    suffix = "".join(random.choice(_BASE36) for _ in range(6))
    return f"{LEGACY_PREFIX}{timestamp[-6:]}{suffix}"


def coil_id(parent_id: str, coil_number: int) -> str:
    if coil_number < 1:
        raise ValueError("Bobin numarası 1'den başlar")
    return f"{parent_id}-C{coil_number:02d}"


def split_coil_id(code: str) -> tuple[str, Optional[str]]:
    """Bobin kodunu (ana kod, bobin no) olarak ayırır; bobin kodu değilse (code, None)."""
    match = _COIL_PATTERN.match(code.strip())
    if not match:
        return code, None
    return match.group(1), match.group(2)

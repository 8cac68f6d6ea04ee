"""Barkod/QR çözümleyici - gürültülü taramayı depo lotuyla eşleştirir.

Stratejiler sırayla denenir, ilk eşleşme kazanır (puanlama yoktur):
1. Tam eşleşme
2. Normalize edilmiş eşleşme (OCR karışıklıkları)
3. Alt dize eşleşmesi (iki yönlü)
4. Levenshtein mesafesi <= 2 ve uzunluk farkı <= 2 (ilk uyan aday)
5. WH/DK öneki atılmış eşleşme
6. YYMMDD tarih bölümü eşleşmesi

Bobin kodları (DK250821B16-C01) her zaman ana lota çözülür.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, Optional, Sequence

from rapidfuzz.distance import Levenshtein

from depo_takip.config import FUZZY_MAX_DISTANCE, FUZZY_MAX_LENGTH_DIFF
from depo_takip.models.warehouse import WarehouseItem
from depo_takip.services.id_generator import split_coil_id
from depo_takip.services.normalizer import normalize

logger = logging.getLogger(__name__)

KNOWN_PREFIXES = ("WH", "DK")
_DATE_SEGMENT = re.compile(r"[0-9]{6}")


def _code(item: WarehouseItem) -> str:
    return item.scan_code.upper().strip()


class BarcodeResolver:
    """Sorgu dizesini aday lotlar içinde katmanlı stratejiyle çözer."""

    def __init__(
        self,
        max_distance: int = FUZZY_MAX_DISTANCE,
        max_length_diff: int = FUZZY_MAX_LENGTH_DIFF,
    ):
        self.max_distance = max_distance
        self.max_length_diff = max_length_diff
        self._strategies: list[tuple[str, Callable[[str, Sequence[WarehouseItem]], Optional[WarehouseItem]]]] = [
            ("exact", self._exact),
            ("normalized", self._normalized),
            ("substring", self._substring),
            ("fuzzy", self._fuzzy),
            ("prefix", self._prefix_stripped),
            ("date_segment", self._date_segment),
        ]

    def resolve(self, query: str, candidates: Iterable[WarehouseItem]) -> Optional[WarehouseItem]:
        """En iyi eşleşen lotu, yoksa None döndürür."""
        q = (query or "").strip()
        if not q:
            return None

        parent, coil_no = split_coil_id(q)
        if coil_no is not None:
            logger.debug("Bobin kodu algılandı: %s -> ana lot %s (C%s)", q, parent, coil_no)
            q = parent

        q = q.upper()
        items = list(candidates)
        for name, strategy in self._strategies:
            match = strategy(q, items)
            if match is not None:
                logger.info("Barkod çözüldü [%s]: %s -> %s", name, query, match.id)
                return match

        logger.info("Barkod bulunamadı: %s", query)
        return None

    # --- Stratejiler ---

    def _exact(self, q: str, items: Sequence[WarehouseItem]) -> Optional[WarehouseItem]:
        return next((i for i in items if _code(i) == q), None)

    def _normalized(self, q: str, items: Sequence[WarehouseItem]) -> Optional[WarehouseItem]:
        nq = normalize(q)
        if not nq:
            return None
        return next((i for i in items if normalize(i.scan_code) == nq), None)

    def _substring(self, q: str, items: Sequence[WarehouseItem]) -> Optional[WarehouseItem]:
        for item in items:
            code = _code(item)
            if code and (q in code or code in q):
                return item
        return None

    def _fuzzy(self, q: str, items: Sequence[WarehouseItem]) -> Optional[WarehouseItem]:
        for item in items:
            code = _code(item)
            if abs(len(code) - len(q)) > self.max_length_diff:
                continue
            if Levenshtein.distance(code, q, score_cutoff=self.max_distance) <= self.max_distance:
                return item
        return None

    def _prefix_stripped(self, q: str, items: Sequence[WarehouseItem]) -> Optional[WarehouseItem]:
        for prefix in KNOWN_PREFIXES:
            if q.startswith(prefix) and len(q) > len(prefix):
                rest = q[len(prefix):]
                for item in items:
                    code = _code(item)
                    if rest in code or code.endswith(rest):
                        return item
        return None

    def _date_segment(self, q: str, items: Sequence[WarehouseItem]) -> Optional[WarehouseItem]:
        if len(q) < 6:
            return None
        start = 2 if q.startswith("DK") else 0
        segment = q[start:start + 6]
        if not _DATE_SEGMENT.fullmatch(segment):
            return None
        return next((i for i in items if segment in _code(i)), None)


_default_resolver = BarcodeResolver()


def resolve(query: str, candidates: Iterable[WarehouseItem]) -> Optional[WarehouseItem]:
    return _default_resolver.resolve(query, candidates)

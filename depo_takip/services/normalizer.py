"""Taranan/yazılan kimlikleri karşılaştırılabilir biçime getirir."""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^A-Z0-9]")

# OCR'nin karıştırdığı harfler; sıra korunmalı
OCR_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("O", "0"),
    ("I", "1"),
    ("L", "1"),
    ("S", "5"),
    ("Z", "2"),
    ("B", "8"),
    ("G", "6"),
    ("Q", "0"),
    ("D", "0"),
)


def normalize(raw: str) -> str:
    """Boşlukları kırpar, büyük harfe çevirir, A-Z0-9 dışını atar, OCR harflerini rakama çevirir."""
    cleaned = _NON_ALNUM.sub("", (raw or "").strip().upper())
    for source, target in OCR_SUBSTITUTIONS:
        cleaned = cleaned.replace(source, target)
    return cleaned

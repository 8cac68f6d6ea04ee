"""Lot kimliği üretimi unit testleri."""

import re
from datetime import datetime

import pytest

from depo_takip.services.id_generator import (
    coil_id,
    generate_legacy_id,
    generate_warehouse_id,
    split_coil_id,
)

NOW = datetime(2025, 8, 21, 10, 30)


class TestGenerateWarehouseId:
    """DK + YYMMDD + baş harf + sıra biçimi."""

    def test_customer_initial(self):
        assert generate_warehouse_id("ahmet", now=NOW, existing=[]) == "DK250821A01"

    def test_general_stock_initial(self):
        assert generate_warehouse_id(None, now=NOW, existing=[]) == "DK250821G01"
        assert generate_warehouse_id("  ", now=NOW, existing=[]) == "DK250821G01"

    def test_next_sequence_after_existing(self):
        existing = ["DK250821A01", "DK250821A02", "DK250821B05", "DK250820A07"]
        assert generate_warehouse_id("Ali", now=NOW, existing=existing) == "DK250821A03"

    def test_wraps_to_first_free_slot(self):
        existing = [f"DK250821A{n:02d}" for n in range(1, 100) if n != 5]
        assert generate_warehouse_id("Ali", now=NOW, existing=existing) == "DK250821A05"

    def test_exhausted_day_raises(self):
        existing = [f"DK250821A{n:02d}" for n in range(1, 100)]
        with pytest.raises(ValueError):
            generate_warehouse_id("Ali", now=NOW, existing=existing)

    def test_random_sequence_shape(self):
        code = generate_warehouse_id(now=NOW)
        assert re.fullmatch(r"DK250821G\d{2}", code)
        assert 1 <= int(code[-2:]) <= 99


class TestLegacyAndCoilIds:
    def test_legacy_format(self):
        code = generate_legacy_id()
        assert re.fullmatch(r"WH\d{6}[0-9A-Z]{6}", code)

    def test_coil_id(self):
        assert coil_id("DK250821A01", 1) == "DK250821A01-C01"
        assert coil_id("DK250821A01", 12) == "DK250821A01-C12"

    def test_coil_id_rejects_zero(self):
        with pytest.raises(ValueError):
            coil_id("DK250821A01", 0)

    def test_split_coil_id(self):
        assert split_coil_id("DK250821B16-C01") == ("DK250821B16", "01")
        assert split_coil_id("dk250821b16-c03") == ("dk250821b16", "03")

    def test_split_plain_code(self):
        assert split_coil_id("DK250821B16") == ("DK250821B16", None)

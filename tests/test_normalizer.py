"""Kimlik normalizasyonu unit testleri."""

import pytest

from depo_takip.services.normalizer import normalize


class TestNormalize:
    """Taranan kodların karşılaştırılabilir biçime getirilmesi."""

    def test_strips_and_uppercases(self):
        assert normalize("  ab12  ") == "A812"

    def test_removes_non_alphanumeric(self):
        assert normalize("dk-25/08 21") == "0K250821"

    def test_ocr_substitutions_in_order(self):
        assert normalize("OILSZBGQD") == "011528600"

    def test_digits_unchanged(self):
        assert normalize("0123456789") == "0123456789"

    def test_empty_and_none(self):
        assert normalize("") == ""
        assert normalize("   ") == ""
        assert normalize(None) == ""

    @pytest.mark.parametrize("raw", ["DK250821B16", "wh123abc", " o-i-l ", "DK25O821B16-C01", "xyz"])
    def test_idempotent(self, raw):
        """normalize(normalize(s)) == normalize(s)."""
        once = normalize(raw)
        assert normalize(once) == once

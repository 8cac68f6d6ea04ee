"""Stok hareketi validasyonu - mutasyondan önce çalışır.

Engelleyici hatalar ValidationResult.errors içinde, bilgilendirici uyarılar
ValidationResult.warnings içinde döner. Uyarılar işlemi asla engellemez.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from depo_takip.config import AVERAGE_COIL_WEIGHT_KG, RETURN_RATIO_WARNING_FACTOR
from depo_takip.models.warehouse import StockType, WarehouseItem
from depo_takip.utils import round_half_up, safe_div


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def derive_original_bobin_count(item: WarehouseItem) -> int:
    """Lotun orijinal bobin sayısını döndürür; kayıtlı değilse türetir.

    Eski kayıtlarda original_bobin_count yoktur. Bu durumda mevcut bobin
    sayısı (orijinal ağırlık ve bobin sayısı pozitifse) orijinal kabul edilir,
    aksi halde orijinal ağırlık 102.4 kg/bobin ortalamasıyla bölünür.
    """
    if item.original_bobin_count:
        return item.original_bobin_count

    original_weight = item.original_weight or 0
    current_bobin = item.bobin_count or 0

    if item.current_weight == 0 and original_weight > 0 and current_bobin > 0:
        # Stok bitmiş; son bilinen bobin sayısı orijinaldir
        return current_bobin
    if original_weight > 0 and current_bobin > 0:
        return current_bobin
    return round_half_up(original_weight / AVERAGE_COIL_WEIGHT_KG)


def _kg(value: float) -> str:
    return f"{value:g}"


class StockValidator:
    """Çıkış, dönüş ve düzeltme girdilerini doğrular."""

    def validate_exit(
        self,
        item: WarehouseItem,
        weight_exit: float,
        bobin_exit: int,
        exit_location: str,
    ) -> ValidationResult:
        errors = []

        if weight_exit < 0:
            errors.append("Ağırlık negatif olamaz")
        if bobin_exit < 0:
            errors.append("Bobin sayısı negatif olamaz")
        if weight_exit <= 0 and bobin_exit <= 0:
            errors.append("En az bir miktar (kg veya bobin) girilmelidir")
        if not (exit_location or "").strip():
            errors.append("Çıkış yeri seçimi zorunludur")

        return ValidationResult(is_valid=len(errors) == 0, errors=errors)

    def validate_return(
        self,
        item: WarehouseItem,
        return_weight: float,
        return_bobin_count: int,
        condition: str,
        stock_type: StockType,
        customer_name: Optional[str] = None,
    ) -> ValidationResult:
        """Dönüş girdisini orijinal değerlere göre doğrular.

        Mevcut stokla karşılaştırma yapılmaz: dönen ürün daha önce çıkmış
        olabilir, bu yüzden üst sınır lotun orijinal ağırlık/bobin sayısıdır.
        """
        errors = []
        warnings = []

        if return_weight <= 0 and return_bobin_count <= 0:
            errors.append("En az bir miktar (kg veya bobin) girilmelidir")
        if not (condition or "").strip():
            errors.append("Ürün durumu seçimi zorunludur")
        if return_weight < 0:
            errors.append("Ağırlık negatif olamaz")
        if return_bobin_count < 0:
            errors.append("Bobin sayısı negatif olamaz")

        original_weight = item.original_weight or 0
        original_bobin = derive_original_bobin_count(item)

        if return_weight > original_weight:
            errors.append(
                f"Dönen ağırlık orijinal ağırlıktan ({_kg(original_weight)}kg) fazla olamaz"
            )
        if return_bobin_count > original_bobin:
            errors.append(
                f"Dönen bobin sayısı orijinal bobin sayısından ({original_bobin} adet) fazla olamaz"
            )

        if stock_type == StockType.CUSTOMER and not (customer_name or "").strip():
            errors.append("Müşteri stoku için müşteri adı zorunludur")

        # Bobin başına ağırlık oranı - yalnızca bilgilendirici
        if return_weight > 0 and return_bobin_count > 0:
            weight_per_coil = return_weight / return_bobin_count
            original_per_coil = safe_div(original_weight, original_bobin)
            if original_per_coil > 0:
                ratio = weight_per_coil / original_per_coil
                if ratio > RETURN_RATIO_WARNING_FACTOR or ratio < 1 / RETURN_RATIO_WARNING_FACTOR:
                    warnings.append(
                        f"Bobin başına ağırlık oranı çok aşırı ({weight_per_coil:.1f}kg/bobin vs "
                        f"orijinal {original_per_coil:.1f}kg/bobin). Lütfen kontrol edin."
                    )

        return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)

    def validate_adjustment(
        self,
        item: WarehouseItem,
        new_weight: float,
        new_bobin_count: int,
    ) -> ValidationResult:
        errors = []
        if new_weight < 0:
            errors.append("Ağırlık negatif olamaz")
        if new_bobin_count < 0:
            errors.append("Bobin sayısı negatif olamaz")
        return ValidationResult(is_valid=len(errors) == 0, errors=errors)

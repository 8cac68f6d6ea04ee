"""Depo çekirdeğinin hata sınıfları.

Bulunamayan barkod/kayıt sorguları hata değildir, None döner. Buradaki
sınıflar yalnızca işlemin reddedildiği veya tamamlanamadığı durumlar içindir.
"""

from __future__ import annotations

from typing import Iterable, Optional


class DepoError(Exception):
    """Tüm depo hatalarının temel sınıfı."""


class ValidationError(DepoError):
    """Girdi kurallara aykırı; hiçbir değişiklik yapılmadı."""

    def __init__(self, errors: Iterable[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors: list[str] = list(errors)
        super().__init__("; ".join(self.errors))


class ConflictError(DepoError):
    """İşlem mevcut durumla çelişiyor (ör. sipariş zaten depoda)."""


class ConcurrentUpdateError(ConflictError):
    """Koşullu yazma başarısız: kayıt başka bir işlem tarafından değiştirildi."""


class DuplicateItemError(ConcurrentUpdateError):
    """Eklenmek istenen lot kimliği zaten kullanılıyor."""


class NotFoundError(DepoError):
    """Değiştirilmek istenen kayıt bulunamadı."""


class StorageError(DepoError):
    """Veri deposuna erişilemedi veya depo hata döndürdü."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)

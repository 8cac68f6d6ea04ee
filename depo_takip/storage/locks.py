"""Kayıt bazında karşılıklı dışlama (tek süreçli depolar için)."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from depo_takip.errors import ConcurrentUpdateError

logger = logging.getLogger(__name__)


class ResourceLock:
    """Kaynak anahtarı başına bir kilit tutar."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._lock_owners: dict[str, str] = {}
        self._master_lock = threading.Lock()

    def acquire(self, resource_key: str, owner: str, timeout: float = 10.0) -> bool:
        """Bir kaynak için kilit alır."""
        with self._master_lock:
            if resource_key not in self._locks:
                self._locks[resource_key] = threading.Lock()
            lock = self._locks[resource_key]

        acquired = lock.acquire(timeout=timeout)
        if acquired:
            self._lock_owners[resource_key] = owner
            logger.debug("Kilit alındı: %s -> %s", owner, resource_key)
        else:
            logger.warning("Kilit alınamadı: %s -> %s (timeout)", owner, resource_key)
        return acquired

    def release(self, resource_key: str, owner: str) -> bool:
        """Bir kaynak kilidini serbest bırakır."""
        if resource_key not in self._locks:
            return False

        current = self._lock_owners.get(resource_key)
        if current != owner:
            logger.warning("Kilit sahibi uyuşmazlığı: %s != %s", owner, current)
            return False

        try:
            del self._lock_owners[resource_key]
            self._locks[resource_key].release()
            return True
        except RuntimeError:
            return False

    def is_locked(self, resource_key: str) -> bool:
        if resource_key not in self._locks:
            return False
        return self._locks[resource_key].locked()

    @contextmanager
    def hold(self, resource_key: str, owner: str, timeout: float = 10.0) -> Iterator[None]:
        if not self.acquire(resource_key, owner, timeout):
            raise ConcurrentUpdateError(f"Kayıt kilitli: {resource_key}")
        try:
            yield
        finally:
            self.release(resource_key, owner)

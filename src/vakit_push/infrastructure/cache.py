"""In-memory TTL cache for upstream provider responses."""

import logging
import threading
import time
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Anahtar başına süre sınırlı önbellek (thread-safe)."""

    def __init__(
        self,
        ttl_seconds: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize cache.

        Args:
            ttl_seconds: Kayıtların geçerlilik süresi
            name: Log mesajları için önbellek adı
            clock: Zaman kaynağı (testlerde değiştirilebilir)
        """
        self._ttl = ttl_seconds
        self._name = name
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, T]] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> float:
        """Geçerlilik süresi (saniye)."""
        return self._ttl

    def get(self, key: Hashable) -> T | None:
        """Süresi dolmamış kaydı döndür."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: T) -> None:
        """Kaydı sakla, süresi dolmuş diğer kayıtları temizle."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            self._entries[key] = (now + self._ttl, value)

    def _prune(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"{self._name}: {len(expired)} eski kayıt silindi")

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        """Önbellekte yoksa loader ile yükle ve sakla. Loader hataları saklanmaz."""
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"{self._name} önbellekten: {key}")
            return cached

        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, key: Hashable) -> None:
        """Kaydı sil."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Tüm kayıtları sil."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

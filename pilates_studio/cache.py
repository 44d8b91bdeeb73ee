from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


@dataclass
class _Entry:
    value: Any
    expires_at: Optional[datetime]


class MemoryCache:
    """Process-local key/value cache with per-entry expiration."""

    cache_type = "MemoryCache"

    def __init__(self, *, default_ttl: Optional[timedelta] = None) -> None:
        self._default_ttl = default_ttl
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any, ttl: Optional[timedelta] = None) -> None:
        ttl = ttl if ttl is not None else self._default_ttl
        expires_at = self._now() + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=expires_at)

    def get(self, key: str, default: Any = None) -> Any:
        now = self._now()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if entry.expires_at is not None and entry.expires_at <= now:
                self._entries.pop(key, None)
                return default
            return entry.value

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def count(self) -> int:
        """Live entries; expired ones are purged first."""
        now = self._now()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.expires_at is not None and e.expires_at <= now]
            for key in expired:
                del self._entries[key]
            return len(self._entries)

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["MemoryCache"]

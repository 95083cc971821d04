"""TTL + LRU In-Memory Cache

프로세스 메모리에만 존재하는 캐시입니다 (재시작 시 초기화).
- 엔트리별 TTL (조회 시점에 lazy 만료)
- 최대 엔트리 수 초과 시 가장 오래 사용되지 않은 엔트리부터 제거
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from src.core.clock import Clock, SystemClock
from src.core.logging import logger, sanitize_for_log


T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class TtlLruCache(Generic[T]):
    """TTL + LRU 캐시

    Usage:
        cache = TtlLruCache(max_entries=512)
        cache.set("key", value, ttl_seconds=900)
        cache.get("key")  # value 또는 None
    """

    def __init__(self, max_entries: int, clock: Optional[Clock] = None):
        """
        Args:
            max_entries: 최대 엔트리 수 (최소 1)
            clock: 시계 (기본값: SystemClock)
        """
        self.max_entries = max(1, int(max_entries))
        self._clock = clock or SystemClock()
        self._store: OrderedDict[str, CacheEntry[T]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        """캐시 조회

        만료 시각이 현재 이전(같은 시각 포함)이면 없는 것으로 취급하고 삭제합니다.
        조회 성공 시 해당 엔트리는 가장 최근 사용으로 표시됩니다.
        """
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None

            if entry.expires_at <= self._clock.now():
                del self._store[key]
                logger.debug(f"[CACHE] Expired: key='{sanitize_for_log(key)}'")
                return None

            self._store.move_to_end(key)
            return entry.value

    def set(self, key: str, value: T, ttl_seconds: float) -> None:
        """캐시 저장 (기존 엔트리는 덮어씀)

        Args:
            key: 캐시 키
            value: 저장할 값
            ttl_seconds: TTL (초, 최소 1초)
        """
        with self._lock:
            expires_at = self._clock.now() + max(1, ttl_seconds)
            self._store.pop(key, None)
            self._store[key] = CacheEntry(value=value, expires_at=expires_at)

            while len(self._store) > self.max_entries:
                oldest, _ = self._store.popitem(last=False)
                logger.debug(f"[CACHE] Evicted (LRU): key='{sanitize_for_log(oldest)}'")

    def delete(self, key: str) -> bool:
        """캐시 삭제"""
        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: Any) -> bool:
        with self._lock:
            return key in self._store

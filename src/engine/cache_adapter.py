"""Cache Adapter - Envelope cache with key building and trace events"""

from typing import Optional

from src.core.config import CacheConfig
from src.core.logging import logger, sanitize_for_log
from src.schemas.search_schema import SearchRequest
from src.utils.url_utils import clamp_result_count

from .cache import TtlLruCache
from .result import DebugTrace, SearchEnvelope, SearchTier


CACHE_KEY_SEPARATOR = "|"


def build_cache_key(tier: SearchTier, provider: str, request: SearchRequest) -> str:
    """캐시 키 생성

    tier|provider|정규화된 검색어|language|country|freshness|category|결과 수

    Args:
        tier: 검색 티어
        provider: provider 이름
        request: 검색 요청

    Returns:
        캐시 키
    """
    parts = [
        tier.value,
        provider,
        request.query.strip().lower(),
        request.language or "",
        request.country or "",
        request.freshness or "",
        request.category or "",
        str(clamp_result_count(request.max_results)),
    ]
    return CACHE_KEY_SEPARATOR.join(parts)


class CacheAdapter:
    """TtlLruCache를 SearchOrchestrator가 기대하는 인터페이스로 변환합니다.

    - 캐시 비활성화 시 조회는 항상 미스, 저장은 무시
    - 히트/저장 시 trace 이벤트 기록
    - provider별 TTL 선택 (searxng / brave / ai)
    """

    def __init__(self, config: CacheConfig, cache: Optional[TtlLruCache[SearchEnvelope]] = None):
        """
        Args:
            config: 캐시 설정
            cache: TtlLruCache 인스턴스 (없으면 내부 생성)
        """
        self.config = config
        self.cache: TtlLruCache[SearchEnvelope] = cache if cache is not None else TtlLruCache(config.max_entries)

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def ttl_for(self, tier: SearchTier, provider: str) -> int:
        """tier/provider별 TTL (초)"""
        if tier == SearchTier.AI:
            return self.config.ttl_seconds_ai
        if provider == "brave":
            return self.config.ttl_seconds_brave
        return self.config.ttl_seconds_basic

    def get(self, key: str, trace: DebugTrace) -> Optional[SearchEnvelope]:
        """캐시 조회

        Returns:
            SearchEnvelope or None: 히트 시 현재 요청의 trace를 단 사본
        """
        if not self.enabled:
            return None

        cached = self.cache.get(key)
        if cached is None:
            logger.debug(f"[CACHE] Miss: key='{sanitize_for_log(key)}'")
            return None

        trace.record("cache_hit", key=key)
        logger.info(f"[CACHE] Hit: provider={cached.provider}, mode={cached.mode.value}")
        return cached.with_trace(trace.snapshot())

    def set(self, key: str, envelope: SearchEnvelope, trace: DebugTrace) -> None:
        """캐시 저장 (tier/provider별 TTL 적용)"""
        if not self.enabled:
            return

        ttl_seconds = self.ttl_for(envelope.mode, envelope.provider)
        self.cache.set(key, envelope, ttl_seconds)
        trace.record("cache_set", key=key, ttl_seconds=ttl_seconds)
        logger.debug(f"[CACHE] Set: key='{sanitize_for_log(key)}', ttl={ttl_seconds}s")

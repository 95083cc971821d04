"""Routing Strategy - Provider selection and escalation decision logic

Determines provider candidate order per tier and whether an automatic-mode
search should be escalated from the basic tier to the ai tier.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Sequence

from src.core.config import AI_PROVIDERS, BASIC_PROVIDERS, SearchConfig
from src.core.exceptions import NoProviderConfiguredException, ProviderNotConfiguredException
from src.core.security import is_sensitive_query
from src.schemas.search_schema import SearchRequest

from .result import SearchTier


class SearchMode(str, Enum):
    """라우팅 모드"""

    AUTO = "auto"
    BASIC = "basic"
    AI = "ai"


class ProviderPreset(str, Enum):
    """provider 우선순위 프리셋"""

    FREE = "free"  # 무료/셀프호스팅 우선
    QUALITY = "quality"  # 유료/고품질 우선
    CUSTOM = "custom"  # 설정의 priority 그대로 사용


PRESET_ORDERS: Dict[ProviderPreset, Dict[SearchTier, List[str]]] = {
    ProviderPreset.FREE: {
        SearchTier.BASIC: ["searxng", "brave"],
        SearchTier.AI: ["tavily", "perplexity"],
    },
    ProviderPreset.QUALITY: {
        SearchTier.BASIC: ["brave", "searxng"],
        SearchTier.AI: ["perplexity", "tavily"],
    },
}

TIER_PROVIDERS: Dict[SearchTier, tuple] = {
    SearchTier.BASIC: BASIC_PROVIDERS,
    SearchTier.AI: AI_PROVIDERS,
}


class ProviderSelector:
    """티어별 provider 후보 목록 결정

    Usage:
        selector = ProviderSelector(config)
        candidates = selector.candidates(SearchTier.BASIC, request)
    """

    def __init__(self, config: SearchConfig):
        self.config = config

    def availability(self, tier: SearchTier) -> Dict[str, bool]:
        """provider별 자격 증명/엔드포인트 존재 여부"""
        if tier == SearchTier.BASIC:
            return {
                "searxng": bool(self.config.basic.searxng.base_url),
                "brave": bool(self.config.basic.brave.api_key),
            }
        return {
            "tavily": bool(self.config.ai.tavily.api_key),
            "perplexity": bool(self.config.ai.perplexity.api_key),
        }

    def base_order(self, tier: SearchTier) -> List[str]:
        """프리셋 순서 또는 (custom) 설정된 priority"""
        preset = ProviderPreset(self.config.router.provider_preset)
        if preset in PRESET_ORDERS:
            return list(PRESET_ORDERS[preset][tier])
        if tier == SearchTier.BASIC:
            return list(self.config.basic.priority)
        return list(self.config.ai.priority)

    def candidates(self, tier: SearchTier, request: SearchRequest) -> List[str]:
        """후보 provider 목록 (우선순위 순)

        - 요청이 같은 티어의 provider를 지정하면 그 provider 하나만 사용
          (설정이 없으면 ProviderNotConfiguredException)
        - 그 외에는 기본 순서를 설정된 provider로 필터링 (상대 순서 유지)

        Raises:
            ProviderNotConfiguredException: 지정한 provider가 설정되지 않은 경우
            NoProviderConfiguredException: 후보가 하나도 없는 경우
        """
        availability = self.availability(tier)

        if request.provider in TIER_PROVIDERS[tier]:
            if not availability[request.provider]:
                raise ProviderNotConfiguredException(tier.value, request.provider)
            return [request.provider]

        order = [p for p in self.base_order(tier) if availability.get(p)]
        if not order:
            raise NoProviderConfiguredException(tier.value)
        return order


@dataclass
class EscalationDecision:
    """자동 모드 승급 판단 결과"""

    basic_result_count: int
    basic_insufficient: bool
    intent_requires_ai: bool

    @property
    def should_escalate(self) -> bool:
        return self.basic_insufficient or self.intent_requires_ai


def matches_upgrade_keyword(query: str, keywords: Sequence[str]) -> bool:
    """검색어에 승급 키워드가 포함되어 있는지 (대소문자 무시)"""
    normalized = query.lower()
    return any(kw and kw.lower() in normalized for kw in keywords)


class EscalationPolicy:
    """Basic → AI 자동 승급 정책

    - Basic 결과 수가 임계값 미만이거나
    - 검색어가 승급 키워드(비교/요약/latest 등)를 포함하면 승급 대상
    - 단, privacy guard가 켜져 있고 민감한 검색어이면 승급 차단
    """

    def __init__(self, config: SearchConfig):
        self.config = config

    def evaluate(self, query: str, basic_result_count: int) -> EscalationDecision:
        router = self.config.router
        return EscalationDecision(
            basic_result_count=basic_result_count,
            basic_insufficient=basic_result_count < router.min_results_before_upgrade,
            intent_requires_ai=matches_upgrade_keyword(query, router.upgrade_keywords),
        )

    def is_blocked_by_privacy_guard(self, query: str) -> bool:
        return self.config.router.enable_privacy_guard and is_sensitive_query(query)

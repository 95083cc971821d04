"""Provider Protocol - Interface for search backend adapters

Defines the common interface that every provider adapter implements.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, Union

from .result import AiSearchResult, BasicResult


@dataclass
class ProviderInput:
    """어댑터 호출 입력

    Attributes:
        query: 원본 검색어
        max_results: [1, 20]으로 보정된 결과 수
        timeout_ms: 타임아웃 (ms)
        language/country/category/freshness/safesearch: Basic 티어 필터
        search_depth: AI 티어 (tavily) 검색 깊이
    """

    query: str
    max_results: int
    timeout_ms: int
    language: Optional[str] = None
    country: Optional[str] = None
    category: Optional[str] = None
    freshness: Optional[str] = None
    safesearch: Optional[str] = None
    search_depth: Optional[str] = None


ProviderOutput = Union[List[BasicResult], AiSearchResult]


class ProviderAdapter(Protocol):
    """검색 provider 프로토콜

    provider별 구현체(SearxngAdapter, BraveAdapter, TavilyAdapter, PerplexityAdapter)가
    구조적으로 만족해야 할 인터페이스입니다.
    """

    name: str
    tier: str
    timeout_ms: int

    def is_configured(self) -> bool:
        """자격 증명/엔드포인트가 설정되어 있는지"""
        ...

    async def search(self, params: ProviderInput) -> ProviderOutput:
        """검색 실행

        Args:
            params: 호출 입력

        Returns:
            Basic 티어: BasicResult 목록 / AI 티어: AiSearchResult

        Raises:
            MissingCredentialsException: 자격 증명 누락
            ProviderTimeoutException: 타임아웃
            ProviderHTTPException: 2xx가 아닌 응답
            ParsingException: 응답 파싱 오류
        """
        ...


def as_text(value: object) -> str:
    """JSON 값 → 문자열 (None/빈 값은 "")"""
    return str(value) if value else ""

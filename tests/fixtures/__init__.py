"""테스트 자산(데이터) 레이어

규칙:
- 로직 없음 (단순 dict/list/primitive)
- 엔진/네트워크 의존 없음
"""

from .provider_payloads import (
    BRAVE_RESPONSE,
    PERPLEXITY_RESPONSE,
    SEARXNG_RESPONSE,
    TAVILY_RESPONSE,
)

__all__ = [
    "SEARXNG_RESPONSE",
    "BRAVE_RESPONSE",
    "TAVILY_RESPONSE",
    "PERPLEXITY_RESPONSE",
]

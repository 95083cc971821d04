"""Provider Layer - Search backend adapters

- SearxngAdapter / BraveAdapter: basic tier (ranked web results)
- TavilyAdapter / PerplexityAdapter: ai tier (answer + citations)
"""

from typing import Dict, Optional

from src.core.config import SearchConfig

from .brave import BraveAdapter
from .executor import ProviderAdapter, ProviderInput, ProviderOutput
from .http_client import SharedHttpClient, get_shared_http_client, shutdown_shared_http_client
from .perplexity import PerplexityAdapter
from .result import AiSearchResult, BasicResult
from .searxng import SearxngAdapter
from .tavily import TavilyAdapter


def build_adapters(
    config: SearchConfig, http_client: Optional[SharedHttpClient] = None
) -> Dict[str, ProviderAdapter]:
    """설정으로부터 provider 이름 → 어댑터 매핑 생성

    Args:
        config: 검색 설정
        http_client: 공유 HTTP 클라이언트 (없으면 프로세스 공용 인스턴스)

    Returns:
        Dict[str, ProviderAdapter]: 4개 provider 어댑터
    """
    http = http_client or get_shared_http_client()
    return {
        "searxng": SearxngAdapter(config.basic.searxng, http),
        "brave": BraveAdapter(config.basic.brave, http),
        "tavily": TavilyAdapter(config.ai.tavily, http),
        "perplexity": PerplexityAdapter(config.ai.perplexity, http),
    }


__all__ = [
    "AiSearchResult",
    "BasicResult",
    "BraveAdapter",
    "PerplexityAdapter",
    "ProviderAdapter",
    "ProviderInput",
    "ProviderOutput",
    "SearxngAdapter",
    "SharedHttpClient",
    "TavilyAdapter",
    "build_adapters",
    "get_shared_http_client",
    "shutdown_shared_http_client",
]

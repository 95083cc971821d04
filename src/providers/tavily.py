"""Tavily Adapter - Search API with synthesized answer (ai tier)"""

from typing import Optional

from src.core.config import TavilyConfig
from src.core.exceptions import MissingCredentialsException

from .executor import ProviderInput, as_text
from .http_client import SharedHttpClient, get_shared_http_client
from .result import AiSearchResult, BasicResult


TAVILY_API = "https://api.tavily.com/search"


class TavilyAdapter:
    """Tavily Search API 어댑터"""

    name = "tavily"
    tier = "ai"

    def __init__(self, config: TavilyConfig, http_client: Optional[SharedHttpClient] = None):
        self.config = config
        self.http = http_client or get_shared_http_client()

    @property
    def timeout_ms(self) -> int:
        return self.config.timeout_ms

    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def search(self, params: ProviderInput) -> AiSearchResult:
        if not self.config.api_key:
            raise MissingCredentialsException("Tavily")

        raw = await self.http.post_json(
            TAVILY_API,
            provider=self.name,
            timeout_ms=params.timeout_ms,
            headers={"Content-Type": "application/json"},
            json_body={
                "api_key": self.config.api_key,
                "query": params.query,
                "search_depth": params.search_depth or "advanced",
                "max_results": params.max_results,
                "include_answer": True,
            },
        )
        if not isinstance(raw, dict):
            raw = {}
        rows = raw.get("results")
        if not isinstance(rows, list):
            rows = []
        rows = [r for r in rows if isinstance(r, dict)]

        results = [
            BasicResult(
                title=as_text(r.get("title")),
                url=as_text(r.get("url")),
                snippet=as_text(r.get("content")),
                site_name=as_text(r.get("source")) or None,
            )
            for r in rows
        ]
        return AiSearchResult(
            answer=as_text(raw.get("answer")),
            citations=[u for u in (as_text(r.get("url")) for r in rows) if u],
            results=[r for r in results if r.title and r.url],
        )

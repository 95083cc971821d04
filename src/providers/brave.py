"""Brave Search Adapter - Paid web search API (basic tier, rate-limited)"""

from typing import Any, Dict, List, Optional

from src.core.config import BraveConfig
from src.core.exceptions import MissingCredentialsException

from .executor import ProviderInput, as_text
from .http_client import SharedHttpClient, get_shared_http_client
from .result import BasicResult


BRAVE_WEB_API = "https://api.search.brave.com/res/v1/web/search"


class BraveAdapter:
    """Brave Web Search API 어댑터

    일일 호출 한도(max_brave_calls_per_day)가 걸린 provider입니다.
    """

    name = "brave"
    tier = "basic"

    def __init__(self, config: BraveConfig, http_client: Optional[SharedHttpClient] = None):
        self.config = config
        self.http = http_client or get_shared_http_client()

    @property
    def timeout_ms(self) -> int:
        return self.config.timeout_ms

    def is_configured(self) -> bool:
        return bool(self.config.api_key)

    async def search(self, params: ProviderInput) -> List[BasicResult]:
        if not self.config.api_key:
            raise MissingCredentialsException("Brave")

        query: Dict[str, Any] = {"q": params.query, "count": str(params.max_results)}
        if params.language:
            query["search_lang"] = params.language
        if params.country:
            query["country"] = params.country
        safesearch = params.safesearch or self.config.safesearch
        if safesearch:
            query["safesearch"] = safesearch
        if params.freshness:
            query["freshness"] = params.freshness

        raw = await self.http.get_json(
            BRAVE_WEB_API,
            provider=self.name,
            timeout_ms=params.timeout_ms,
            params=query,
            headers={"Accept": "application/json", "X-Subscription-Token": self.config.api_key},
        )
        web = raw.get("web") if isinstance(raw, dict) else None
        rows = web.get("results") if isinstance(web, dict) else None
        if not isinstance(rows, list):
            rows = []

        results = []
        for r in rows:
            if not isinstance(r, dict):
                continue
            profile = r.get("profile")
            site_name = as_text(profile.get("name")) if isinstance(profile, dict) else None
            results.append(
                BasicResult(
                    title=as_text(r.get("title")),
                    url=as_text(r.get("url")),
                    snippet=as_text(r.get("description")),
                    site_name=site_name,
                )
            )
        return [r for r in results if r.title and r.url]

"""SearXNG Adapter - Self-hosted metasearch (basic tier)"""

from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from src.core.config import SearxngConfig
from src.core.exceptions import MissingCredentialsException
from src.core.logging import logger

from .executor import ProviderInput, as_text
from .http_client import SharedHttpClient, get_shared_http_client
from .result import BasicResult


class SearxngAdapter:
    """SearXNG JSON API 어댑터

    특징:
    - 셀프호스팅 (API 키 불필요, base_url 필수)
    - count 파라미터가 없어 응답을 max_results로 잘라서 사용
    """

    name = "searxng"
    tier = "basic"

    def __init__(self, config: SearxngConfig, http_client: Optional[SharedHttpClient] = None):
        self.config = config
        self.http = http_client or get_shared_http_client()

    @property
    def timeout_ms(self) -> int:
        return self.config.timeout_ms

    def is_configured(self) -> bool:
        return bool(self.config.base_url)

    async def search(self, params: ProviderInput) -> List[BasicResult]:
        if not self.config.base_url:
            raise MissingCredentialsException("SearXNG", "base URL")

        url = urljoin(self.config.base_url, "/search")
        query: Dict[str, Any] = {"q": params.query, "format": "json"}
        if params.language:
            query["language"] = params.language
        if params.category:
            query["categories"] = params.category

        raw = await self.http.get_json(
            url,
            provider=self.name,
            timeout_ms=params.timeout_ms,
            params=query,
        )
        rows = raw.get("results") if isinstance(raw, dict) else None
        if not isinstance(rows, list):
            rows = []

        results = [
            BasicResult(
                title=as_text(r.get("title")),
                url=as_text(r.get("url")),
                snippet=as_text(r.get("content") or r.get("snippet")),
                site_name=as_text(r.get("engine")) or None,
            )
            for r in rows[: params.max_results]
            if isinstance(r, dict)
        ]
        results = [r for r in results if r.title and r.url]
        logger.debug(f"[PROVIDER] searxng returned {len(results)}/{len(rows)} usable rows")
        return results
